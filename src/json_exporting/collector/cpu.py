"""CPU collector for the local host."""

from __future__ import annotations

import time

import psutil

from .base import BaseCollector, Host

# fields psutil reports on every platform; the rest are optional
_CPU_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")


class CpuCollector(BaseCollector):
    """Collects CPU utilization and load average."""

    @property
    def name(self) -> str:
        return "cpu"

    def collect(self, host: Host) -> None:
        now = time.time()

        times = psutil.cpu_times_percent(interval=0)
        chart = host.chart(
            "system.cpu",
            name="cpu",
            family="cpu",
            context="system.cpu",
            chart_type="stacked",
            units="percentage",
        )
        for field in _CPU_FIELDS:
            value = getattr(times, field, None)
            if value is not None:
                chart.set(field, value, now)

        # load averages are kept as integers scaled by 1000
        load1, load5, load15 = psutil.getloadavg()
        load = host.chart(
            "system.load",
            name="load",
            family="load",
            context="system.load",
            units="load",
        )
        load.set("load1", load1 * 1000, now)
        load.set("load5", load5 * 1000, now)
        load.set("load15", load15 * 1000, now)

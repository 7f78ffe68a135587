"""Memory collector for the local host."""

from __future__ import annotations

import time

import psutil

from .base import BaseCollector, Host

MIB = 1024 * 1024


class MemoryCollector(BaseCollector):
    """Collects RAM and swap usage in MiB."""

    @property
    def name(self) -> str:
        return "memory"

    def collect(self, host: Host) -> None:
        now = time.time()
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()

        ram = host.chart(
            "system.ram",
            name="ram",
            family="ram",
            context="system.ram",
            chart_type="stacked",
            units="MiB",
        )
        ram.set("used", mem.used / MIB, now)
        ram.set("free", mem.free / MIB, now)
        ram.set("cached", getattr(mem, "cached", 0) / MIB, now)
        ram.set("buffers", getattr(mem, "buffers", 0) / MIB, now)

        swap_chart = host.chart(
            "system.swap",
            name="swap",
            family="swap",
            context="system.swap",
            chart_type="stacked",
            units="MiB",
        )
        swap_chart.set("used", swap.used / MIB, now)
        swap_chart.set("free", swap.free / MIB, now)

"""Network collector for the local host."""

from __future__ import annotations

import time

import psutil

from .base import BaseCollector, Host


class NetworkCollector(BaseCollector):
    """Collects per-interface traffic as kilobit counters."""

    def __init__(self, interface: str = "") -> None:
        self._interface = interface

    @property
    def name(self) -> str:
        return "network"

    def collect(self, host: Host) -> None:
        now = time.time()

        counters = psutil.net_io_counters(pernic=True)
        interfaces = [self._interface] if self._interface and self._interface in counters else list(counters.keys())

        for iface in interfaces:
            if iface == "lo":
                continue
            nio = counters.get(iface)
            if nio is None:
                continue

            chart = host.chart(
                f"net.{iface}",
                name=f"net_{iface}",
                family=iface,
                context="net.net",
                chart_type="area",
                units="kilobits",
            )
            chart.set("received", nio.bytes_recv * 8 / 1000, now)
            chart.set("sent", nio.bytes_sent * 8 / 1000, now)

"""Collector manager that keeps the local host's charts up to date."""

from __future__ import annotations

import logging
import threading

from ..config import CollectorConfig
from .base import BaseCollector, Host
from .cpu import CpuCollector
from .memory import MemoryCollector
from .network import NetworkCollector

logger = logging.getLogger(__name__)


class CollectorManager:
    """Runs the configured collectors against one host on an interval.

    Instantiate it with a :class:`CollectorConfig` and the host to fill,
    then call :meth:`start` / :meth:`stop`, or :meth:`collect_once` for a
    single synchronous pass.
    """

    def __init__(self, config: CollectorConfig, host: Host) -> None:
        self._config = config
        self._host = host
        self._collectors: list[BaseCollector] = []
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        if config.cpu:
            self._collectors.append(CpuCollector())
        if config.memory:
            self._collectors.append(MemoryCollector())
        if config.network:
            self._collectors.append(NetworkCollector(interface=config.network_interface))

    @property
    def host(self) -> Host:
        return self._host

    def collect_once(self) -> None:
        """Run all collectors once."""
        for collector in self._collectors:
            try:
                collector.collect(self._host)
            except Exception:
                logger.exception("Collector %s failed", collector.name)

    def _run(self) -> None:
        """Background thread loop."""
        while not self._stop_event.is_set():
            self.collect_once()
            self._stop_event.wait(self._config.interval_seconds)

    def start(self) -> None:
        """Start collecting in the background."""
        if not self._config.enabled:
            return
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="collector", daemon=True)
        self._thread.start()
        logger.info("CollectorManager started (interval=%.1fs)", self._config.interval_seconds)

    def stop(self) -> None:
        """Stop background collection."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("CollectorManager stopped")

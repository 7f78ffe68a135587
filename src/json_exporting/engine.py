"""Exporting engine: drives connectors through one export cycle at a time."""

from __future__ import annotations

import logging
import threading
import time

from .collector.base import Host
from .config import ExportingConfig
from .connector import BaseConnector, create_connector
from .connector.formatters import ExportContext
from .connector.worker import SimpleConnectorWorker
from .exceptions import ConnectorInitError

logger = logging.getLogger(__name__)


class ExportingEngine:
    """Walks hosts, charts and dimensions and feeds them to every connector.

    Each connector runs its own cycle every ``update_every`` seconds over
    the window ``(after, before]`` that starts where its previous cycle
    ended. Dimensions not collected inside the window are left out. When
    started, every connector also gets a :class:`SimpleConnectorWorker`
    that ships the batches it hands off.
    """

    def __init__(self, config: ExportingConfig, localhost: Host, hosts: list[Host] | None = None) -> None:
        self._config = config
        self.localhost = localhost
        self._hosts: list[Host] = [localhost]
        for host in hosts or []:
            self.add_host(host)

        self.connectors: list[BaseConnector] = []
        self._workers: list[SimpleConnectorWorker] = []
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        for connector_config in config.connectors:
            if not connector_config.enabled:
                continue
            try:
                connector = create_connector(connector_config)
            except ConnectorInitError as exc:
                logger.error("EXPORTING: %s; instance not started", exc)
                continue
            self.add_connector(connector)

    @property
    def hosts(self) -> list[Host]:
        return list(self._hosts)

    def add_host(self, host: Host) -> None:
        if host not in self._hosts:
            self._hosts.append(host)

    def add_connector(self, connector: BaseConnector) -> None:
        self.connectors.append(connector)
        logger.info("Connector %s (%s) configured", connector.name, connector.type_name)

    # -- export cycles ---------------------------------------------------------

    def export_once(self, now: float | None = None) -> None:
        """Run one export cycle for every connector, regardless of schedule."""
        if now is None:
            now = time.time()
        for connector in self.connectors:
            self.export_connector(connector, now)

    def export_connector(self, connector: BaseConnector, now: float) -> None:
        with connector.lock:
            after = connector.before or now - connector.config.update_every
            connector.after = after
            connector.before = now
            context = ExportContext(
                localhost=self.localhost,
                hostname=self._config.hostname,
                after=after,
                before=now,
            )
            try:
                self._run_cycle(connector, context)
            except Exception:
                logger.exception("Connector %s failed while formatting; batch discarded", connector.name)
                connector.reset_buffer()

    def _run_cycle(self, connector: BaseConnector, context: ExportContext) -> None:
        connector.begin_batch()
        for host in list(self._hosts):
            if not connector.is_host_exportable(host, context):
                continue
            connector.begin_host(host)
            for chart in list(host.charts.values()):
                if not connector.is_chart_exportable(chart):
                    continue
                connector.begin_chart(chart)
                for dimension in list(chart.dimensions.values()):
                    if dimension.last_collected()[1] <= context.after:
                        continue
                    connector.metric(host, chart, dimension, context)
                connector.end_chart(chart)
            connector.end_host(host)
        connector.end_batch()

    def is_due(self, connector: BaseConnector, now: float) -> bool:
        return now - connector.before >= connector.config.update_every

    # -- background operation --------------------------------------------------

    def _run(self) -> None:
        """Background thread loop."""
        while not self._stop_event.is_set():
            now = time.time()
            for connector in self.connectors:
                if self.is_due(connector, now):
                    self.export_connector(connector, now)
            self._stop_event.wait(self._config.update_every)

    def start(self, workers: bool = True) -> None:
        """Start the transport workers and the export scheduler."""
        if not self._config.enabled:
            return
        if self._thread is not None:
            return
        if workers:
            for connector in self.connectors:
                worker = SimpleConnectorWorker(connector)
                worker.start()
                self._workers.append(worker)

        now = time.time()
        for connector in self.connectors:
            # first cycle runs one interval from now
            connector.before = now

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="exporting", daemon=True)
        self._thread.start()
        logger.info("ExportingEngine started (%d connectors)", len(self.connectors))

    def stop(self) -> None:
        """Stop scheduling cycles, then let the workers drain and exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        for worker in self._workers:
            worker.stop()
        self._workers = []
        logger.info("ExportingEngine stopped")

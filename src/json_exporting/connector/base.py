"""Base class for exporting connectors.

A connector is driven through a fixed sequence of stages for every export
cycle::

    begin_batch
        begin_host
            begin_chart
                metric  (once per dimension)
            end_chart
        end_host
    end_batch

Every stage except :meth:`BaseConnector.metric` is a no-op unless a
subclass overrides it. Subclasses write into :attr:`BaseConnector.buffer`
and call :meth:`BaseConnector.hand_off_batch` from ``end_batch``.
"""

from __future__ import annotations

import abc
import io
import logging
import threading
from dataclasses import dataclass

from ..collector.base import Chart, Dimension, Host
from ..collector.storage import DataSource
from ..config import ConnectorConfig
from ..exceptions import ConnectorInitError
from ..patterns import SimplePattern
from .formatters import ExportContext, ValueSource, value_source_for
from .handoff import Batch, BatchHandoff
from .labels import LabelPolicy

logger = logging.getLogger(__name__)


@dataclass
class ConnectorStats:
    """Counters kept per connector instance."""

    buffered_metrics: int = 0
    buffered_bytes: int = 0
    sent_metrics: int = 0
    sent_bytes: int = 0
    transmission_successes: int = 0
    transmission_failures: int = 0
    receptions: int = 0
    received_bytes: int = 0
    reconnects: int = 0


class BaseConnector(abc.ABC):
    """One configured export target and its formatting state."""

    type_name = ""

    def __init__(self, config: ConnectorConfig, value_source: ValueSource | None = None) -> None:
        self.config = config
        self.name = config.name

        if not config.destination or not config.destination.strip():
            raise ConnectorInitError(f"connector {config.name}: no destination configured")
        if value_source is None:
            try:
                data_source = DataSource.parse(config.data_source)
            except ValueError as exc:
                raise ConnectorInitError(f"connector {config.name}: {exc}") from exc
            value_source = value_source_for(data_source)

        self.value_source = value_source
        self.label_policy = LabelPolicy.from_config(config)
        self.hosts_pattern = SimplePattern(config.send_hosts_matching)
        self.charts_pattern = SimplePattern(config.send_charts_matching)

        self.buffer = io.StringIO()
        self.labels: str | None = None
        self.lock = threading.Lock()
        self.handoff = BatchHandoff(config.buffer_on_failures, name=config.name)
        self.stats = ConnectorStats()

        # export window of the last cycle, (after, before]
        self.after = 0.0
        self.before = 0.0
        self._sequence = 0
        self._pending_metrics = 0

    # -- selection -----------------------------------------------------------

    def is_host_exportable(self, host: Host, context: ExportContext) -> bool:
        if context.localhost is not None and host is context.localhost:
            if self.hosts_pattern.matches("localhost"):
                return True
        return self.hosts_pattern.matches(host.hostname)

    def is_chart_exportable(self, chart: Chart) -> bool:
        return self.charts_pattern.matches(chart.id) or self.charts_pattern.matches(chart.name)

    # -- lifecycle stages ------------------------------------------------------

    def begin_batch(self) -> None:
        pass

    def begin_host(self, host: Host) -> None:
        pass

    def begin_chart(self, chart: Chart) -> None:
        pass

    @abc.abstractmethod
    def metric(self, host: Host, chart: Chart, dimension: Dimension, context: ExportContext) -> bool:
        """Format one dimension. Returns False if nothing was written."""

    def end_chart(self, chart: Chart) -> None:
        pass

    def end_host(self, host: Host) -> None:
        pass

    def end_batch(self) -> None:
        pass

    def prepare_header(self, body: bytes) -> bytes:
        """Return the transport preamble for a frozen *body*."""
        return b""

    def check_response(self, data: bytes) -> None:
        """Accept and discard whatever the backend sent back."""
        self.stats.receptions += 1
        self.stats.received_bytes += len(data)
        logger.debug("%s: discarding %d response bytes", self.name, len(data))

    # -- helpers ---------------------------------------------------------------

    def count_metric(self) -> None:
        self._pending_metrics += 1

    def reset_buffer(self) -> None:
        """Throw away a partially formatted batch."""
        self.buffer = io.StringIO()
        self.labels = None
        self._pending_metrics = 0

    def hand_off_batch(self) -> Batch | None:
        """Freeze the buffer, build the header and publish the batch.

        The connector starts the next cycle with an empty buffer. A cycle
        that produced no metrics is discarded.
        """
        body = self.buffer.getvalue().encode("utf-8")
        metrics = self._pending_metrics
        self.buffer = io.StringIO()
        self._pending_metrics = 0

        if metrics == 0:
            logger.debug("%s: nothing to export in this cycle", self.name)
            return None

        header = self.prepare_header(body)
        self._sequence += 1
        batch = Batch(sequence=self._sequence, body=body, header=header, metrics=metrics)
        self.handoff.publish(batch)

        self.stats.buffered_metrics += metrics
        self.stats.buffered_bytes += batch.size
        logger.debug("%s: batch %d ready (%d metrics, %d bytes)", self.name, batch.sequence, metrics, batch.size)
        return batch

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, destination={self.config.destination!r})"

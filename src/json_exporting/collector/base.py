"""Host, chart and dimension store plus the base interface for collectors."""

from __future__ import annotations

import abc
import enum
import math
import threading
import time
from collections import deque
from dataclasses import dataclass

DEFAULT_HISTORY_SIZE = 3600


class LabelSource(enum.Enum):
    """Where a host label came from."""

    AUTO = "auto"
    CONFIGURED = "configured"
    DOCKER = "docker"
    ENV = "environment"
    KUBERNETES = "kubernetes"


@dataclass(frozen=True)
class Label:
    """A host-level key/value metadata tag."""

    key: str
    value: str
    source: LabelSource = LabelSource.CONFIGURED


class Dimension:
    """One time series within a chart.

    Keeps the last collected value as an integer counter and a bounded
    history of ``(timestamp, value)`` points for calculated exports. Both
    are written by the collector thread and read by the exporting thread,
    so readers go through :meth:`last_collected` and :meth:`history_snapshot`.
    """

    def __init__(self, dim_id: str, name: str | None = None, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self.id = dim_id
        self.name = name or dim_id
        self.lock = threading.Lock()
        self.last_collected_value = 0
        self.last_collected_time = 0.0
        self.history: deque[tuple[float, float]] = deque(maxlen=max(1, history_size))

    def collect(self, value: float, timestamp: float | None = None) -> None:
        if timestamp is None:
            timestamp = time.time()
        value = float(value)
        with self.lock:
            # a non-finite reading keeps the previous integer counter
            if math.isfinite(value):
                self.last_collected_value = int(value)
            self.last_collected_time = timestamp
            self.history.append((timestamp, value))

    def last_collected(self) -> tuple[int, float]:
        """Return ``(value, time)`` of the last collection as one pair."""
        with self.lock:
            return self.last_collected_value, self.last_collected_time

    def history_snapshot(self) -> list[tuple[float, float]]:
        with self.lock:
            return list(self.history)

    def __repr__(self) -> str:
        return f"Dimension({self.id!r}, last={self.last_collected_value})"


class Chart:
    """A named group of related dimensions on a host."""

    def __init__(
        self,
        chart_id: str,
        *,
        name: str | None = None,
        family: str = "",
        context: str = "",
        chart_type: str = "line",
        units: str = "",
        update_every: int = 1,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        self.id = chart_id
        self.name = name or chart_id
        self.family = family or self.name
        self.context = context or chart_id
        self.type = chart_type
        self.units = units
        self.update_every = update_every
        self._history_size = history_size
        self.dimensions: dict[str, Dimension] = {}

    def dimension(self, dim_id: str, name: str | None = None) -> Dimension:
        """Return the dimension *dim_id*, creating it on first use."""
        dim = self.dimensions.get(dim_id)
        if dim is None:
            dim = Dimension(dim_id, name, history_size=self._history_size)
            self.dimensions[dim_id] = dim
        return dim

    def set(self, dim_id: str, value: float, timestamp: float | None = None) -> None:
        self.dimension(dim_id).collect(value, timestamp)

    @property
    def last_updated(self) -> float:
        if not self.dimensions:
            return 0.0
        return max(d.last_collected_time for d in self.dimensions.values())

    def __repr__(self) -> str:
        return f"Chart({self.id!r}, dimensions={len(self.dimensions)})"


class Host:
    """A monitored entity that owns charts, tags and labels.

    Labels are guarded by :attr:`labels_lock`; readers take a snapshot with
    :meth:`labels_snapshot` instead of iterating the live list.
    """

    def __init__(
        self,
        hostname: str,
        *,
        tags: str = "",
        labels: list[Label] | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        self.hostname = hostname
        self.tags = tags
        self.labels_lock = threading.RLock()
        self._labels: list[Label] = list(labels or [])
        self._history_size = history_size
        self.charts: dict[str, Chart] = {}

    def chart(self, chart_id: str, **kwargs) -> Chart:
        """Return the chart *chart_id*, creating it with *kwargs* on first use."""
        chart = self.charts.get(chart_id)
        if chart is None:
            kwargs.setdefault("history_size", self._history_size)
            chart = Chart(chart_id, **kwargs)
            self.charts[chart_id] = chart
        return chart

    def add_label(self, key: str, value: str, source: LabelSource = LabelSource.CONFIGURED) -> None:
        with self.labels_lock:
            self._labels = [lbl for lbl in self._labels if lbl.key != key]
            self._labels.append(Label(key, value, source))

    def set_labels(self, labels: list[Label]) -> None:
        with self.labels_lock:
            self._labels = list(labels)

    def labels_snapshot(self) -> list[Label]:
        with self.labels_lock:
            return list(self._labels)

    def __repr__(self) -> str:
        return f"Host({self.hostname!r}, charts={len(self.charts)})"


@dataclass(frozen=True)
class Sample:
    """An immutable snapshot of one dimension value ready to be rendered."""

    hostname: str
    chart_id: str
    chart_name: str
    chart_family: str
    chart_context: str
    chart_type: str
    units: str
    dim_id: str
    dim_name: str
    value: float
    timestamp: int

    @classmethod
    def from_dimension(
        cls,
        hostname: str,
        chart: Chart,
        dimension: Dimension,
        value: float,
        timestamp: float,
    ) -> "Sample":
        return cls(
            hostname=hostname,
            chart_id=chart.id,
            chart_name=chart.name,
            chart_family=chart.family,
            chart_context=chart.context,
            chart_type=chart.type,
            units=chart.units,
            dim_id=dimension.id,
            dim_name=dimension.name,
            value=value,
            timestamp=int(timestamp),
        )


class BaseCollector(abc.ABC):
    """Abstract base class for local host collectors."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Collector name used in configuration and logging."""

    @abc.abstractmethod
    def collect(self, host: Host) -> None:
        """Collect current metrics into charts of *host*."""

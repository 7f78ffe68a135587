"""Render one dimension value as a flat JSON object.

Two value sources are available. :class:`CollectedValueSource` exports the
last collected integer value of a dimension as-is. :class:`StoredValueSource`
asks the storage layer for a value calculated over the export window and
skips the dimension when there is nothing to report.
"""

from __future__ import annotations

import abc
import math
from dataclasses import dataclass
from typing import Callable

from ..collector.base import Chart, Dimension, Host, Sample
from ..collector.storage import DataSource, calculate_value_from_stored_data
from .sanitize import sanitize_json_string

CalculateFn = Callable[[Dimension, float, float, DataSource], "tuple[float, int]"]


@dataclass(frozen=True)
class ExportContext:
    """Per-cycle facts the formatters need from the driver."""

    localhost: Host | None
    hostname: str
    after: float
    before: float

    def hostname_of(self, host: Host) -> str:
        if self.localhost is not None and host is self.localhost:
            return self.hostname
        return host.hostname


class ValueSource(abc.ABC):
    """Produces the sample to export for a dimension."""

    @abc.abstractmethod
    def sample(self, host: Host, chart: Chart, dimension: Dimension, context: ExportContext) -> Sample | None:
        """Return the sample to render, or None to skip the dimension."""

    @abc.abstractmethod
    def format_value(self, value: float) -> str:
        """Render a sample value as a JSON number."""


class CollectedValueSource(ValueSource):
    """Exports the last collected value and its collection time."""

    def sample(self, host: Host, chart: Chart, dimension: Dimension, context: ExportContext) -> Sample | None:
        value, collected_at = dimension.last_collected()
        return Sample.from_dimension(context.hostname_of(host), chart, dimension, value, collected_at)

    def format_value(self, value: float) -> str:
        return "%d" % int(value)


class StoredValueSource(ValueSource):
    """Exports a value calculated from stored history over the cycle window."""

    def __init__(self, method: DataSource = DataSource.AVERAGE, calculate: CalculateFn | None = None) -> None:
        self.method = method
        self._calculate = calculate or calculate_value_from_stored_data

    def sample(self, host: Host, chart: Chart, dimension: Dimension, context: ExportContext) -> Sample | None:
        value, timestamp = self._calculate(dimension, context.after, context.before, self.method)
        # NaN means no data in the window; infinities have no JSON form
        if not math.isfinite(value):
            return None
        return Sample.from_dimension(context.hostname_of(host), chart, dimension, value, timestamp)

    def format_value(self, value: float) -> str:
        return "%0.7f" % value


def value_source_for(data_source: DataSource) -> ValueSource:
    if data_source is DataSource.AS_COLLECTED:
        return CollectedValueSource()
    return StoredValueSource(data_source)


def format_host_tags(tags: str | None) -> str:
    """Return the ``host_tags`` member (with trailing comma) or an empty string.

    Tags that already look like a JSON value are embedded raw.
    """
    if not tags:
        return ""
    if tags[0] in "{[\"":
        return '"host_tags":%s,' % tags
    return '"host_tags":"%s",' % sanitize_json_string(tags)


def format_sample_json(
    prefix: str,
    sample: Sample,
    value: str,
    host_tags: str = "",
    labels: str | None = None,
) -> str:
    """Return the JSON object for *sample*; *value* is already formatted."""
    return (
        "{"
        '"prefix":"%s",'
        '"hostname":"%s",'
        "%s"
        "%s"
        '"chart_id":"%s",'
        '"chart_name":"%s",'
        '"chart_family":"%s",'
        '"chart_context":"%s",'
        '"chart_type":"%s",'
        '"units":"%s",'
        '"id":"%s",'
        '"name":"%s",'
        '"value":%s,'
        '"timestamp":%d'
        "}"
    ) % (
        sanitize_json_string(prefix),
        sanitize_json_string(sample.hostname),
        host_tags,
        labels or "",
        sanitize_json_string(sample.chart_id),
        sanitize_json_string(sample.chart_name),
        sanitize_json_string(sample.chart_family),
        sanitize_json_string(sample.chart_context),
        sanitize_json_string(sample.chart_type),
        sanitize_json_string(sample.units),
        sanitize_json_string(sample.dim_id),
        sanitize_json_string(sample.dim_name),
        value,
        sample.timestamp,
    )

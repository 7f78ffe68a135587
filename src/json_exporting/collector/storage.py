"""Derive an exportable value from a dimension's retained history."""

from __future__ import annotations

import enum
import logging
import math

from .base import Dimension

logger = logging.getLogger(__name__)


class DataSource(enum.Enum):
    """How a connector obtains the value it exports."""

    AS_COLLECTED = "as collected"
    AVERAGE = "average"
    SUM = "sum"

    @classmethod
    def parse(cls, value: str) -> "DataSource":
        normalized = (value or "").strip().lower().replace("-", " ").replace("_", " ")
        if normalized in ("as collected", "raw"):
            return cls.AS_COLLECTED
        if normalized in ("average", "avg", "mean"):
            return cls.AVERAGE
        if normalized in ("sum", "volume"):
            return cls.SUM
        raise ValueError(f"unknown data source: {value!r}")


def calculate_value_from_stored_data(
    dimension: Dimension,
    after: float,
    before: float,
    method: DataSource = DataSource.AVERAGE,
) -> tuple[float, int]:
    """Return ``(value, timestamp)`` for the window ``(after, before]``.

    The value is NaN when the dimension has no points in the window. The
    timestamp is *before*, clamped to the newest retained point.
    """
    points = dimension.history_snapshot()
    if not points:
        return math.nan, int(before)

    first_t = points[0][0]
    last_t = points[-1][0]
    if after > last_t or before < first_t:
        logger.debug(
            "Dimension %s has no data in window (%s, %s], retained [%s, %s]",
            dimension.id, after, before, first_t, last_t,
        )
        return math.nan, int(before)

    if before > last_t:
        before = last_t

    total = 0.0
    count = 0
    for timestamp, value in points:
        if after < timestamp <= before and not math.isnan(value):
            total += value
            count += 1

    if count == 0:
        return math.nan, int(before)

    if method is DataSource.SUM:
        return total, int(before)
    return total / count, int(before)

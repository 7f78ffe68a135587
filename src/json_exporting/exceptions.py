"""Exceptions raised by json_exporting."""

from __future__ import annotations


class JsonExportingError(Exception):
    """Base class for all json_exporting errors."""


class ConnectorInitError(JsonExportingError):
    """A connector instance could not be initialized and must not be started."""


class TransportError(JsonExportingError):
    """A batch could not be delivered to any configured destination."""

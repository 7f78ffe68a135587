"""Exporting connectors.

Built-in connector types:
- ``json`` – newline-delimited JSON objects over TCP
- ``json:http`` – a JSON array per batch, sent as an HTTP POST
"""

from __future__ import annotations

from ..config import ConnectorConfig
from ..exceptions import ConnectorInitError
from .base import BaseConnector
from .json import JsonConnector, JsonHttpConnector

CONNECTOR_TYPES: dict[str, type[BaseConnector]] = {
    JsonConnector.type_name: JsonConnector,
    JsonHttpConnector.type_name: JsonHttpConnector,
}


def create_connector(config: ConnectorConfig) -> BaseConnector:
    """Instantiate the connector class registered for ``config.type``."""
    cls = CONNECTOR_TYPES.get((config.type or "").strip().lower())
    if cls is None:
        raise ConnectorInitError(f"connector {config.name}: unknown type {config.type!r}")
    return cls(config)


__all__ = [
    "BaseConnector",
    "CONNECTOR_TYPES",
    "JsonConnector",
    "JsonHttpConnector",
    "create_connector",
]

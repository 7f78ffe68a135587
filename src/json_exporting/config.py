"""Configuration loading and validation for json_exporting."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_PORT = 5448


@dataclass
class ConnectorConfig:
    """One export target."""

    name: str = "json"
    type: str = "json"
    enabled: bool = True
    destination: str = "localhost"
    prefix: str = "netdata"
    data_source: str = "average"
    update_every: int = 10
    buffer_on_failures: int = 10
    timeout_ms: int = 20000
    send_hosts_matching: str = "localhost *"
    send_charts_matching: str = "*"
    send_configured_labels: bool = True
    send_automatic_labels: bool = False
    send_labels_matching: str = "*"
    use_tls: bool = False
    default_port: int = DEFAULT_PORT


@dataclass
class CollectorConfig:
    """Local host collector settings."""

    enabled: bool = True
    interval_seconds: float = 1.0
    cpu: bool = True
    memory: bool = True
    network: bool = True
    network_interface: str = ""
    history_size: int = 3600


@dataclass
class ExportingConfig:
    """Top-level json_exporting configuration."""

    enabled: bool = True
    hostname: str = field(default_factory=socket.gethostname)
    update_every: float = 1.0
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    connectors: list[ConnectorConfig] = field(default_factory=list)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides using JSON_EXPORTING_ prefix."""
    env_map = {
        "JSON_EXPORTING_HOSTNAME": ("hostname",),
        "JSON_EXPORTING_UPDATE_EVERY": ("update_every",),
        "JSON_EXPORTING_COLLECTOR_INTERVAL": ("collector", "interval_seconds"),
    }
    for env_key, path in env_map.items():
        value = os.environ.get(env_key)
        if value is not None:
            obj = data
            for part in path[:-1]:
                obj = obj.setdefault(part, {})
            final_key = path[-1]
            # coerce numeric values
            if final_key in ("update_every", "interval_seconds"):
                obj[final_key] = float(value)
            else:
                obj[final_key] = value

    # connector-wide overrides
    connector_env = {
        "JSON_EXPORTING_DESTINATION": "destination",
        "JSON_EXPORTING_PREFIX": "prefix",
    }
    for env_key, key in connector_env.items():
        value = os.environ.get(env_key)
        if value is not None:
            for connector in data.get("connectors") or []:
                if isinstance(connector, dict):
                    connector[key] = value
    return data


def _connector_from_dict(index: int, data: dict[str, Any]) -> ConnectorConfig:
    known = {
        k: v for k, v in data.items()
        if k in ConnectorConfig.__dataclass_fields__
    }
    known.setdefault("name", f"{known.get('type', 'json')}:{index}")
    return ConnectorConfig(**known)


def _dict_to_config(data: dict[str, Any]) -> ExportingConfig:
    """Convert a raw dictionary to an ExportingConfig dataclass."""
    collector_data = data.get("collector", {}) or {}
    connectors_data = data.get("connectors", []) or []

    kwargs: dict[str, Any] = {
        k: data[k] for k in ("enabled", "hostname", "update_every") if k in data
    }
    return ExportingConfig(
        collector=CollectorConfig(**{
            k: v for k, v in collector_data.items()
            if k in CollectorConfig.__dataclass_fields__
        }),
        connectors=[
            _connector_from_dict(idx, item)
            for idx, item in enumerate(connectors_data)
            if isinstance(item, dict)
        ],
        **kwargs,
    )


def load_config(path: str | Path | None = None) -> ExportingConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``json_exporting.yaml`` in the current directory if *path* is None.
    """
    data: dict[str, Any] = {}
    if path is None:
        path = Path("json_exporting.yaml")
    else:
        path = Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh)
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return _dict_to_config(data)

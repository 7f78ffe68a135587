"""Shared fixtures for json_exporting tests."""

import pytest

from json_exporting.collector.base import Host, LabelSource
from json_exporting.config import ConnectorConfig

NOW = 1700000000.0


def make_host(hostname="web01", tags="", labels=None):
    """Build a host with one CPU chart holding two collected dimensions."""
    host = Host(hostname, tags=tags)
    for key, value, source in labels or []:
        host.add_label(key, value, source)
    chart = host.chart(
        "system.cpu",
        name="cpu",
        family="cpu",
        context="system.cpu",
        chart_type="line",
        units="percentage",
    )
    chart.set("user", 42, NOW)
    chart.set("system", 7, NOW)
    return host


@pytest.fixture
def host():
    return make_host(
        tags="env:prod",
        labels=[
            ("env", "prod", LabelSource.CONFIGURED),
            ("role", "db", LabelSource.CONFIGURED),
            ("_os", "linux", LabelSource.AUTO),
        ],
    )


@pytest.fixture
def collected_config():
    return ConnectorConfig(name="test", type="json", destination="localhost:5448", data_source="as collected")

"""Tests for the json and json:http connectors."""

import json
import math

import pytest
from conftest import NOW, make_host

from json_exporting.collector.base import LabelSource
from json_exporting.config import ConnectorConfig
from json_exporting.connector import (
    CONNECTOR_TYPES,
    JsonConnector,
    JsonHttpConnector,
    create_connector,
)
from json_exporting.connector.base import BaseConnector
from json_exporting.connector.formatters import ExportContext, StoredValueSource
from json_exporting.connector.json import build_http_header
from json_exporting.exceptions import ConnectorInitError


def _config(connector_type="json", **kwargs):
    kwargs.setdefault("data_source", "as collected")
    return ConnectorConfig(name="test", type=connector_type, destination="tsdb:4242", **kwargs)


def _context(localhost=None):
    return ExportContext(localhost=localhost, hostname="web01", after=NOW - 10, before=NOW)


def _run_cycle(connector, hosts, context=None):
    """Drive the lifecycle the way the engine does."""
    context = context or _context()
    connector.begin_batch()
    for host in hosts:
        connector.begin_host(host)
        for chart in host.charts.values():
            connector.begin_chart(chart)
            for dim in chart.dimensions.values():
                connector.metric(host, chart, dim, context)
            connector.end_chart(chart)
        connector.end_host(host)
    connector.end_batch()
    return connector.handoff.drain()


def _split_http(payload):
    header, _, body = payload.partition(b"\r\n\r\n")
    return header.decode(), body


class TestFactory:
    def test_registered_types(self):
        assert set(CONNECTOR_TYPES) == {"json", "json:http"}
        assert isinstance(create_connector(_config("json")), JsonConnector)
        assert isinstance(create_connector(_config("JSON:HTTP")), JsonHttpConnector)

    def test_unknown_type_fails_init(self):
        with pytest.raises(ConnectorInitError):
            create_connector(_config("graphite"))

    def test_missing_destination_fails_init(self):
        with pytest.raises(ConnectorInitError):
            JsonConnector(ConnectorConfig(destination=" "))

    def test_bad_data_source_fails_init(self):
        with pytest.raises(ConnectorInitError):
            JsonConnector(_config(data_source="median"))

    def test_data_source_selects_strategy(self):
        assert isinstance(JsonConnector(_config(data_source="sum")).value_source, StoredValueSource)


class TestJsonConnector:
    """Unframed, newline-delimited output."""

    def test_one_object_per_line_in_order(self):
        hosts = [make_host("web01"), make_host("web02")]
        [batch] = _run_cycle(JsonConnector(_config()), hosts)
        assert batch.header == b""
        assert batch.metrics == 4
        assert batch.body.endswith(b"\n")
        lines = batch.body.decode().splitlines()
        records = [json.loads(line) for line in lines]
        assert [(r["hostname"], r["id"]) for r in records] == [
            ("web01", "user"), ("web01", "system"), ("web02", "user"), ("web02", "system"),
        ]

    def test_no_array_framing(self):
        [batch] = _run_cycle(JsonConnector(_config()), [make_host()])
        assert not batch.body.startswith(b"[")

    def test_labels_are_included_per_host(self):
        host = make_host(labels=[("env", "prod", LabelSource.CONFIGURED)])
        other = make_host("web02")
        [batch] = _run_cycle(JsonConnector(_config()), [host, other])
        records = [json.loads(line) for line in batch.body.decode().splitlines()]
        assert records[0]["labels"] == {"env": "prod"}
        assert records[2]["labels"] == {}

    def test_labels_absent_when_disabled(self):
        host = make_host(labels=[("env", "prod", LabelSource.CONFIGURED)])
        connector = JsonConnector(_config(send_configured_labels=False))
        [batch] = _run_cycle(connector, [host])
        assert b"labels" not in batch.body

    def test_label_cache_lifecycle(self):
        host = make_host(labels=[("env", "prod", LabelSource.CONFIGURED)])
        connector = JsonConnector(_config())
        connector.begin_host(host)
        assert connector.labels == '"labels":{"env":"prod"},'
        connector.end_host(host)
        assert connector.labels is None

    def test_nan_values_are_skipped_without_separator(self):
        host = make_host()
        source = StoredValueSource(calculate=lambda d, a, b, m: (math.nan, int(b)) if d.id == "user" else (1.0, int(b)))
        connector = JsonConnector(_config(), value_source=source)
        [batch] = _run_cycle(connector, [host])
        assert batch.metrics == 1
        lines = batch.body.decode().split("\n")
        assert lines[-1] == ""
        assert [json.loads(line)["id"] for line in lines[:-1]] == ["system"]

    def test_empty_cycle_is_not_handed_off(self):
        source = StoredValueSource(calculate=lambda d, a, b, m: (math.nan, int(b)))
        connector = JsonConnector(_config(), value_source=source)
        assert _run_cycle(connector, [make_host()]) == []
        assert connector.buffer.getvalue() == ""

    def test_buffer_is_fresh_after_handoff(self):
        connector = JsonConnector(_config())
        [first] = _run_cycle(connector, [make_host()])
        [second] = _run_cycle(connector, [make_host()])
        assert first.body == second.body
        assert second.sequence == first.sequence + 1
        assert connector.buffer.getvalue() == ""
        assert connector.stats.buffered_metrics == 4
        assert connector.stats.buffered_bytes == first.size + second.size


class TestJsonHttpConnector:
    """JSON array body behind an HTTP request header."""

    def test_body_is_a_json_array_in_order(self):
        hosts = [make_host("web01"), make_host("web02")]
        [batch] = _run_cycle(JsonHttpConnector(_config("json:http")), hosts)
        assert batch.body.startswith(b"[\n")
        assert batch.body.endswith(b"\n]\n")
        records = json.loads(batch.body)
        assert [(r["hostname"], r["id"]) for r in records] == [
            ("web01", "user"), ("web01", "system"), ("web02", "user"), ("web02", "system"),
        ]
        assert b"},\n{" in batch.body

    def test_single_record_has_no_separator(self):
        host = make_host()
        del host.charts["system.cpu"].dimensions["system"]
        [batch] = _run_cycle(JsonHttpConnector(_config("json:http")), [host])
        assert b",\n" not in batch.body
        assert len(json.loads(batch.body)) == 1

    def test_content_length_matches_body(self):
        host = make_host(tags="ünïcødé", labels=[("city", "Zürich", LabelSource.CONFIGURED)])
        [batch] = _run_cycle(JsonHttpConnector(_config("json:http")), [host])
        header, body = _split_http(batch.payload())
        assert body == batch.body
        lines = header.split("\r\n")
        assert lines[0] == "POST /api/put HTTP/1.1"
        assert "Host: tsdb:4242" in lines
        assert "Content-Type: application/json" in lines
        assert "Content-Length: %d" % len(batch.body) in lines
        assert len(batch.body) > len(batch.body.decode())

    def test_nan_skipped_values_keep_array_valid(self):
        host = make_host()
        source = StoredValueSource(calculate=lambda d, a, b, m: (math.nan, int(b)) if d.id == "user" else (2.5, int(b)))
        connector = JsonHttpConnector(_config("json:http"), value_source=source)
        [batch] = _run_cycle(connector, [host, make_host("web02")])
        records = json.loads(batch.body)
        assert [(r["hostname"], r["value"]) for r in records] == [("web01", 2.5), ("web02", 2.5)]

    def test_header_is_built_from_frozen_body(self):
        seen = []

        class Recording(JsonHttpConnector):
            def prepare_header(self, body):
                seen.append((body, self.buffer.getvalue()))
                return super().prepare_header(body)

        [batch] = _run_cycle(Recording(_config("json:http")), [make_host()])
        body, live = seen[0]
        assert body == batch.body
        assert body.endswith(b"\n]\n")
        assert live == ""

    def test_host_header_names_primary_destination(self):
        config = ConnectorConfig(name="test", type="json:http", destination="tsdb:4242 [::1]:4242 backup:4242",
                                 data_source="as collected")
        [batch] = _run_cycle(JsonHttpConnector(config), [make_host()])
        header, _ = _split_http(batch.payload())
        assert "Host: tsdb:4242" in header.split("\r\n")
        assert "backup" not in header


def test_build_http_header():
    assert build_http_header("example:80", 12) == (
        b"POST /api/put HTTP/1.1\r\n"
        b"Host: example:80\r\n"
        b"Content-Type: application/json\r\n"
        b"Content-Length: 12\r\n"
        b"\r\n"
    )


def test_default_stages_are_noops():
    class MetricOnly(BaseConnector):
        def metric(self, host, chart, dimension, context):
            self.buffer.write("x")
            self.count_metric()
            return True

    connector = MetricOnly(_config())
    host = make_host()
    chart = host.charts["system.cpu"]
    connector.begin_batch()
    connector.begin_host(host)
    connector.begin_chart(chart)
    connector.end_chart(chart)
    connector.end_host(host)
    connector.end_batch()
    assert connector.buffer.getvalue() == ""
    assert connector.labels is None
    assert connector.prepare_header(b"body") == b""
    assert len(connector.handoff) == 0


def test_check_response_discards_data():
    connector = JsonConnector(_config())
    connector.check_response(b"HTTP/1.1 200 OK\r\n\r\n")
    assert connector.stats.receptions == 1
    assert connector.stats.received_bytes == 19

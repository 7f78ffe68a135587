"""JSON connectors: newline-delimited objects and JSON arrays over HTTP."""

from __future__ import annotations

from ..collector.base import Chart, Dimension, Host
from .base import BaseConnector
from .formatters import ExportContext, format_host_tags, format_sample_json
from .labels import format_host_labels

HTTP_PATH = "/api/put"


def build_http_header(destination: str, content_length: int) -> bytes:
    """Return the HTTP request preamble for a body of *content_length* bytes."""
    return (
        f"POST {HTTP_PATH} HTTP/1.1\r\n"
        f"Host: {destination}\r\n"
        "Content-Type: application/json\r\n"
        f"Content-Length: {content_length}\r\n"
        "\r\n"
    ).encode("utf-8")


class JsonConnector(BaseConnector):
    """Writes one JSON object per line, without enclosing array."""

    type_name = "json"

    def begin_host(self, host: Host) -> None:
        self.labels = format_host_labels(host, self.label_policy)

    def metric(self, host: Host, chart: Chart, dimension: Dimension, context: ExportContext) -> bool:
        sample = self.value_source.sample(host, chart, dimension, context)
        if sample is None:
            return False

        record = format_sample_json(
            self.config.prefix,
            sample,
            self.value_source.format_value(sample.value),
            host_tags=format_host_tags(host.tags),
            labels=self.labels,
        )
        self.write_record(record)
        self.count_metric()
        return True

    def write_record(self, record: str) -> None:
        self.buffer.write(record)
        self.buffer.write("\n")

    def end_host(self, host: Host) -> None:
        self.labels = None

    def end_batch(self) -> None:
        self.hand_off_batch()


class JsonHttpConnector(JsonConnector):
    """Posts each batch as a JSON array to ``/api/put``."""

    type_name = "json:http"

    def begin_batch(self) -> None:
        self.buffer.write("[\n")

    def write_record(self, record: str) -> None:
        # anything past the opening "[\n" means a record was already written
        if self.buffer.tell() > 2:
            self.buffer.write(",\n")
        self.buffer.write(record)

    def end_batch(self) -> None:
        self.buffer.write("\n]\n")
        self.hand_off_batch()

    def prepare_header(self, body: bytes) -> bytes:
        # Host names the primary entry of a failover list
        return build_http_header(self.config.destination.split()[0], len(body))

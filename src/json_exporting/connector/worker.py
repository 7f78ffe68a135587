"""Transport worker that sends handed-off batches over TCP (optionally TLS)."""

from __future__ import annotations

import logging
import socket
import ssl
import threading

from ..exceptions import TransportError
from .base import BaseConnector
from .handoff import Batch

logger = logging.getLogger(__name__)

RECV_SIZE = 65536


def parse_destinations(destination: str, default_port: int) -> list[tuple[str, int]]:
    """Split ``"host[:port] [ipv6]:port ..."`` into ``(host, port)`` pairs."""
    result: list[tuple[str, int]] = []
    for entry in destination.split():
        host, port = entry, default_port
        if entry.startswith("["):
            end = entry.find("]")
            if end != -1:
                host = entry[1:end]
                rest = entry[end + 1:]
                if rest.startswith(":") and rest[1:].isdigit():
                    port = int(rest[1:])
        elif entry.count(":") == 1:
            name, _, port_str = entry.partition(":")
            if port_str.isdigit():
                host, port = name, int(port_str)
        if host:
            result.append((host, port))
    return result


class SimpleConnectorWorker:
    """Drains a connector's handoff and writes each batch to the backend.

    The connection is kept open between batches. A batch is removed from
    the handoff only after it was written; on failure the connection is
    dropped and the same batch is retried after *retry_interval* seconds.
    """

    def __init__(self, connector: BaseConnector, retry_interval: float = 1.0) -> None:
        self._connector = connector
        self._handoff = connector.handoff
        self._retry_interval = retry_interval
        self._timeout = max(0.001, connector.config.timeout_ms / 1000.0)
        self._destinations = parse_destinations(connector.config.destination, connector.config.default_port)
        self._sock: socket.socket | None = None
        self._ssl_context: ssl.SSLContext | None = None
        if connector.config.use_tls:
            self._ssl_context = ssl.create_default_context()
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    # -- thread control --------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"worker-{self._connector.name}", daemon=True
        )
        self._thread.start()
        logger.info("%s: worker started → %s", self._connector.name, self._connector.config.destination)

    def stop(self, timeout: float = 5.0) -> None:
        """Close the handoff, let the worker drain it and wait for it to exit."""
        self._handoff.close()
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        self._disconnect()
        logger.info("%s: worker stopped", self._connector.name)

    def _run(self) -> None:
        while True:
            batch = self._handoff.wait(timeout=0.5)
            if batch is None:
                if self._handoff.closed:
                    break
                continue
            try:
                self.send(batch)
            except TransportError as exc:
                logger.warning("%s: cannot send batch %d: %s", self._connector.name, batch.sequence, exc)
                if self._handoff.closed:
                    # shutting down: one attempt per outstanding batch
                    self._handoff.commit(batch)
                    continue
                self._stop_event.wait(self._retry_interval)
                continue
            self._handoff.commit(batch)

    # -- transport -------------------------------------------------------------

    def send(self, batch: Batch) -> None:
        """Write *batch* to the backend, connecting first if needed."""
        stats = self._connector.stats
        try:
            sock = self._connect()
            self._receive(sock)
            if self._sock is None:
                sock = self._connect()
            sock.sendall(batch.payload())
        except (OSError, TransportError) as exc:
            stats.transmission_failures += 1
            self._disconnect()
            if isinstance(exc, TransportError):
                raise
            raise TransportError(str(exc)) from exc

        stats.transmission_successes += 1
        stats.sent_bytes += batch.size
        stats.sent_metrics += batch.metrics
        logger.debug("%s: sent batch %d (%d bytes)", self._connector.name, batch.sequence, batch.size)

        try:
            self._receive(sock)
        except OSError as exc:
            logger.debug("%s: reading response failed: %s", self._connector.name, exc)
            self._disconnect()

    def _connect(self) -> socket.socket:
        if self._sock is not None:
            return self._sock
        if not self._destinations:
            raise TransportError(f"no usable destination in {self._connector.config.destination!r}")

        last_error: Exception | None = None
        for host, port in self._destinations:
            try:
                sock = socket.create_connection((host, port), timeout=self._timeout)
                if self._ssl_context is not None:
                    sock = self._ssl_context.wrap_socket(sock, server_hostname=host)
            except OSError as exc:
                logger.debug("%s: cannot connect to %s:%d: %s", self._connector.name, host, port, exc)
                last_error = exc
                continue
            self._sock = sock
            self._connector.stats.reconnects += 1
            logger.info("%s: connected to %s:%d", self._connector.name, host, port)
            return sock

        raise TransportError(f"cannot connect to any of {self._connector.config.destination!r}: {last_error}")

    def _receive(self, sock: socket.socket) -> None:
        """Read whatever the backend has sent so far, without blocking."""
        chunks: list[bytes] = []
        closed = False
        sock.setblocking(False)
        try:
            while True:
                try:
                    data = sock.recv(RECV_SIZE)
                except (BlockingIOError, ssl.SSLWantReadError):
                    break
                if not data:
                    closed = True
                    break
                chunks.append(data)
        finally:
            if not closed:
                sock.settimeout(self._timeout)

        if chunks:
            self._connector.check_response(b"".join(chunks))
        if closed:
            logger.debug("%s: backend closed the connection", self._connector.name)
            self._disconnect()

    def _disconnect(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None

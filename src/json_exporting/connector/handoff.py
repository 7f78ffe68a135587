"""Hand finished batches from the formatting path to the transport worker.

The producer publishes immutable :class:`Batch` objects; the worker blocks
in :meth:`BatchHandoff.wait` until one is available, sends it and then
:meth:`BatchHandoff.commit`s it. A batch that failed to send stays at the
head of the queue so batches always leave in the order they were published.

The queue holds at most *capacity* batches besides the one the worker is
currently sending. Publishing into a full queue drops the oldest pending
batch and counts it as lost; the producer never waits for the network.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Batch:
    """The frozen output of one export cycle."""

    sequence: int
    body: bytes
    header: bytes = b""
    metrics: int = 0

    @property
    def size(self) -> int:
        return len(self.body)

    def payload(self) -> bytes:
        return self.header + self.body


@dataclass
class HandoffStats:
    published: int = 0
    committed: int = 0
    data_lost_events: int = 0
    lost_metrics: int = 0
    lost_bytes: int = 0


class BatchHandoff:
    """Bounded FIFO of batches guarded by a condition variable."""

    def __init__(self, capacity: int = 1, name: str = "") -> None:
        self._capacity = max(1, capacity)
        self._name = name
        self._queue: deque[Batch] = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._in_flight: Batch | None = None
        self.stats = HandoffStats()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def publish(self, batch: Batch) -> None:
        """Queue *batch* and wake the worker."""
        with self._cond:
            if self._closed:
                logger.warning("%s: batch %d published after close; dropping", self._name, batch.sequence)
                self._lose(batch)
                return
            while self._pending() >= self._capacity:
                index = 0 if self._in_flight is None else 1
                lost = self._queue[index]
                del self._queue[index]
                logger.warning(
                    "%s: %d unsent batches pending, dropping batch %d (%d metrics, %d bytes)",
                    self._name, self._capacity, lost.sequence, lost.metrics, lost.size,
                )
                self._lose(lost)
            self._queue.append(batch)
            self.stats.published += 1
            self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> Batch | None:
        """Return the oldest pending batch without removing it.

        Blocks until a batch is published, the handoff is closed or
        *timeout* expires. Returns None when there is nothing to send.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._queue or self._closed, timeout)
            if self._queue:
                self._in_flight = self._queue[0]
                return self._in_flight
            return None

    def commit(self, batch: Batch) -> None:
        """Remove *batch* after it was handled by the worker."""
        with self._cond:
            if self._queue and self._queue[0] is batch:
                self._queue.popleft()
                self._in_flight = None
                self.stats.committed += 1
                self._cond.notify_all()

    def drain(self) -> list[Batch]:
        """Remove and return every pending batch."""
        with self._cond:
            batches = list(self._queue)
            self._queue.clear()
            self._in_flight = None
            self._cond.notify_all()
            return batches

    def join(self, timeout: float | None = None) -> bool:
        """Wait until the queue is empty. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._queue, timeout)

    def close(self) -> None:
        """Stop accepting batches and wake any waiting worker."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def _pending(self) -> int:
        return len(self._queue) - (0 if self._in_flight is None else 1)

    def _lose(self, batch: Batch) -> None:
        self.stats.data_lost_events += 1
        self.stats.lost_metrics += batch.metrics
        self.stats.lost_bytes += batch.size

"""Tests for the producer/worker batch handoff."""

import threading
import time

from conftest import make_host

from json_exporting.config import ConnectorConfig
from json_exporting.connector import JsonHttpConnector
from json_exporting.connector.formatters import ExportContext
from json_exporting.connector.handoff import Batch, BatchHandoff


def _batch(seq, metrics=1):
    return Batch(sequence=seq, body=b"x" * 10, metrics=metrics)


def test_fifo_order_and_commit():
    handoff = BatchHandoff(capacity=3)
    for seq in (1, 2, 3):
        handoff.publish(_batch(seq))
    assert len(handoff) == 3

    first = handoff.wait(timeout=0)
    assert first.sequence == 1
    # wait() peeks; the batch stays until committed
    assert handoff.wait(timeout=0) is first
    handoff.commit(first)
    assert handoff.wait(timeout=0).sequence == 2
    assert handoff.stats.published == 3
    assert handoff.stats.committed == 1


def test_in_flight_batch_is_never_dropped():
    handoff = BatchHandoff(capacity=1)
    handoff.publish(_batch(1))
    sending = handoff.wait(timeout=0)
    handoff.publish(_batch(2))
    handoff.publish(_batch(3))
    assert handoff.stats.data_lost_events == 1
    handoff.commit(sending)
    assert handoff.wait(timeout=0).sequence == 3
    assert handoff.stats.committed == 1


def test_commit_of_unknown_batch_is_ignored():
    handoff = BatchHandoff()
    handoff.publish(_batch(1))
    handoff.commit(_batch(1))
    assert len(handoff) == 1
    assert handoff.stats.committed == 0


def test_overflow_drops_oldest_and_counts_loss():
    handoff = BatchHandoff(capacity=2, name="test")
    handoff.publish(_batch(1, metrics=5))
    handoff.publish(_batch(2))
    handoff.publish(_batch(3))
    assert [b.sequence for b in handoff.drain()] == [2, 3]
    assert handoff.stats.data_lost_events == 1
    assert handoff.stats.lost_metrics == 5
    assert handoff.stats.lost_bytes == 10


def test_capacity_is_at_least_one():
    assert BatchHandoff(capacity=0).capacity == 1


def test_wait_times_out_when_empty():
    handoff = BatchHandoff()
    started = time.monotonic()
    assert handoff.wait(timeout=0.05) is None
    assert time.monotonic() - started >= 0.04


def test_close_wakes_waiter_and_rejects_new_batches():
    handoff = BatchHandoff()
    result = []

    thread = threading.Thread(target=lambda: result.append(handoff.wait(timeout=5)))
    thread.start()
    time.sleep(0.05)
    handoff.close()
    thread.join(timeout=2)
    assert result == [None]

    handoff.publish(_batch(1))
    assert len(handoff) == 0
    assert handoff.stats.data_lost_events == 1


def test_close_keeps_outstanding_batches_for_draining():
    handoff = BatchHandoff(capacity=2)
    handoff.publish(_batch(1))
    handoff.close()
    assert handoff.wait(timeout=0).sequence == 1


def test_join_waits_for_commit():
    handoff = BatchHandoff()
    handoff.publish(_batch(1))
    assert handoff.join(timeout=0.01) is False

    def consume():
        batch = handoff.wait(timeout=1)
        handoff.commit(batch)

    thread = threading.Thread(target=consume)
    thread.start()
    assert handoff.join(timeout=2) is True
    thread.join()


def test_slow_consumer_sees_only_complete_batches_in_order():
    """Repeated cycles against a slow consumer never reorder or expose partial batches."""
    config = ConnectorConfig(
        name="slow", type="json:http", destination="x", data_source="as collected", buffer_on_failures=3
    )
    connector = JsonHttpConnector(config)
    host = make_host()
    seen = []
    stop = threading.Event()

    def consumer():
        while True:
            batch = connector.handoff.wait(timeout=0.05)
            if batch is None:
                if stop.is_set():
                    return
                continue
            # a published batch is always complete
            assert batch.body.startswith(b"[\n") and batch.body.endswith(b"\n]\n")
            assert b"Content-Length: %d" % len(batch.body) in batch.header
            seen.append(batch.sequence)
            time.sleep(0.01)
            connector.handoff.commit(batch)

    thread = threading.Thread(target=consumer)
    thread.start()

    chart = host.charts["system.cpu"]
    for cycle in range(50):
        now = 1700000000 + cycle
        for dim in chart.dimensions.values():
            dim.collect(cycle, now)
        context = ExportContext(localhost=host, hostname="web01", after=now - 1, before=now)
        with connector.lock:
            connector.begin_batch()
            connector.begin_host(host)
            for dim in chart.dimensions.values():
                connector.metric(host, chart, dim, context)
            connector.end_host(host)
            connector.end_batch()
        time.sleep(0.002)

    connector.handoff.close()
    stop.set()
    thread.join(timeout=10)

    assert seen, "consumer saw no batches"
    assert seen == sorted(seen)
    assert len(set(seen)) == len(seen)
    lost = connector.handoff.stats.data_lost_events
    assert len(seen) + lost == 50

"""
Tests for the OddsStream producer/consumer channel.
"""

import sys
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from houseedge.data.schemas import OddsQuote
from houseedge.data.stream import OddsStream
from houseedge.strategy.ev import OddsEngine

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def quote(minutes=0, bookmaker="pinnacle"):
    return OddsQuote(
        bookmaker=bookmaker,
        match_id="m1",
        prices=[2.10, 3.40, 4.00],
        timestamp=NOW + timedelta(minutes=minutes),
    )


@pytest.fixture
def engine(config):
    return OddsEngine(config)


class TestOddsStream:

    def test_drain_processes_everything(self, engine):
        stream = OddsStream(engine, maxsize=10)
        for i in range(5):
            stream.submit(quote(minutes=i))

        stream.start()
        discarded = stream.stop(drain=True)

        assert discarded == 0
        assert stream.processed == 5
        assert len(engine) == 5
        assert not stream.is_running

    def test_arrival_order_preserved(self, engine):
        seen = []
        stream = OddsStream(engine, on_quote=seen.append)
        for i in (3, 1, 2):
            stream.submit(quote(minutes=i))

        stream.start()
        stream.stop(drain=True)

        assert [q.timestamp.minute for q in seen] == [3, 1, 2]

    def test_stop_discards_queued(self, engine):
        entered = threading.Event()
        gate = threading.Event()

        def slow(q):
            entered.set()
            gate.wait(timeout=5)

        stream = OddsStream(engine, on_quote=slow)
        stream.start()
        stream.submit(quote(minutes=0))
        assert entered.wait(timeout=5)

        stream.submit(quote(minutes=1))
        stream.submit(quote(minutes=2))

        result = {}
        stopper = threading.Thread(target=lambda: result.setdefault("discarded", stream.stop()))
        stopper.start()
        while stream.is_running:
            time.sleep(0.001)
        gate.set()
        stopper.join(timeout=5)

        assert result["discarded"] == 2
        assert stream.processed == 1
        assert len(engine) == 1

    def test_invalid_quote_counted(self, engine):
        stream = OddsStream(engine)
        stream.submit({"bookmaker": "bet365", "match_id": "m1", "prices": [0.5, 3.0], "timestamp": NOW})
        stream.submit(quote())

        stream.start()
        stream.stop(drain=True)

        assert stream.failed == 1
        assert stream.processed == 1

    def test_submitted_after_stop_waits_for_restart(self, engine):
        stream = OddsStream(engine)
        stream.start()
        stream.stop()

        stream.submit(quote())
        assert stream.pending == 1

        stream.start()
        stream.stop(drain=True)
        assert stream.processed == 1

    def test_stop_when_not_running(self, engine):
        assert OddsStream(engine).stop() == 0

    def test_callback_error_keeps_consumer_alive(self, engine):
        def broken(q):
            raise RuntimeError("downstream unavailable")

        stream = OddsStream(engine, maxsize=1, on_quote=broken)
        stream.start()
        stream.submit(quote(minutes=0))
        stream.submit(quote(minutes=1))

        stopper = threading.Thread(target=lambda: stream.stop(drain=True))
        stopper.start()
        stopper.join(timeout=5)

        assert not stopper.is_alive()
        assert stream.processed == 2
        assert stream.failed == 2
        assert len(engine) == 2

    def test_full_queue_blocks_producer(self, engine):
        entered = threading.Event()
        gate = threading.Event()

        def gated(q):
            entered.set()
            gate.wait(timeout=5)

        stream = OddsStream(engine, maxsize=1, on_quote=gated)
        stream.start()
        stream.submit(quote(minutes=0))
        assert entered.wait(timeout=5)

        # Consumer is busy; this one fills the queue
        stream.submit(quote(minutes=1))

        submitted = threading.Event()

        def produce():
            stream.submit(quote(minutes=2))
            submitted.set()

        producer = threading.Thread(target=produce)
        producer.start()

        assert not submitted.wait(timeout=0.2)
        assert stream.pending == 1

        gate.set()
        assert submitted.wait(timeout=5)
        producer.join(timeout=5)
        stream.stop(drain=True)

        assert stream.processed == 3
        assert len(engine) == 3

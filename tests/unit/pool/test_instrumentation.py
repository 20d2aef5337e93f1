"""Unit tests for SQLAlchemy pool instrumentation.

This module tests that pool events of a real file-backed SQLite engine are
forwarded as connection lifecycle events.
"""

from collections import Counter

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.pool import QueuePool

from dataperf.models.enums import ConnectionEventKind
from dataperf.pool import PoolInstrumentation, record_pool_timeouts


class RecordingSink:
    def __init__(self):
        self.events = []

    def __call__(self, event, duration_ms=None, slot=None):
        self.events.append((ConnectionEventKind(event), duration_ms, slot))

    @property
    def kinds(self):
        return Counter(kind for kind, _, _ in self.events)


@pytest.fixture
def engine(tmp_path):
    """
    File-backed SQLite engine with a small queue pool.

    Why: Instrumentation must be exercised against real pool events
    What: Provides an engine with one pooled connection and a short timeout
    How: Creates a QueuePool engine on a temporary database file
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'perf.db'}",
        poolclass=QueuePool,
        pool_size=1,
        max_overflow=0,
        pool_timeout=0.1,
    )
    yield engine
    engine.dispose()


class TestPoolInstrumentation:
    """Tests for PoolInstrumentation."""

    def test_connection_lifecycle_is_forwarded(self, engine):
        """
        Why: Pool recommendations depend on real checkout/checkin activity
        What: Tests that connect, checkout and checkin become created, acquired, released
        How: Opens a connection twice and inspects the recorded events
        """
        sink = RecordingSink()
        instrumentation = PoolInstrumentation(engine, sink)
        instrumentation.attach()

        for _ in range(2):
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))

        assert sink.kinds[ConnectionEventKind.CREATED] == 1
        assert sink.kinds[ConnectionEventKind.ACQUIRED] == 2
        assert sink.kinds[ConnectionEventKind.RELEASED] == 2

        slots = {slot for kind, _, slot in sink.events if kind is ConnectionEventKind.ACQUIRED}
        assert len(slots) == 1

    def test_detach_stops_forwarding(self, engine):
        sink = RecordingSink()
        instrumentation = PoolInstrumentation(engine, sink)
        instrumentation.attach()
        instrumentation.attach()
        assert instrumentation.attached

        instrumentation.detach()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        assert sink.events == []
        assert not instrumentation.attached

    def test_invalidation_is_reported_as_error(self, engine):
        sink = RecordingSink()
        PoolInstrumentation(engine, sink).attach()

        with engine.connect() as conn:
            conn.invalidate()

        assert sink.kinds[ConnectionEventKind.ERROR] == 1

    def test_sink_failures_do_not_break_the_pool(self, engine):
        """
        Why: Tracking must never fail a database operation
        What: Tests that an exception in the sink is swallowed and logged
        How: Attaches a sink that always raises and opens a connection
        """

        def broken_sink(event, duration_ms=None, slot=None):
            raise RuntimeError("sink down")

        PoolInstrumentation(engine, broken_sink).attach()

        with engine.connect() as conn:
            assert conn.execute(text("SELECT 1")).scalar() == 1

    def test_feeds_monitor(self, engine, monitor):
        PoolInstrumentation(engine, monitor.track_connection).attach()

        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

        stats = monitor.pool.get_stats()
        assert stats.created == 1
        assert stats.acquired == 1
        assert stats.released == 1
        assert stats.in_use == 0

    def test_rejects_unsupported_targets(self):
        with pytest.raises(TypeError):
            PoolInstrumentation(object(), RecordingSink())


class TestRecordPoolTimeouts:
    """Tests for record_pool_timeouts."""

    def test_pool_timeout_is_reported_and_reraised(self, engine):
        """
        Why: Acquire timeouts are the strongest signal that a pool is too small
        What: Tests that a QueuePool timeout is recorded and still raised
        How: Holds the only connection and tries to check out another
        """
        sink = RecordingSink()

        with engine.connect():
            with pytest.raises(sa_exc.TimeoutError):
                with record_pool_timeouts(sink):
                    engine.connect()

        assert sink.kinds[ConnectionEventKind.TIMEOUT] == 1
        _, duration, _ = sink.events[0]
        assert duration >= 0

    def test_other_errors_are_not_reported(self):
        sink = RecordingSink()

        with pytest.raises(ValueError):
            with record_pool_timeouts(sink):
                raise ValueError("not a pool problem")

        assert sink.events == []

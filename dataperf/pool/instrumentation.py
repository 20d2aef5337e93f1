"""SQLAlchemy pool event instrumentation.

Bridges SQLAlchemy pool events into connection tracking so pool
recommendations reflect a real engine:

    monitor = create_performance_monitor("postgresql")
    instrumentation = PoolInstrumentation(engine, monitor.track_connection)
    instrumentation.attach()

    with record_pool_timeouts(monitor.track_connection):
        with engine.connect() as conn:
            ...
"""

import logging
import time
from collections.abc import Hashable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol

from sqlalchemy import event
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import Pool

from ..models.enums import ConnectionEventKind

logger = logging.getLogger(__name__)


class ConnectionSink(Protocol):
    """Receiver of connection lifecycle events."""

    def __call__(
        self,
        event: ConnectionEventKind | str,
        duration_ms: float | None = None,
        slot: Hashable | None = None,
    ) -> None: ...


def _resolve_target(target: Engine | AsyncEngine | Pool) -> Engine | Pool:
    if isinstance(target, AsyncEngine):
        return target.sync_engine
    if isinstance(target, (Engine, Pool)):
        return target
    raise TypeError(
        f"Expected an Engine, AsyncEngine or Pool, got {type(target).__name__}"
    )


class PoolInstrumentation:
    """Forwards pool events of an engine or pool to a connection sink."""

    def __init__(self, target: Engine | AsyncEngine | Pool, sink: ConnectionSink):
        """Initialize pool instrumentation.

        Args:
            target: Engine, async engine or pool to observe
            sink: Callable receiving ``(event, duration_ms, slot)``
        """
        self.target = _resolve_target(target)
        self.sink = sink
        self._listeners: list[tuple[str, Any]] = []

    @property
    def attached(self) -> bool:
        return bool(self._listeners)

    def attach(self) -> None:
        """Register the pool event listeners. Attaching twice is a no-op."""
        if self._listeners:
            return

        listeners = [
            ("connect", self._on_connect),
            ("checkout", self._on_checkout),
            ("checkin", self._on_checkin),
            ("invalidate", self._on_invalidate),
            ("soft_invalidate", self._on_invalidate),
        ]
        for identifier, fn in listeners:
            event.listen(self.target, identifier, fn)
        self._listeners = listeners
        logger.debug(f"Attached pool instrumentation to {self.target!r}")

    def detach(self) -> None:
        """Remove the pool event listeners."""
        for identifier, fn in self._listeners:
            event.remove(self.target, identifier, fn)
        self._listeners = []

    def _on_connect(self, dbapi_connection: Any, connection_record: Any) -> None:
        self._emit(ConnectionEventKind.CREATED, connection_record)

    def _on_checkout(
        self, dbapi_connection: Any, connection_record: Any, connection_proxy: Any
    ) -> None:
        self._emit(ConnectionEventKind.ACQUIRED, connection_record)

    def _on_checkin(self, dbapi_connection: Any, connection_record: Any) -> None:
        self._emit(ConnectionEventKind.RELEASED, connection_record)

    def _on_invalidate(
        self,
        dbapi_connection: Any,
        connection_record: Any,
        exception: BaseException | None,
    ) -> None:
        logger.warning(
            "Database connection invalidated",
            extra={"error": str(exception) if exception else None},
        )
        self._emit(ConnectionEventKind.ERROR, connection_record)

    def _emit(self, kind: ConnectionEventKind, slot: Hashable | None) -> None:
        try:
            self.sink(kind, None, slot)
        except Exception as e:
            # Pool operations must never fail because of tracking
            logger.warning(f"Failed to track {kind.value} connection event: {e}")


@contextmanager
def record_pool_timeouts(sink: ConnectionSink) -> Iterator[None]:
    """Report SQLAlchemy pool timeouts raised inside the block, then re-raise."""
    start = time.perf_counter()
    try:
        yield
    except sa_exc.TimeoutError:
        sink(ConnectionEventKind.TIMEOUT, (time.perf_counter() - start) * 1000)
        raise

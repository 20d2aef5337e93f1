"""Performance monitor facade.

The monitor is the single entry point for data providers. It composes the
fingerprint cache, the batch scheduler, the pool optimizer and the query
statistics of one database, and builds reports from them on demand.

Tracking is best-effort: when disabled, ``track_query`` and
``track_connection`` return immediately, and failures while recording are
logged and counted instead of being raised.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Hashable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from enum import Enum
from typing import Any

from ..batching.scheduler import BatchExecutor, BatchOperation, BatchScheduler
from ..batching.timers import Timer
from ..cache.fingerprint import QueryFingerprint, compute_fingerprint
from ..cache.query_cache import CacheLookup, FingerprintCache
from ..config.settings import MonitorConfig, build_monitor_config
from ..models.enums import ConnectionEventKind, DatabaseType, QueryOperation
from ..models.reports import DetailedReport, PerformanceReport, Recommendations
from ..pool.optimizer import PoolOptimizer
from .aggregator import MetricsAggregator
from .health import HealthClassifier, HealthThresholds
from .query_stats import QueryLogEntry, QueryStatsCollector

logger = logging.getLogger(__name__)

Filters = Sequence[Mapping[str, Any]] | None
Sorting = Sequence[Mapping[str, Any]] | None


def _operation_name(operation: QueryOperation | str) -> str:
    return operation.value if isinstance(operation, Enum) else str(operation).lower()


class PerformanceMonitor:
    """Tracks queries and connections of one database and reports on them."""

    def __init__(
        self,
        config: MonitorConfig | None = None,
        *,
        batch_executor: BatchExecutor | None = None,
        clock: Callable[[], float] | None = None,
        timer: Timer | None = None,
        health_thresholds: HealthThresholds | None = None,
    ):
        """Initialize performance monitor.

        Args:
            config: Monitor configuration, read from the environment when omitted
            batch_executor: Executor for batched operations
            clock: Millisecond clock shared by the components, monotonic by default
            timer: Batch flush timer, event loop based by default
            health_thresholds: Overrides for the health classification
        """
        self.config = config or build_monitor_config()
        self._enabled = self.config.enabled
        self.tracking_errors = 0

        cfg = self.config
        self.cache = FingerprintCache(
            max_size=cfg.cache_size, ttl_ms=cfg.cache_ttl_ms, clock=clock
        )
        self.scheduler = BatchScheduler(
            batch_executor,
            batch_size=cfg.batch_size,
            batch_delay_ms=cfg.batch_delay_ms,
            min_batch_size=cfg.min_batch_size,
            max_batch_size=cfg.max_batch_size,
            adaptive_batching=cfg.adaptive_batching,
            slow_batch_threshold_ms=cfg.slow_batch_threshold_ms,
            timer=timer,
            clock=clock,
        )
        self.pool = PoolOptimizer(
            cfg.database_type,
            window_size=cfg.pool_window_size,
            smoothing=cfg.pool_smoothing,
            min_samples=cfg.pool_min_samples,
            acquire_timeout_ms=cfg.acquire_timeout_ms,
            clock=clock,
        )
        self.query_stats = QueryStatsCollector(
            slow_query_threshold_ms=cfg.slow_query_threshold_ms,
            slow_query_sample_size=cfg.slow_query_sample_size,
            query_log_size=cfg.query_log_size,
        )
        self.aggregator = MetricsAggregator(
            self.cache,
            self.scheduler,
            self.pool,
            self.query_stats,
            classifier=HealthClassifier(health_thresholds),
        )

    @property
    def database_type(self) -> DatabaseType:
        return self.config.database_type

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        """Turn query and connection tracking on or off."""
        self._enabled = enabled
        logger.info(
            f"Performance tracking {'enabled' if enabled else 'disabled'} "
            f"for {self.database_type.value}"
        )

    # Tracking

    def track_query(
        self,
        resource: str,
        operation: QueryOperation | str,
        filters: Filters,
        sorting: Sorting,
        execution_time_ms: float,
        query_text: str | None = None,
    ) -> None:
        """Record an executed query. Never raises."""
        if not self._enabled:
            return
        try:
            self.query_stats.record(
                QueryLogEntry(
                    resource=resource,
                    operation=_operation_name(operation),
                    execution_time_ms=execution_time_ms,
                    filters=list(filters or []),
                    sorting=list(sorting or []),
                    query_text=query_text,
                )
            )
        except Exception as e:
            self._absorb_tracking_error("query", e)

    def track_connection(
        self,
        event: ConnectionEventKind | str,
        duration_ms: float | None = None,
        slot: Hashable | None = None,
    ) -> None:
        """Record a connection lifecycle event. Never raises."""
        if not self._enabled:
            return
        try:
            self.pool.track_connection(event, duration_ms, slot)
        except Exception as e:
            self._absorb_tracking_error("connection", e)

    @contextmanager
    def track_execution(
        self,
        resource: str,
        operation: QueryOperation | str = QueryOperation.SELECT,
        filters: Filters = None,
        sorting: Sorting = None,
        query_text: str | None = None,
    ) -> Iterator[None]:
        """Time the enclosed block and track it as a query.

        Usage:
            with monitor.track_execution("users", "select", filters):
                rows = session.execute(query).all()

        Exceptions raised by the block propagate after the query was tracked.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            self.track_query(
                resource,
                operation,
                filters,
                sorting,
                (time.perf_counter() - start) * 1000,
                query_text,
            )

    def _absorb_tracking_error(self, kind: str, error: Exception) -> None:
        self.tracking_errors += 1
        logger.warning(f"Failed to track {kind} event: {error}")

    # Cache

    def fingerprint(
        self,
        resource: str,
        operation: QueryOperation | str = QueryOperation.SELECT,
        filters: Filters = None,
        sorting: Sorting = None,
        query_text: str | None = None,
    ) -> QueryFingerprint:
        """Fingerprint a query for cache lookups."""
        return compute_fingerprint(resource, operation, filters, sorting, query_text)

    def lookup(self, fingerprint: QueryFingerprint) -> CacheLookup:
        return self.cache.lookup(fingerprint)

    def store(self, fingerprint: QueryFingerprint, value: Any) -> None:
        self.cache.store(fingerprint, value)

    def invalidate(self, target: QueryFingerprint | str) -> int:
        """Drop a cached fingerprint or every cached result of a resource."""
        return self.cache.invalidate(target)

    # Batching

    def enqueue(self, operation: BatchOperation) -> asyncio.Future[Any]:
        """Add an operation to the open batch window."""
        return self.scheduler.enqueue(operation)

    async def submit(self, operation: BatchOperation) -> Any:
        return await self.scheduler.submit(operation)

    def set_batch_executor(self, executor: BatchExecutor) -> None:
        self.scheduler.set_executor(executor)

    async def flush(self) -> None:
        await self.scheduler.flush()

    async def close(self) -> None:
        """Reject unflushed operations and wait for in-flight batches."""
        await self.scheduler.close()

    async def __aenter__(self) -> "PerformanceMonitor":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # Reporting

    def get_metrics(self) -> PerformanceReport:
        """Structurally complete snapshot, even when disabled or idle."""
        return self.aggregator.get_report()

    def get_recommendations(self) -> Recommendations:
        return self.aggregator.get_recommendations()

    def get_detailed_report(self) -> DetailedReport:
        return self.aggregator.get_detailed_report()

    def reset(self) -> None:
        """Discard all collected data. Configuration is kept."""
        self.aggregator.reset()
        self.tracking_errors = 0


def create_performance_monitor(
    database_type: DatabaseType | str,
    *,
    enabled: bool = True,
    batch_executor: BatchExecutor | None = None,
    clock: Callable[[], float] | None = None,
    timer: Timer | None = None,
    **options: Any,
) -> PerformanceMonitor:
    """Create a monitor for a database type.

    Args:
        database_type: postgresql, mysql or sqlite
        enabled: Whether tracking starts enabled
        batch_executor: Executor for batched operations
        clock: Millisecond clock shared by the components
        timer: Batch flush timer
        **options: Any other ``MonitorConfig`` field

    Raises:
        ConfigurationValidationError: If an option is invalid
    """
    config = build_monitor_config(
        database_type=database_type, enabled=enabled, **options
    )
    return PerformanceMonitor(
        config, batch_executor=batch_executor, clock=clock, timer=timer
    )

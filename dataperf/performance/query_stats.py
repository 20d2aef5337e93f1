"""Running query statistics."""

import logging
import math
import threading
from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import TrackingError
from ..utils import wall_clock_ms

logger = logging.getLogger(__name__)


@dataclass
class QueryLogEntry:
    """One executed query as reported by a data provider."""

    resource: str
    operation: str
    execution_time_ms: float
    filters: Sequence[Mapping[str, Any]] = field(default_factory=list)
    sorting: Sequence[Mapping[str, Any]] = field(default_factory=list)
    query_text: str | None = None
    timestamp: float = 0.0


def _check_clauses(
    resource: str, kind: str, clauses: Sequence[Mapping[str, Any]] | None
) -> None:
    """Reject clauses the query analysis cannot read.

    Each clause must be a mapping whose ``field`` and ``operator``, when
    present, are strings.
    """
    if clauses is None:
        return
    if isinstance(clauses, (str, bytes, Mapping)) or not isinstance(clauses, Sequence):
        raise TrackingError(
            f"Invalid {kind} list for {resource}: {clauses!r}",
            {"resource": resource, kind: clauses},
        )
    for clause in clauses:
        if not isinstance(clause, Mapping):
            raise TrackingError(
                f"Invalid {kind} for {resource}: {clause!r}",
                {"resource": resource, kind: clause},
            )
        for key in ("field", "operator"):
            value = clause.get(key)
            if value is not None and not isinstance(value, str):
                raise TrackingError(
                    f"Invalid {kind} {key} for {resource}: {value!r}",
                    {"resource": resource, kind: clause},
                )


class QueryStatsCollector:
    """Folds tracked queries into running aggregates.

    Individual entries are only retained in two bounded buffers: a log of the
    most recent queries, used for index suggestions and complexity analysis,
    and a sample of the most recent slow queries.
    """

    def __init__(
        self,
        slow_query_threshold_ms: float = 100,
        slow_query_sample_size: int = 100,
        query_log_size: int = 1000,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize query statistics collector.

        Args:
            slow_query_threshold_ms: Queries slower than this count as slow
            slow_query_sample_size: Number of slow queries retained
            query_log_size: Number of recent queries retained
            clock: Wall clock in milliseconds used to stamp entries
        """
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self._clock = clock or wall_clock_ms
        self._lock = threading.RLock()

        self._slow_sample: deque[QueryLogEntry] = deque(maxlen=slow_query_sample_size)
        self._query_log: deque[QueryLogEntry] = deque(maxlen=query_log_size)
        self._total_queries = 0
        self._total_time = 0.0
        self._slow_queries = 0

    def record(self, entry: QueryLogEntry) -> None:
        """Record an executed query.

        Raises:
            TrackingError: If the execution time is not a finite, non-negative
                number, or a filter or sorter is malformed
        """
        timing = entry.execution_time_ms
        if (
            isinstance(timing, bool)
            or not isinstance(timing, (int, float))
            or not math.isfinite(timing)
            or timing < 0
        ):
            raise TrackingError(
                f"Invalid execution time for {entry.resource}: {timing!r}",
                {"resource": entry.resource, "execution_time_ms": timing},
            )
        _check_clauses(entry.resource, "filter", entry.filters)
        _check_clauses(entry.resource, "sorter", entry.sorting)

        with self._lock:
            if not entry.timestamp:
                entry.timestamp = self._clock()

            self._total_queries += 1
            self._total_time += timing
            self._query_log.append(entry)

            if timing > self.slow_query_threshold_ms:
                self._slow_queries += 1
                self._slow_sample.append(entry)
                logger.warning(
                    f"Slow query detected: {entry.operation} on {entry.resource} "
                    f"took {timing:.2f}ms"
                )

    @property
    def total_queries(self) -> int:
        return self._total_queries

    @property
    def average_query_time(self) -> float:
        """Mean execution time since the last reset, 0.0 without queries."""
        if self._total_queries == 0:
            return 0.0
        return self._total_time / self._total_queries

    @property
    def slow_queries(self) -> int:
        return self._slow_queries

    def get_query_log(self) -> list[QueryLogEntry]:
        """Most recent queries, oldest first."""
        with self._lock:
            return list(self._query_log)

    def get_slow_queries(self, limit: int | None = None) -> list[QueryLogEntry]:
        """Retained slow queries, slowest first."""
        with self._lock:
            slow = sorted(
                self._slow_sample, key=lambda e: e.execution_time_ms, reverse=True
            )
        return slow[:limit] if limit is not None else slow

    def reset(self) -> None:
        """Zero the aggregates and drop retained entries."""
        with self._lock:
            self._slow_sample.clear()
            self._query_log.clear()
            self._total_queries = 0
            self._total_time = 0.0
            self._slow_queries = 0

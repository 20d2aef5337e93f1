"""Connection pool sizing from observed lifecycle events.

The optimizer keeps lifetime counters, an in-use gauge, a bounded window of
the most recent events and exponentially weighted moving averages (EWMA) of
acquire duration and concurrent use. Recommendations are derived on demand:

* ``max`` covers the larger of smoothed and peak concurrent use, scaled by the
  database headroom and inflated by the share of acquisitions that timed out.
* ``min`` is half of ``max`` when connections are created for a notable share
  of acquisitions (churn), a quarter otherwise.
* ``acquire_timeout`` grows after timeouts and shrinks when every recent
  acquisition completed far below it.
* ``idle_timeout`` follows the 90th percentile of the gap between a slot's
  release and its next acquisition.

Until ``min_samples`` events have been observed the profile defaults are
returned. The optimizer never raises on bad input; it logs and ignores it.
"""

import logging
import math
import threading
from collections import deque
from collections.abc import Callable, Hashable
from dataclasses import dataclass

from ..models.enums import ConnectionEventKind, DatabaseType
from ..models.reports import ConnectionStats, PoolRecommendation, PoolSettings
from ..utils import monotonic_ms
from .profiles import DatabaseProfile, get_profile

logger = logging.getLogger(__name__)

HIGH_CHURN_RATIO = 0.2
FAST_ACQUIRE_RATIO = 0.1
MIN_ACQUIRE_TIMEOUT_MS = 1000.0
MAX_ACQUIRE_TIMEOUT_FACTOR = 4
MIN_IDLE_TIMEOUT_MS = 30_000.0
MIN_IDLE_GAPS = 3


@dataclass(frozen=True)
class ConnectionEvent:
    """One observed pool lifecycle event."""

    kind: ConnectionEventKind
    timestamp: float
    in_use: int
    duration_ms: float | None = None
    slot: Hashable | None = None


def _ewma(previous: float | None, sample: float, alpha: float) -> float:
    if previous is None:
        return sample
    return alpha * sample + (1 - alpha) * previous


class PoolOptimizer:
    """Recommends pool bounds and timeouts for one database."""

    def __init__(
        self,
        database_type: DatabaseType | str = DatabaseType.POSTGRESQL,
        *,
        window_size: int = 200,
        smoothing: float = 0.2,
        min_samples: int = 10,
        acquire_timeout_ms: float | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize pool optimizer.

        Args:
            database_type: Database whose profile supplies caps and defaults
            window_size: Number of recent events considered
            smoothing: EWMA weight of the newest sample
            min_samples: Events required before leaving the defaults
            acquire_timeout_ms: Currently configured acquire timeout, if known
            clock: Millisecond clock, monotonic by default
        """
        self.profile: DatabaseProfile = get_profile(database_type)
        self.window_size = window_size
        self.smoothing = smoothing
        self.min_samples = min_samples
        self.acquire_timeout_ms = acquire_timeout_ms
        self._clock = clock or monotonic_ms
        self._lock = threading.RLock()
        self._reset_state()

    def _reset_state(self) -> None:
        self._events: deque[ConnectionEvent] = deque(maxlen=self.window_size)
        self._counts = {kind: 0 for kind in ConnectionEventKind}
        self._in_use = 0
        self._peak_in_use = 0
        self._ewma_in_use: float | None = None
        self._ewma_acquire_time: float | None = None
        self._released_at: dict[Hashable, float] = {}
        self._idle_gaps: deque[float] = deque(maxlen=self.window_size)

    @property
    def base_acquire_timeout(self) -> float:
        """Configured acquire timeout, or the profile default."""
        if self.acquire_timeout_ms is not None:
            return self.acquire_timeout_ms
        return self.profile.acquire_timeout_ms

    def track_connection(
        self,
        event: ConnectionEventKind | str,
        duration_ms: float | None = None,
        slot: Hashable | None = None,
    ) -> None:
        """Record a connection lifecycle event.

        Args:
            event: Event kind (created, acquired, released, error, timeout)
            duration_ms: How long the event took, typically the acquire wait
            slot: Identity of the pooled connection, used to measure idle gaps
        """
        try:
            kind = ConnectionEventKind(event)
        except ValueError:
            logger.warning(f"Ignoring unknown connection event {event!r}")
            return

        if duration_ms is not None and (
            not isinstance(duration_ms, (int, float))
            or math.isnan(duration_ms)
            or duration_ms < 0
        ):
            logger.warning(
                f"Ignoring {kind.value} event with invalid duration {duration_ms!r}"
            )
            return

        with self._lock:
            now = self._clock()
            self._counts[kind] += 1

            if kind is ConnectionEventKind.ACQUIRED:
                self._in_use += 1
                self._peak_in_use = max(self._peak_in_use, self._in_use)
                self._ewma_in_use = _ewma(
                    self._ewma_in_use, self._in_use, self.smoothing
                )
                if duration_ms is not None:
                    self._ewma_acquire_time = _ewma(
                        self._ewma_acquire_time, duration_ms, self.smoothing
                    )
                if slot is not None and slot in self._released_at:
                    self._idle_gaps.append(now - self._released_at.pop(slot))

            elif kind is ConnectionEventKind.RELEASED:
                self._in_use = max(0, self._in_use - 1)
                if slot is not None:
                    self._released_at.pop(slot, None)
                    self._released_at[slot] = now
                    if len(self._released_at) > self.window_size:
                        del self._released_at[next(iter(self._released_at))]

            self._events.append(
                ConnectionEvent(
                    kind=kind,
                    timestamp=now,
                    in_use=self._in_use,
                    duration_ms=duration_ms,
                    slot=slot,
                )
            )

    def get_recommendation(self) -> PoolRecommendation:
        """Recommend pool bounds and timeouts from the observed events."""
        with self._lock:
            if len(self._events) < self.min_samples:
                return self._default_recommendation()

            window = list(self._events)
            acquired = sum(1 for e in window if e.kind is ConnectionEventKind.ACQUIRED)
            created = sum(1 for e in window if e.kind is ConnectionEventKind.CREATED)
            timeouts = sum(1 for e in window if e.kind is ConnectionEventKind.TIMEOUT)
            timeout_ratio = timeouts / max(1, acquired + timeouts)

            peak = max(e.in_use for e in window)
            demand = max(1.0, self._ewma_in_use or 0.0, float(peak))

            max_size = math.ceil(demand * self.profile.headroom * (1 + timeout_ratio))
            if timeouts:
                max_size += 1

            if acquired:
                churn = created / acquired
            else:
                churn = 1.0 if created else 0.0
            min_fraction = 0.5 if churn > HIGH_CHURN_RATIO else 0.25
            min_size = max(1, min(math.ceil(max_size * min_fraction), max_size))

            recommended_max = min(max_size, self.profile.max_connections)
            return PoolRecommendation(
                min=min_size,
                max=max_size,
                recommended=PoolSettings(
                    min=min(min_size, recommended_max),
                    max=recommended_max,
                    acquire_timeout=self._recommend_acquire_timeout(
                        window, timeouts, timeout_ratio
                    ),
                    idle_timeout=self._recommend_idle_timeout(),
                ),
            )

    def _default_recommendation(self) -> PoolRecommendation:
        profile = self.profile
        return PoolRecommendation(
            min=profile.default_min,
            max=profile.default_max,
            recommended=PoolSettings(
                min=profile.default_min,
                max=profile.default_max,
                acquire_timeout=self.base_acquire_timeout,
                idle_timeout=profile.idle_timeout_ms,
            ),
        )

    def _recommend_acquire_timeout(
        self, window: list[ConnectionEvent], timeouts: int, timeout_ratio: float
    ) -> float:
        base = self.base_acquire_timeout
        if timeouts:
            return min(base * MAX_ACQUIRE_TIMEOUT_FACTOR, base * (1.5 + timeout_ratio))

        durations = [
            e.duration_ms
            for e in window
            if e.kind is ConnectionEventKind.ACQUIRED and e.duration_ms is not None
        ]
        if len(durations) >= self.min_samples and all(
            d < base * FAST_ACQUIRE_RATIO for d in durations
        ):
            return min(base, max(MIN_ACQUIRE_TIMEOUT_MS, base * 0.5))
        return base

    def _recommend_idle_timeout(self) -> float:
        gaps = sorted(self._idle_gaps)
        if len(gaps) < MIN_IDLE_GAPS:
            return self.profile.idle_timeout_ms

        # Nearest-rank 90th percentile
        p90 = gaps[max(0, math.ceil(0.9 * len(gaps)) - 1)]
        return min(max(p90 * 2, MIN_IDLE_TIMEOUT_MS), self.profile.idle_timeout_ms * 2)

    def get_stats(self) -> ConnectionStats:
        """Get lifetime connection counters.

        ``average_acquire_time`` is the EWMA of acquire durations.
        """
        with self._lock:
            counts = self._counts
            failures = counts[ConnectionEventKind.ERROR] + counts[ConnectionEventKind.TIMEOUT]
            attempts = (
                counts[ConnectionEventKind.CREATED]
                + counts[ConnectionEventKind.ACQUIRED]
                + failures
            )
            return ConnectionStats(
                created=counts[ConnectionEventKind.CREATED],
                acquired=counts[ConnectionEventKind.ACQUIRED],
                released=counts[ConnectionEventKind.RELEASED],
                errors=counts[ConnectionEventKind.ERROR],
                timeouts=counts[ConnectionEventKind.TIMEOUT],
                in_use=self._in_use,
                peak_in_use=self._peak_in_use,
                average_acquire_time=self._ewma_acquire_time or 0.0,
                failure_rate=failures / attempts if attempts else 0.0,
            )

    def get_recommendation_notes(self) -> list[str]:
        """Human-readable notes about the pool."""
        stats = self.get_stats()
        notes: list[str] = []

        if stats.timeouts:
            notes.append(
                f"{stats.timeouts} connection acquire timeouts observed - "
                "consider a larger pool or a longer acquire timeout"
            )
        if stats.errors:
            notes.append(
                f"{stats.errors} connection errors observed - check database availability"
            )

        recommendation = self.get_recommendation()
        if recommendation.max > self.profile.max_connections:
            notes.append(
                f"Observed demand of {recommendation.max} connections exceeds the "
                f"{self.profile.database_type.value} limit of "
                f"{self.profile.max_connections}"
            )
        return notes

    def reset(self) -> None:
        """Discard all observed events."""
        with self._lock:
            self._reset_state()

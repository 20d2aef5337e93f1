"""In-memory query result cache with TTL and LRU eviction."""

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..exceptions import ConfigurationError
from ..models.reports import CacheStats
from ..utils import monotonic_ms
from .fingerprint import QueryFingerprint

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Single cached query result."""

    key: QueryFingerprint
    value: Any
    inserted_at: float
    expires_at: float
    hit_count: int = 0

    def is_expired(self, now: float) -> bool:
        """Check if entry is expired at ``now``."""
        return now >= self.expires_at


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a cache lookup; ``value`` is only meaningful on a hit."""

    hit: bool
    value: Any = None


MISS = CacheLookup(hit=False)


class FingerprintCache:
    """Fingerprint-keyed result cache.

    Entries expire ``ttl_ms`` after they were stored and are removed lazily
    when looked up. When the cache is full, expired entries are reclaimed
    first and the least recently used live entry is evicted only if that
    frees nothing.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_ms: float = 300_000,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize fingerprint cache.

        Args:
            max_size: Maximum number of entries to store
            ttl_ms: Entry lifetime in milliseconds
            clock: Millisecond clock, monotonic by default

        Raises:
            ConfigurationError: If the size or lifetime is not positive
        """
        if max_size <= 0:
            raise ConfigurationError(
                f"max_size must be positive, got {max_size}",
                {"max_size": max_size},
            )
        if ttl_ms <= 0:
            raise ConfigurationError(
                f"ttl_ms must be positive, got {ttl_ms}",
                {"ttl_ms": ttl_ms},
            )

        self.max_size = max_size
        self.ttl_ms = ttl_ms
        self._clock = clock or monotonic_ms
        self._entries: OrderedDict[QueryFingerprint, CacheEntry] = OrderedDict()
        self._lock = threading.RLock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def lookup(self, key: QueryFingerprint) -> CacheLookup:
        """Look up a cached result, counting a hit or a miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return MISS

            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                return MISS

            self._entries.move_to_end(key)
            entry.hit_count += 1
            self._hits += 1
            return CacheLookup(hit=True, value=entry.value)

    def get(self, key: QueryFingerprint, default: Any = None) -> Any:
        """Return the cached value or ``default`` on a miss."""
        result = self.lookup(key)
        return result.value if result.hit else default

    def store(self, key: QueryFingerprint, value: Any) -> None:
        """Store a result, refreshing the lifetime of an existing entry."""
        with self._lock:
            now = self._clock()

            if key not in self._entries and len(self._entries) >= self.max_size:
                self._make_room(now)

            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                inserted_at=now,
                expires_at=now + self.ttl_ms,
            )
            self._entries.move_to_end(key)

    def invalidate(self, target: QueryFingerprint | str) -> int:
        """Remove one fingerprint, or every entry of a resource.

        Returns:
            Number of entries removed
        """
        with self._lock:
            if isinstance(target, QueryFingerprint):
                return 1 if self._entries.pop(target, None) is not None else 0

            stale_keys = [key for key in self._entries if key.resource == target]
            for key in stale_keys:
                del self._entries[key]
            return len(stale_keys)

    def purge_expired(self) -> int:
        """Remove all expired entries. Returns count of removed items."""
        with self._lock:
            return self._purge_expired(self._clock())

    def reset(self) -> None:
        """Drop all entries and zero the counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._expirations = 0

    @property
    def size(self) -> int:
        """Number of live (non-expired) entries."""
        with self._lock:
            now = self._clock()
            return sum(1 for entry in self._entries.values() if not entry.is_expired(now))

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups that were hits, 0.0 without lookups."""
        total = self._hits + self._misses
        return self._hits / total if total > 0 else 0.0

    @property
    def lookups(self) -> int:
        """Total lookups since the last reset."""
        return self._hits + self._misses

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)  # type: ignore[call-overload]
            return entry is not None and not entry.is_expired(self._clock())

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        with self._lock:
            return CacheStats(
                size=self.size,
                max_size=self.max_size,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                hit_rate=self.hit_rate,
            )

    def _make_room(self, now: float) -> None:
        """Free at least one slot, preferring expired entries."""
        if self._purge_expired(now) > 0:
            return

        oldest_key, _ = self._entries.popitem(last=False)
        self._evictions += 1
        logger.debug(f"Evicted least recently used cache entry {oldest_key}")

    def _purge_expired(self, now: float) -> int:
        expired_keys = [
            key for key, entry in self._entries.items() if entry.is_expired(now)
        ]
        for key in expired_keys:
            del self._entries[key]
        self._expirations += len(expired_keys)
        return len(expired_keys)

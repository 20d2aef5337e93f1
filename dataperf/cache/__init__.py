"""Query fingerprint cache."""

from .fingerprint import QueryFingerprint, compute_fingerprint
from .query_cache import MISS, CacheEntry, CacheLookup, FingerprintCache

__all__ = [
    "MISS",
    "CacheEntry",
    "CacheLookup",
    "FingerprintCache",
    "QueryFingerprint",
    "compute_fingerprint",
]

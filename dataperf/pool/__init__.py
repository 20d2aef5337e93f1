"""Connection pool observation and sizing."""

from .instrumentation import ConnectionSink, PoolInstrumentation, record_pool_timeouts
from .optimizer import ConnectionEvent, PoolOptimizer
from .profiles import PROFILES, DatabaseProfile, get_profile

__all__ = [
    "PROFILES",
    "ConnectionEvent",
    "ConnectionSink",
    "DatabaseProfile",
    "PoolInstrumentation",
    "PoolOptimizer",
    "get_profile",
    "record_pool_timeouts",
]

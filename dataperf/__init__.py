"""Adaptive performance layer for data providers.

Query result caching keyed by fingerprints, size and delay triggered write
batching, connection pool sizing from lifecycle events, and a metrics
aggregator with a coarse health verdict, composed by ``PerformanceMonitor``.
"""

from .batching import BatchOperation, BatchScheduler
from .cache import MISS, CacheLookup, FingerprintCache, QueryFingerprint, compute_fingerprint
from .config import MonitorConfig, build_monitor_config, load_monitor_config
from .exceptions import (
    BatchExecutionError,
    BatchResetError,
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
    PerformanceError,
    SchedulerClosedError,
    TrackingError,
)
from .models import (
    BatchOperationKind,
    ConnectionEventKind,
    DatabaseType,
    HealthVerdict,
    PerformanceReport,
    QueryOperation,
)
from .performance import (
    MonitorRegistry,
    PerformanceMonitor,
    create_performance_monitor,
    get_global_performance_monitor,
    get_monitor_registry,
    reset_monitor_registry,
    set_global_performance_monitor,
)
from .pool import PoolInstrumentation, PoolOptimizer, record_pool_timeouts

__version__ = "0.1.0"

__all__ = [
    "MISS",
    "BatchExecutionError",
    "BatchOperation",
    "BatchOperationKind",
    "BatchResetError",
    "BatchScheduler",
    "CacheLookup",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationValidationError",
    "ConnectionEventKind",
    "DatabaseType",
    "FingerprintCache",
    "HealthVerdict",
    "MonitorConfig",
    "MonitorRegistry",
    "PerformanceError",
    "PerformanceMonitor",
    "PerformanceReport",
    "PoolInstrumentation",
    "PoolOptimizer",
    "QueryFingerprint",
    "QueryOperation",
    "SchedulerClosedError",
    "TrackingError",
    "build_monitor_config",
    "compute_fingerprint",
    "create_performance_monitor",
    "get_global_performance_monitor",
    "get_monitor_registry",
    "load_monitor_config",
    "record_pool_timeouts",
    "reset_monitor_registry",
    "set_global_performance_monitor",
]

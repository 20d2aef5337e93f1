"""Performance monitoring, reporting and health classification."""

from .aggregator import MetricsAggregator
from .health import HealthClassifier, HealthSignals, HealthThresholds
from .monitor import PerformanceMonitor, create_performance_monitor
from .optimizations import QueryAnalyzer
from .query_stats import QueryLogEntry, QueryStatsCollector
from .registry import (
    DEFAULT_MONITOR,
    MonitorRegistry,
    get_global_performance_monitor,
    get_monitor_registry,
    reset_monitor_registry,
    set_global_performance_monitor,
)

__all__ = [
    "DEFAULT_MONITOR",
    "HealthClassifier",
    "HealthSignals",
    "HealthThresholds",
    "MetricsAggregator",
    "MonitorRegistry",
    "PerformanceMonitor",
    "QueryAnalyzer",
    "QueryLogEntry",
    "QueryStatsCollector",
    "create_performance_monitor",
    "get_global_performance_monitor",
    "get_monitor_registry",
    "reset_monitor_registry",
    "set_global_performance_monitor",
]

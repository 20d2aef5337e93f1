"""Shared enums and report models."""

from .enums import (
    BatchOperationKind,
    ConnectionEventKind,
    DatabaseType,
    HealthVerdict,
    QueryComplexity,
    QueryOperation,
    SchedulerState,
)
from .reports import (
    BatchMetrics,
    BatchPerformance,
    BatchStats,
    CacheStats,
    ComplexityAnalysis,
    ConnectionsReport,
    ConnectionStats,
    DetailedReport,
    IndexSuggestion,
    PerformanceReport,
    PerformanceSummary,
    PoolRecommendation,
    PoolSettings,
    Recommendations,
)

__all__ = [
    "BatchMetrics",
    "BatchOperationKind",
    "BatchPerformance",
    "BatchStats",
    "CacheStats",
    "ComplexityAnalysis",
    "ConnectionEventKind",
    "ConnectionStats",
    "ConnectionsReport",
    "DatabaseType",
    "DetailedReport",
    "HealthVerdict",
    "IndexSuggestion",
    "PerformanceReport",
    "PerformanceSummary",
    "PoolRecommendation",
    "PoolSettings",
    "QueryComplexity",
    "QueryOperation",
    "Recommendations",
    "SchedulerState",
]

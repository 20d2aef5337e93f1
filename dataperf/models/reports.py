"""Read-only report models produced by the performance layer.

Every report is a frozen pydantic model. Attribute names are snake_case;
``to_dict()`` renders the camelCase JSON shape consumed by operational tooling.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import DatabaseType, HealthVerdict, QueryComplexity


class ReportModel(BaseModel):
    """Base class for report snapshots."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Render the report as JSON-compatible data with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class CacheStats(ReportModel):
    """Fingerprint cache statistics."""

    size: int = 0
    max_size: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0
    hit_rate: float = 0.0


class PerformanceSummary(ReportModel):
    """Aggregated query statistics since the last reset."""

    total_queries: int = 0
    average_query_time: float = 0.0
    cache_hit_rate: float = 0.0
    slow_queries: int = 0


class PoolSettings(ReportModel):
    """Concrete pool bounds and timeouts (milliseconds)."""

    min: int = Field(ge=1)
    max: int = Field(ge=1)
    acquire_timeout: float
    idle_timeout: float


class PoolRecommendation(ReportModel):
    """Observed-demand pool bounds plus the recommendation clamped to engine limits."""

    min: int = Field(ge=1)
    max: int = Field(ge=1)
    recommended: PoolSettings

    def as_engine_kwargs(self) -> dict[str, Any]:
        """Translate the recommendation into SQLAlchemy ``create_engine`` pool arguments.

        SQLAlchemy has no idle timeout for ``QueuePool``. The recommended idle
        timeout is passed as ``pool_recycle``, which bounds connection age
        instead, so a connection idle for that long is replaced on its next
        checkout but a busy one is recycled just the same.
        """
        settings = self.recommended
        return {
            "pool_size": settings.min,
            "max_overflow": settings.max - settings.min,
            "pool_timeout": settings.acquire_timeout / 1000,
            "pool_recycle": int(settings.idle_timeout / 1000),
        }


class ConnectionStats(ReportModel):
    """Connection lifecycle counters since the last reset."""

    created: int = 0
    acquired: int = 0
    released: int = 0
    errors: int = 0
    timeouts: int = 0
    in_use: int = 0
    peak_in_use: int = 0
    average_acquire_time: float = 0.0
    failure_rate: float = 0.0


class BatchMetrics(ReportModel):
    """Batch execution counters since the last reset."""

    total_batches: int = 0
    total_operations: int = 0
    average_batch_size: float = 0.0
    average_execution_time: float = 0.0
    failed_batches: int = 0
    success_rate: float = 1.0
    last_batch_time: float = 0.0


class BatchPerformance(ReportModel):
    """Adaptive batch sizing state."""

    adaptive_batching: bool
    current_batch_size: int
    max_batch_size: int
    min_batch_size: int
    recommended_batch_size: int


class BatchStats(ReportModel):
    """Batch scheduler snapshot."""

    pending_operations: int
    batch_size: int
    batch_delay: float
    metrics: BatchMetrics
    performance: BatchPerformance


class IndexSuggestion(ReportModel):
    """Suggested index for a frequently filtered or sorted field."""

    resource: str
    suggestion: str
    reason: str


class ComplexityAnalysis(ReportModel):
    """Query complexity verdict for one filter/sort combination or resource."""

    resource: str | None = None
    complexity: QueryComplexity
    suggestions: list[str] = Field(default_factory=list)


class Recommendations(ReportModel):
    """Combined tuning recommendations."""

    index_suggestions: list[IndexSuggestion]
    pool_optimization: PoolRecommendation
    cache_stats: CacheStats
    query_optimizations: list[str]
    batch_stats: BatchStats
    overall_health: HealthVerdict


class DetailedReport(ReportModel):
    """Summary, recommendations and per-resource complexity analysis."""

    summary: PerformanceSummary
    recommendations: Recommendations
    query_complexity_analysis: list[ComplexityAnalysis]


class ConnectionsReport(ReportModel):
    """Pool section of the performance report."""

    optimal_pool_size: PoolRecommendation
    recommendations: list[str]


class PerformanceReport(ReportModel):
    """Snapshot returned by ``PerformanceMonitor.get_metrics``."""

    database: DatabaseType
    performance: PerformanceSummary
    connections: ConnectionsReport
    batching: BatchStats
    overall_health: HealthVerdict

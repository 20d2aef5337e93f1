"""Combines cache, batch, pool and query statistics into reports."""

import logging

from ..batching.scheduler import BatchScheduler
from ..cache.query_cache import FingerprintCache
from ..models.enums import HealthVerdict
from ..models.reports import (
    ConnectionsReport,
    DetailedReport,
    PerformanceReport,
    PerformanceSummary,
    Recommendations,
)
from ..pool.optimizer import PoolOptimizer
from ..pool.profiles import DatabaseProfile
from .health import HealthClassifier, HealthSignals
from .optimizations import QueryAnalyzer
from .query_stats import QueryStatsCollector

logger = logging.getLogger(__name__)

HIGH_AVERAGE_QUERY_TIME_MS = 200
MANY_SLOW_QUERIES = 10


class MetricsAggregator:
    """Builds snapshot reports from the performance components.

    The aggregator owns no state of its own; every report reflects the
    components at the time it is requested.
    """

    def __init__(
        self,
        cache: FingerprintCache,
        scheduler: BatchScheduler,
        pool: PoolOptimizer,
        query_stats: QueryStatsCollector,
        classifier: HealthClassifier | None = None,
    ):
        self.cache = cache
        self.scheduler = scheduler
        self.pool = pool
        self.query_stats = query_stats
        self.classifier = classifier or HealthClassifier()

    @property
    def profile(self) -> DatabaseProfile:
        return self.pool.profile

    def get_summary(self) -> PerformanceSummary:
        """Aggregated query statistics and cache hit rate."""
        return PerformanceSummary(
            total_queries=self.query_stats.total_queries,
            average_query_time=self.query_stats.average_query_time,
            cache_hit_rate=self.cache.hit_rate,
            slow_queries=self.query_stats.slow_queries,
        )

    def get_health_signals(self) -> HealthSignals:
        return HealthSignals(
            cache_hit_rate=self.cache.hit_rate if self.cache.lookups else None,
            batch_success_rate=self.scheduler.success_rate,
            pool_failure_rate=self.pool.get_stats().failure_rate,
        )

    def get_overall_health(self) -> HealthVerdict:
        """Classify the current signals."""
        return self.classifier.classify(self.get_health_signals())

    def get_query_optimizations(self) -> list[str]:
        """Tuning notes from query timings and pool behavior."""
        notes: list[str] = []
        average = self.query_stats.average_query_time
        slow = self.query_stats.slow_queries

        if average > HIGH_AVERAGE_QUERY_TIME_MS:
            notes.append("Average query time is high - consider adding indexes")
        if slow > MANY_SLOW_QUERIES:
            notes.append(f"{slow} slow queries detected - review query patterns")
        if average > self.profile.hint_threshold_ms:
            notes.extend(self.profile.tuning_hints)

        notes.extend(self.pool.get_recommendation_notes())
        return notes

    def get_recommendations(self) -> Recommendations:
        """Combined tuning recommendations."""
        return Recommendations(
            index_suggestions=QueryAnalyzer.suggest_indexes(
                self.query_stats.get_query_log(), self.profile.database_type
            ),
            pool_optimization=self.pool.get_recommendation(),
            cache_stats=self.cache.get_stats(),
            query_optimizations=self.get_query_optimizations(),
            batch_stats=self.scheduler.get_stats(),
            overall_health=self.get_overall_health(),
        )

    def get_detailed_report(self) -> DetailedReport:
        """Summary, recommendations and per-resource complexity analysis."""
        return DetailedReport(
            summary=self.get_summary(),
            recommendations=self.get_recommendations(),
            query_complexity_analysis=QueryAnalyzer.analyze_resources(
                self.query_stats.get_query_log()
            ),
        )

    def get_report(self) -> PerformanceReport:
        """Structurally complete performance snapshot."""
        return PerformanceReport(
            database=self.profile.database_type,
            performance=self.get_summary(),
            connections=ConnectionsReport(
                optimal_pool_size=self.pool.get_recommendation(),
                recommendations=self.get_query_optimizations(),
            ),
            batching=self.scheduler.get_stats(),
            overall_health=self.get_overall_health(),
        )

    def reset(self) -> None:
        """Zero aggregates, clear the cache and discard batch and pool history."""
        self.query_stats.reset()
        self.cache.reset()
        self.scheduler.reset()
        self.pool.reset()
        logger.debug("Performance metrics reset")

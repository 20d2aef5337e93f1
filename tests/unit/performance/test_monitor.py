"""Unit tests for the performance monitor facade and metrics aggregation.

This module tests query and connection tracking, the disabled no-op mode,
tracking failure absorption, cache and batch pass-throughs, report shape,
recommendations and reset.
"""

import logging

import pytest

from dataperf.batching import BatchOperation
from dataperf.exceptions import BatchResetError, ConfigurationValidationError
from dataperf.models.enums import HealthVerdict
from dataperf.performance import PerformanceMonitor, create_performance_monitor

from ...fixtures.clock import settle

EMAIL_FILTER = [{"field": "email", "operator": "eq", "value": "a@example.com"}]


class TestReportShape:
    """Tests for get_metrics output."""

    def test_baseline_report_is_complete(self, monitor):
        """
        Why: Operational tooling reads the report without checking for missing keys
        What: Tests the camelCase shape and zero values of a fresh report
        How: Renders get_metrics() of an idle monitor to a dict
        """
        report = monitor.get_metrics().to_dict()

        assert report["database"] == "postgresql"
        assert report["performance"] == {
            "totalQueries": 0,
            "averageQueryTime": 0.0,
            "cacheHitRate": 0.0,
            "slowQueries": 0,
        }
        assert report["connections"]["optimalPoolSize"] == {
            "min": 2,
            "max": 10,
            "recommended": {
                "min": 2,
                "max": 10,
                "acquireTimeout": 60000.0,
                "idleTimeout": 300000.0,
            },
        }
        assert report["connections"]["recommendations"] == []
        assert report["batching"]["pendingOperations"] == 0
        assert report["batching"]["batchSize"] == 5
        assert report["batching"]["batchDelay"] == 50
        assert set(report["batching"]["metrics"]) == {
            "totalBatches",
            "totalOperations",
            "averageBatchSize",
            "averageExecutionTime",
            "failedBatches",
            "successRate",
            "lastBatchTime",
        }
        assert set(report["batching"]["performance"]) == {
            "adaptiveBatching",
            "currentBatchSize",
            "maxBatchSize",
            "minBatchSize",
            "recommendedBatchSize",
        }
        assert report["overallHealth"] == "excellent"


class TestTracking:
    """Tests for track_query, track_connection and track_execution."""

    def test_track_query_updates_summary(self, monitor):
        monitor.track_query("users", "select", EMAIL_FILTER, [], 50)
        monitor.track_query("users", "select", None, None, 250)

        summary = monitor.get_metrics().performance

        assert summary.total_queries == 2
        assert summary.average_query_time == 150
        assert summary.slow_queries == 1

    def test_disabled_monitor_is_a_no_op(self, monitor):
        """
        Why: A disabled monitor must be safe to leave in hot paths
        What: Tests that tracking calls leave the report at its baseline
        How: Disables the monitor, tracks queries and connections, compares reports
        """
        baseline = monitor.get_metrics().to_dict()
        monitor.set_enabled(False)

        for _ in range(50):
            monitor.track_query("users", "select", EMAIL_FILTER, [], 500)
            monitor.track_connection("acquired", 10)
            monitor.track_connection("timeout")

        assert monitor.enabled is False
        assert monitor.get_metrics().to_dict() == baseline

        monitor.set_enabled(True)
        monitor.track_query("users", "select", [], [], 5)
        assert monitor.get_metrics().performance.total_queries == 1

    def test_tracking_failures_are_absorbed(self, monitor, caplog):
        """
        Why: Instrumentation must never fail the caller's operation
        What: Tests that invalid timings are logged and counted, not raised
        How: Tracks a negative and a non-numeric execution time
        """
        with caplog.at_level(logging.WARNING, logger="dataperf.performance.monitor"):
            monitor.track_query("users", "select", [], [], -5)
            monitor.track_query("users", "select", [], [], "slow")

        assert monitor.tracking_errors == 2
        assert "Failed to track query event" in caplog.text
        assert monitor.get_metrics().performance.total_queries == 0

    def test_malformed_filters_do_not_break_reports(self, monitor):
        """
        Why: One bad tracking call must not disable reporting for the whole log window
        What: Tests that malformed filters are absorbed and reports still render
        How: Tracks a string filter and an unhashable field, then builds every report
        """
        monitor.track_query("users", "select", ["status = 1"], None, 5.0)
        monitor.track_query(
            "users", "select", [{"field": ["a", "b"], "operator": "eq", "value": 1}], [], 5.0
        )
        monitor.track_query("users", "select", EMAIL_FILTER, [], 5.0)

        assert monitor.tracking_errors == 2
        assert monitor.get_metrics().performance.total_queries == 1
        assert monitor.get_recommendations().index_suggestions == []
        assert [a.resource for a in monitor.get_detailed_report().query_complexity_analysis] == [
            "users"
        ]

    def test_track_connection_feeds_pool(self, monitor):
        for _ in range(3):
            monitor.track_connection("created")
            monitor.track_connection("acquired", 12)
        monitor.track_connection("released")

        stats = monitor.pool.get_stats()
        assert stats.created == 3
        assert stats.acquired == 3
        assert stats.in_use == 2

    def test_track_execution_times_block(self, monitor):
        with monitor.track_execution("users", "select", EMAIL_FILTER):
            pass

        assert monitor.get_metrics().performance.total_queries == 1
        assert monitor.query_stats.get_query_log()[0].filters == EMAIL_FILTER

    def test_track_execution_reraises_after_tracking(self, monitor):
        with pytest.raises(ValueError):
            with monitor.track_execution("users", "delete"):
                raise ValueError("constraint violated")

        log = monitor.query_stats.get_query_log()
        assert [e.operation for e in log] == ["delete"]


class TestCacheAndBatching:
    """Tests for cache and batch pass-throughs."""

    def test_cache_round_trip_and_hit_rate(self, monitor):
        fingerprint = monitor.fingerprint("users", "select", EMAIL_FILTER)
        assert monitor.lookup(fingerprint).hit is False

        monitor.store(fingerprint, [{"id": 1}])

        assert monitor.lookup(fingerprint).value == [{"id": 1}]
        assert monitor.get_metrics().performance.cache_hit_rate == 0.5
        assert monitor.invalidate("users") == 1

    def test_poor_hit_rate_degrades_health(self, monitor):
        fingerprint = monitor.fingerprint("users")
        monitor.store(fingerprint, "rows")
        monitor.lookup(fingerprint)
        for name in ("a", "b", "c"):
            monitor.lookup(monitor.fingerprint(name))

        assert monitor.get_metrics().overall_health is HealthVerdict.NEEDS_ATTENTION

    def test_pool_failures_degrade_health(self, monitor):
        for _ in range(5):
            monitor.track_connection("acquired")
            monitor.track_connection("error")

        assert monitor.get_metrics().overall_health is HealthVerdict.CRITICAL

    async def test_enqueue_flushes_through_monitor(self, monitor, timer, executor):
        futures = [
            monitor.enqueue(BatchOperation("update", "users", {"id": i})) for i in range(2)
        ]
        assert monitor.get_metrics().batching.pending_operations == 2

        timer.advance(50)
        await settle()

        assert [f.result() for f in futures] == [
            "update:{'id': 0}",
            "update:{'id': 1}",
        ]
        metrics = monitor.get_metrics().batching.metrics
        assert metrics.total_batches == 1
        assert metrics.total_operations == 2

    async def test_close_rejects_unflushed_operations(self, monitor):
        future = monitor.enqueue(BatchOperation("create", "users", 1))

        async with monitor:
            pass

        with pytest.raises(BatchResetError):
            await future


class TestRecommendationsAndReset:
    """Tests for recommendations, detailed reports and reset."""

    def test_recommendations_include_indexes_and_hints(self, monitor):
        """
        Why: Slow, repetitive queries should produce actionable advice
        What: Tests index suggestions and postgresql tuning hints
        How: Tracks five slow queries filtering on the same field
        """
        for _ in range(5):
            monitor.track_query("users", "select", EMAIL_FILTER, [], 300)

        recommendations = monitor.get_recommendations()

        assert [s.suggestion for s in recommendations.index_suggestions] == [
            "CREATE INDEX CONCURRENTLY IF NOT EXISTS idx_users_email ON users (email);"
        ]
        assert "Average query time is high - consider adding indexes" in (
            recommendations.query_optimizations
        )
        assert "Check if pg_stat_statements extension is enabled" in (
            recommendations.query_optimizations
        )
        assert recommendations.cache_stats.max_size == 10
        assert recommendations.overall_health is HealthVerdict.EXCELLENT

    def test_detailed_report(self, monitor):
        monitor.track_query(
            "posts", "select", [{"field": "title", "operator": "contains", "value": "x"}], [], 5
        )

        report = monitor.get_detailed_report()

        assert report.summary.total_queries == 1
        assert [a.resource for a in report.query_complexity_analysis] == ["posts"]
        data = report.to_dict()
        assert "queryComplexityAnalysis" in data
        assert "indexSuggestions" in data["recommendations"]

    async def test_reset_restores_baseline(self, monitor, timer):
        """
        Why: Reset must discard all history while keeping configuration
        What: Tests that a reset monitor reports the same as a fresh one
        How: Generates activity everywhere, resets and compares with the baseline
        """
        baseline = monitor.get_metrics().to_dict()
        fingerprint = monitor.fingerprint("users")
        monitor.store(fingerprint, 1)
        monitor.lookup(fingerprint)
        monitor.track_query("users", "select", [], [], 500)
        for _ in range(12):
            monitor.track_connection("acquired", 3)
        future = monitor.enqueue(BatchOperation("create", "users", 1))
        timer.advance(50)
        await future
        monitor.track_query("users", "select", [], [], -1)

        monitor.reset()

        assert monitor.get_metrics().to_dict() == baseline
        assert monitor.tracking_errors == 0
        assert monitor.config.batch_size == 5
        assert monitor.lookup(fingerprint).hit is False


class TestConstruction:
    """Tests for monitor construction."""

    def test_invalid_options_fail_fast(self):
        with pytest.raises(ConfigurationValidationError):
            create_performance_monitor("postgresql", cache_size=0)

    def test_unknown_database_type_fails_fast(self):
        with pytest.raises(ConfigurationValidationError):
            create_performance_monitor("oracle")

    def test_configuration_from_environment(self, monkeypatch):
        monkeypatch.setenv("DATAPERF_DATABASE_TYPE", "sqlite")
        monkeypatch.setenv("DATAPERF_CACHE_SIZE", "7")

        monitor = PerformanceMonitor()

        assert monitor.database_type.value == "sqlite"
        assert monitor.cache.max_size == 7
        assert monitor.get_metrics().connections.optimal_pool_size.max == 2

    def test_disabled_at_creation(self):
        monitor = create_performance_monitor("mysql", enabled=False)
        monitor.track_query("users", "select", [], [], 5)

        assert monitor.get_metrics().performance.total_queries == 0
        assert monitor.get_metrics().database.value == "mysql"

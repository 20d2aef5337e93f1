"""Unit tests for the monitor registry and global accessors."""

import pytest

from dataperf.batching import BatchOperation
from dataperf.exceptions import BatchResetError, ConfigurationError
from dataperf.performance import (
    DEFAULT_MONITOR,
    MonitorRegistry,
    create_performance_monitor,
    get_global_performance_monitor,
    get_monitor_registry,
    reset_monitor_registry,
    set_global_performance_monitor,
)


class TestMonitorRegistry:
    """Tests for MonitorRegistry."""

    def test_register_and_lookup(self):
        """
        Why: Hosts with several databases need one monitor per connection
        What: Tests registration, lookup, membership and listing
        How: Registers two monitors under different identifiers
        """
        registry = MonitorRegistry()
        primary = registry.register("primary", create_performance_monitor("postgresql"))
        registry.register("cache-db", create_performance_monitor("sqlite"))

        assert registry.get("primary") is primary
        assert registry.require("primary") is primary
        assert registry.get("missing") is None
        assert "cache-db" in registry
        assert len(registry) == 2
        assert registry.names() == ["primary", "cache-db"]

    def test_duplicate_registration_requires_replace(self):
        registry = MonitorRegistry()
        registry.register("primary", create_performance_monitor("postgresql"))
        replacement = create_performance_monitor("mysql")

        with pytest.raises(ConfigurationError):
            registry.register("primary", replacement)

        registry.register("primary", replacement, replace=True)
        assert registry.get("primary") is replacement

    def test_require_missing_monitor_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            MonitorRegistry().require("analytics")

        assert "analytics" in str(exc_info.value)

    def test_unregister(self):
        registry = MonitorRegistry()
        monitor = registry.register("primary", create_performance_monitor("postgresql"))

        assert registry.unregister("primary") is monitor
        assert registry.unregister("primary") is None
        assert registry.names() == []

    async def test_close_all_closes_and_clears(self):
        """
        Why: Host shutdown must not leave batch callers waiting
        What: Tests that close_all closes every monitor and empties the registry
        How: Registers a monitor with a pending operation and closes all
        """
        registry = MonitorRegistry()
        monitor = registry.register(
            "primary", create_performance_monitor("postgresql", batch_delay_ms=10_000)
        )
        pending = monitor.enqueue(BatchOperation("create", "users", 1))

        await registry.close_all()

        assert len(registry) == 0
        assert monitor.scheduler.closed is True
        with pytest.raises(BatchResetError):
            await pending


class TestGlobalAccessors:
    """Tests for the process-wide registry and default monitor."""

    def test_registry_is_process_wide(self):
        assert get_monitor_registry() is get_monitor_registry()

        first = get_monitor_registry()
        reset_monitor_registry()
        assert get_monitor_registry() is not first

    def test_global_monitor_is_optional(self):
        """
        Why: The global accessor is a convenience and must not be required
        What: Tests None before setting, replacement, and the default key
        How: Sets two monitors in turn and inspects the registry
        """
        assert get_global_performance_monitor() is None

        first = create_performance_monitor("postgresql")
        second = create_performance_monitor("mysql")
        set_global_performance_monitor(first)
        set_global_performance_monitor(second)

        assert get_global_performance_monitor() is second
        assert get_monitor_registry().get(DEFAULT_MONITOR) is second

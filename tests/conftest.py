"""
Shared fixtures for the performance layer tests.

Provides simulated clocks and timers, recording batch executors, and
ready-made monitors wired to simulated time.
"""

import os

import pytest

from dataperf.performance import PerformanceMonitor, create_performance_monitor
from dataperf.performance.registry import reset_monitor_registry

from .fixtures.clock import ManualClock, ManualTimer
from .fixtures.executors import RecordingExecutor


@pytest.fixture
def clock() -> ManualClock:
    """
    Simulated millisecond clock.

    Why: Expiry and batch timing must be tested without real sleeps
    What: Provides a clock starting at 0 that only moves on advance()
    How: Returns a fresh ManualClock per test
    """
    return ManualClock()


@pytest.fixture
def timer(clock: ManualClock) -> ManualTimer:
    """
    Simulated flush timer sharing the test clock.

    Why: Batch delay triggers must fire at exact simulated times
    What: Provides a timer whose callbacks run when the clock is advanced
    How: Wraps the clock fixture in a ManualTimer
    """
    return ManualTimer(clock)


@pytest.fixture
def executor() -> RecordingExecutor:
    """Recording batch executor returning one string result per operation."""
    return RecordingExecutor()


@pytest.fixture
def monitor(clock: ManualClock, timer: ManualTimer, executor: RecordingExecutor) -> PerformanceMonitor:
    """
    Monitor wired to simulated time.

    Why: Facade tests need deterministic cache expiry and batch flushing
    What: Provides a postgresql monitor with small cache and batch settings
    How: Builds the monitor via create_performance_monitor with the test clock and timer
    """
    return create_performance_monitor(
        "postgresql",
        batch_executor=executor,
        clock=clock,
        timer=timer,
        cache_size=10,
        cache_ttl_ms=1000,
        batch_size=5,
        batch_delay_ms=50,
    )


@pytest.fixture(autouse=True)
def clean_registry():
    """
    Reset the process-wide monitor registry around every test.

    Why: Global state must not leak between tests
    What: Drops the registry before and after each test
    How: Calls reset_monitor_registry on setup and teardown
    """
    reset_monitor_registry()
    yield
    reset_monitor_registry()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove DATAPERF_ variables so configuration defaults are predictable."""
    for name in list(os.environ):
        if name.startswith("DATAPERF_"):
            monkeypatch.delenv(name)

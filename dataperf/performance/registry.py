"""Process-wide registry of performance monitors.

Monitors are keyed by a database identifier chosen by the host application,
which registers them at startup and tears them down with ``close_all``.
Passing monitor instances explicitly works just as well; the registry and the
global accessors are a convenience.
"""

import logging
import threading

from ..exceptions import ConfigurationError
from .monitor import PerformanceMonitor

logger = logging.getLogger(__name__)

DEFAULT_MONITOR = "default"


class MonitorRegistry:
    """Performance monitors keyed by database identifier."""

    def __init__(self) -> None:
        self._monitors: dict[str, PerformanceMonitor] = {}
        self._lock = threading.RLock()

    def register(
        self, name: str, monitor: PerformanceMonitor, *, replace: bool = False
    ) -> PerformanceMonitor:
        """Register a monitor under ``name``.

        Raises:
            ConfigurationError: If ``name`` is taken and ``replace`` is false
        """
        with self._lock:
            if name in self._monitors and not replace:
                raise ConfigurationError(
                    f"A performance monitor is already registered as '{name}'",
                    {"name": name},
                )
            self._monitors[name] = monitor
        logger.debug(f"Registered performance monitor '{name}'")
        return monitor

    def get(self, name: str) -> PerformanceMonitor | None:
        with self._lock:
            return self._monitors.get(name)

    def require(self, name: str) -> PerformanceMonitor:
        """Get a registered monitor.

        Raises:
            ConfigurationError: If no monitor is registered under ``name``
        """
        monitor = self.get(name)
        if monitor is None:
            raise ConfigurationError(
                f"No performance monitor registered as '{name}'",
                {"registered": self.names()},
            )
        return monitor

    def unregister(self, name: str) -> PerformanceMonitor | None:
        """Remove a monitor without closing it."""
        with self._lock:
            return self._monitors.pop(name, None)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._monitors)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._monitors

    def __len__(self) -> int:
        with self._lock:
            return len(self._monitors)

    async def close_all(self) -> None:
        """Close and remove every registered monitor."""
        with self._lock:
            monitors = list(self._monitors.items())
            self._monitors.clear()

        for name, monitor in monitors:
            await monitor.close()
            logger.debug(f"Closed performance monitor '{name}'")


_registry: MonitorRegistry | None = None
_registry_lock = threading.Lock()


def get_monitor_registry() -> MonitorRegistry:
    """Get the process-wide monitor registry."""
    global _registry

    if _registry is None:
        with _registry_lock:
            if _registry is None:
                _registry = MonitorRegistry()

    return _registry


def reset_monitor_registry() -> None:
    """Drop the process-wide registry (useful for testing)."""
    global _registry
    with _registry_lock:
        _registry = None


def set_global_performance_monitor(monitor: PerformanceMonitor) -> None:
    """Register ``monitor`` as the default monitor, replacing any previous one."""
    get_monitor_registry().register(DEFAULT_MONITOR, monitor, replace=True)


def get_global_performance_monitor() -> PerformanceMonitor | None:
    """Get the default monitor, if one was set."""
    return get_monitor_registry().get(DEFAULT_MONITOR)

"""Flush timers for the batch scheduler."""

import asyncio
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """Handle to a scheduled callback."""

    def cancel(self) -> None:
        """Cancel the callback if it has not run yet."""
        ...


class Timer(Protocol):
    """Schedules a callback after a delay in milliseconds."""

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay_ms``."""
        ...


class AsyncioTimer:
    """Timer backed by the running event loop."""

    def schedule(
        self, delay_ms: float, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        """Schedule ``callback`` on the running loop."""
        return asyncio.get_running_loop().call_later(delay_ms / 1000, callback)

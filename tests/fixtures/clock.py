"""Simulated time for deterministic cache and batch tests."""

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field


class ManualClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@dataclass
class ManualTimerHandle:
    """Handle returned by ``ManualTimer.schedule``."""

    due: float
    callback: Callable[[], None]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimer:
    """Timer firing callbacks when its clock is advanced past their due time."""

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self._queue: list[tuple[float, int, ManualTimerHandle]] = []
        self._sequence = itertools.count()

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> ManualTimerHandle:
        handle = ManualTimerHandle(due=self.clock.now + delay_ms, callback=callback)
        heapq.heappush(self._queue, (handle.due, next(self._sequence), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of armed, uncancelled callbacks."""
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, ms: float) -> None:
        """Move the clock forward, firing every callback that became due."""
        target = self.clock.now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self.clock.now = max(self.clock.now, due)
            if not handle.cancelled:
                handle.callback()
        self.clock.now = target


async def settle(rounds: int = 5) -> None:
    """Let tasks spawned by the scheduler run to completion."""
    for _ in range(rounds):
        await asyncio.sleep(0)

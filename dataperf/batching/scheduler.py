"""Size and delay triggered batch scheduler with adaptive sizing.

Operations enqueued on a running event loop accumulate in a single open
window. The window is handed to the batch executor as soon as it reaches the
effective batch size, or once ``batch_delay_ms`` has passed since it opened,
whichever comes first. Dispatching a window closes it; the next ``enqueue``
opens a fresh one, so several dispatched batches can be in flight at once.

Batches are all-or-nothing: when the executor raises, every operation of that
batch fails with the executor's exception. Retrying is left to callers.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import (
    BatchExecutionError,
    BatchResetError,
    ConfigurationError,
    SchedulerClosedError,
)
from ..models.enums import BatchOperationKind, SchedulerState
from ..models.reports import BatchMetrics, BatchPerformance, BatchStats
from ..utils import monotonic_ms, wall_clock_ms
from .timers import AsyncioTimer, Timer, TimerHandle

logger = logging.getLogger(__name__)

# Adaptive sizing only kicks in after this many batches
ADAPTIVE_MIN_BATCHES = 5
SHRINK_FACTOR = 0.8
GROW_FACTOR = 1.2
GROW_MIN_SUCCESS_RATE = 0.95

RECOMMEND_SLOW_MS = 3000
RECOMMEND_FAST_MS = 500
RECOMMEND_SHRINK_FACTOR = 0.7
RECOMMEND_GROW_FACTOR = 1.3


@dataclass(frozen=True)
class BatchOperation:
    """Single operation to be coalesced into a batch."""

    kind: BatchOperationKind
    resource: str
    data: Any = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", BatchOperationKind(self.kind))


@dataclass
class PendingBatchOperation:
    """Operation waiting for its batch, with the future its caller awaits."""

    operation: BatchOperation
    future: asyncio.Future[Any]
    enqueued_at: float


@dataclass
class BatchWindow:
    """Currently accumulating operations and the armed flush timer."""

    opened_at: float
    operations: list[PendingBatchOperation] = field(default_factory=list)
    timer: TimerHandle | None = None


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one executed batch, kept for adaptive sizing."""

    size: int
    execution_time_ms: float
    failed: bool


BatchExecutor = Callable[[list[BatchOperation]], Awaitable[Sequence[Any]]]


async def echo_executor(operations: list[BatchOperation]) -> list[Any]:
    """Default executor resolving every operation with its own data."""
    return [operation.data for operation in operations]


class BatchScheduler:
    """Coalesces operations into batches handed to a batch executor."""

    def __init__(
        self,
        executor: BatchExecutor | None = None,
        *,
        batch_size: int = 100,
        batch_delay_ms: float = 50,
        min_batch_size: int | None = None,
        max_batch_size: int | None = None,
        adaptive_batching: bool = True,
        slow_batch_threshold_ms: float = 1000,
        timer: Timer | None = None,
        clock: Callable[[], float] | None = None,
        history_size: int = 20,
    ):
        """Initialize batch scheduler.

        Args:
            executor: Async callable executing a batch and returning one result
                per operation, in order. Echoes operation data when omitted.
            batch_size: Maximum operations per batch
            batch_delay_ms: Maximum time an open window waits before flushing
            min_batch_size: Lower bound for adaptive sizing
            max_batch_size: Upper bound for the recommended batch size
            adaptive_batching: Whether the effective batch size adapts
            slow_batch_threshold_ms: Recent mean execution time that shrinks batches
            timer: Flush timer, ``AsyncioTimer`` by default
            clock: Millisecond clock used to time batch execution
            history_size: Number of recent batches considered for adaptation

        Raises:
            ConfigurationError: If sizes or delays are inconsistent
        """
        if batch_size <= 0:
            raise ConfigurationError(
                f"batch_size must be positive, got {batch_size}",
                {"batch_size": batch_size},
            )
        if batch_delay_ms <= 0:
            raise ConfigurationError(
                f"batch_delay_ms must be positive, got {batch_delay_ms}",
                {"batch_delay_ms": batch_delay_ms},
            )

        self.batch_size = batch_size
        self.batch_delay_ms = batch_delay_ms
        self.min_batch_size = (
            min_batch_size if min_batch_size is not None else min(10, batch_size)
        )
        self.max_batch_size = (
            max_batch_size if max_batch_size is not None else max(1000, batch_size)
        )
        if not 1 <= self.min_batch_size <= batch_size <= self.max_batch_size:
            raise ConfigurationError(
                "Batch bounds must satisfy 1 <= min_batch_size <= batch_size "
                "<= max_batch_size",
                {
                    "min_batch_size": self.min_batch_size,
                    "batch_size": batch_size,
                    "max_batch_size": self.max_batch_size,
                },
            )
        self.adaptive_batching = adaptive_batching
        self.slow_batch_threshold_ms = slow_batch_threshold_ms

        self._executor: BatchExecutor = executor or echo_executor
        self._timer: Timer = timer or AsyncioTimer()
        self._clock = clock or monotonic_ms

        self._window: BatchWindow | None = None
        self._inflight: set[asyncio.Task[None]] = set()
        self._generation = 0
        self._closed = False

        self._current_batch_size = batch_size
        self._history: deque[BatchOutcome] = deque(maxlen=history_size)
        self._total_batches = 0
        self._total_operations = 0
        self._total_execution_time = 0.0
        self._failed_batches = 0
        self._last_batch_time = 0.0

    @property
    def state(self) -> SchedulerState:
        """Current scheduler state."""
        if self._window is not None:
            return SchedulerState.ACCUMULATING
        if self._inflight:
            return SchedulerState.FLUSHING
        return SchedulerState.IDLE

    @property
    def pending_operations(self) -> int:
        """Number of operations in the open window."""
        return len(self._window.operations) if self._window else 0

    @property
    def current_batch_size(self) -> int:
        """Effective batch size after adaptation."""
        return self._current_batch_size

    @property
    def closed(self) -> bool:
        return self._closed

    def set_executor(self, executor: BatchExecutor) -> None:
        """Replace the executor used for batches dispatched from now on."""
        self._executor = executor

    def enqueue(self, operation: BatchOperation) -> asyncio.Future[Any]:
        """Add an operation to the open window.

        Must be called from a running event loop.

        Returns:
            Future resolved with the operation's result once its batch ran

        Raises:
            SchedulerClosedError: If the scheduler was closed
        """
        if self._closed:
            raise SchedulerClosedError("Cannot enqueue into a closed batch scheduler")

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        now = self._clock()

        window = self._window
        if window is None:
            window = BatchWindow(opened_at=now)
            window.timer = self._timer.schedule(
                self.batch_delay_ms, lambda: self._on_timer(window)
            )
            self._window = window

        window.operations.append(
            PendingBatchOperation(operation=operation, future=future, enqueued_at=now)
        )

        if len(window.operations) >= self._current_batch_size:
            self._dispatch()

        return future

    async def submit(self, operation: BatchOperation) -> Any:
        """Enqueue an operation and wait for its result."""
        return await self.enqueue(operation)

    async def flush(self) -> None:
        """Dispatch the open window and wait for all in-flight batches."""
        if self._window is not None:
            self._dispatch()
        await self._drain()

    async def close(self) -> None:
        """Reject unflushed operations, then wait for in-flight batches.

        Further ``enqueue`` calls raise ``SchedulerClosedError``.
        """
        self._closed = True
        self._discard_window(
            BatchResetError("Batch scheduler closed before the operation was flushed")
        )
        await self._drain()

    def reset(self) -> None:
        """Reject unflushed operations and discard all batch history.

        Batches already in flight still resolve their callers but no longer
        contribute to metrics.
        """
        self._generation += 1
        self._discard_window(
            BatchResetError("Batch scheduler was reset before the operation was flushed")
        )

        self._current_batch_size = self.batch_size
        self._history.clear()
        self._total_batches = 0
        self._total_operations = 0
        self._total_execution_time = 0.0
        self._failed_batches = 0
        self._last_batch_time = 0.0

    def get_metrics(self) -> BatchMetrics:
        """Get batch execution counters."""
        total = self._total_batches
        return BatchMetrics(
            total_batches=total,
            total_operations=self._total_operations,
            average_batch_size=self._total_operations / total if total else 0.0,
            average_execution_time=self._total_execution_time / total if total else 0.0,
            failed_batches=self._failed_batches,
            success_rate=self.success_rate,
            last_batch_time=self._last_batch_time,
        )

    def get_stats(self) -> BatchStats:
        """Get a snapshot of the scheduler."""
        return BatchStats(
            pending_operations=self.pending_operations,
            batch_size=self.batch_size,
            batch_delay=self.batch_delay_ms,
            metrics=self.get_metrics(),
            performance=BatchPerformance(
                adaptive_batching=self.adaptive_batching,
                current_batch_size=self._current_batch_size,
                max_batch_size=self.max_batch_size,
                min_batch_size=self.min_batch_size,
                recommended_batch_size=self.recommended_batch_size,
            ),
        )

    @property
    def success_rate(self) -> float:
        """Fraction of batches that succeeded, 1.0 without batches."""
        if self._total_batches == 0:
            return 1.0
        return (self._total_batches - self._failed_batches) / self._total_batches

    @property
    def recommended_batch_size(self) -> int:
        """Advisory batch size derived from recent batches.

        May exceed ``batch_size`` up to ``max_batch_size``; it is never applied
        automatically.
        """
        if not self._history:
            return self._current_batch_size

        recent_time, recent_success = self._recent_performance()
        size = self._current_batch_size
        if recent_time > RECOMMEND_SLOW_MS:
            return max(self.min_batch_size, int(size * RECOMMEND_SHRINK_FACTOR))
        if recent_time < RECOMMEND_FAST_MS and recent_success > GROW_MIN_SUCCESS_RATE:
            return min(self.max_batch_size, int(size * RECOMMEND_GROW_FACTOR))
        return size

    def get_performance_recommendations(self) -> list[str]:
        """Human-readable notes on batch behavior."""
        recommendations: list[str] = []
        if not self._history:
            return recommendations

        recent_time, recent_success = self._recent_performance()
        if recent_success < GROW_MIN_SUCCESS_RATE:
            recommendations.append(
                f"Batch success rate is {recent_success:.1%}; "
                "check the batch executor for failing operations"
            )
        if recent_time > self.slow_batch_threshold_ms:
            recommendations.append(
                f"Recent batches average {recent_time:.0f}ms; "
                "consider smaller batches or a faster executor"
            )

        recommended = self.recommended_batch_size
        if recommended != self._current_batch_size:
            recommendations.append(
                f"Consider a batch size of {recommended} "
                f"(currently {self._current_batch_size})"
            )

        if self.pending_operations >= self._current_batch_size * 0.8:
            recommendations.append(
                "Open batch window is nearly full; consider a shorter batch delay"
            )
        return recommendations

    def _on_timer(self, window: BatchWindow) -> None:
        if self._window is not window:
            return
        window.timer = None
        self._dispatch()

    def _dispatch(self) -> None:
        """Close the open window and execute it in a new task."""
        window = self._window
        if window is None:
            return
        self._window = None
        if window.timer is not None:
            window.timer.cancel()
            window.timer = None

        task = asyncio.get_running_loop().create_task(
            self._execute(window.operations, self._generation)
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _execute(
        self, pending: list[PendingBatchOperation], generation: int
    ) -> None:
        operations = [item.operation for item in pending]
        logger.debug(f"Flushing batch of {len(operations)} operations")

        start = self._clock()
        error: Exception | None = None
        results: list[Any] = []
        try:
            results = list(await self._executor(operations))
            if len(results) != len(operations):
                raise BatchExecutionError(
                    f"Batch executor returned {len(results)} results "
                    f"for {len(operations)} operations",
                    batch_size=len(operations),
                )
        except Exception as e:
            error = e
        execution_time = self._clock() - start

        if error is None:
            for item, result in zip(pending, results):
                if not item.future.done():
                    item.future.set_result(result)
        else:
            logger.warning(f"Batch of {len(operations)} operations failed: {error}")
            for item in pending:
                if not item.future.done():
                    item.future.set_exception(error)

        if generation == self._generation:
            self._record_batch(len(operations), execution_time, failed=error is not None)

    def _record_batch(self, size: int, execution_time: float, failed: bool) -> None:
        self._total_batches += 1
        self._total_operations += size
        self._total_execution_time += execution_time
        if failed:
            self._failed_batches += 1
        self._last_batch_time = wall_clock_ms()
        self._history.append(
            BatchOutcome(size=size, execution_time_ms=execution_time, failed=failed)
        )

        if self.adaptive_batching:
            self._adapt_batch_size(failed)

    def _adapt_batch_size(self, failed: bool) -> None:
        if self._total_batches < ADAPTIVE_MIN_BATCHES:
            return

        recent_time, recent_success = self._recent_performance()
        previous = self._current_batch_size

        if failed or recent_time > self.slow_batch_threshold_ms:
            self._current_batch_size = max(
                self.min_batch_size, int(previous * SHRINK_FACTOR)
            )
        elif recent_success >= GROW_MIN_SUCCESS_RATE:
            self._current_batch_size = min(
                self.batch_size, max(previous + 1, int(previous * GROW_FACTOR))
            )

        if self._current_batch_size != previous:
            logger.debug(
                f"Adjusted batch size from {previous} to {self._current_batch_size}"
            )

    def _recent_performance(self) -> tuple[float, float]:
        """Mean execution time and success rate over the recent history."""
        count = len(self._history)
        total_time = sum(outcome.execution_time_ms for outcome in self._history)
        failures = sum(1 for outcome in self._history if outcome.failed)
        return total_time / count, (count - failures) / count

    def _discard_window(self, error: BatchResetError) -> None:
        window = self._window
        if window is None:
            return
        self._window = None
        if window.timer is not None:
            window.timer.cancel()

        for item in window.operations:
            if not item.future.done():
                item.future.set_exception(error)
        logger.debug(f"Discarded {len(window.operations)} unflushed operations")

    async def _drain(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

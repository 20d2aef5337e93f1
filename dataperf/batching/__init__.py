"""Write and read batching."""

from .scheduler import (
    BatchExecutor,
    BatchOperation,
    BatchScheduler,
    BatchWindow,
    PendingBatchOperation,
    echo_executor,
)
from .timers import AsyncioTimer, Timer, TimerHandle

__all__ = [
    "AsyncioTimer",
    "BatchExecutor",
    "BatchOperation",
    "BatchScheduler",
    "BatchWindow",
    "PendingBatchOperation",
    "Timer",
    "TimerHandle",
    "echo_executor",
]

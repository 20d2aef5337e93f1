"""Clock helpers shared by the performance components."""

import time


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds, for measuring durations and expiry."""
    return time.monotonic() * 1000


def wall_clock_ms() -> float:
    """Wall clock in milliseconds since the epoch, for reported timestamps."""
    return time.time() * 1000

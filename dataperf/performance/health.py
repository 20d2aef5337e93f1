"""Overall health classification.

Each signal maps to a severity level from 0 (excellent) to 3 (critical) and
the verdict is the worst of them. Every level mapping is a step function that
never worsens as its signal improves, so the verdict is total and monotonic.

=====================  =========  ==========  ==========  ========
signal                 0          1           2           3
=====================  =========  ==========  ==========  ========
cache hit rate         >= 0.8     >= 0.5      below 0.5   -
batch success rate     >= 0.99    >= 0.95     >= 0.8      below
pool failure rate      0          <= 0.01     <= 0.05     above
=====================  =========  ==========  ==========  ========

The cache signal only counts once lookups have happened.
"""

from dataclasses import dataclass

from ..models.enums import HealthVerdict


@dataclass(frozen=True)
class HealthSignals:
    """Inputs of the health classifier."""

    cache_hit_rate: float | None = None
    batch_success_rate: float = 1.0
    pool_failure_rate: float = 0.0


@dataclass(frozen=True)
class HealthThresholds:
    """Severity boundaries, listed from the excellent level down."""

    cache_hit_rate: tuple[float, ...] = (0.8, 0.5)
    batch_success_rate: tuple[float, ...] = (0.99, 0.95, 0.8)
    pool_failure_rate: tuple[float, ...] = (0.0, 0.01, 0.05)


def _rate_severity(value: float, floors: tuple[float, ...]) -> int:
    """Severity of a higher-is-better rate."""
    for level, floor in enumerate(floors):
        if value >= floor:
            return level
    return len(floors)


def _failure_severity(value: float, ceilings: tuple[float, ...]) -> int:
    """Severity of a lower-is-better rate."""
    for level, ceiling in enumerate(ceilings):
        if value <= ceiling:
            return level
    return len(ceilings)


class HealthClassifier:
    """Maps health signals to a verdict."""

    def __init__(self, thresholds: HealthThresholds | None = None):
        self.thresholds = thresholds or HealthThresholds()

    def severities(self, signals: HealthSignals) -> dict[str, int]:
        """Severity level of each signal that contributes to the verdict."""
        levels = {
            "batch_success_rate": _rate_severity(
                signals.batch_success_rate, self.thresholds.batch_success_rate
            ),
            "pool_failure_rate": _failure_severity(
                signals.pool_failure_rate, self.thresholds.pool_failure_rate
            ),
        }
        if signals.cache_hit_rate is not None:
            levels["cache_hit_rate"] = _rate_severity(
                signals.cache_hit_rate, self.thresholds.cache_hit_rate
            )
        return levels

    def classify(self, signals: HealthSignals) -> HealthVerdict:
        """Worst verdict among the signals."""
        return HealthVerdict.from_severity(max(self.severities(signals).values()))

    def explain(self, signals: HealthSignals) -> list[str]:
        """Describe every signal that keeps the verdict from being excellent."""
        reasons = []
        for name, level in self.severities(signals).items():
            if level > 0:
                value = getattr(signals, name)
                verdict = HealthVerdict.from_severity(level).value
                reasons.append(f"{name.replace('_', ' ')} of {value:.2%} is {verdict}")
        return reasons

"""Enums shared across the performance layer."""

import enum


class DatabaseType(str, enum.Enum):
    """Supported database engines."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class QueryOperation(str, enum.Enum):
    """Kind of query reported by a data provider."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class ConnectionEventKind(str, enum.Enum):
    """Connection pool lifecycle events."""

    CREATED = "created"
    ACQUIRED = "acquired"
    RELEASED = "released"
    ERROR = "error"
    TIMEOUT = "timeout"


class BatchOperationKind(str, enum.Enum):
    """Kind of operation coalesced by the batch scheduler."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"


class SchedulerState(str, enum.Enum):
    """Batch scheduler state."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"


class QueryComplexity(str, enum.Enum):
    """Coarse query complexity classification."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HealthVerdict(str, enum.Enum):
    """Overall health classification, from best to worst."""

    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_ATTENTION = "needs-attention"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        """Severity rank, 0 for excellent up to 3 for critical."""
        return _VERDICT_ORDER.index(self)

    @classmethod
    def from_severity(cls, severity: int) -> "HealthVerdict":
        """Map a severity rank back to a verdict, clamping out-of-range values."""
        return _VERDICT_ORDER[max(0, min(severity, len(_VERDICT_ORDER) - 1))]


_VERDICT_ORDER = [
    HealthVerdict.EXCELLENT,
    HealthVerdict.GOOD,
    HealthVerdict.NEEDS_ATTENTION,
    HealthVerdict.CRITICAL,
]

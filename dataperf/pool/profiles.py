"""Per-database capability profiles.

Every database-specific decision in the performance layer (pool caps and
defaults, tuning hints, index DDL, filter ordering) is read from the profile
of the configured database type.
"""

from dataclasses import dataclass, field

from ..exceptions import ConfigurationError
from ..models.enums import DatabaseType


@dataclass(frozen=True)
class DatabaseProfile:
    """Capabilities and defaults of one database engine."""

    database_type: DatabaseType
    max_connections: int
    default_min: int
    default_max: int
    acquire_timeout_ms: float
    idle_timeout_ms: float
    headroom: float
    # Average query time above which tuning hints are emitted
    hint_threshold_ms: float
    tuning_hints: tuple[str, ...]
    index_template: str
    filter_priority: dict[str, int] = field(default_factory=dict)

    def index_statement(self, resource: str, field_name: str) -> str:
        """Render the DDL creating an index on ``resource.field_name``."""
        return self.index_template.format(resource=resource, field=field_name)

    def filter_rank(self, operator: str | None) -> int:
        """Evaluation priority of a filter operator, lower runs first."""
        if operator is None:
            return len(self.filter_priority)
        return self.filter_priority.get(operator, len(self.filter_priority))


PROFILES: dict[DatabaseType, DatabaseProfile] = {
    DatabaseType.POSTGRESQL: DatabaseProfile(
        database_type=DatabaseType.POSTGRESQL,
        max_connections=50,
        default_min=2,
        default_max=10,
        acquire_timeout_ms=60_000,
        idle_timeout_ms=300_000,
        headroom=1.5,
        hint_threshold_ms=100,
        tuning_hints=(
            "Consider using EXPLAIN ANALYZE for slow queries",
            "Check if pg_stat_statements extension is enabled",
        ),
        index_template=(
            "CREATE INDEX CONCURRENTLY IF NOT EXISTS idx_{resource}_{field} "
            "ON {resource} ({field});"
        ),
        filter_priority={"eq": 0, "in": 1},
    ),
    DatabaseType.MYSQL: DatabaseProfile(
        database_type=DatabaseType.MYSQL,
        max_connections=30,
        default_min=2,
        default_max=10,
        acquire_timeout_ms=45_000,
        idle_timeout_ms=600_000,
        headroom=1.2,
        hint_threshold_ms=100,
        tuning_hints=(
            "Enable slow query log for analysis",
            "Consider using MySQL Performance Schema",
        ),
        index_template="CREATE INDEX idx_{resource}_{field} ON {resource} ({field});",
        filter_priority={"eq": 0, "in": 1},
    ),
    DatabaseType.SQLITE: DatabaseProfile(
        database_type=DatabaseType.SQLITE,
        max_connections=3,
        default_min=1,
        default_max=2,
        acquire_timeout_ms=10_000,
        idle_timeout_ms=300_000,
        headroom=1.0,
        hint_threshold_ms=50,
        tuning_hints=(
            "Consider enabling WAL mode for better concurrency",
            "Increase cache_size pragma for better performance",
        ),
        index_template=(
            "CREATE INDEX IF NOT EXISTS idx_{resource}_{field} "
            "ON {resource} ({field});"
        ),
        filter_priority={"eq": 0},
    ),
}


def get_profile(database_type: DatabaseType | str) -> DatabaseProfile:
    """Get the profile of a database type.

    Raises:
        ConfigurationError: If the database type is not supported
    """
    try:
        return PROFILES[DatabaseType(database_type)]
    except ValueError as e:
        raise ConfigurationError(
            f"Unsupported database type: {database_type}",
            {"supported": [t.value for t in DatabaseType]},
        ) from e

"""Monitor configuration module.

Provides type-safe monitor configuration with environment variable support
and documented defaults for every tuning knob.
"""

from typing import Any

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..exceptions import ConfigurationValidationError
from ..models.enums import DatabaseType

DEFAULT_MIN_BATCH_SIZE = 10
DEFAULT_MAX_BATCH_SIZE = 1000


class MonitorConfig(BaseSettings):
    """Performance monitor configuration with environment variable support.

    Environment variables:
    - DATAPERF_DATABASE_TYPE: postgresql, mysql or sqlite (default: postgresql)
    - DATAPERF_ENABLED: Enable tracking (default: true)
    - DATAPERF_CACHE_SIZE: Maximum cached query results (default: 1000)
    - DATAPERF_CACHE_TTL_MS: Cached result lifetime (default: 300000)
    - DATAPERF_BATCH_SIZE: Maximum operations per flush (default: 100)
    - DATAPERF_BATCH_DELAY_MS: Maximum wait before a forced flush (default: 50)
    - DATAPERF_SLOW_QUERY_THRESHOLD_MS: Slow query threshold (default: 100)
    """

    database_type: DatabaseType = Field(
        default=DatabaseType.POSTGRESQL, description="Database engine being monitored"
    )
    enabled: bool = Field(default=True, description="Record query/connection events")

    # Fingerprint cache
    cache_size: int = Field(default=1000, gt=0, description="Maximum cached entries")
    cache_ttl_ms: float = Field(
        default=300_000, gt=0, description="Cached result lifetime in milliseconds"
    )

    # Batch scheduler
    batch_size: int = Field(
        default=100, gt=0, description="Maximum operations handed to one flush"
    )
    batch_delay_ms: float = Field(
        default=50, gt=0, description="Maximum wait before a pending window is flushed"
    )
    min_batch_size: int | None = Field(
        default=None,
        gt=0,
        description="Lower bound for adaptive sizing (default: min(10, batch_size))",
    )
    max_batch_size: int | None = Field(
        default=None,
        gt=0,
        description="Upper bound for the advisory batch size (default: max(1000, batch_size))",
    )
    adaptive_batching: bool = Field(
        default=True, description="Shrink/grow the effective batch size from feedback"
    )
    slow_batch_threshold_ms: float = Field(
        default=1000, gt=0, description="Mean batch execution time considered slow"
    )

    # Query statistics
    slow_query_threshold_ms: float = Field(
        default=100, gt=0, description="Queries slower than this count as slow"
    )
    slow_query_sample_size: int = Field(
        default=100, gt=0, description="Slow queries retained for inspection"
    )
    query_log_size: int = Field(
        default=1000, gt=0, description="Recent queries retained for index analysis"
    )

    # Pool optimizer
    pool_window_size: int = Field(
        default=200, gt=0, description="Connection events kept in the sliding window"
    )
    pool_smoothing: float = Field(
        default=0.2,
        gt=0,
        le=1,
        description="EWMA weight of the newest connection sample",
    )
    pool_min_samples: int = Field(
        default=10, gt=0, description="Events required before leaving the defaults"
    )
    acquire_timeout_ms: float | None = Field(
        default=None,
        gt=0,
        description="Currently configured pool acquire timeout (default: per engine)",
    )

    model_config = SettingsConfigDict(
        env_prefix="DATAPERF_",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def resolve_batch_bounds(self) -> "MonitorConfig":
        """Fill batch bounds from ``batch_size`` and check their ordering."""
        if self.min_batch_size is None:
            self.min_batch_size = min(DEFAULT_MIN_BATCH_SIZE, self.batch_size)
        if self.max_batch_size is None:
            self.max_batch_size = max(DEFAULT_MAX_BATCH_SIZE, self.batch_size)

        if self.min_batch_size > self.batch_size:
            raise ValueError(
                f"min_batch_size ({self.min_batch_size}) exceeds batch_size ({self.batch_size})"
            )
        if self.max_batch_size < self.batch_size:
            raise ValueError(
                f"max_batch_size ({self.max_batch_size}) is below batch_size ({self.batch_size})"
            )
        return self


def build_monitor_config(**overrides: Any) -> MonitorConfig:
    """Build a validated configuration, failing fast on invalid options.

    Raises:
        ConfigurationValidationError: If any option is invalid
    """
    try:
        return MonitorConfig(**overrides)
    except ValidationError as e:
        raise ConfigurationValidationError(
            f"Invalid performance monitor configuration: {e.error_count()} error(s)",
            validation_errors=e.errors(include_url=False),
        ) from e

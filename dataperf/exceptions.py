"""Exceptions raised by the performance layer.

This module defines every exception that can surface from configuration,
batch execution and event tracking. Tracking failures never reach callers of
the monitor facade; they are raised internally and absorbed there.
"""

from typing import Any


class PerformanceError(Exception):
    """Base exception for all performance-layer errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize performance error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(PerformanceError):
    """Exception raised when monitor options are invalid."""


class ConfigurationFileError(ConfigurationError):
    """Exception raised when a configuration file cannot be read or parsed."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize configuration file error.

        Args:
            message: Human-readable error message
            file_path: Path to the problematic configuration file
            details: Optional dictionary with additional error details
        """
        super().__init__(message, details)
        self.file_path = file_path


class ConfigurationValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""

    def __init__(
        self,
        message: str,
        validation_errors: list[Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize configuration validation error.

        Args:
            message: Human-readable error message
            validation_errors: List of specific validation errors
            details: Optional dictionary with additional error details
        """
        super().__init__(message, details)
        self.validation_errors = validation_errors or []


class BatchExecutionError(PerformanceError):
    """Exception raised when a batch cannot be executed or its results matched."""

    def __init__(
        self,
        message: str,
        batch_size: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize batch execution error.

        Args:
            message: Human-readable error message
            batch_size: Number of operations in the affected batch
            details: Optional dictionary with additional error details
        """
        super().__init__(message, details)
        self.batch_size = batch_size


class BatchResetError(BatchExecutionError):
    """Exception set on operations discarded by a reset before being flushed."""


class SchedulerClosedError(BatchExecutionError):
    """Exception raised when enqueueing into a closed scheduler."""


class TrackingError(PerformanceError):
    """Exception raised while recording a query or connection event."""

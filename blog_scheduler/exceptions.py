"""
Custom exception classes for the blog scheduled-publishing service.

Store failures are raised by the database layer and converted into a
``PublishResult`` by the evaluator.  Anything else propagates to the
polling driver, which retries and then gives up for the current tick.

Hierarchy:
    Exception
    +-- PublisherBaseError (base for all scheduler-specific errors)
    +-- ValidationError (ValueError)
    |   +-- InvalidTimestampError
    +-- DatabaseError
    |   +-- StoreTimeoutError
    +-- ConfigurationError
    +-- RetryExhaustedError
"""

from typing import Any


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class PublisherBaseError(Exception):
    """Base exception for all scheduler-related errors."""

    pass


# =============================================================================
# CORE EXCEPTIONS
# =============================================================================


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


class DatabaseError(Exception):
    """Raised when article store operations fail."""

    pass


class ConfigurationError(Exception):
    """Raised when system configuration is invalid."""

    pass


class RetryExhaustedError(Exception):
    """Raised when all retry attempts have been exhausted.

    Attributes:
        operation: Name of the operation that was retried.
        attempts: Total number of attempts made.
        last_error: The last exception raised before giving up.
    """

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts. "
            f"Last error: {last_error}"
        )


# =============================================================================
# SCHEDULING EXCEPTIONS
# =============================================================================


class InvalidTimestampError(ValidationError):
    """Raised when a stored timestamp cannot be parsed.

    Attributes:
        field_name: Name of the offending field.
        value: The raw value that failed to parse.
    """

    def __init__(self, field_name: str, value: Any):
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid {field_name} value: {value!r}")


class StoreTimeoutError(DatabaseError):
    """Raised when an article store call exceeds its timeout.

    Attributes:
        operation: Name of the store call.
        timeout: Timeout duration in seconds.
    """

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Store call '{operation}' timed out after {timeout} seconds")


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    # Base
    "PublisherBaseError",
    # Core
    "ValidationError",
    "DatabaseError",
    "ConfigurationError",
    "RetryExhaustedError",
    # Scheduling
    "InvalidTimestampError",
    "StoreTimeoutError",
]

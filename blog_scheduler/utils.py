"""
Shared utility functions used throughout the scheduler codebase.

Provides:
    - utc_now(): Timezone-aware UTC datetime (for TIMESTAMPTZ columns)
    - generate_id(): UUID4 string generator (driver tick identifiers)
    - ensure_utc(dt): Convert any datetime to timezone-aware UTC
    - parse_timestamp(value): Parse a stored timestamp into aware UTC
    - @with_retry@with_retry: Async retry decorator with fixed or exponential backoff
"""

from datetime import datetime, timezone
import asyncio
import logging
import uuid
from functools import wraps
from typing import Callable, TypeVar, Any, Tuple, Type, Optional, Union

from blog_scheduler.exceptions import InvalidTimestampError, RetryExhaustedError

# ---------------------------------------------------------------------------
# Type variable for generic return types in the retry decorator
# ---------------------------------------------------------------------------
T = TypeVar("T")


# ===========================================================================
# TIMEZONE UTILITIES
# All timestamps stored in the article table are UTC.
# ===========================================================================


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    This is also the default clock for the evaluator; tests inject their own.

    Returns:
        Timezone-aware datetime in UTC.
    """
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """
    Generate a unique ID.

    Used to correlate every log line emitted during one driver tick.

    Returns:
        A unique UUID4 string.
    """
    return str(uuid.uuid4())


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: Datetime to convert (naive or aware).

    Returns:
        Timezone-aware datetime in UTC.
    """
    if dt.tzinfo is None:
        # Assume naive datetime is UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(
    value: Union[str, datetime, None],
    field_name: str = "timestamp",
) -> Optional[datetime]:
    """
    Parse a timestamp read from the store into an aware UTC datetime.

    Accepts ``datetime`` objects and ISO-8601 strings (including a trailing
    ``Z``).  Naive values are interpreted as UTC.

    Args:
        value: Raw value from a store row.
        field_name: Field name used in the error message.

    Returns:
        Aware UTC datetime, or ``None`` when *value* is ``None`` or blank.

    Raises:
        InvalidTimestampError: If *value* cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str):
        raise InvalidTimestampError(field_name, value)

    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidTimestampError(field_name, value) from exc
    return ensure_utc(parsed)


# ===========================================================================
# RETRY DECORATOR
# Retries are for transient failures. Eventually raises if all attempts fail.
# ===========================================================================


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 2.0,
    backoff: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,),
    operation_name: Optional[str] = None,
) -> Callable:
    """
    Decorator for retry logic with configurable backoff.

    - Retries are for transient failures (store outages, timeouts).
    - Eventually raises ``RetryExhaustedError`` if all attempts fail.
    - Logs each retry attempt for debugging.

    Wraps coroutine functions; each failed attempt waits with
    ``asyncio.sleep`` so the event loop keeps running.

    Args:
        max_attempts: Maximum number of attempts (default ``3``).
        base_delay: Delay in seconds before the first retry
            (default ``2.0``).
        backoff: Multiplier applied to the delay after each failed attempt:
            ``base_delay * (backoff ** (attempt - 1))``.  ``1.0`` gives a
            fixed delay between attempts.
        retryable_exceptions: Tuple of exception types that should trigger
            a retry. Any exception **not** in this tuple will propagate
            immediately without retrying.
        operation_name: Human-readable name used in log messages. If
            ``None``, the wrapped function's ``__name__`` is used.

    Raises:
        RetryExhaustedError: When all retry attempts have been exhausted.
            The original exception is available as ``last_error``.

    Usage::

        @with_retry(max_attempts=3, base_delay=3.0, backoff=1.0)
        async def tick() -> PublishResult:
            return await evaluator.evaluate()
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        op_name = operation_name or func.__name__

        def _delay_for(attempt: int) -> float:
            return base_delay * (backoff ** (attempt - 1))

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: Optional[Exception] = None
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_error = e
                    if attempt < max_attempts:
                        delay = _delay_for(attempt)
                        logging.warning(
                            "[RETRY] %s attempt %d/%d failed: %s. "
                            "Retrying in %.1fs...",
                            op_name,
                            attempt,
                            max_attempts,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
                    else:
                        logging.error(
                            "[RETRY EXHAUSTED] %s failed after %d attempts: %s",
                            op_name,
                            max_attempts,
                            e,
                        )
            raise RetryExhaustedError(
                op_name, max_attempts, last_error  # type: ignore[arg-type]
            )

        return async_wrapper  # type: ignore[return-value]

    return decorator

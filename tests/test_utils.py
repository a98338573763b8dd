"""
Tests for blog_scheduler.utils.

Covers:
    - utc_now() / generate_id(): clock and tick id helpers
    - ensure_utc(): naive/aware datetime UTC conversion
    - parse_timestamp(): stored timestamp parsing
    - with_retry(): fixed and exponential backoff for coroutine functions
"""

from datetime import datetime, timezone, timedelta
from unittest.mock import patch, AsyncMock
from uuid import UUID

import pytest

from blog_scheduler.exceptions import (
    InvalidTimestampError,
    RetryExhaustedError,
    ValidationError,
)
from blog_scheduler.utils import (
    ensure_utc,
    generate_id,
    parse_timestamp,
    utc_now,
    with_retry,
)


# ===========================================================================
# utc_now() / generate_id()
# ===========================================================================


def test_utc_now_is_aware_and_current():
    before = datetime.now(timezone.utc)
    result = utc_now()
    after = datetime.now(timezone.utc)

    assert result.tzinfo == timezone.utc
    assert before <= result <= after


def test_generate_id_is_unique_uuid4():
    ids = {generate_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(UUID(value).version == 4 for value in ids)


# ===========================================================================
# ensure_utc()
# ===========================================================================


def test_ensure_utc_treats_naive_as_utc():
    """Naive wall time is kept and labelled UTC, not shifted."""
    result = ensure_utc(datetime(2025, 6, 15, 12, 0, 0))

    assert result == datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def test_ensure_utc_converts_ist_offset():
    ist = timezone(timedelta(hours=5, minutes=30))
    result = ensure_utc(datetime(2025, 1, 1, 15, 30, tzinfo=ist))

    assert result.tzinfo == timezone.utc
    assert (result.hour, result.minute) == (10, 0)


# ===========================================================================
# parse_timestamp()
# ===========================================================================


class TestParseTimestamp:
    """Stored timestamps come back as ISO strings in several shapes."""

    @pytest.mark.parametrize(
        "raw",
        [
            "2025-01-01T10:00:00Z",
            "2025-01-01T10:00:00+00:00",
            "2025-01-01T15:30:00+05:30",
            "2025-01-01 10:00:00",
            "2025-01-01T10:00:00.000000z",
        ],
    )
    def test_equivalent_forms(self, raw):
        assert parse_timestamp(raw) == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_datetime_passthrough(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        value = datetime(2025, 1, 1, 15, 30, tzinfo=ist)

        result = parse_timestamp(value)

        assert result == value
        assert result.tzinfo == timezone.utc

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_values(self, raw):
        assert parse_timestamp(raw) is None

    @pytest.mark.parametrize("raw", ["not-a-date", "2025-13-45T99:00:00Z", 12345])
    def test_invalid_values(self, raw):
        with pytest.raises(InvalidTimestampError) as exc_info:
            parse_timestamp(raw, field_name="scheduled_publish_at")

        err = exc_info.value
        assert err.field_name == "scheduled_publish_at"
        assert err.value == raw
        assert "scheduled_publish_at" in str(err)

    def test_invalid_value_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_timestamp("garbage")
        with pytest.raises(ValidationError):
            parse_timestamp("garbage")


# ===========================================================================
# with_retry()
# ===========================================================================

SLEEP_PATH = "blog_scheduler.utils.asyncio.sleep"


@pytest.mark.asyncio
async def test_with_retry_no_retry_on_success():
    with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=3, base_delay=2.0)
        async def succeed():
            return "ok"

        assert await succeed() == "ok"

    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_with_retry_exponential_backoff():
    """Default backoff doubles the delay: 1.0 then 2.0."""
    with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=3, base_delay=1.0, operation_name="backoff_op")
        async def always_fail():
            raise RuntimeError("permanent")

        with pytest.raises(RetryExhaustedError) as exc_info:
            await always_fail()

    err = exc_info.value
    assert err.operation == "backoff_op"
    assert err.attempts == 3
    assert str(err.last_error) == "permanent"
    assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_with_retry_fixed_delay():
    """backoff=1.0 keeps the delay constant between attempts."""
    with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=3, base_delay=3.0, backoff=1.0, operation_name="tick")
        async def always_fail():
            raise RuntimeError("store unavailable")

        with pytest.raises(RetryExhaustedError) as exc_info:
            await always_fail()

    err = exc_info.value
    assert err.operation == "tick"
    assert isinstance(err.last_error, RuntimeError)
    assert [c.args[0] for c in mock_sleep.await_args_list] == [3.0, 3.0]


@pytest.mark.asyncio
async def test_with_retry_recovers_on_third_attempt():
    with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:
        attempts = 0

        @with_retry(max_attempts=3, base_delay=3.0, backoff=1.0)
        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise ConnectionError("transient")
            return "recovered"

        assert await flaky() == "recovered"

    assert attempts == 3
    assert mock_sleep.await_count == 2


@pytest.mark.asyncio
async def test_with_retry_non_retryable_propagates():
    with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=3, retryable_exceptions=(ValueError,))
        async def raise_type_error():
            raise TypeError("not retryable")

        with pytest.raises(TypeError, match="not retryable"):
            await raise_type_error()

    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_with_retry_single_attempt_never_sleeps():
    with patch(SLEEP_PATH, new_callable=AsyncMock) as mock_sleep:

        @with_retry(max_attempts=1)
        async def fail():
            raise RuntimeError("once")

        with pytest.raises(RetryExhaustedError):
            await fail()

    mock_sleep.assert_not_awaited()


def test_with_retry_preserves_name():
    @with_retry(max_attempts=2)
    async def evaluate_once():
        pass

    assert evaluate_once.__name__ == "evaluate_once"

"""Tests for schedulebot.utils.helpers module."""

from unittest.mock import AsyncMock, patch

import pytest

from schedulebot.utils.exceptions import RetryError
from schedulebot.utils.helpers import format_duration, retry_with_backoff, truncate_string


class TestRetryWithBackoff:
    """Test retry_with_backoff function."""

    @pytest.mark.asyncio
    async def test_successful_call_no_retry(self) -> None:
        """Test successful function call requires no retries."""
        mock_func = AsyncMock(return_value="success")

        result = await retry_with_backoff(
            mock_func, 3, 1.5, 1.0, 60.0, (Exception,), "arg1", kwarg1="value1"
        )

        assert result == "success"
        mock_func.assert_called_once_with("arg1", kwarg1="value1")

    @pytest.mark.asyncio
    async def test_retry_on_exception(self) -> None:
        """Test function retries on specified exceptions."""
        mock_func = AsyncMock(side_effect=[ValueError("error"), "success"])

        result = await retry_with_backoff(
            mock_func, max_retries=2, exceptions=(ValueError,), initial_delay=0
        )

        assert result == "success"
        assert mock_func.call_count == 2

    @pytest.mark.asyncio
    async def test_max_retries_exceeded(self) -> None:
        """Test RetryError carries the attempt count and last exception."""
        error = ValueError("persistent error")
        mock_func = AsyncMock(side_effect=error)

        with pytest.raises(RetryError) as exc_info:
            await retry_with_backoff(mock_func, max_retries=2, initial_delay=0)

        assert mock_func.call_count == 3  # initial + 2 retries
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_exception is error

    @pytest.mark.asyncio
    async def test_backoff_delays_grow_and_cap(self) -> None:
        """Test delays follow the backoff factor up to max_delay."""
        mock_func = AsyncMock(side_effect=[ValueError(), ValueError(), ValueError(), "ok"])

        with patch("schedulebot.utils.helpers.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await retry_with_backoff(
                mock_func, max_retries=3, initial_delay=1.0, backoff_factor=2.0, max_delay=3.0
            )

        assert [call.args[0] for call in mock_sleep.await_args_list] == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_unhandled_exception_not_retried(self) -> None:
        """Test exceptions outside the filter propagate immediately."""
        mock_func = AsyncMock(side_effect=TypeError("wrong type"))

        with pytest.raises(TypeError, match="wrong type"):
            await retry_with_backoff(mock_func, max_retries=2, exceptions=(ValueError,))

        assert mock_func.call_count == 1

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self) -> None:
        mock_func = AsyncMock(side_effect=ValueError("once"))

        with pytest.raises(RetryError):
            await retry_with_backoff(mock_func, max_retries=0)

        assert mock_func.call_count == 1


class TestFormatDuration:
    """Test format_duration function."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "0s"),
            (45.7, "45s"),
            (60, "1m"),
            (125, "2m 5s"),
            (3600, "1h"),
            (3900, "1h 5m"),
        ],
    )
    def test_format_duration(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected


class TestTruncateString:
    """Test truncate_string function."""

    def test_short_string_unchanged(self) -> None:
        assert truncate_string("Carla", 10) == "Carla"

    def test_long_string_truncated(self) -> None:
        """Test result length includes the suffix."""
        result = truncate_string("Imported from calendar: Cely Pets Carla", 20)

        assert result == "Imported from cal..."
        assert len(result) == 20

    def test_custom_suffix(self) -> None:
        assert truncate_string("abcdefgh", 5, suffix="~") == "abcd~"

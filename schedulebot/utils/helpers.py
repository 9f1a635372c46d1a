"""General utility functions and helpers."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Callable, TypeVar

from .exceptions import RetryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    max_retries: int = 3,
    backoff_factor: float = 1.5,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    *args: Any,
    **kwargs: Any,
) -> T:
    """Retry an async function with exponential backoff.

    Only exceptions listed in ``exceptions`` trigger another attempt; any
    other exception propagates immediately from the attempt that raised it.

    Args:
        func (Callable[..., Awaitable[T]]): Async function to retry
        max_retries (int, optional): Maximum number of retry attempts. Defaults to 3.
        backoff_factor (float, optional): Exponential backoff multiplier. Defaults to 1.5.
        initial_delay (float, optional): Initial delay in seconds. Defaults to 1.0.
        max_delay (float, optional): Maximum delay in seconds. Defaults to 60.0.
        exceptions (Tuple[Type[BaseException], ...], optional): Exceptions that trigger
            retries. Defaults to (Exception,).
        *args (Any): Arguments to pass to function
        **kwargs (Any): Keyword arguments to pass to function

    Returns:
        T: Result of the function call

    Raises:
        RetryError: If every attempt failed with a retryable exception

    Example:
        >>> result = await retry_with_backoff(
        ...     store.find_client_by_name,
        ...     max_retries=5,
        ...     initial_delay=0.5,
        ...     exceptions=(StoreTransientError, TimeoutError),
        ... )
    """
    delay = initial_delay
    name = getattr(func, "__name__", repr(func))

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except exceptions as e:
            if attempt == max_retries:
                logger.error(f"Function {name} failed after {max_retries} retries: {e}")
                raise RetryError(
                    f"Function {name} failed after {max_retries} retries: {e}",
                    max_retries + 1,
                    e,
                ) from e
            logger.warning(
                f"Function {name} failed (attempt {attempt + 1}), retrying in {delay:.1f}s: {e}"
            )
            await asyncio.sleep(delay)
            delay = min(delay * backoff_factor, max_delay)

    # Unreachable: the loop either returns or raises
    raise RetryError(
        f"Function {name} failed with no recorded exception",
        max_retries,
        RuntimeError("No exception recorded"),
    )


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string
    """
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        minutes = seconds // 60
        remaining_seconds = seconds % 60
        if remaining_seconds == 0:
            return f"{minutes}m"
        return f"{minutes}m {remaining_seconds}s"
    hours = seconds // 3600
    remaining_minutes = (seconds % 3600) // 60
    if remaining_minutes == 0:
        return f"{hours}h"
    return f"{hours}h {remaining_minutes}m"


def truncate_string(text: str, max_length: int, suffix: str = "...") -> str:
    """Truncate string to maximum length with suffix.

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add when truncating

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix

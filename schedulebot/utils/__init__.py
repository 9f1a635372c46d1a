"""Utility functions and helpers package."""

from .exceptions import RetryError, UtilsError
from .helpers import format_duration, retry_with_backoff, truncate_string
from .logging import VERBOSE, apply_command_line_overrides, get_logger, setup_logging

__all__ = [
    "VERBOSE",
    "RetryError",
    "UtilsError",
    "apply_command_line_overrides",
    "format_duration",
    "get_logger",
    "retry_with_backoff",
    "setup_logging",
    "truncate_string",
]

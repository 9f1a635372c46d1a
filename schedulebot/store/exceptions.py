"""Store-specific exceptions."""

from typing import Optional


class StoreError(Exception):
    """Base exception for appointment store failures."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation


class StoreTransientError(StoreError):
    """Failure that may succeed when retried (locked database, timeout)."""


class StoreValidationError(StoreError):
    """The store rejected the data; retrying will not help."""


class StoreBusyError(StoreError):
    """An import and a duplicate audit tried to use the same store at once."""

"""Mutual exclusion between imports and duplicate audits on one store."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional, Protocol, runtime_checkable

from .exceptions import StoreBusyError

logger = logging.getLogger(__name__)

IMPORT_ACTIVITY = "import"
AUDIT_ACTIVITY = "audit"


@runtime_checkable
class ActivityRegistry(Protocol):
    """Store-side record of running imports and audits, shared by every process."""

    async def register_activity(self, kind: str) -> int: ...

    async def release_activity(self, activity_id: int) -> None: ...


class StoreActivityGuard:
    """Tracks imports and audits running against a store.

    Any number of imports may run together; an audit needs the store to
    itself. Conflicting requests fail fast with ``StoreBusyError`` instead
    of waiting. The in-process counters are checked first; when a registry
    is given the activity is also recorded in the store so that other
    processes opening the same database see it.
    """

    def __init__(self, registry: Optional[ActivityRegistry] = None) -> None:
        self.registry = registry
        self._active_imports = 0
        self._audit_active = False

    @property
    def is_idle(self) -> bool:
        return self._active_imports == 0 and not self._audit_active

    @asynccontextmanager
    async def importing(self) -> AsyncIterator[None]:
        if self._audit_active:
            raise StoreBusyError("A duplicate audit is running on this store", IMPORT_ACTIVITY)

        self._active_imports += 1
        try:
            async with self._registered(IMPORT_ACTIVITY):
                yield
        finally:
            self._active_imports -= 1

    @asynccontextmanager
    async def auditing(self) -> AsyncIterator[None]:
        if self._audit_active:
            raise StoreBusyError(
                "A duplicate audit is already running on this store", AUDIT_ACTIVITY
            )
        if self._active_imports:
            raise StoreBusyError(
                f"{self._active_imports} import(s) running on this store", AUDIT_ACTIVITY
            )

        self._audit_active = True
        try:
            async with self._registered(AUDIT_ACTIVITY):
                yield
        finally:
            self._audit_active = False

    @asynccontextmanager
    async def _registered(self, kind: str) -> AsyncIterator[None]:
        if self.registry is None:
            yield
            return

        activity_id = await self.registry.register_activity(kind)
        logger.debug(f"Registered {kind} activity {activity_id}")
        try:
            yield
        finally:
            await self.registry.release_activity(activity_id)


def guard_for(store: Any) -> StoreActivityGuard:
    """Return the guard a store carries, or a process-local one if it has none."""
    guard = getattr(store, "activity_guard", None)
    if isinstance(guard, StoreActivityGuard):
        return guard
    return StoreActivityGuard()

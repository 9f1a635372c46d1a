"""Timeout and retry wrapper around an appointment store."""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import date
from typing import Any, Callable, Optional

from ..utils.exceptions import RetryError
from ..utils.helpers import retry_with_backoff
from .exceptions import StoreTransientError
from .guard import StoreActivityGuard, guard_for
from .models import (
    Appointment,
    AppointmentFilter,
    AppointmentStatus,
    Client,
    NewAppointment,
    NewClient,
)
from .protocol import AppointmentStore

logger = logging.getLogger(__name__)


class ResilientStore:
    """AppointmentStore that bounds every call with a timeout and retries transient failures.

    Only ``StoreTransientError`` and timeouts are retried; validation and
    other store errors propagate from the first attempt. When retries run
    out a ``StoreTransientError`` carrying the last failure is raised.

    A timed-out create may still have been committed by the underlying
    store, so before a create is retried after a timeout the record is
    looked up and returned if it is already there.
    """

    def __init__(
        self,
        store: AppointmentStore,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_factor: float = 1.5,
        initial_delay: float = 0.5,
        activity_guard: Optional[StoreActivityGuard] = None,
    ) -> None:
        self.store = store
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.initial_delay = initial_delay
        self.activity_guard = activity_guard or guard_for(store)

    @classmethod
    def from_settings(cls, store: AppointmentStore, settings: Any) -> "ResilientStore":
        """Wrap ``store`` using the store access settings."""
        return cls(
            store,
            timeout=settings.store_timeout,
            max_retries=settings.max_retries,
            backoff_factor=settings.retry_backoff_factor,
            initial_delay=settings.retry_initial_delay,
        )

    async def _call(
        self,
        operation: str,
        *args: Any,
        recover: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> Any:
        method = getattr(self.store, operation)
        timed_out = False

        async def attempt() -> Any:
            nonlocal timed_out
            if timed_out and recover is not None:
                existing = await asyncio.wait_for(recover(), timeout=self.timeout)
                if existing is not None:
                    logger.info(f"{operation} timed out but was committed, not retrying")
                    return existing

            try:
                return await asyncio.wait_for(method(*args), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                timed_out = True
                raise StoreTransientError(
                    f"{operation} timed out after {self.timeout}s", operation
                ) from e

        attempt.__name__ = operation

        try:
            return await retry_with_backoff(
                attempt,
                max_retries=self.max_retries,
                backoff_factor=self.backoff_factor,
                initial_delay=self.initial_delay,
                exceptions=(StoreTransientError, asyncio.TimeoutError),
            )
        except RetryError as e:
            raise StoreTransientError(
                f"{operation} failed after {e.attempts} attempts: {e.last_exception}", operation
            ) from e

    async def find_client_by_name(self, name: str) -> Optional[Client]:
        return await self._call("find_client_by_name", name)

    async def get_client(self, client_id: int) -> Optional[Client]:
        return await self._call("get_client", client_id)

    async def create_client(self, data: NewClient) -> Client:
        return await self._call(
            "create_client", data, recover=lambda: self.store.find_client_by_name(data.name)
        )

    async def find_appointment(
        self, client_id: int, appointment_date: date, time: str
    ) -> Optional[Appointment]:
        return await self._call("find_appointment", client_id, appointment_date, time)

    async def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        return await self._call("get_appointment", appointment_id)

    async def create_appointment(self, data: NewAppointment) -> Appointment:
        return await self._call(
            "create_appointment",
            data,
            recover=lambda: self.store.find_appointment(data.client_id, data.date, data.time),
        )

    async def list_appointments(
        self, criteria: Optional[AppointmentFilter] = None
    ) -> list[Appointment]:
        return await self._call("list_appointments", criteria)

    async def update_appointment_status(
        self, appointment_id: int, status: AppointmentStatus, notes: Optional[str] = None
    ) -> bool:
        return await self._call("update_appointment_status", appointment_id, status, notes)

    async def delete_appointment(self, appointment_id: int) -> bool:
        return await self._call("delete_appointment", appointment_id)

"""Abstract interface of the appointment store."""

from datetime import date
from typing import Optional, Protocol, runtime_checkable

from .models import (
    Appointment,
    AppointmentFilter,
    AppointmentStatus,
    Client,
    NewAppointment,
    NewClient,
)


@runtime_checkable
class AppointmentStore(Protocol):
    """Operations the import pipeline needs from a client/appointment store.

    Implementations raise ``StoreError`` subclasses: ``StoreTransientError``
    for failures worth retrying, ``StoreValidationError`` for rejected data.
    """

    async def find_client_by_name(self, name: str) -> Optional[Client]: ...

    async def get_client(self, client_id: int) -> Optional[Client]: ...

    async def create_client(self, data: NewClient) -> Client: ...

    async def find_appointment(
        self, client_id: int, appointment_date: date, time: str
    ) -> Optional[Appointment]: ...

    async def get_appointment(self, appointment_id: int) -> Optional[Appointment]: ...

    async def create_appointment(self, data: NewAppointment) -> Appointment: ...

    async def list_appointments(
        self, criteria: Optional[AppointmentFilter] = None
    ) -> list[Appointment]: ...

    async def update_appointment_status(
        self, appointment_id: int, status: AppointmentStatus, notes: Optional[str] = None
    ) -> bool: ...

    async def delete_appointment(self, appointment_id: int) -> bool: ...

"""Client and appointment storage."""

from .database import SQLiteAppointmentStore
from .exceptions import StoreBusyError, StoreError, StoreTransientError, StoreValidationError
from .guard import StoreActivityGuard
from .models import (
    Appointment,
    AppointmentFilter,
    AppointmentStatus,
    Client,
    NewAppointment,
    NewClient,
    Pet,
)
from .protocol import AppointmentStore
from .resilient import ResilientStore

__all__ = [
    "Appointment",
    "AppointmentFilter",
    "AppointmentStatus",
    "AppointmentStore",
    "Client",
    "NewAppointment",
    "NewClient",
    "Pet",
    "ResilientStore",
    "SQLiteAppointmentStore",
    "StoreActivityGuard",
    "StoreBusyError",
    "StoreError",
    "StoreTransientError",
    "StoreValidationError",
]

"""Data models for clients and appointments held by the store."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentStatus(str, Enum):
    """Lifecycle states of an appointment."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Pet(BaseModel):
    """A pet belonging to a client."""

    name: str
    breed: Optional[str] = None
    notes: Optional[str] = None


class NewClient(BaseModel):
    """Client data supplied on creation."""

    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    pets: List[Pet] = Field(default_factory=list)


class Client(NewClient):
    """A stored client."""

    id: int
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class NewAppointment(BaseModel):
    """Appointment data supplied on creation.

    ``created_at`` is normally assigned by the store; it may be given
    explicitly when loading historical data.
    """

    client_id: int
    date: date
    time: str = Field(..., pattern=TIME_PATTERN, description="Local wall-clock time, HH:MM")
    services: List[str] = Field(..., min_length=1)
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    notes: str = ""
    total_amount: Optional[Decimal] = None
    external_uid: Optional[str] = None
    created_at: Optional[datetime] = None


class Appointment(BaseModel):
    """A stored appointment."""

    id: int
    client_id: int
    date: date
    time: str
    services: List[str]
    status: AppointmentStatus
    notes: str = ""
    total_amount: Optional[Decimal] = None
    external_uid: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def natural_key(self) -> tuple[int, date, str]:
        """The (client, date, time) triple that identifies a booking."""
        return (self.client_id, self.date, self.time)

    @field_serializer("total_amount", when_used="unless-none")
    def serialize_amount(self, amount: Decimal) -> str:
        return str(amount)


class AppointmentFilter(BaseModel):
    """Criteria for listing appointments; unset fields do not filter."""

    client_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    time: Optional[str] = None
    status: Optional[AppointmentStatus] = None

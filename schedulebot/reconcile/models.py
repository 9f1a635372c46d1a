"""Data models for reconciliation and duplicate auditing."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..ics.models import CalendarEvent, RecurrencePattern
from ..store.models import Appointment


class Occurrence(BaseModel):
    """One concrete start instant of a calendar event."""

    event: CalendarEvent
    start: datetime = Field(..., description="Local start instant")
    is_all_day: bool = False
    pattern: Optional[RecurrencePattern] = Field(
        default=None, description="Recurrence the occurrence was expanded from"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def date(self) -> date:
        return self.start.date()

    def time_slot(self, all_day_default: str) -> str:
        """Wall-clock time as HH:MM; all-day occurrences use ``all_day_default``."""
        if self.is_all_day:
            return all_day_default
        return self.start.strftime("%H:%M")


class ReconcileOutcome(str, Enum):
    CREATED = "created"
    EXISTING = "existing"
    SKIPPED = "skipped"


class ReconcileResult(BaseModel):
    """What the reconciler did with one occurrence."""

    outcome: ReconcileOutcome
    appointment_id: Optional[int] = None
    client_id: Optional[int] = None
    reason: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class DuplicateGroup(BaseModel):
    """Appointments sharing one natural key, split into the keeper and the rest."""

    client_id: int
    date: date
    time: str
    kept: Appointment
    removed: List[Appointment] = Field(default_factory=list)


class AuditResult(BaseModel):
    """Outcome of a duplicate audit."""

    removed: int = 0
    kept: int = 0
    groups: List[DuplicateGroup] = Field(default_factory=list)
    failures: List[str] = Field(default_factory=list)
    dry_run: bool = False


class DuplicateReport(BaseModel):
    """Read-only duplicate report.

    ``exact`` groups share client, date and time; ``same_day`` groups share
    client and date but have different times.
    """

    exact: List[List[Appointment]] = Field(default_factory=list)
    same_day: List[List[Appointment]] = Field(default_factory=list)

"""Data models for ICS calendar processing."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class Frequency(str, Enum):
    """Recurrence frequencies understood by the expander."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EventDateTime(BaseModel):
    """Start or end instant of a calendar event."""

    date_time: datetime = Field(..., description="Timezone-aware instant (fixed offset)")
    is_all_day: bool = Field(default=False, description="Value was a DATE, not a DATE-TIME")

    model_config = ConfigDict(frozen=True)

    @field_serializer("date_time")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()


class CalendarEvent(BaseModel):
    """One VEVENT block as read from a calendar document."""

    # Core properties
    uid: str = Field(..., description="Stable external identifier")
    summary: str = Field(..., description="Event title, free text")
    description: Optional[str] = Field(default=None, description="Event description, free text")
    location: Optional[str] = Field(default=None, description="Event location, free text")

    # Time information
    start: EventDateTime = Field(..., description="Event start")
    end: Optional[EventDateTime] = Field(default=None, description="Event end")

    # Recurrence
    rrule: Optional[str] = Field(default=None, description="Raw RRULE value")
    exception_dates: frozenset[date] = Field(
        default_factory=frozenset, description="Dates excluded from the series (EXDATE)"
    )

    # People and status
    organizer: Optional[str] = Field(default=None, description="Organizer e-mail")
    attendees: tuple[str, ...] = Field(default=(), description="Attendee e-mails")
    status: Optional[str] = Field(default=None, description="STATUS property, upper-cased")

    # Metadata
    created: Optional[datetime] = Field(default=None, description="CREATED property")

    model_config = ConfigDict(frozen=True)

    @property
    def is_recurring(self) -> bool:
        """Check if the event carries a recurrence rule."""
        return bool(self.rrule)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "CANCELLED"

    @field_serializer("created", when_used="unless-none")
    def serialize_created(self, dt: datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()


class RecurrencePattern(BaseModel):
    """Parsed subset of an RRULE: frequency, interval, count and until."""

    frequency: Frequency = Field(..., description="Step unit")
    interval: int = Field(default=1, ge=1, description="Units between occurrences")
    count: Optional[int] = Field(default=None, ge=1, description="Maximum generated occurrences")
    until: Optional[datetime] = Field(default=None, description="Inclusive end instant")

    model_config = ConfigDict(frozen=True)

    @property
    def is_unbounded(self) -> bool:
        """True when neither COUNT nor UNTIL limits the series."""
        return self.count is None and self.until is None

    def describe(self) -> str:
        """Human-readable form used in appointment notes."""
        unit = {
            Frequency.DAILY: "day",
            Frequency.WEEKLY: "week",
            Frequency.MONTHLY: "month",
        }[self.frequency]
        if self.interval == 1:
            text = f"Every {unit}"
        else:
            text = f"Every {self.interval} {unit}s"
        if self.count is not None:
            text += f", {self.count} times"
        if self.until is not None:
            text += f", until {self.until.date().isoformat()}"
        return text


class ICSParseResult(BaseModel):
    """Result of ICS parsing operation."""

    events: List[CalendarEvent] = Field(default_factory=list, description="Parsed events")

    # Parse statistics
    block_count: int = 0
    event_count: int = 0
    recurring_event_count: int = 0
    dropped_count: int = 0

    warnings: List[str] = Field(default_factory=list)

    # Parsing metadata
    parse_time: datetime = Field(default_factory=datetime.now)
    calendar_name: Optional[str] = None
    prodid: Optional[str] = None

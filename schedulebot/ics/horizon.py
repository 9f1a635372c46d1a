"""Expansion horizons: which slice of a recurring series gets imported."""

from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional, Protocol

from dateutil.relativedelta import relativedelta


class ExpansionHorizon(Protocol):
    """Strategy returning the ``(window_start, window_end)`` instants."""

    def window(self, now: datetime) -> tuple[datetime, datetime]: ...


def _zone(now: datetime, tz: Optional[tzinfo]) -> tzinfo:
    return tz or now.tzinfo or timezone.utc


class RollingHorizon:
    """A window of ``months`` months from ``start`` (default: today)."""

    def __init__(
        self, months: int = 6, start: Optional[date] = None, tz: Optional[tzinfo] = None
    ) -> None:
        if months < 1:
            raise ValueError(f"Horizon must cover at least one month, got {months}")
        self.months = months
        self.start = start
        self.tz = tz

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        zone = _zone(now, self.tz)
        first_day = self.start or now.astimezone(zone).date()
        window_start = datetime.combine(first_day, time.min, tzinfo=zone)
        return window_start, window_start + relativedelta(months=self.months)

    def __repr__(self) -> str:
        return f"RollingHorizon(months={self.months}, start={self.start})"


class FixedWindowHorizon:
    """An explicit date range, both ends inclusive."""

    def __init__(self, start: date, end: date, tz: Optional[tzinfo] = None) -> None:
        if end < start:
            raise ValueError(f"Window end {end} is before start {start}")
        self.start = start
        self.end = end
        self.tz = tz

    def window(self, now: datetime) -> tuple[datetime, datetime]:
        zone = _zone(now, self.tz)
        return (
            datetime.combine(self.start, time.min, tzinfo=zone),
            datetime.combine(self.end, time.max, tzinfo=zone),
        )

    def __repr__(self) -> str:
        return f"FixedWindowHorizon(start={self.start}, end={self.end})"


def horizon_from_settings(settings) -> ExpansionHorizon:
    """Build the default rolling horizon from ``horizon_months``/``window_start``."""
    return RollingHorizon(
        months=settings.horizon_months,
        start=settings.window_start,
        tz=settings.local_timezone,
    )

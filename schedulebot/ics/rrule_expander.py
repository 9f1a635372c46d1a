"""RRULE parsing and expansion for recurring calendar events."""

import logging
from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from .exceptions import RRuleExpansionError, RRuleParseError
from .models import Frequency, RecurrencePattern

logger = logging.getLogger(__name__)

# Safety cap on generated steps when settings do not provide one
DEFAULT_MAX_OCCURRENCES = 520

SUPPORTED_FREQUENCIES = {
    "DAILY": Frequency.DAILY,
    "WEEKLY": Frequency.WEEKLY,
    "MONTHLY": Frequency.MONTHLY,
}


class RRuleExpander:
    """Expands the supported RRULE subset into concrete start instants.

    Only ``FREQ`` (DAILY, WEEKLY, MONTHLY), ``INTERVAL``, ``COUNT`` and
    ``UNTIL`` are honoured. Expansion is pure: the same inputs always give
    the same instants.
    """

    def __init__(self, settings: Any) -> None:
        """Initialize RRuleExpander with settings.

        Args:
            settings: Application settings (uses ``rrule_max_occurrences``
                and ``local_timezone``)
        """
        self.settings = settings
        self.max_occurrences = getattr(settings, "rrule_max_occurrences", DEFAULT_MAX_OCCURRENCES)
        self.local_tz = getattr(settings, "local_timezone", timezone.utc)

    def parse_rrule_string(self, rrule_string: str) -> RecurrencePattern:
        """Parse RRULE string into a RecurrencePattern.

        Args:
            rrule_string: RRULE value (e.g. "FREQ=WEEKLY;INTERVAL=2;COUNT=10")

        Returns:
            Parsed recurrence pattern

        Raises:
            RRuleParseError: If FREQ is missing or unsupported, or a value is malformed
        """
        if not rrule_string or not rrule_string.strip():
            raise RRuleParseError("Empty RRULE string")

        value = rrule_string.strip()
        if value.upper().startswith("RRULE:"):
            value = value[len("RRULE:") :]

        params: dict[str, str] = {}
        for part in value.split(";"):
            if "=" not in part:
                continue
            key, raw = part.split("=", 1)
            params[key.strip().upper()] = raw.strip()

        freq = params.get("FREQ", "").upper()
        if not freq:
            raise RRuleParseError("RRULE missing required FREQ parameter", source=rrule_string)
        if freq not in SUPPORTED_FREQUENCIES:
            raise RRuleParseError(f"Unsupported RRULE frequency: {freq}", source=rrule_string)

        try:
            interval = int(params["INTERVAL"]) if "INTERVAL" in params else 1
            count = int(params["COUNT"]) if "COUNT" in params else None
        except ValueError as e:
            raise RRuleParseError(f"Invalid RRULE format: {rrule_string}", source=rrule_string) from e

        until = self._parse_until(params["UNTIL"], rrule_string) if "UNTIL" in params else None

        try:
            return RecurrencePattern(
                frequency=SUPPORTED_FREQUENCIES[freq],
                interval=interval,
                count=count,
                until=until,
            )
        except ValueError as e:
            raise RRuleParseError(f"Invalid RRULE values: {rrule_string}", source=rrule_string) from e

    def expand(
        self,
        start: datetime,
        pattern: RecurrencePattern,
        exceptions: Iterable[date] = (),
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[datetime]:
        """Generate the occurrence instants of a pattern.

        Step ``k`` is ``start + k * interval`` units. Monthly steps are
        anchored on the start day and clamp to the last day of shorter
        months. Generation stops at the pattern limit (when COUNT and UNTIL
        are both given, the later one), at the safety cap, or once a step
        passes ``window_end``.

        Args:
            start: First instant of the series
            pattern: Recurrence pattern
            exceptions: Local dates to leave out (EXDATE)
            window_start: Earliest instant to emit (inclusive)
            window_end: Latest instant to emit (inclusive)

        Returns:
            Occurrence instants in chronological order

        Raises:
            RRuleExpansionError: If the pattern is unbounded and no window end is given
        """
        if pattern.is_unbounded and window_end is None:
            raise RRuleExpansionError(
                f"Unbounded recurrence ({pattern.describe()}) requires a window end"
            )

        excluded = frozenset(exceptions)
        occurrences = [
            instant
            for instant in self._iter_steps(start, pattern, window_end)
            if (window_start is None or instant >= window_start)
            and self._local_date(instant) not in excluded
        ]

        logger.debug(
            f"Expanded {pattern.describe()} from {start.isoformat()}: "
            f"{len(occurrences)} occurrences in window"
        )
        return occurrences

    def expand_rule(
        self,
        start: datetime,
        rrule_string: str,
        exceptions: Iterable[date] = (),
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
    ) -> list[datetime]:
        """Parse an RRULE value and expand it in one call."""
        pattern = self.parse_rrule_string(rrule_string)
        return self.expand(start, pattern, exceptions, window_start, window_end)

    def _iter_steps(
        self, start: datetime, pattern: RecurrencePattern, window_end: Optional[datetime]
    ) -> Iterator[datetime]:
        for k in range(self.max_occurrences):
            instant = start + self._offset(pattern, k)
            if window_end is not None and instant > window_end:
                return
            if self._limit_reached(pattern, k, instant):
                return
            yield instant
        logger.warning(
            f"Recurrence from {start.isoformat()} hit the cap of {self.max_occurrences} occurrences"
        )

    def _offset(self, pattern: RecurrencePattern, k: int) -> relativedelta:
        steps = k * pattern.interval
        if pattern.frequency == Frequency.DAILY:
            return relativedelta(days=steps)
        if pattern.frequency == Frequency.WEEKLY:
            return relativedelta(weeks=steps)
        return relativedelta(months=steps)

    def _limit_reached(self, pattern: RecurrencePattern, k: int, instant: datetime) -> bool:
        count_done = pattern.count is not None and k >= pattern.count
        until_done = pattern.until is not None and instant > pattern.until

        if pattern.count is not None and pattern.until is not None:
            return count_done and until_done
        return count_done or until_done

    def _local_date(self, instant: datetime) -> date:
        if instant.tzinfo is None:
            return instant.date()
        return instant.astimezone(self.local_tz).date()

    def _parse_until(self, value: str, rrule_string: str) -> datetime:
        """Parse UNTIL; a date-only value covers the whole local day."""
        formats = [
            "%Y%m%dT%H%M%S",  # 20250623T083000
            "%Y-%m-%dT%H:%M:%S",  # 2025-06-23T08:30:00
            "%Y%m%d",  # 20250623
            "%Y-%m-%d",  # 2025-06-23
        ]
        is_utc = value.upper().endswith("Z")
        dt_str = value.rstrip("Zz")

        for fmt in formats:
            try:
                parsed = datetime.strptime(dt_str, fmt)
            except ValueError:  # noqa: PERF203
                continue

            if "H" not in fmt:
                return datetime.combine(parsed.date(), time.max, tzinfo=self.local_tz)
            if is_utc:
                return parsed.replace(tzinfo=timezone.utc).astimezone(self.local_tz)
            return parsed.replace(tzinfo=self.local_tz)

        raise RRuleParseError(f"Invalid UNTIL value: {value}", source=rrule_string)

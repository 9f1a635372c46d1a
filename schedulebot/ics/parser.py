"""iCalendar document parser producing immutable CalendarEvent records."""

import logging
import re
from collections.abc import Iterator
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Optional, Union

from icalendar import Calendar

from .exceptions import ICSParseError
from .models import CalendarEvent, EventDateTime, ICSParseResult

logger = logging.getLogger(__name__)

# Size validation
MAX_ICS_SIZE_BYTES = 50 * 1024 * 1024  # 50MB limit
MAX_ICS_SIZE_WARNING = 10 * 1024 * 1024  # 10MB warning threshold

CALENDAR_PROPERTIES = frozenset({"X-WR-CALNAME", "PRODID"})

_LINE_BREAK = re.compile(r"\r\n|\n|\r")
_MAILTO = re.compile(r"^mailto:", re.IGNORECASE)


def _as_list(value: Any) -> list[Any]:
    """Normalize a property that may appear once or several times."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class ICSParser:
    """Tokenizes a calendar document into CalendarEvent records.

    VEVENT blocks are collected line by line and each block is handed to
    ``icalendar`` on its own, so one malformed block never takes the rest of
    the document with it. A block that icalendar rejects, or that lacks UID,
    SUMMARY or a parseable DTSTART, is dropped; only an unreadable document
    raises.
    """

    def __init__(self, settings: Any) -> None:
        """Initialize ICS parser.

        Args:
            settings: Application settings (uses ``local_timezone``)
        """
        self.settings = settings
        self.local_tz = settings.local_timezone
        logger.debug("ICS parser initialized")

    def parse(self, raw_text: Union[str, bytes]) -> list[CalendarEvent]:
        """Parse a document and return its events."""
        return self.parse_document(raw_text).events

    def parse_file(self, path: Union[str, Path]) -> ICSParseResult:
        """Read and parse a calendar file.

        Raises:
            ICSParseError: If the file cannot be read or decoded
        """
        file_path = Path(path)
        try:
            raw_text = file_path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise ICSParseError(f"Cannot read calendar file: {e}", source=str(file_path)) from e
        return self.parse_document(raw_text, source=str(file_path))

    def parse_document(
        self, raw_text: Union[str, bytes], source: Optional[str] = None
    ) -> ICSParseResult:
        """Parse calendar content into events plus statistics.

        Args:
            raw_text: Raw ICS content
            source: Optional origin (file path) for error messages

        Returns:
            Parse result with events and counters

        Raises:
            ICSParseError: If the content is not a readable calendar document
        """
        content = self._validate_content(raw_text, source)

        result = ICSParseResult()
        for block in self._iter_event_blocks(content, result):
            result.block_count += 1
            event = self._parse_block(block)
            if event is None:
                result.dropped_count += 1
                continue
            result.events.append(event)

        result.event_count = len(result.events)
        result.recurring_event_count = sum(1 for event in result.events if event.is_recurring)

        logger.info(
            f"Parsed {result.event_count} events ({result.recurring_event_count} recurring, "
            f"{result.dropped_count} dropped blocks)"
        )
        return result

    def _validate_content(self, raw_text: Union[str, bytes], source: Optional[str]) -> str:
        if isinstance(raw_text, bytes):
            try:
                raw_text = raw_text.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ICSParseError(f"Calendar content is not UTF-8: {e}", source=source) from e

        if not isinstance(raw_text, str):
            raise ICSParseError(
                f"Calendar content must be text, got {type(raw_text).__name__}", source=source
            )

        content_size = len(raw_text.encode("utf-8"))
        if content_size > MAX_ICS_SIZE_BYTES:
            raise ICSParseError(
                f"Calendar content too large: {content_size} bytes (max {MAX_ICS_SIZE_BYTES})",
                source=source,
            )
        if content_size > MAX_ICS_SIZE_WARNING:
            logger.warning(f"Large calendar content: {content_size} bytes")

        upper = raw_text.upper()
        if not raw_text.strip() or ("BEGIN:VCALENDAR" not in upper and "BEGIN:VEVENT" not in upper):
            raise ICSParseError("Content is not an iCalendar document", source=source)

        return raw_text

    def _iter_content_lines(self, content: str) -> Iterator[str]:
        """Yield logical lines with RFC 5545 folding undone."""
        pending: Optional[str] = None
        for raw_line in _LINE_BREAK.split(content):
            if raw_line[:1] in (" ", "\t"):
                if pending is not None:
                    # Continuation: drop the single folding whitespace character
                    pending += raw_line[1:]
                continue
            if pending is not None:
                yield pending
            pending = raw_line
        if pending is not None:
            yield pending

    def _iter_event_blocks(self, content: str, result: ICSParseResult) -> Iterator[list[str]]:
        """Yield the lines of each VEVENT block, BEGIN and END included.

        VEVENTs cannot nest, so a BEGIN:VEVENT inside an open block means the
        open block was never terminated: it is dropped and a new one starts.
        """
        block: Optional[list[str]] = None

        for line in self._iter_content_lines(content):
            stripped = line.strip()
            if not stripped:
                continue
            upper = stripped.upper()

            if upper == "BEGIN:VEVENT":
                if block is not None:
                    self._drop_unterminated(result)
                block = [stripped]
                continue

            if block is not None:
                block.append(stripped)
                if upper == "END:VEVENT":
                    yield block
                    block = None
                continue

            name, separator, value = stripped.partition(":")
            name = name.split(";", 1)[0].upper()
            if separator and name in CALENDAR_PROPERTIES:
                if name == "PRODID":
                    result.prodid = value
                else:
                    result.calendar_name = value

        if block is not None:
            self._drop_unterminated(result)

    def _drop_unterminated(self, result: ICSParseResult) -> None:
        warning = "Incomplete event without END:VEVENT dropped"
        result.warnings.append(warning)
        result.dropped_count += 1
        logger.warning(warning)

    def _parse_block(self, block: list[str]) -> Optional[CalendarEvent]:
        """Parse one VEVENT block with icalendar, or None if it is unusable."""
        event_ics = "BEGIN:VCALENDAR\r\n"
        event_ics += "VERSION:2.0\r\n"
        event_ics += "PRODID:-//ScheduleBot//Import//EN\r\n"
        event_ics += "\r\n".join(block) + "\r\n"
        event_ics += "END:VCALENDAR\r\n"

        try:
            calendar = Calendar.from_ical(event_ics)
            for component in calendar.walk("VEVENT"):
                return self._build_event(component)
        except Exception as e:
            logger.warning(f"Failed to parse event: {e}")
        return None

    def _build_event(self, component: Any) -> Optional[CalendarEvent]:
        """Create a CalendarEvent from a VEVENT, or None if required fields are missing."""
        uid = self._text(component.get("UID"))
        summary = self._text(component.get("SUMMARY"))
        start = self._datetime(component.get("DTSTART"))

        if not uid or not summary or start is None:
            logger.debug(
                f"Dropping VEVENT block (uid={uid!r}, summary={summary!r}, "
                f"start={'ok' if start else 'missing'})"
            )
            return None

        created = self._datetime(component.get("CREATED"))
        status = self._text(component.get("STATUS"))

        try:
            return CalendarEvent(
                uid=uid,
                summary=summary,
                description=self._text(component.get("DESCRIPTION")),
                location=self._text(component.get("LOCATION")),
                start=start,
                end=self._datetime(component.get("DTEND")),
                rrule=self._rrule(component.get("RRULE")),
                exception_dates=frozenset(self._exception_dates(component.get("EXDATE"))),
                organizer=self._address(component.get("ORGANIZER")),
                attendees=tuple(
                    address
                    for address in (
                        self._address(prop) for prop in _as_list(component.get("ATTENDEE"))
                    )
                    if address
                ),
                status=status.upper() if status else None,
                created=created.date_time if created else None,
            )
        except ValueError as e:
            # pydantic.ValidationError is a ValueError subclass
            logger.debug(f"Dropping VEVENT block {uid!r}: {e}")
            return None

    def _text(self, prop: Any) -> Optional[str]:
        if prop is None:
            return None
        text = str(prop).strip()
        return text or None

    def _address(self, prop: Any) -> Optional[str]:
        if prop is None:
            return None
        address = _MAILTO.sub("", str(prop).strip())
        return address or None

    def _rrule(self, prop: Any) -> Optional[str]:
        if prop is None:
            return None
        if hasattr(prop, "to_ical"):
            rrule = prop.to_ical()
            rrule = rrule.decode("utf-8") if isinstance(rrule, bytes) else str(rrule)
        else:
            rrule = str(prop)
        return rrule.strip() or None

    def _datetime(self, prop: Any) -> Optional[EventDateTime]:
        if prop is None:
            return None
        params = getattr(prop, "params", {})
        return self.to_event_datetime(
            getattr(prop, "dt", None),
            all_day=params.get("VALUE", "").upper() == "DATE",
            has_tzid="TZID" in params,
        )

    def to_event_datetime(
        self, value: Any, all_day: bool = False, has_tzid: bool = False
    ) -> Optional[EventDateTime]:
        """Place a decoded DATE or DATE-TIME value in the local fixed offset.

        UTC values are converted; floating and TZID values are read as local
        wall-clock time. Returns None for anything else.
        """
        if isinstance(value, datetime):
            if all_day:
                value = value.date()
            elif value.tzinfo is None or has_tzid:
                return EventDateTime(date_time=value.replace(tzinfo=self.local_tz))
            else:
                return EventDateTime(date_time=value.astimezone(self.local_tz))

        if isinstance(value, date):
            return EventDateTime(
                date_time=datetime.combine(value, time.min, tzinfo=self.local_tz),
                is_all_day=True,
            )
        return None

    def _exception_dates(self, props: Any) -> Iterator[date]:
        for prop in _as_list(props):
            params = getattr(prop, "params", {})
            for item in getattr(prop, "dts", []):
                parsed = self.to_event_datetime(
                    getattr(item, "dt", None),
                    all_day=params.get("VALUE", "").upper() == "DATE",
                    has_tzid="TZID" in params,
                )
                if parsed is None:
                    logger.warning(f"Ignoring unparseable EXDATE value {item!r}")
                    continue
                yield parsed.date_time.date()

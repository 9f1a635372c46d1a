"""Calendar document parsing and recurrence expansion."""

from .exceptions import ICSError, ICSParseError, RRuleExpansionError, RRuleParseError
from .horizon import ExpansionHorizon, FixedWindowHorizon, RollingHorizon, horizon_from_settings
from .models import CalendarEvent, EventDateTime, Frequency, ICSParseResult, RecurrencePattern
from .parser import ICSParser
from .rrule_expander import RRuleExpander

__all__ = [
    "CalendarEvent",
    "EventDateTime",
    "ExpansionHorizon",
    "FixedWindowHorizon",
    "Frequency",
    "ICSError",
    "ICSParseError",
    "ICSParseResult",
    "ICSParser",
    "RRuleExpander",
    "RRuleExpansionError",
    "RRuleParseError",
    "RecurrencePattern",
    "RollingHorizon",
    "horizon_from_settings",
]

"""Schedule Bot - calendar import and reconciliation for a grooming business.

Imports an exported iCalendar document into the Client/Appointment store:
parses VEVENT blocks, expands recurring series, extracts client and pricing
details from free-text summaries and upserts appointments idempotently.
"""

__version__ = "1.0.0"
__author__ = "ScheduleBot Team"
__email__ = "support@schedulebot.local"
__description__ = "Calendar import and appointment reconciliation for grooming schedules"

# Package metadata
__all__ = [
    "__author__",
    "__description__",
    "__email__",
    "__version__",
]

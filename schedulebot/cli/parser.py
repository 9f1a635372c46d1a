"""Command-line argument parsing for Schedule Bot."""

import argparse
import re
from datetime import date, datetime
from pathlib import Path

from .. import __version__

LOG_LEVELS = ["DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR", "CRITICAL"]
_TIME_SLOT = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format for command-line arguments.

    Args:
        date_str (str): Date string to parse in YYYY-MM-DD format

    Returns:
        date: Parsed date

    Raises:
        argparse.ArgumentTypeError: If date format is invalid

    Example:
        >>> parse_date("2025-01-06")
        datetime.date(2025, 1, 6)
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as err:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: {date_str}. Expected YYYY-MM-DD"
        ) from err


def parse_time_slot(time_str: str) -> str:
    """Parse an HH:MM time slot, normalizing to two-digit hours."""
    match = _TIME_SLOT.match(time_str.strip())
    if not match:
        raise argparse.ArgumentTypeError(f"Invalid time: {time_str}. Expected HH:MM")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"Expected a whole number, got {value}") from err
    if number < 1:
        raise argparse.ArgumentTypeError(f"Expected a positive number, got {value}")
    return number


def _add_store_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--db",
        type=Path,
        dest="database_path",
        help="SQLite appointment database (default: <data_dir>/schedule.db)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser.

    Returns:
        argparse.ArgumentParser: Parser with the import, preview, audit and
            series subcommands plus global logging options

    Example:
        >>> parser = create_parser()
        >>> args = parser.parse_args(["import", "calendar.ics", "--json"])
        >>> args.command
        'import'
    """
    parser = argparse.ArgumentParser(
        prog="schedulebot",
        description="Schedule Bot - import calendar exports into the grooming appointment book",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s import calendar.ics                 # Import using config defaults
  %(prog)s import calendar.ics --horizon-months 3 --json
  %(prog)s preview calendar.ics --format csv --output plan.csv
  %(prog)s audit --dry-run                     # Show duplicates that would be removed
  %(prog)s series delete --client-id 12 --time 10:00 --from 2025-03-01
  %(prog)s series skip 345                     # Cancel one occurrence
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}", help="Show version"
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file")

    logging_group = parser.add_argument_group("logging", "Logging configuration options")
    logging_group.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    logging_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Only show errors on console (sets console level to ERROR)",
    )
    logging_group.add_argument(
        "--log-level", choices=LOG_LEVELS, help="Set both console and file log levels"
    )
    logging_group.add_argument("--log-dir", type=Path, help="Write log files to this directory")
    logging_group.add_argument(
        "--no-log-colors", action="store_true", help="Disable colored console output"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    import_parser = subparsers.add_parser("import", help="Import a calendar file")
    import_parser.add_argument("file", type=Path, help="iCalendar (.ics) file")
    _add_store_argument(import_parser)
    import_parser.add_argument(
        "--window-start", type=parse_date, help="First date of recurring occurrences (YYYY-MM-DD)"
    )
    import_parser.add_argument(
        "--horizon-months", type=positive_int, help="Months of each recurring series to import"
    )
    import_parser.add_argument("--json", action="store_true", help="Print the summary as JSON")

    preview_parser = subparsers.add_parser(
        "preview", help="Show what an import would create without writing"
    )
    preview_parser.add_argument("file", type=Path, help="iCalendar (.ics) file")
    preview_parser.add_argument(
        "--window-start", type=parse_date, help="First date of recurring occurrences (YYYY-MM-DD)"
    )
    preview_parser.add_argument(
        "--horizon-months", type=positive_int, help="Months of each recurring series to preview"
    )
    preview_parser.add_argument(
        "--format", choices=["text", "json", "csv"], default="text", help="Output format"
    )
    preview_parser.add_argument("--output", type=Path, help="Write to file instead of stdout")

    audit_parser = subparsers.add_parser("audit", help="Remove duplicate appointments")
    _add_store_argument(audit_parser)
    audit_parser.add_argument(
        "--dry-run", action="store_true", help="Report duplicates without deleting"
    )
    audit_parser.add_argument(
        "--report",
        action="store_true",
        help="Only list duplicate and same-day groups (never deletes)",
    )

    series_parser = subparsers.add_parser("series", help="Manage imported recurring series")
    series_sub = series_parser.add_subparsers(dest="series_command", metavar="ACTION")
    series_sub.required = True

    delete_parser = series_sub.add_parser("delete", help="Delete a recurring series")
    _add_store_argument(delete_parser)
    delete_parser.add_argument("--client-id", type=int, required=True, help="Client id")
    delete_parser.add_argument(
        "--time", type=parse_time_slot, required=True, help="Series time slot (HH:MM)"
    )
    delete_parser.add_argument(
        "--from", dest="from_date", type=parse_date, help="First date to delete (default: today)"
    )

    skip_parser = series_sub.add_parser("skip", help="Cancel one occurrence of a series")
    _add_store_argument(skip_parser)
    skip_parser.add_argument("appointment_id", type=int, help="Appointment id")

    return parser

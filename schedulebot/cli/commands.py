"""Subcommand implementations for the Schedule Bot CLI."""

import csv
import io
import json
import logging
import signal
from pathlib import Path
from typing import Any, Optional

from ..config.settings import ScheduleBotSettings
from ..importer.models import ImportSummary, PlannedOccurrence
from ..importer.orchestrator import ImportOrchestrator
from ..reconcile.duplicates import DuplicateAuditor
from ..reconcile.models import AuditResult, DuplicateReport
from ..reconcile.series import SeriesManager
from ..store.database import SQLiteAppointmentStore
from ..store.resilient import ResilientStore
from ..utils.helpers import truncate_string

logger = logging.getLogger(__name__)

PREVIEW_COLUMNS = [
    "uid",
    "date",
    "time",
    "client_name",
    "pet_info",
    "amount",
    "services",
    "phone",
    "address",
    "recurring",
    "summary",
]


def open_store(settings: ScheduleBotSettings) -> ResilientStore:
    """Open the configured SQLite store behind the timeout/retry wrapper."""
    return ResilientStore.from_settings(SQLiteAppointmentStore(settings.database_file), settings)


def _emit(text: str, output: Optional[Path] = None) -> None:
    if output is None:
        print(text)
        return
    output.write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")
    logger.info(f"Wrote {output}")


def format_summary(summary: ImportSummary) -> str:
    lines = [
        f"Imported: {summary.imported}",
        f"Skipped:  {summary.skipped}",
        f"Errors:   {summary.errors}",
    ]
    for failure in summary.failures:
        lines.append(f"  - {failure.event_uid}: {failure.reason}")
    for warning in summary.warnings:
        lines.append(f"Warning: {warning}")
    if summary.stopped:
        lines.append("Import stopped before all occurrences were processed")
    return "\n".join(lines)


def format_preview(rows: list[dict[str, Any]], output_format: str) -> str:
    if output_format == "json":
        return json.dumps(rows, indent=2, ensure_ascii=False)

    if output_format == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=PREVIEW_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()

    lines = [
        f"{row['date']} {row['time']}  {truncate_string(row['client_name'], 24):<24}  "
        f"{row['amount'] or '-':>8}  {row['recurring'] or 'once'}"
        for row in rows
    ]
    lines.append(f"{len(rows)} occurrences planned")
    return "\n".join(lines)


def format_audit(result: AuditResult) -> str:
    verb = "Would remove" if result.dry_run else "Removed"
    lines = [f"{verb} {result.removed} duplicate appointments, kept {result.kept}"]
    for group in result.groups:
        removed_ids = ", ".join(str(a.id) for a in group.removed) or "none"
        lines.append(
            f"  client {group.client_id} {group.date} {group.time}: "
            f"kept {group.kept.id}, removed {removed_ids}"
        )
    for failure in result.failures:
        lines.append(f"  failed: {failure}")
    return "\n".join(lines)


def format_report(report: DuplicateReport) -> str:
    lines = [f"Exact duplicates: {len(report.exact)} groups"]
    for group in report.exact:
        first = group[0]
        lines.append(
            f"  client {first.client_id} {first.date} {first.time}: "
            + ", ".join(str(a.id) for a in group)
        )
    lines.append(f"Same-day bookings: {len(report.same_day)} groups")
    for group in report.same_day:
        first = group[0]
        lines.append(
            f"  client {first.client_id} {first.date}: "
            + ", ".join(f"{a.id}@{a.time}" for a in group)
        )
    return "\n".join(lines)


async def run_import(args: Any, settings: ScheduleBotSettings) -> int:
    """Import a calendar file; Ctrl-C stops after in-flight occurrences.

    Returns:
        Exit code
    """
    orchestrator = ImportOrchestrator(open_store(settings), settings)

    def signal_handler(signum: int, _frame: Any) -> None:
        print(f"\nReceived signal {signum}, finishing in-flight occurrences...")
        orchestrator.request_stop()
        # A second Ctrl-C aborts immediately
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous_handler = signal.signal(signal.SIGINT, signal_handler)
    try:
        summary = await orchestrator.import_file(args.file)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if getattr(args, "json", False):
        _emit(json.dumps(summary.to_report(), indent=2))
    else:
        _emit(format_summary(summary))
    return 0


async def run_preview(args: Any, settings: ScheduleBotSettings) -> int:
    orchestrator = ImportOrchestrator(open_store(settings), settings)
    planned: list[PlannedOccurrence] = orchestrator.preview_file(args.file)
    rows = [item.to_row(settings.all_day_default_time) for item in planned]
    _emit(format_preview(rows, args.format), args.output)
    return 0


async def run_audit(args: Any, settings: ScheduleBotSettings) -> int:
    auditor = DuplicateAuditor(open_store(settings))
    if args.report:
        _emit(format_report(await auditor.find_duplicates()))
        return 0

    result = await auditor.audit(dry_run=args.dry_run)
    _emit(format_audit(result))
    return 1 if result.failures else 0


async def run_series(args: Any, settings: ScheduleBotSettings) -> int:
    manager = SeriesManager(open_store(settings))

    if args.series_command == "delete":
        deleted = await manager.delete_series(args.client_id, args.time, args.from_date)
        _emit(f"Deleted {deleted} appointments")
        return 0

    if await manager.skip_occurrence(args.appointment_id):
        _emit(f"Skipped appointment {args.appointment_id}")
        return 0
    _emit(f"Appointment {args.appointment_id} not found")
    return 1

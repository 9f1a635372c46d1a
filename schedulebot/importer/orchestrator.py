"""Import pipeline: parse, expand, extract, reconcile."""

import asyncio
import logging
import time
from collections.abc import Iterator, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from ..extraction.text_extractor import TextExtractor
from ..ics.exceptions import RRuleExpansionError
from ..ics.horizon import ExpansionHorizon, horizon_from_settings
from ..ics.models import CalendarEvent, ICSParseResult
from ..ics.parser import ICSParser
from ..ics.rrule_expander import RRuleExpander
from ..reconcile.models import Occurrence, ReconcileOutcome
from ..reconcile.reconciler import Reconciler
from ..store.exceptions import StoreError
from ..store.guard import StoreActivityGuard, guard_for
from ..store.protocol import AppointmentStore
from ..utils.helpers import format_duration
from ..utils.logging import VERBOSE
from .models import ImportSummary, PlannedOccurrence

logger = logging.getLogger(__name__)


class ImportOrchestrator:
    """Runs a calendar document through the whole import pipeline.

    Occurrences are reconciled in batches of ``batch_size``; up to
    ``max_concurrency`` run at once within a batch and the run pauses
    ``batch_delay`` seconds after every batch that wrote to the store.
    Store failures are recorded per occurrence and never abort the run.
    """

    def __init__(
        self,
        store: AppointmentStore,
        settings: Any,
        horizon: Optional[ExpansionHorizon] = None,
        parser: Optional[ICSParser] = None,
        expander: Optional[RRuleExpander] = None,
        extractor: Optional[TextExtractor] = None,
        reconciler: Optional[Reconciler] = None,
        activity_guard: Optional[StoreActivityGuard] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Appointment store (usually a ResilientStore)
            settings: Application settings
            horizon: Window strategy for recurring events (defaults to a rolling horizon)
            parser: Calendar parser override
            expander: Recurrence expander override
            extractor: Text extractor override
            reconciler: Reconciler override
            activity_guard: Guard shared with duplicate audits on the same store
        """
        self.store = store
        self.settings = settings
        self.horizon = horizon or horizon_from_settings(settings)
        self.parser = parser or ICSParser(settings)
        self.expander = expander or RRuleExpander(settings)
        self.extractor = extractor or TextExtractor(settings)
        self.reconciler = reconciler or Reconciler(store, settings)
        self.activity_guard = activity_guard or guard_for(store)

        self.batch_size = settings.batch_size
        self.batch_delay = settings.batch_delay
        self.max_concurrency = settings.max_concurrency
        self._stop_event = asyncio.Event()

    def request_stop(self) -> None:
        """Ask the running import to stop after the occurrences already in flight."""
        logger.info("Import stop requested")
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    async def import_document(
        self, raw_text: Union[str, bytes], now: Optional[datetime] = None
    ) -> ImportSummary:
        """Import a calendar document.

        Args:
            raw_text: iCalendar content
            now: Reference time for the expansion horizon (default: current time)

        Returns:
            Run summary

        Raises:
            ICSParseError: If the document cannot be read; nothing is written then
            StoreBusyError: If a duplicate audit holds the store
        """
        return await self._run(self.parser.parse_document(raw_text), now)

    async def import_file(
        self, path: Union[str, Path], now: Optional[datetime] = None
    ) -> ImportSummary:
        """Import a calendar file. See ``import_document``."""
        return await self._run(self.parser.parse_file(path), now)

    def preview(
        self, raw_text: Union[str, bytes], now: Optional[datetime] = None
    ) -> list[PlannedOccurrence]:
        """Plan an import without touching the store."""
        parse_result = self.parser.parse_document(raw_text)
        return list(self.plan(parse_result.events, now))

    def preview_file(
        self, path: Union[str, Path], now: Optional[datetime] = None
    ) -> list[PlannedOccurrence]:
        return list(self.plan(self.parser.parse_file(path).events, now))

    def plan(
        self,
        events: Sequence[CalendarEvent],
        now: Optional[datetime] = None,
        summary: Optional[ImportSummary] = None,
    ) -> Iterator[PlannedOccurrence]:
        """Expand and extract events into planned occurrences.

        Cancelled events, and events failing the booking heuristic when
        ``filter_non_appointments`` is on, are counted as skipped on
        ``summary`` and produce nothing.
        """
        now = now or datetime.now(self.settings.local_timezone)
        window_start, window_end = self.horizon.window(now)

        for event in events:
            if event.is_cancelled or (
                self.settings.filter_non_appointments
                and not self.extractor.looks_like_appointment(event.summary)
            ):
                logger.debug(f"Skipping event {event.uid}: {event.summary!r}")
                if summary is not None:
                    summary.skipped += 1
                continue

            info = self.extractor.extract(event.summary, event.description, event.location)
            for occurrence in self._occurrences(event, window_start, window_end, summary):
                yield PlannedOccurrence(occurrence=occurrence, info=info)

    def _occurrences(
        self,
        event: CalendarEvent,
        window_start: datetime,
        window_end: datetime,
        summary: Optional[ImportSummary],
    ) -> list[Occurrence]:
        is_all_day = event.start.is_all_day
        if not event.rrule:
            return [Occurrence(event=event, start=event.start.date_time, is_all_day=is_all_day)]

        try:
            pattern = self.expander.parse_rrule_string(event.rrule)
            starts = self.expander.expand(
                event.start.date_time,
                pattern,
                event.exception_dates,
                window_start,
                window_end,
            )
        except RRuleExpansionError as e:
            warning = f"Event {event.uid}: unsupported recurrence, importing first date only ({e})"
            logger.warning(warning)
            if summary is not None:
                summary.warnings.append(warning)
            return [Occurrence(event=event, start=event.start.date_time, is_all_day=is_all_day)]

        return [
            Occurrence(event=event, start=start, is_all_day=is_all_day, pattern=pattern)
            for start in starts
        ]

    async def _run(self, parse_result: ICSParseResult, now: Optional[datetime]) -> ImportSummary:
        summary = ImportSummary(
            event_count=parse_result.event_count,
            dropped_blocks=parse_result.dropped_count,
            warnings=list(parse_result.warnings),
        )
        started = time.monotonic()

        try:
            async with self.activity_guard.importing():
                planned = list(self.plan(parse_result.events, now, summary))
                summary.occurrence_count = len(planned)
                logger.info(
                    f"Importing {len(planned)} occurrences from {parse_result.event_count} events"
                )
                await self._reconcile_batches(planned, summary)
        finally:
            self._stop_event.clear()

        summary.duration_seconds = time.monotonic() - started
        logger.info(
            f"Import finished in {format_duration(summary.duration_seconds)}: "
            f"{summary.imported} imported, {summary.skipped} skipped, {summary.errors} errors"
            + (" (stopped)" if summary.stopped else "")
        )
        return summary

    async def _reconcile_batches(
        self, planned: list[PlannedOccurrence], summary: ImportSummary
    ) -> None:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        for offset in range(0, len(planned), self.batch_size):
            if self.stop_requested:
                summary.stopped = True
                return

            batch = planned[offset : offset + self.batch_size]
            created_before = summary.imported
            await asyncio.gather(*(self._reconcile_one(item, summary, semaphore) for item in batch))

            if self.stop_requested and summary.processed < len(planned):
                summary.stopped = True
                return

            is_last = offset + self.batch_size >= len(planned)
            if summary.imported > created_before and not is_last and self.batch_delay > 0:
                logger.debug(f"Batch wrote to the store, pausing {self.batch_delay}s")
                await asyncio.sleep(self.batch_delay)

    async def _reconcile_one(
        self, item: PlannedOccurrence, summary: ImportSummary, semaphore: asyncio.Semaphore
    ) -> None:
        async with semaphore:
            if self.stop_requested:
                return

            occurrence = item.occurrence
            try:
                result = await self.reconciler.reconcile(item.info, occurrence)
            except StoreError as e:
                logger.error(
                    f"Failed to import {occurrence.event.uid} at {occurrence.start.isoformat()}: {e}"
                )
                summary.record_failure(occurrence.event.uid, str(e), occurrence.start)
                return

        if result.outcome == ReconcileOutcome.CREATED:
            summary.imported += 1
        else:
            summary.skipped += 1
            logger.log(
                VERBOSE,
                f"Skipped {occurrence.event.uid} on {occurrence.date}: "
                f"{result.reason or result.outcome.value}",
            )

"""Idempotent reconciliation of occurrences against the appointment store."""

import asyncio
import logging
from typing import Any, Optional

from ..extraction.models import ExtractedAppointmentInfo
from ..store.models import AppointmentStatus, NewAppointment, NewClient
from ..store.protocol import AppointmentStore
from ..utils.logging import VERBOSE
from .matching import ClientMatcher, client_key, matcher_for
from .models import Occurrence, ReconcileOutcome, ReconcileResult

logger = logging.getLogger(__name__)

NOTES_PREFIX = "Imported from calendar"
RECURRING_MARKER = "RECURRING:"


def compose_notes(info: ExtractedAppointmentInfo, occurrence: Occurrence) -> str:
    """Build appointment notes from the extracted info and the source event."""
    parts = [f"{NOTES_PREFIX}: {occurrence.event.summary}"]
    if info.pet_info:
        parts.append(f"Pet: {info.pet_info}")
    if occurrence.pattern is not None:
        parts.append(f"{RECURRING_MARKER} {occurrence.pattern.describe()}")
    parts.append(f"UID: {occurrence.event.uid}")
    return " | ".join(parts)


class Reconciler:
    """Maps an occurrence to a client and creates its appointment unless it exists.

    The natural key ``(client_id, date, time)`` makes repeated imports of the
    same occurrence create nothing new. Work for one client is serialized
    so concurrent occurrences never race between lookup and insert.
    """

    def __init__(
        self,
        store: AppointmentStore,
        settings: Any,
        matcher: Optional[ClientMatcher] = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Appointment store (usually a ResilientStore)
            settings: Application settings
            matcher: Client matching strategy (defaults to ``settings.match_strategy``)
        """
        self.store = store
        self.settings = settings
        self.matcher = matcher or matcher_for(settings.match_strategy)
        self._client_locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, name: str) -> asyncio.Lock:
        key = client_key(name)
        lock = self._client_locks.get(key)
        if lock is None:
            lock = self._client_locks[key] = asyncio.Lock()
        return lock

    async def reconcile(
        self, info: ExtractedAppointmentInfo, occurrence: Occurrence
    ) -> ReconcileResult:
        """Ensure an appointment exists for the occurrence.

        Args:
            info: Details extracted from the event text
            occurrence: The occurrence to book

        Returns:
            Outcome with the appointment and client ids involved

        Raises:
            StoreError: If a store call fails
        """
        name = info.client_name.strip()
        if not name:
            return ReconcileResult(outcome=ReconcileOutcome.SKIPPED, reason="no client name")
        if name == self.settings.unknown_client_name and not self.settings.import_unknown_clients:
            return ReconcileResult(outcome=ReconcileOutcome.SKIPPED, reason="unknown client")

        time_slot = occurrence.time_slot(self.settings.all_day_default_time)

        async with self._lock_for(name):
            client = await self.matcher.find(self.store, info)
            if client is None:
                event = occurrence.event
                client = await self.store.create_client(
                    NewClient(
                        name=name,
                        email=event.attendees[0] if event.attendees else None,
                        phone=info.phone,
                        address=info.address,
                    )
                )
                logger.info(f"Created client {client.id}: {client.name}")

            existing = await self.store.find_appointment(client.id, occurrence.date, time_slot)
            if existing is not None:
                logger.log(
                    VERBOSE,
                    f"Appointment exists for {client.name} on {occurrence.date} at {time_slot}",
                )
                return ReconcileResult(
                    outcome=ReconcileOutcome.EXISTING,
                    appointment_id=existing.id,
                    client_id=client.id,
                )

            appointment = await self.store.create_appointment(
                NewAppointment(
                    client_id=client.id,
                    date=occurrence.date,
                    time=time_slot,
                    services=info.services,
                    status=AppointmentStatus.CONFIRMED,
                    notes=compose_notes(info, occurrence),
                    total_amount=info.amount,
                    external_uid=occurrence.event.uid,
                )
            )

        logger.log(
            VERBOSE,
            f"Created appointment {appointment.id} for {client.name} "
            f"on {occurrence.date} at {time_slot}",
        )
        return ReconcileResult(
            outcome=ReconcileOutcome.CREATED,
            appointment_id=appointment.id,
            client_id=client.id,
        )

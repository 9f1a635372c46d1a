"""Operator actions on imported recurring series."""

import logging
from datetime import date
from typing import Optional

from ..store.models import AppointmentFilter, AppointmentStatus
from ..store.protocol import AppointmentStore
from .reconciler import RECURRING_MARKER

logger = logging.getLogger(__name__)

SKIP_NOTE = "SKIPPED: occurrence cancelled"


class SeriesManager:
    """Deletes or skips appointments created from recurring events."""

    def __init__(self, store: AppointmentStore) -> None:
        self.store = store

    async def delete_series(
        self, client_id: int, time: str, from_date: Optional[date] = None
    ) -> int:
        """Delete a client's recurring appointments at ``time`` on or after ``from_date``.

        Only appointments whose notes mark them as recurring imports are
        touched; one-off bookings at the same time survive.

        Args:
            client_id: Client owning the series
            time: Wall-clock slot, HH:MM
            from_date: First date to delete (default: today)

        Returns:
            Number of deleted appointments
        """
        from_date = from_date or date.today()
        appointments = await self.store.list_appointments(
            AppointmentFilter(client_id=client_id, time=time, date_from=from_date)
        )

        deleted = 0
        for appointment in appointments:
            if RECURRING_MARKER not in appointment.notes:
                continue
            if await self.store.delete_appointment(appointment.id):
                deleted += 1

        logger.info(
            f"Deleted {deleted} recurring appointments for client {client_id} "
            f"at {time} from {from_date}"
        )
        return deleted

    async def skip_occurrence(self, appointment_id: int) -> bool:
        """Cancel one appointment of a series, leaving the rest untouched.

        Returns:
            False if the appointment does not exist
        """
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None:
            logger.warning(f"Appointment {appointment_id} not found")
            return False

        notes = appointment.notes
        if SKIP_NOTE not in notes:
            notes = f"{notes} | {SKIP_NOTE}" if notes else SKIP_NOTE

        updated = await self.store.update_appointment_status(
            appointment_id, AppointmentStatus.CANCELLED, notes
        )
        if updated:
            logger.info(f"Skipped appointment {appointment_id} on {appointment.date}")
        return updated

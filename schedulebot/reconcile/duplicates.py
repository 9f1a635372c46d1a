"""Detection and removal of duplicate appointments."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import Optional

from ..store.exceptions import StoreError
from ..store.guard import StoreActivityGuard, guard_for
from ..store.models import Appointment
from ..store.protocol import AppointmentStore
from .models import AuditResult, DuplicateGroup, DuplicateReport

logger = logging.getLogger(__name__)


def _keep_order(appointment: Appointment) -> tuple:
    # Earliest created first; ties go to the lowest id
    return (appointment.created_at, appointment.id)


class DuplicateAuditor:
    """Collapses appointments sharing a (client, date, time) key to one record.

    The earliest-created appointment of each group is retained. Running the
    audit twice removes nothing the second time.
    """

    def __init__(
        self, store: AppointmentStore, activity_guard: Optional[StoreActivityGuard] = None
    ) -> None:
        self.store = store
        self.activity_guard = activity_guard or guard_for(store)

    async def audit(
        self,
        candidate_groups: Optional[Iterable[Iterable[Appointment]]] = None,
        dry_run: bool = False,
    ) -> AuditResult:
        """Remove duplicate appointments.

        Args:
            candidate_groups: Appointments to audit; defaults to every stored appointment
            dry_run: Report what would be removed without deleting

        Returns:
            Counts of removed and retained appointments plus per-group detail

        Raises:
            StoreBusyError: If an import is running on the store
        """
        async with self.activity_guard.auditing():
            if candidate_groups is None:
                appointments = await self.store.list_appointments()
            else:
                unique = {a.id: a for group in candidate_groups for a in group}
                appointments = list(unique.values())

            result = AuditResult(dry_run=dry_run)
            for (client_id, day, time), members in self._group_by_key(appointments).items():
                keeper, *extras = sorted(members, key=_keep_order)
                result.kept += 1
                if not extras:
                    continue

                group = DuplicateGroup(client_id=client_id, date=day, time=time, kept=keeper)
                for duplicate in extras:
                    if dry_run:
                        group.removed.append(duplicate)
                        continue
                    try:
                        deleted = await self.store.delete_appointment(duplicate.id)
                    except StoreError as e:
                        logger.error(f"Failed to delete duplicate appointment {duplicate.id}: {e}")
                        result.failures.append(f"appointment {duplicate.id}: {e}")
                        result.kept += 1
                        continue
                    if deleted:
                        group.removed.append(duplicate)

                result.removed += len(group.removed)
                result.groups.append(group)

        action = "Would remove" if dry_run else "Removed"
        logger.info(
            f"{action} {result.removed} duplicate appointments in {len(result.groups)} groups, "
            f"{result.kept} kept"
        )
        return result

    async def find_duplicates(self) -> DuplicateReport:
        """Report duplicate and same-day appointments without deleting anything."""
        appointments = await self.store.list_appointments()
        report = DuplicateReport()

        for members in self._group_by_key(appointments).values():
            if len(members) > 1:
                report.exact.append(sorted(members, key=_keep_order))

        by_day: dict[tuple, list[Appointment]] = defaultdict(list)
        for appointment in appointments:
            by_day[(appointment.client_id, appointment.date)].append(appointment)
        for members in by_day.values():
            if len({a.time for a in members}) > 1:
                report.same_day.append(sorted(members, key=lambda a: (a.time, a.id)))

        logger.info(
            f"Found {len(report.exact)} duplicate groups and "
            f"{len(report.same_day)} same-day groups"
        )
        return report

    @staticmethod
    def _group_by_key(appointments: Iterable[Appointment]) -> dict[tuple, list[Appointment]]:
        groups: dict[tuple, list[Appointment]] = defaultdict(list)
        for appointment in appointments:
            groups[appointment.natural_key].append(appointment)
        return groups

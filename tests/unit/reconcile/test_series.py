"""Unit tests for SeriesManager."""

from datetime import date

import pytest
import pytest_asyncio

from schedulebot.reconcile.series import SKIP_NOTE, SeriesManager
from schedulebot.store.models import AppointmentStatus, NewAppointment, NewClient

SERIES_NOTES = "Imported from calendar: Gilberto $45 | RECURRING: Every 2 weeks | UID: g-1"


async def add(store, client_id, day, time="09:00", notes=SERIES_NOTES):
    return await store.create_appointment(
        NewAppointment(
            client_id=client_id, date=day, time=time, services=["Grooming Service"], notes=notes
        )
    )


@pytest_asyncio.fixture
async def client_id(store):
    client = await store.create_client(NewClient(name="Gilberto"))
    return client.id


@pytest.fixture
def manager(store):
    return SeriesManager(store)


class TestSeriesManager:
    @pytest.mark.asyncio
    async def test_delete_series_when_from_date_then_later_recurring_deleted(
        self, manager, store, client_id
    ):
        await add(store, client_id, date(2025, 1, 7))
        await add(store, client_id, date(2025, 2, 4))
        await add(store, client_id, date(2025, 2, 18))

        deleted = await manager.delete_series(client_id, "09:00", from_date=date(2025, 2, 1))

        assert deleted == 2
        remaining = await store.list_appointments()
        assert [a.date for a in remaining] == [date(2025, 1, 7)]

    @pytest.mark.asyncio
    async def test_delete_series_when_one_off_at_same_time_then_kept(
        self, manager, store, client_id
    ):
        await add(store, client_id, date(2025, 2, 4))
        one_off = await add(store, client_id, date(2025, 2, 11), notes="Walk-in")
        other_time = await add(store, client_id, date(2025, 2, 18), time="14:00")

        deleted = await manager.delete_series(client_id, "09:00", from_date=date(2025, 1, 1))

        assert deleted == 1
        assert {a.id for a in await store.list_appointments()} == {one_off.id, other_time.id}

    @pytest.mark.asyncio
    async def test_skip_occurrence_when_exists_then_cancelled_with_note(
        self, manager, store, client_id
    ):
        appointment = await add(store, client_id, date(2025, 2, 4))

        assert await manager.skip_occurrence(appointment.id) is True

        stored = await store.get_appointment(appointment.id)
        assert stored.status == AppointmentStatus.CANCELLED
        assert stored.notes == f"{SERIES_NOTES} | {SKIP_NOTE}"

    @pytest.mark.asyncio
    async def test_skip_occurrence_when_repeated_then_note_added_once(
        self, manager, store, client_id
    ):
        appointment = await add(store, client_id, date(2025, 2, 4))

        await manager.skip_occurrence(appointment.id)
        await manager.skip_occurrence(appointment.id)

        stored = await store.get_appointment(appointment.id)
        assert stored.notes.count(SKIP_NOTE) == 1

    @pytest.mark.asyncio
    async def test_skip_occurrence_when_siblings_then_untouched(
        self, manager, store, client_id
    ):
        target = await add(store, client_id, date(2025, 2, 4))
        sibling = await add(store, client_id, date(2025, 2, 18))

        await manager.skip_occurrence(target.id)

        stored = await store.get_appointment(sibling.id)
        assert stored.status == AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_skip_occurrence_when_missing_then_false(self, manager):
        assert await manager.skip_occurrence(404) is False

"""Unit tests for SQLiteAppointmentStore."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import aiosqlite
import pytest
from pydantic import ValidationError

from schedulebot.store.exceptions import StoreError, StoreTransientError, StoreValidationError
from schedulebot.store.models import (
    AppointmentFilter,
    AppointmentStatus,
    NewAppointment,
    NewClient,
    Pet,
)


def new_appointment(client_id: int, **overrides) -> NewAppointment:
    values = {
        "client_id": client_id,
        "date": date(2025, 1, 6),
        "time": "10:00",
        "services": ["Grooming Service"],
    }
    values.update(overrides)
    return NewAppointment(**values)


class TestSQLiteClients:
    @pytest.mark.asyncio
    async def test_create_client_when_new_then_persisted_with_id(self, sqlite_store):
        client = await sqlite_store.create_client(
            NewClient(name="Carla", phone="305-555-1234", pets=[Pet(name="Toby", breed="poodle")])
        )

        stored = await sqlite_store.get_client(client.id)
        assert stored == client
        assert stored.pets[0].breed == "poodle"

    @pytest.mark.asyncio
    async def test_find_client_by_name_when_different_case_then_found(self, sqlite_store):
        created = await sqlite_store.create_client(NewClient(name="Gilberto Y Monica"))

        found = await sqlite_store.find_client_by_name("  gilberto y MONICA ")

        assert found is not None
        assert found.id == created.id

    @pytest.mark.asyncio
    async def test_find_client_by_name_when_several_then_oldest(self, sqlite_store):
        first = await sqlite_store.create_client(NewClient(name="Ana"))
        await sqlite_store.create_client(NewClient(name="ana"))

        found = await sqlite_store.find_client_by_name("ANA")

        assert found.id == first.id

    @pytest.mark.asyncio
    async def test_find_client_by_name_when_missing_then_none(self, sqlite_store):
        assert await sqlite_store.find_client_by_name("Nobody") is None
        assert await sqlite_store.get_client(42) is None


class TestSQLiteAppointments:
    @pytest.mark.asyncio
    async def test_create_appointment_when_valid_then_round_trips(self, sqlite_store):
        client = await sqlite_store.create_client(NewClient(name="Carla"))

        created = await sqlite_store.create_appointment(
            new_appointment(
                client.id,
                total_amount=Decimal("45.50"),
                notes="Imported from calendar: Carla",
                external_uid="uid-1",
            )
        )
        stored = await sqlite_store.get_appointment(created.id)

        assert stored == created
        assert stored.status == AppointmentStatus.CONFIRMED
        assert stored.total_amount == Decimal("45.50")
        assert stored.natural_key == (client.id, date(2025, 1, 6), "10:00")

    @pytest.mark.asyncio
    async def test_create_appointment_when_client_missing_then_validation_error(
        self, sqlite_store
    ):
        with pytest.raises(StoreValidationError):
            await sqlite_store.create_appointment(new_appointment(999))

    @pytest.mark.asyncio
    async def test_create_appointment_when_same_key_twice_then_both_kept(self, sqlite_store):
        client = await sqlite_store.create_client(NewClient(name="Carla"))

        await sqlite_store.create_appointment(new_appointment(client.id))
        await sqlite_store.create_appointment(new_appointment(client.id))

        assert len(await sqlite_store.list_appointments()) == 2

    @pytest.mark.asyncio
    async def test_find_appointment_when_duplicates_then_earliest_created(self, sqlite_store):
        client = await sqlite_store.create_client(NewClient(name="Carla"))
        base = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        await sqlite_store.create_appointment(new_appointment(client.id, created_at=base))
        older = await sqlite_store.create_appointment(
            new_appointment(client.id, created_at=base - timedelta(days=1))
        )

        found = await sqlite_store.find_appointment(client.id, date(2025, 1, 6), "10:00")

        assert found.id == older.id

    @pytest.mark.asyncio
    async def test_find_appointment_when_other_time_then_none(self, sqlite_store):
        client = await sqlite_store.create_client(NewClient(name="Carla"))
        await sqlite_store.create_appointment(new_appointment(client.id))

        assert await sqlite_store.find_appointment(client.id, date(2025, 1, 6), "11:00") is None

    @pytest.mark.asyncio
    async def test_list_appointments_when_filtered_then_matching_in_order(self, sqlite_store):
        carla = await sqlite_store.create_client(NewClient(name="Carla"))
        ana = await sqlite_store.create_client(NewClient(name="Ana"))
        await sqlite_store.create_appointment(new_appointment(carla.id, date=date(2025, 2, 3)))
        await sqlite_store.create_appointment(new_appointment(carla.id, date=date(2025, 1, 20)))
        await sqlite_store.create_appointment(new_appointment(ana.id, date=date(2025, 1, 25)))
        await sqlite_store.create_appointment(
            new_appointment(carla.id, date=date(2025, 1, 22), time="15:00")
        )

        result = await sqlite_store.list_appointments(
            AppointmentFilter(client_id=carla.id, time="10:00", date_from=date(2025, 1, 10))
        )

        assert [a.date for a in result] == [date(2025, 1, 20), date(2025, 2, 3)]

    @pytest.mark.asyncio
    async def test_update_appointment_status_when_notes_given_then_both_updated(
        self, sqlite_store
    ):
        client = await sqlite_store.create_client(NewClient(name="Carla"))
        created = await sqlite_store.create_appointment(new_appointment(client.id, notes="a"))

        updated = await sqlite_store.update_appointment_status(
            created.id, AppointmentStatus.CANCELLED, notes="a | b"
        )

        stored = await sqlite_store.get_appointment(created.id)
        assert updated is True
        assert stored.status == AppointmentStatus.CANCELLED
        assert stored.notes == "a | b"

    @pytest.mark.asyncio
    async def test_update_appointment_status_when_unknown_id_then_false(self, sqlite_store):
        assert (
            await sqlite_store.update_appointment_status(7, AppointmentStatus.COMPLETED) is False
        )

    @pytest.mark.asyncio
    async def test_delete_appointment_when_exists_then_removed_once(self, sqlite_store):
        client = await sqlite_store.create_client(NewClient(name="Carla"))
        created = await sqlite_store.create_appointment(new_appointment(client.id))

        assert await sqlite_store.delete_appointment(created.id) is True
        assert await sqlite_store.delete_appointment(created.id) is False
        assert await sqlite_store.get_appointment(created.id) is None

    @pytest.mark.asyncio
    async def test_get_database_info_when_rows_then_counts(self, sqlite_store):
        client = await sqlite_store.create_client(NewClient(name="Carla"))
        await sqlite_store.create_appointment(new_appointment(client.id))

        info = await sqlite_store.get_database_info()

        assert info["client_count"] == 1
        assert info["appointment_count"] == 1
        assert info["file_size_bytes"] > 0


class TestSQLiteErrorTranslation:
    def test_translate_errors_when_locked_then_transient(self, sqlite_store):
        with pytest.raises(StoreTransientError) as exc_info:
            with sqlite_store._translate_errors("create_client"):
                raise aiosqlite.OperationalError("database is locked")

        assert exc_info.value.operation == "create_client"

    def test_translate_errors_when_other_operational_error_then_store_error(self, sqlite_store):
        with pytest.raises(StoreError) as exc_info:
            with sqlite_store._translate_errors("list_appointments"):
                raise aiosqlite.OperationalError("no such table: appointments")

        assert not isinstance(exc_info.value, StoreTransientError)

    def test_translate_errors_when_integrity_error_then_validation(self, sqlite_store):
        with pytest.raises(StoreValidationError):
            with sqlite_store._translate_errors("create_appointment"):
                raise aiosqlite.IntegrityError("FOREIGN KEY constraint failed")

    def test_new_appointment_when_time_malformed_then_rejected(self):
        with pytest.raises(ValidationError):
            new_appointment(1, time="9am")

"""Shared test configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import pytest

from schedulebot.config.settings import ScheduleBotSettings, reset_settings
from schedulebot.ics.models import CalendarEvent, EventDateTime, RecurrencePattern
from schedulebot.reconcile.models import Occurrence
from schedulebot.store.database import SQLiteAppointmentStore
from schedulebot.store.resilient import ResilientStore
from tests.fixtures.ics_documents import build_calendar

LOCAL_TZ = timezone(timedelta(hours=-5))


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: Tests touching a real SQLite file")
    config.addinivalue_line("markers", "critical_path: Core import behaviour")


@pytest.fixture(autouse=True)
def isolated_settings() -> Any:
    """Keep the lazily created CLI settings instance from leaking between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings(tmp_path: Path) -> ScheduleBotSettings:
    """Real settings pointing at a temporary data directory, without delays."""
    return ScheduleBotSettings(
        config_dir=tmp_path / "config",
        data_dir=tmp_path / "data",
        database_path=tmp_path / "data" / "schedule.db",
        timezone_offset_minutes=-300,
        batch_delay=0,
        retry_initial_delay=0,
        store_timeout=5,
    )


@pytest.fixture
def sqlite_store(settings: ScheduleBotSettings) -> SQLiteAppointmentStore:
    return SQLiteAppointmentStore(settings.database_file)


@pytest.fixture
def store(sqlite_store: SQLiteAppointmentStore, settings: ScheduleBotSettings) -> ResilientStore:
    return ResilientStore.from_settings(sqlite_store, settings)


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for calendar events in the test timezone."""

    def _make_event(
        summary: str = "Cely Pets Carla $50",
        start: Optional[datetime] = None,
        uid: str = "event-1@example.com",
        all_day: bool = False,
        **kwargs: Any,
    ) -> CalendarEvent:
        start = start or datetime(2025, 1, 6, 10, 0, tzinfo=LOCAL_TZ)
        return CalendarEvent(
            uid=uid,
            summary=summary,
            start=EventDateTime(date_time=start, is_all_day=all_day),
            **kwargs,
        )

    return _make_event


@pytest.fixture
def make_occurrence(make_event: Callable[..., CalendarEvent]) -> Callable[..., Occurrence]:
    """Factory for occurrences built from ``make_event``."""

    def _make_occurrence(
        pattern: Optional[RecurrencePattern] = None, **event_kwargs: Any
    ) -> Occurrence:
        event = make_event(**event_kwargs)
        return Occurrence(
            event=event,
            start=event.start.date_time,
            is_all_day=event.start.is_all_day,
            pattern=pattern,
        )

    return _make_occurrence


@pytest.fixture
def calendar_builder() -> Callable[..., str]:
    return build_calendar

"""Tests for the CLI entry point and subcommands."""

import csv
import io
import json
import logging
import signal
from pathlib import Path

import pytest

from schedulebot.cli import main_entry
from schedulebot.store.database import SQLiteAppointmentStore
from tests.fixtures.ics_documents import GROOMING_CALENDAR


@pytest.fixture
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated data directory and working directory for CLI runs."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SCHEDULEBOT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("SCHEDULEBOT_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("SCHEDULEBOT_BATCH_DELAY", "0")
    yield tmp_path
    package_logger = logging.getLogger("schedulebot")
    for handler in list(package_logger.handlers):
        handler.close()
        package_logger.removeHandler(handler)


@pytest.fixture
def calendar_file(tmp_path: Path) -> Path:
    path = tmp_path / "calendar.ics"
    path.write_text(GROOMING_CALENDAR, encoding="utf-8")
    return path


class TestImportCommand:
    @pytest.mark.asyncio
    async def test_import_when_json_then_summary_printed(self, cli_env, calendar_file, capsys):
        exit_code = await main_entry(
            ["-q", "import", str(calendar_file), "--window-start", "2025-01-01", "--json"]
        )

        report = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert report == {
            "imported": 5,
            "skipped": 1,
            "errors": 0,
            "failures": [],
            "stopped": False,
        }
        assert (cli_env / "data" / "schedule.db").exists()

    @pytest.mark.asyncio
    async def test_import_when_repeated_then_nothing_new(self, cli_env, calendar_file, capsys):
        argv = ["-q", "import", str(calendar_file), "--window-start", "2025-01-01"]

        await main_entry(argv)
        capsys.readouterr()
        exit_code = await main_entry(argv)

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Imported: 0" in out
        assert "Skipped:  6" in out

    @pytest.mark.asyncio
    async def test_import_when_db_option_then_used(self, cli_env, calendar_file, capsys):
        database = cli_env / "other.db"

        await main_entry(["-q", "import", str(calendar_file), "--db", str(database)])

        info = await SQLiteAppointmentStore(database).get_database_info()
        assert info["client_count"] >= 2

    @pytest.mark.asyncio
    async def test_import_when_file_missing_then_exit_one(self, cli_env):
        assert await main_entry(["-q", "import", str(cli_env / "missing.ics")]) == 1

    @pytest.mark.asyncio
    async def test_import_when_finished_then_sigint_handler_restored(
        self, cli_env, calendar_file, capsys
    ):
        before = signal.getsignal(signal.SIGINT)

        await main_entry(["-q", "import", str(calendar_file)])

        assert signal.getsignal(signal.SIGINT) is before


class TestPreviewCommand:
    @pytest.mark.asyncio
    async def test_preview_when_csv_output_then_file_written(self, cli_env, calendar_file):
        output = cli_env / "plan.csv"

        exit_code = await main_entry(
            [
                "-q",
                "preview",
                str(calendar_file),
                "--window-start",
                "2025-01-01",
                "--format",
                "csv",
                "--output",
                str(output),
            ]
        )

        rows = list(csv.DictReader(io.StringIO(output.read_text(encoding="utf-8"))))
        assert exit_code == 0
        assert len(rows) == 6
        assert {row["client_name"] for row in rows} >= {"Carla", "Gilberto Y Monica", "Ana"}

    @pytest.mark.asyncio
    async def test_preview_when_text_then_nothing_imported(self, cli_env, calendar_file, capsys):
        await main_entry(["-q", "preview", str(calendar_file), "--window-start", "2025-01-01"])

        out = capsys.readouterr().out
        assert "6 occurrences planned" in out
        info = await SQLiteAppointmentStore(cli_env / "data" / "schedule.db").get_database_info()
        assert info["appointment_count"] == 0


class TestAuditAndSeriesCommands:
    @pytest.mark.asyncio
    async def test_audit_when_clean_store_then_nothing_removed(
        self, cli_env, calendar_file, capsys
    ):
        await main_entry(["-q", "import", str(calendar_file), "--window-start", "2025-01-01"])
        capsys.readouterr()

        exit_code = await main_entry(["-q", "audit"])

        assert exit_code == 0
        assert "Removed 0 duplicate appointments, kept 5" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_audit_report_when_clean_then_zero_groups(self, cli_env, capsys):
        assert await main_entry(["-q", "audit", "--report"]) == 0

        out = capsys.readouterr().out
        assert "Exact duplicates: 0 groups" in out

    @pytest.mark.asyncio
    async def test_series_delete_when_imported_series_then_removed(
        self, cli_env, calendar_file, capsys
    ):
        await main_entry(["-q", "import", str(calendar_file), "--window-start", "2025-01-01"])
        store = SQLiteAppointmentStore(cli_env / "data" / "schedule.db")
        client = await store.find_client_by_name("Gilberto Y Monica")
        capsys.readouterr()

        exit_code = await main_entry(
            [
                "-q",
                "series",
                "delete",
                "--client-id",
                str(client.id),
                "--time",
                "09:00",
                "--from",
                "2025-01-01",
            ]
        )

        assert exit_code == 0
        assert "Deleted 3 appointments" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_series_skip_when_unknown_id_then_exit_one(self, cli_env, capsys):
        assert await main_entry(["-q", "series", "skip", "999"]) == 1
        assert "not found" in capsys.readouterr().out

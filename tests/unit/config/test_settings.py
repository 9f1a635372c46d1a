"""Unit tests for the settings configuration module."""

from datetime import timedelta
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from schedulebot.config.settings import (
    LoggingSettings,
    ScheduleBotSettings,
    get_settings,
    reset_settings,
)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty directory so no project config or .env is picked up."""
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """User config directory holding a YAML file."""
    directory = tmp_path / "config"
    directory.mkdir()
    (directory / "config.yaml").write_text(
        yaml.safe_dump(
            {
                "batch_size": 7,
                "horizon_months": 3,
                "organization_prefixes": ["Happy Paws"],
                "logging": {"console_level": "DEBUG", "file_enabled": True},
                "not_a_setting": 1,
            }
        )
    )
    return directory


class TestLoggingSettings:
    """Tests for the LoggingSettings class."""

    def test_logging_settings_defaults(self) -> None:
        settings = LoggingSettings()

        assert settings.console_enabled is True
        assert settings.console_level == "INFO"
        assert settings.file_enabled is False
        assert settings.file_prefix == "schedulebot"
        assert settings.third_party_level == "WARNING"


class TestScheduleBotSettings:
    """Tests for ScheduleBotSettings loading and validation."""

    def test_defaults(self, tmp_path: Path) -> None:
        settings = ScheduleBotSettings(config_dir=tmp_path / "empty", data_dir=tmp_path)

        assert settings.batch_size == 25
        assert settings.max_concurrency == 1
        assert settings.horizon_months == 6
        assert settings.rrule_max_occurrences == 520
        assert settings.all_day_default_time == "09:00"
        assert settings.match_strategy == "name"
        assert settings.database_file == tmp_path / "schedule.db"

    def test_yaml_values_loaded(self, config_dir: Path) -> None:
        """Test values from config_dir/config.yaml fill unset fields."""
        settings = ScheduleBotSettings(config_dir=config_dir)

        assert settings.batch_size == 7
        assert settings.horizon_months == 3
        assert settings.organization_prefixes == ["Happy Paws"]
        assert settings.logging.console_level == "DEBUG"
        assert settings.logging.file_enabled is True
        assert not hasattr(settings, "not_a_setting")

    def test_explicit_arguments_beat_yaml(self, config_dir: Path) -> None:
        settings = ScheduleBotSettings(config_dir=config_dir, batch_size=3)

        assert settings.batch_size == 3
        assert settings.horizon_months == 3

    def test_environment_beats_yaml(
        self, config_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SCHEDULEBOT_BATCH_SIZE", "11")
        monkeypatch.setenv("SCHEDULEBOT_MATCH_STRATEGY", "name_phone")

        settings = ScheduleBotSettings(config_dir=config_dir)

        assert settings.batch_size == 11
        assert settings.match_strategy == "name_phone"
        assert settings.horizon_months == 3

    def test_project_config_in_working_directory(self, isolated_cwd: Path, tmp_path: Path) -> None:
        (isolated_cwd / "config").mkdir()
        (isolated_cwd / "config" / "config.yaml").write_text("max_concurrency: 4\n")

        settings = ScheduleBotSettings(config_dir=tmp_path / "unused")

        assert settings.max_concurrency == 4

    def test_explicit_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("timezone_offset_minutes: -300\n")

        settings = ScheduleBotSettings(_config_file=config_file, config_dir=tmp_path / "unused")

        assert settings.timezone_offset_minutes == -300
        assert settings.local_timezone.utcoffset(None) == timedelta(hours=-5)

    def test_malformed_yaml_falls_back_to_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "broken.yaml"
        config_file.write_text("batch_size: [unclosed\n")

        settings = ScheduleBotSettings(_config_file=config_file, config_dir=tmp_path)

        assert settings.batch_size == 25

    @pytest.mark.parametrize(
        "overrides",
        [
            {"batch_size": 0},
            {"max_concurrency": 0},
            {"horizon_months": 0},
            {"timezone_offset_minutes": 24 * 60},
            {"all_day_default_time": "24:00"},
            {"all_day_default_time": "nine"},
            {"match_strategy": "fuzzy"},
        ],
    )
    def test_invalid_values_rejected(self, tmp_path: Path, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            ScheduleBotSettings(config_dir=tmp_path, **overrides)

    def test_all_day_default_time_normalized(self, tmp_path: Path) -> None:
        settings = ScheduleBotSettings(config_dir=tmp_path, all_day_default_time="9:5")

        assert settings.all_day_default_time == "09:05"


class TestGlobalSettings:
    def test_get_settings_returns_same_instance(self) -> None:
        first = get_settings(batch_size=4)

        assert get_settings() is first
        assert first.batch_size == 4

    def test_reset_settings_creates_new_instance(self) -> None:
        first = get_settings()
        reset_settings()

        assert get_settings() is not first

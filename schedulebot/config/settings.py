"""Settings management using Pydantic for type validation and configuration."""

import logging
from datetime import date, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    # Console Logging
    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    # File Logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(
        default="DEBUG",
        description="File log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    file_directory: Optional[str] = Field(
        default=None, description="Custom log directory (defaults to data_dir/logs)"
    )
    file_prefix: str = Field(default="schedulebot", description="Log file prefix")
    max_log_files: int = Field(default=5, description="Maximum number of log files to keep")
    include_function_names: bool = Field(
        default=True, description="Include function names and line numbers in file logs"
    )

    # Third-party Libraries
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class ScheduleBotSettings(BaseSettings):
    """Application settings with environment variable support.

    This is the single configuration object injected into the import
    pipeline. Priority: explicit keyword arguments > environment
    (``SCHEDULEBOT_*``) > YAML config file > defaults.
    """

    # Private attributes
    _env_vars_set: set = PrivateAttr(default_factory=set)

    # File Paths
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "schedulebot")
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local" / "share" / "schedulebot")
    database_path: Optional[Path] = Field(
        default=None, description="SQLite store path (defaults to data_dir/schedule.db)"
    )

    # Store access
    store_timeout: float = Field(default=10.0, gt=0, description="Timeout per store call (s)")
    max_retries: int = Field(default=3, ge=0, description="Retries for transient store errors")
    retry_backoff_factor: float = Field(default=1.5, description="Exponential backoff factor")
    retry_initial_delay: float = Field(default=0.5, ge=0, description="First retry delay (s)")

    # Throughput
    batch_size: int = Field(default=25, ge=1, description="Occurrences reconciled per batch")
    batch_delay: float = Field(
        default=0.5, ge=0, description="Pause after a batch that wrote to the store (s)"
    )
    max_concurrency: int = Field(
        default=1, ge=1, description="Occurrences of a batch reconciled concurrently"
    )

    # Recurrence expansion
    horizon_months: int = Field(default=6, ge=1, description="Months of a series to import")
    window_start: Optional[date] = Field(
        default=None, description="First date of recurring occurrences to import (default today)"
    )
    rrule_max_occurrences: int = Field(
        default=520, ge=1, description="Safety cap on generated occurrences per series"
    )

    # Time handling (fixed offset model)
    timezone_offset_minutes: int = Field(
        default=0, ge=-14 * 60, le=14 * 60, description="Local UTC offset for wall-clock times"
    )
    all_day_default_time: str = Field(
        default="09:00", description="Appointment time used for all-day events (HH:MM)"
    )

    # Extraction
    organization_prefixes: list[str] = Field(
        default_factory=lambda: ["Cely Pets", "CelysPets"],
        description="Business-name tokens stripped from the start of summaries",
    )
    default_service: str = Field(default="Grooming Service", description="Fallback service")
    unknown_client_name: str = Field(default="Unknown Client", description="Name sentinel")
    filter_non_appointments: bool = Field(
        default=False, description="Skip events that do not look like grooming bookings"
    )

    # Reconciliation
    import_unknown_clients: bool = Field(
        default=False, description="Create appointments for the unknown-client sentinel"
    )
    match_strategy: Literal["name", "name_phone"] = Field(
        default="name", description="Client matching: name, or name refined by phone"
    )

    # Logging Configuration
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings, description="Logging settings"
    )

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULEBOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    def __init__(self, **kwargs: Any) -> None:
        config_file = kwargs.pop("_config_file", None)
        super().__init__(**kwargs)

        # Remember which settings were explicitly provided so YAML never overrides them
        self._env_vars_set = set(self.model_fields_set)
        self._load_yaml_config(Path(config_file) if config_file else None)

    @field_validator("all_day_default_time")
    @classmethod
    def _validate_time(cls, value: str) -> str:
        hour, _, minute = value.partition(":")
        if not (hour.isdigit() and minute.isdigit() and int(hour) < 24 and int(minute) < 60):
            raise ValueError(f"Expected HH:MM, got {value!r}")
        return f"{int(hour):02d}:{int(minute):02d}"

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in the working directory or the user config dir."""
        project_config = Path.cwd() / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _load_yaml_config(self, config_file: Optional[Path] = None) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = config_file or self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            for key, value in config_data.items():
                if key == "logging" and isinstance(value, dict):
                    if "logging" not in self._env_vars_set:
                        self.logging = self.logging.model_copy(update=value)
                    continue
                if key in type(self).model_fields and key not in self._env_vars_set:
                    setattr(self, key, value)

        except Exception as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logging.warning(f"Could not load YAML config from {config_file}: {e}")

    @property
    def database_file(self) -> Path:
        """Path to SQLite database file."""
        return self.database_path or self.data_dir / "schedule.db"

    @property
    def local_timezone(self) -> tzinfo:
        """Fixed-offset timezone used for appointment wall-clock times."""
        return timezone(timedelta(minutes=self.timezone_offset_minutes))


# Global settings management
_settings_instance: Optional[ScheduleBotSettings] = None


def get_settings(**overrides: Any) -> ScheduleBotSettings:
    """Get the global settings instance, creating it lazily if needed.

    Only the CLI uses this; library components receive settings explicitly.
    """
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = ScheduleBotSettings(**overrides)
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None

"""Configuration package."""

from .settings import LoggingSettings, ScheduleBotSettings, get_settings, reset_settings

__all__ = ["LoggingSettings", "ScheduleBotSettings", "get_settings", "reset_settings"]

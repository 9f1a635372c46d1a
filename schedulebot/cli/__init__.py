"""CLI module for Schedule Bot.

Argument parsing, settings assembly and dispatch to the subcommands.
"""

import logging
from collections.abc import Sequence
from typing import Any, Optional

from ..config.settings import ScheduleBotSettings, get_settings
from ..ics.exceptions import ICSError
from ..store.exceptions import StoreBusyError, StoreError
from ..utils.logging import apply_command_line_overrides, setup_logging
from .commands import run_audit, run_import, run_preview, run_series
from .parser import create_parser, parse_date, parse_time_slot

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BUSY = 2

COMMANDS = {
    "import": run_import,
    "preview": run_preview,
    "audit": run_audit,
    "series": run_series,
}

SETTING_OVERRIDES = ("database_path", "window_start", "horizon_months")


def build_settings(args: Any) -> ScheduleBotSettings:
    """Build settings with command-line values taking priority."""
    overrides: dict[str, Any] = {
        name: getattr(args, name)
        for name in SETTING_OVERRIDES
        if getattr(args, name, None) is not None
    }
    if getattr(args, "config", None):
        overrides["_config_file"] = args.config

    return apply_command_line_overrides(get_settings(**overrides), args)


async def main_entry(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point with argument parsing.

    Returns:
        Exit code: 0 success, 1 document or store failure, 2 store busy
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = build_settings(args)
    setup_logging(settings)

    try:
        return await COMMANDS[args.command](args, settings)
    except ICSError as e:
        logger.error(f"Cannot import calendar: {e.message}")
        return EXIT_FAILURE
    except StoreBusyError as e:
        logger.error(f"Store busy: {e.message}")
        return EXIT_BUSY
    except StoreError as e:
        logger.error(f"Store error: {e.message}")
        return EXIT_FAILURE


__all__ = [
    "build_settings",
    "create_parser",
    "main_entry",
    "parse_date",
    "parse_time_slot",
]

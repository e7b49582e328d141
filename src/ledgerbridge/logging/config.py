"""Logging setup for the ledgerbridge CLI and sync engine.

Levels and the log file come from the ``logging`` section of the active
profile's settings (``LEDGERBRIDGE_LOGGING__LEVEL`` and friends). Console
records go to stderr because commands print their results on stdout.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

from ..config import LoggingSettings, get_settings

CONSOLE_FORMAT = "%(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Capped at WARNING
QUIET_LOGGERS = ("urllib3", "requests")


def build_handlers(settings: LoggingSettings, cli_mode: bool) -> list[logging.Handler]:
    """Create the console handler and, if enabled, the rotating file handler."""
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        logging.Formatter(CONSOLE_FORMAT if cli_mode else DETAILED_FORMAT)
    )
    handlers: list[logging.Handler] = [console]

    if settings.log_to_file:
        settings.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            settings.log_file_path,
            maxBytes=settings.max_file_size_mb * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        handlers.append(file_handler)

    return handlers


def setup_logging(
    settings: LoggingSettings | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
    force: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        settings: Logging section to apply. Defaults to the current profile's.
        cli_mode: Print bare messages on the console instead of full records
        verbose: Log at DEBUG regardless of the configured level
        force: Replace handlers already installed on the root logger
    """
    if settings is None:
        settings = get_settings().logging

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.level),
        handlers=build_handlers(settings, cli_mode),
        force=force,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

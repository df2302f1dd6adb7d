"""
Logging configuration — central setup for the CLI entrypoint.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    CLI flag  >  NODEUPDATER_LOG_LEVEL env var  >  WARNING (default)

Optional file output via NODEUPDATER_LOG_FILE / NODEUPDATER_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

LOG_LEVEL_ENV = "NODEUPDATER_LOG_LEVEL"
LOG_FILE_ENV = "NODEUPDATER_LOG_FILE"
LOG_FILE_LEVEL_ENV = "NODEUPDATER_LOG_FILE_LEVEL"

# (format, datefmt) per console verbosity
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(levelname)s: %(message)s", None),
}

# File output keeps the date: the agent runs across days
_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "asyncio")


def resolve_level(debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get(LOG_LEVEL_ENV, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the same as ``level``.
        quiet_third_party: Keep noisy third-party loggers at WARNING
            unless we're at DEBUG level.
    """
    numeric_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(*_console_format(numeric_level)))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _console_format(numeric_level: int) -> tuple[str, str | None]:
    if numeric_level <= logging.DEBUG:
        return _CONSOLE_FORMATS[logging.DEBUG]
    if numeric_level <= logging.INFO:
        return _CONSOLE_FORMATS[logging.INFO]
    return _CONSOLE_FORMATS[logging.WARNING]


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric

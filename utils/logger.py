"""Logging configuration for skillset.

Nothing is written to disk unless `setup_logger()` runs (the `--verbose`
flag). The hook command keeps stdout for its JSON reply, so console logging
always goes to stderr.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .runtime import get_log_dir

_logging_initialized = False
_log_file_path = None

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    log_dir: Optional[str] = None,
    log_level: Optional[str] = None,
    log_to_console: bool = False,
) -> None:
    """Configure file logging once per process.

    Args:
        log_dir: Directory for log files (default: ~/.skillset/logs/)
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: Config.LOG_LEVEL)
        log_to_console: Also mirror warnings to stderr
    """
    global _logging_initialized, _log_file_path

    if _logging_initialized:
        return

    if log_dir is None:
        log_dir = get_log_dir()

    if log_level is None:
        from config import Config

        log_level = Config.LOG_LEVEL

    level = getattr(logging, log_level.upper(), logging.DEBUG)
    logging.root.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    log_path = Path(log_dir)
    log_path.mkdir(exist_ok=True, parents=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_path / f"skillset_{timestamp}.log"
    _log_file_path = str(log_file)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logging.root.addHandler(file_handler)

    if log_to_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(formatter)
        logging.root.addHandler(console_handler)

    _logging_initialized = True
    logging.getLogger("skillset").info(f"Logging initialized. Level: {log_level}, File: {_log_file_path}")


def get_logger(name: str) -> logging.Logger:
    """Get a module logger (typically `get_logger(__name__)`).

    Does not configure anything; see `setup_logger`.
    """
    return logging.getLogger(name)


def get_log_file_path() -> Optional[str]:
    """Path of the current log file, or None when file logging is off."""
    return _log_file_path

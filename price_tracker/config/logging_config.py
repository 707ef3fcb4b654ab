# price_tracker/config/logging_config.py

"""Logging for one price_tracker process.

A launch writes to ``logs/run_<YYYYmmdd_HHMMSS>.log``.  Screens, the data
clients and the realtime pollers all log under ``price_tracker.*``; the
poller and ``asyncio.to_thread`` workers are told apart by thread name.

Headless commands also echo warnings to stderr.  The TUI gets no console
handler at all: Textual draws over the terminal and a stray stderr line
would corrupt the screen.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from price_tracker.config.settings import Settings

PROJECT_LOGGER = "price_tracker"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(threadName)-12s | %(name)s | "
    "%(funcName)s:%(lineno)d | %(message)s"
)
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _run_file_handler() -> logging.FileHandler | None:
    for handler in logging.getLogger(PROJECT_LOGGER).handlers:
        if isinstance(handler, logging.FileHandler):
            return handler
    return None


def _new_run_file() -> Path:
    Settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Settings.LOGS_DIR / f"run_{stamp}.log"


def setup_logging(console: bool = True) -> Path:
    """Attach the run file (and optionally stderr) to ``price_tracker``.

    Args:
        console: Echo warnings to stderr.  Pass ``False`` before starting
            the Textual app.

    Returns:
        The log file of this run.  Later calls reuse the first file and
        only add or drop the console handler.
    """
    project = logging.getLogger(PROJECT_LOGGER)
    project.setLevel(Settings.LOG_LEVEL)

    existing = _run_file_handler()
    if existing is None:
        log_file = _new_run_file()
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
        )
        project.addHandler(file_handler)
    else:
        log_file = Path(existing.baseFilename)

    consoles = [
        h for h in project.handlers
        if type(h) is logging.StreamHandler
    ]
    if console and not consoles:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)
        stderr_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        project.addHandler(stderr_handler)
    elif not console:
        for handler in consoles:
            project.removeHandler(handler)

    if existing is None:
        project.info("Logging to %s", log_file)
    return log_file

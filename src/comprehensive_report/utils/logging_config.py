"""
Logging configuration for the report exporter.

Records emitted while a dashboard view is being captured are prefixed with
the view id, so a long export log can be read view by view.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Iterator, Optional
import colorama
from colorama import Fore, Style

colorama.init()

_current_view: ContextVar[Optional[str]] = ContextVar('current_view', default=None)

CONSOLE_FORMAT = '%(asctime)s %(levelname)s %(view)s%(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(view)s%(message)s - [%(filename)s:%(lineno)d]'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Browser driver and workbook libraries are chatty at DEBUG
QUIET_LOGGERS = ('playwright', 'asyncio', 'openpyxl', 'xlsxwriter')


@contextmanager
def capture_scope(view_id: str) -> Iterator[None]:
    """Tag every record logged inside the block with ``view_id``."""
    token = _current_view.set(view_id)
    try:
        yield
    finally:
        _current_view.reset(token)


class ViewContextFilter(logging.Filter):
    """Adds the ``view`` attribute used by the export log formats."""

    def filter(self, record):
        view_id = _current_view.get()
        record.view = f"[{view_id}] " if view_id else ""
        return True


class LevelColorFormatter(logging.Formatter):
    """Console formatter that colours the level name."""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Style.BRIGHT,
    }

    def format(self, record):
        # Work on a copy so the file handler keeps the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname:<7}{Style.RESET_ALL}"
        return super().format(record)


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(ViewContextFilter())
    return handler


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure console and optional file logging for an export run.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, appended to across runs
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(_handler(
        logging.StreamHandler(sys.stdout), level, LevelColorFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT)
    ))

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_handler(
            logging.FileHandler(log_file, mode='a', encoding='utf-8'), level,
            logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT),
        ))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging at {log_level.upper()}" + (f", file {log_file}" if log_file else ""))

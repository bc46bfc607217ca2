"""
Logging configuration for tfproj.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAME = "tfproj"


class VerbosityFilter(logging.Filter):
    """Drop records muted by the active verbosity flags.

    Records logged with ``extra={"internal": True}`` always pass.
    """

    def __init__(self, verbosity=None):
        super().__init__()
        self.verbosity = verbosity

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "internal", False) or self.verbosity is None:
            return True
        if record.levelno >= logging.ERROR:
            return self.verbosity.log_errors
        if record.levelno >= logging.WARNING:
            return self.verbosity.log_warnings
        if record.levelno >= logging.INFO:
            return self.verbosity.log_info
        return self.verbosity.debug


class _ConsoleFormatter(logging.Formatter):
    LABELS = {
        logging.DEBUG: "DEBUG  ",
        logging.INFO: "INFO   ",
        logging.WARNING: "WARNING",
        logging.ERROR: "ERROR  ",
        logging.CRITICAL: "ERROR  ",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LABELS.get(record.levelno, record.levelname)
        message = record.getMessage()
        if record.levelno <= logging.DEBUG:
            message = f"{record.name} : {message}"
        text = f"{label}: {message}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def setup_logging(
    log_level: str = "INFO",
    log_file: bool = False,
    verbosity=None,
) -> logging.Logger:
    """
    Configure tfproj logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: If True, also log to file
        verbosity: Optional session Verbosity whose flags filter console output

    Returns:
        The tfproj logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.propagate = False

    # Clear any existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(_ConsoleFormatter())
    console_handler.addFilter(VerbosityFilter(verbosity))
    logger.addHandler(console_handler)

    if log_file:
        log_dir = get_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file_path = log_dir / f"tfproj_{timestamp}.log"

        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))
        logger.addHandler(file_handler)

        logger.debug(f"Logging to file: {log_file_path}")

    return logger


def get_log_dir() -> Path:
    """
    Get platform-specific log directory.

    Returns:
        Path to log directory
    """
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA", os.path.expanduser("~"))
    else:
        base = os.environ.get("XDG_CACHE_HOME", os.path.expanduser("~/.cache"))
    return Path(base) / "tfproj" / "logs"


def internal_error(logger: logging.Logger, message: str, exc: Optional[BaseException] = None) -> None:
    """Log an internal error regardless of verbosity, with traceback if given."""
    logger.error(
        f"Internal error: {message}",
        exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        extra={"internal": True},
    )

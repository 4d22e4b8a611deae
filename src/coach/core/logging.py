"""Logging configuration.

Modules log through the shared ``coach`` logger. It starts with environment
defaults so it works before settings load; ``coach.core.config`` then applies
the ``logging`` section through ``configure_logging``.
"""
import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Singleton logger instance
_logger: Optional[logging.Logger] = None


def _level_from_name(name: Optional[str]) -> int:
    return getattr(logging, (name or "INFO").upper(), logging.INFO)


def configure_logging(
    level: Optional[str] = None,
    fmt: Optional[str] = None,
    logs_path: Optional[str] = None,
) -> logging.Logger:
    """
    (Re)build the handlers of the ``coach`` logger.

    Args:
        level: Level name; defaults to COACH_LOG_LEVEL or INFO
        fmt: Record format; defaults to DEFAULT_FORMAT
        logs_path: Directory for coach.log; defaults to COACH_LOGS_PATH.
            No directory means stdout only.
    """
    global _logger

    if _logger is None:
        _logger = logging.getLogger("coach")
        _logger.propagate = False

    _logger.setLevel(_level_from_name(level or os.getenv("COACH_LOG_LEVEL")))
    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt or DEFAULT_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    _logger.addHandler(console_handler)

    logs_path = logs_path or os.getenv("COACH_LOGS_PATH")
    if logs_path:
        log_file = Path(logs_path) / "coach.log"
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def get_logger() -> logging.Logger:
    """Get the singleton logger, configuring it from the environment on first use."""
    if _logger is None:
        return configure_logging()
    return _logger


# Export the singleton logger
logger = get_logger()

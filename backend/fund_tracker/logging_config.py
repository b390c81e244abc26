"""Logging setup for the fund tracker backend."""

import logging

from fund_tracker.config import LOG_LEVEL

CONSOLE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Attach a console handler to the package logger. Safe to call twice."""
    logger = logging.getLogger("fund_tracker")
    logger.setLevel(level.upper())
    logger.propagate = False

    # Clear existing handlers to avoid duplicates on reload
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    return logger

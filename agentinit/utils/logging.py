"""
Logging setup for the agentinit logger hierarchy.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "agentinit"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
    "RESET": "\033[0m",
}


class ColorFormatter(logging.Formatter):
    """Colors the level name for terminal output."""

    def format(self, record: logging.LogRecord) -> str:
        color = COLORS.get(record.levelname, COLORS["RESET"])
        original = record.levelname
        record.levelname = f"{color}{original}{COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """
    Configure the ``agentinit`` logger.

    Args:
        level: Level name for the console handler
        log_file: Optional rotating log file that always receives DEBUG output

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Repeated calls (tests, re-entrant CLI) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, level.upper(), logging.INFO))
    if console.stream.isatty():
        console.setFormatter(ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    else:
        console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    logger.debug("Logging initialized (level=%s)", level)
    return logger

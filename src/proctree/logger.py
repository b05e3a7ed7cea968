"""Loguru-based logging configuration."""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<level>{level}</level>: {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"


def setup_logger(log_level: str = "WARNING", log_file: str | None = None) -> None:
    """
    Configure the loguru logger for proctree.

    Diagnostics go to stderr so that stdout carries only results.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging to file
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=log_level,
        colorize=sys.stderr.isatty(),
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=log_level,
            rotation="10 MB",
            retention="7 days",
        )

    logger.debug(f"Logger initialized with level: {log_level}")

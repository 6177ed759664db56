#!/usr/bin/env python3
"""
Logging configuration for Winget-AutoUpdate.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def verbosity_to_level(verbose: int) -> str:
    """Map the CLI -v count to a loguru level name."""
    if verbose <= 0:
        return "INFO"
    elif verbose == 1:
        return "DEBUG"
    return "TRACE"


def setup_logging(log_file: Optional[Path] = None, log_level: str = "INFO") -> None:
    """
    Set up logging configuration using loguru.

    Every line goes to stderr and, when a log file is given, is appended to it
    with a timestamp.

    Args:
        log_file: Path of the append-only log file, or None for console only
        log_level: The logging level (TRACE, DEBUG, INFO, WARNING, ERROR)
    """
    # Remove default logger
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=log_level,
        colorize=True,
    )

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            mode="a",
            encoding="utf-8",
            rotation="10 MB",
            retention="4 weeks",
            level=log_level,
            format=FILE_FORMAT,
        )

    logger.debug(f"Logging initialized (level={log_level}, file={log_file})")


def log_banner(title: str) -> None:
    """Write a framed section title, used at the start and end of a run."""
    rule = "#" * 65
    logger.info(rule)
    logger.info(f"    {title}")
    logger.info(rule)

"""Logging configuration for the scoring engine using Loguru."""

import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

# Track if logging has been configured to prevent duplicate handlers
_logging_configured = False


def setup_logging(
    log_file: Optional[str] = None,
    level: str = "INFO",
    rotation: str = "50 MB",
    retention: str = "7 days",
    format_string: Optional[str] = None,
    force: bool = False,
    console_output: bool = True
):
    """
    Configure Loguru logging for the entire application.

    Args:
        log_file: Path to log file; no file sink when None
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        rotation: Log rotation size (e.g., "50 MB", "1 day")
        retention: Log retention period (e.g., "7 days", "30 days")
        format_string: Custom format string (uses Loguru format syntax)
        force: Force re-configuration even if already configured (default: False)
        console_output: Enable console logging (default: True)
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    # Remove all existing handlers to prevent duplicates
    logger.remove()

    if format_string is None:
        console_format = (
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )
        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} - "
            "{message}"
        )
    else:
        console_format = format_string
        file_format = format_string

    # stderr keeps stdout clean for JSON output from the CLI
    if console_output and sys.stderr is not None:
        logger.add(
            sys.stderr,
            level=level,
            format=console_format,
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=file_format,
            rotation=rotation,
            retention=retention,
            encoding="utf-8",
            backtrace=True,
            diagnose=False,
            enqueue=True
        )

    _suppress_third_party_logs()

    _logging_configured = True


def _suppress_third_party_logs():
    """Suppress verbose logging from third-party libraries."""
    suppress_loggers = {
        'matplotlib': 'WARNING',
        'numexpr': 'WARNING',
        'asyncio': 'WARNING',
    }

    for logger_name, level in suppress_loggers.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, level))

#!/usr/bin/env -S python3 -B -u
"""
Structured Logging for Mastodon Cleanup

This module configures the package logger with verbosity-dependent
formatting. Diagnostics go to the session's stderr writer so they are
duplicated into the log file when file logging is enabled.

Verbosity levels:
- 0: Only errors and warnings
- 1: Info messages
- 2: Debug messages (remote command lines)
- 3: Debug messages with timestamps
"""

import logging as std_logging
import sys
from typing import List, Optional, TextIO


PACKAGE_LOGGER = 'mastodon_cleanup'


def _level_for(verbose_level: int) -> int:
    if verbose_level <= 0:
        return std_logging.WARNING
    elif verbose_level == 1:
        return std_logging.INFO
    return std_logging.DEBUG


def _create_formatter(verbose_level: int) -> std_logging.Formatter:
    """Create appropriate formatter based on verbosity."""
    if verbose_level >= 3:
        return std_logging.Formatter(
            '%(asctime)s [%(name)s] %(levelname)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    elif verbose_level >= 2:
        return std_logging.Formatter('[%(name)s] %(levelname)s: %(message)s')
    else:
        return std_logging.Formatter('%(message)s')


def setup_logging(verbose_level: int = 0, stream: Optional[TextIO] = None) -> std_logging.Logger:
    """
    Setup logging for the entire application.

    Replaces any handler installed by a previous call, so the logger can be
    re-pointed at a tee writer once file logging starts.

    Args:
        verbose_level: Global verbosity level (0-3)
        stream: Output stream for log records (defaults to sys.stderr)

    Returns:
        The package logger
    """
    logger = std_logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_level_for(verbose_level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = std_logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(_create_formatter(verbose_level))
    logger.addHandler(handler)

    return logger


def log_command_execution(
    logger: std_logging.Logger,
    command: List[str],
    container: Optional[str] = None,
    success: Optional[bool] = None
) -> None:
    """Log a remote command line at debug level."""
    message = f"Executing: {' '.join(command)}"
    if container:
        message = f"[{container}] {message}"

    if success is not None:
        message += f" - {'SUCCESS' if success else 'FAILED'}"

    logger.debug(message)

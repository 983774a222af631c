"""Logging for bcr-archive.

Usage:
    >>> from bcr_archive.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Extracting %s", archive_name)

Console output goes to stderr (bare message for INFO); a rotating log file
is kept under ``~/.cache/bcr-archive/logs`` unless BCR_ARCHIVE_LOG_DIR
points elsewhere. LOG_LEVEL overrides the console level.
"""

from bcr_archive.logger.formatters import ConsoleFormatter
from bcr_archive.logger.runtime import (
    ROOT_LOGGER_NAME,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "ROOT_LOGGER_NAME",
    "ConsoleFormatter",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
]

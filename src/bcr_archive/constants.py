"""Centralized constants module for bcr-archive.

This module serves as the single source of truth for shared constants
across the bcr-archive codebase. Constants are organized by logical
categories and use typing.Final annotations to ensure immutability.

Usage:
    from bcr_archive.constants import MODULE_FILE_NAME
"""

from typing import Final

# =============================================================================
# Release Archive Constants
# =============================================================================

# Marker file whose presence confirms a correctly configured extraction
MODULE_FILE_NAME: Final[str] = "MODULE.bazel"

# Prefix for the per-fetch temporary directory
TEMP_DIR_PREFIX: Final[str] = "archive-"

# Source template location referenced in user-facing error messages
SOURCE_TEMPLATE_FILE: Final[str] = "source.template.json"
SOURCE_TEMPLATE_PATH: Final[str] = ".bcr/source.template.json"

# =============================================================================
# Network Constants
# =============================================================================

# Additional attempts after the first request (4 requests in total)
DEFAULT_RETRIES: Final[int] = 3

# Base delay unit for exponential backoff, in milliseconds
DEFAULT_BACKOFF_FACTOR_MS: Final[int] = 10_000

# Upper bound of the random jitter added to each backoff delay
BACKOFF_JITTER_RATIO: Final[float] = 0.2

# Per-attempt timeout, reset on every retry
DEFAULT_TIMEOUT_SECONDS: Final[int] = 10

# Connections per host for sessions created by ReleaseArchive.fetch
DEFAULT_MAX_CONCURRENT_DOWNLOADS: Final[int] = 3

# Streaming chunk size for downloads and decompression
CHUNK_SIZE: Final[int] = 8192

HTTP_NOT_FOUND: Final[int] = 404

# =============================================================================
# Environment Variables
# =============================================================================

ENV_BACKOFF_DELAY_FACTOR: Final[str] = "BACKOFF_DELAY_FACTOR"
ENV_INTEGRATION_TESTING: Final[str] = "INTEGRATION_TESTING"
ENV_GITHUB_API_ENDPOINT: Final[str] = "GITHUB_API_ENDPOINT"
ENV_LOG_DIR: Final[str] = "BCR_ARCHIVE_LOG_DIR"
ENV_LOG_LEVEL: Final[str] = "LOG_LEVEL"

# Config section and key names (settings INI file)
SECTION_NETWORK: Final[str] = "network"
KEY_RETRY_ATTEMPTS: Final[str] = "retry_attempts"
KEY_TIMEOUT_SECONDS: Final[str] = "timeout_seconds"
KEY_BACKOFF_DELAY_FACTOR: Final[str] = "backoff_delay_factor"
KEY_MAX_CONCURRENT_DOWNLOADS: Final[str] = "max_concurrent_downloads"

# =============================================================================
# Logging Constants
# =============================================================================

DEFAULT_LOG_LEVEL: Final[str] = "INFO"
DEFAULT_CONSOLE_LOG_LEVEL: Final[str] = "WARNING"

LOG_FILE_NAME: Final[str] = "bcr-archive.log"

# Maximum size for rotated log files (bytes)
LOG_ROTATION_THRESHOLD_BYTES: Final[int] = 1024 * 1024  # 1 MB

# Number of backup files to keep for rotated logs
LOG_BACKUP_COUNT: Final[int] = 3

# Console and file format strings used by the logger
LOG_CONSOLE_FORMAT: Final[str] = (
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
LOG_CONSOLE_DATE_FORMAT: Final[str] = "%H:%M:%S"
LOG_FILE_FORMAT: Final[str] = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(funcName)s:%(lineno)d - %(message)s"
)
LOG_FILE_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Color mapping for console output levels
LOG_COLORS: Final[dict[str, str]] = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[35m",  # Magenta
    "RESET": "\033[0m",
}

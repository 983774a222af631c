"""Default settings for the logging system.

Levels and the log file location come from constants, with environment
overrides for tests and CI runs.
"""

import os
from pathlib import Path

from bcr_archive.constants import (
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_LOG_LEVEL,
    ENV_LOG_DIR,
    ENV_LOG_LEVEL,
    LOG_FILE_NAME,
)

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_log_settings() -> tuple[str, str, Path]:
    """Load default console level, file level, and file path.

    Environment Variable Override:
        BCR_ARCHIVE_LOG_DIR: Overrides the log directory. Used during
        pytest runs to keep test logs out of the user cache directory.

        LOG_LEVEL: Overrides the console log level. Unknown values are
        ignored.

    Returns:
        Tuple of (console_level, file_level, log_path) where:
            - console_level: Log level for console output (default: WARNING)
            - file_level: Log level for file output (default: INFO)
            - log_path: Path to log file

    """
    console_level = DEFAULT_CONSOLE_LOG_LEVEL
    env_level = os.getenv(ENV_LOG_LEVEL, "").upper()
    if env_level in _VALID_LEVELS:
        console_level = env_level

    env_log_dir = os.getenv(ENV_LOG_DIR)
    if env_log_dir:
        log_path = Path(env_log_dir).expanduser() / LOG_FILE_NAME
    else:
        log_path = (
            Path.home() / ".cache" / "bcr-archive" / "logs" / LOG_FILE_NAME
        )

    return console_level, DEFAULT_LOG_LEVEL, log_path

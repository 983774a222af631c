"""Console formatter for bcr-archive.

INFO lines are progress messages for the person running the command and
are printed bare. Every other level gets a timestamp, the module name and
an ANSI-colored level name.
"""

import logging

from bcr_archive.constants import LOG_COLORS


class ConsoleFormatter(logging.Formatter):
    """Bare INFO messages, structured and colored for other levels."""

    def format(self, record: logging.LogRecord) -> str:
        """Format ``record`` without mutating it for other handlers."""
        if record.levelno == logging.INFO:
            return record.getMessage()

        color = LOG_COLORS.get(record.levelname)
        if color is None:
            return super().format(record)

        levelname = record.levelname
        record.levelname = f"{color}{levelname}{LOG_COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname

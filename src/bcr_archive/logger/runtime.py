"""Process-wide logging runtime.

Loggers only ever hold a QueueHandler; the console and rotating file
handlers sit behind a QueueListener thread so coroutines never block on
handler I/O. Handlers are attached to the ``bcr_archive`` logger alone and
module loggers reach them by propagation.
"""

import atexit
import logging
import queue
import sys
import threading
from dataclasses import dataclass, field
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path

from bcr_archive.constants import (
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_DATE_FORMAT,
    LOG_CONSOLE_FORMAT,
    LOG_FILE_DATE_FORMAT,
    LOG_FILE_FORMAT,
    LOG_ROTATION_THRESHOLD_BYTES,
)
from bcr_archive.logger.config import load_log_settings
from bcr_archive.logger.formatters import ConsoleFormatter

ROOT_LOGGER_NAME = "bcr_archive"


@dataclass
class _Runtime:
    lock: threading.Lock = field(default_factory=threading.Lock)
    listener: QueueListener | None = None
    console: logging.Handler | None = None


_runtime = _Runtime()


def _level(name: str, default: int) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


def _console_handler(level: str) -> logging.Handler:
    # stdout carries command output such as --print
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ConsoleFormatter(LOG_CONSOLE_FORMAT, datefmt=LOG_CONSOLE_DATE_FORMAT)
    )
    handler.setLevel(_level(level, logging.WARNING))
    return handler


def _file_handler(log_file: Path, level: str) -> logging.Handler | None:
    """Create the rotating file handler, or None if the path is unusable."""
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_ROTATION_THRESHOLD_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"bcr-archive: file logging disabled: {e}\n")
        return None
    handler.setFormatter(
        logging.Formatter(LOG_FILE_FORMAT, datefmt=LOG_FILE_DATE_FORMAT)
    )
    handler.setLevel(_level(level, logging.INFO))
    return handler


def _start(
    console_level: str,
    file_level: str,
    log_file: Path,
    enable_file_logging: bool,  # noqa: FBT001
) -> None:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(logging.DEBUG)
    root.propagate = False

    console = _console_handler(console_level)
    handlers = [console]
    if enable_file_logging:
        file_handler = _file_handler(log_file, file_level)
        if file_handler is not None:
            handlers.append(file_handler)

    log_queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    listener = QueueListener(
        log_queue, *handlers, respect_handler_level=True
    )
    listener.start()
    root.addHandler(QueueHandler(log_queue))

    _runtime.listener = listener
    _runtime.console = console


def setup_logging(
    name: str = ROOT_LOGGER_NAME,
    console_level: str | None = None,
    file_level: str | None = None,
    log_file: Path | None = None,
    enable_file_logging: bool = True,  # noqa: FBT001, FBT002
) -> logging.Logger:
    """Start the logging runtime once and return the named logger.

    Later calls only adjust the console level when one is given, so the
    CLI can raise verbosity after modules have created their loggers.

    Args:
        name: Logger name, typically __name__
        console_level: Console level name; defaults to LOG_LEVEL or WARNING
        file_level: File level name; defaults to INFO
        log_file: Rotating log file; defaults to the user cache directory
        enable_file_logging: Whether to write the log file at all

    Returns:
        Logger instance

    """
    with _runtime.lock:
        if _runtime.listener is None:
            default_console, default_file, default_path = load_log_settings()
            _start(
                console_level or default_console,
                file_level or default_file,
                log_file or default_path,
                enable_file_logging,
            )
        elif console_level is not None and _runtime.console is not None:
            _runtime.console.setLevel(
                _level(console_level, logging.WARNING)
            )

    return logging.getLogger(name)


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a module logger, starting the runtime on first use.

    Log calls use %-style arguments:
        >>> logger = get_logger(__name__)
        >>> logger.info("Downloading %s", url)

    """
    return setup_logging(name=name)


def shutdown_logging() -> None:
    """Drain queued records and detach all handlers.

    Registered with atexit; tests call it to start from a clean slate.
    """
    with _runtime.lock:
        listener = _runtime.listener
        if listener is None:
            return
        # stop() processes every record still in the queue
        listener.stop()
        for handler in listener.handlers:
            handler.close()

        root = logging.getLogger(ROOT_LOGGER_NAME)
        for handler in root.handlers[:]:
            if isinstance(handler, QueueHandler):
                root.removeHandler(handler)

        _runtime.listener = None
        _runtime.console = None


atexit.register(shutdown_logging)

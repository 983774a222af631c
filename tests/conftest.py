"""Pytest configuration and fixtures for bcr-archive tests."""

import logging
import os
import tempfile
from pathlib import Path

import pytest

# Keep test logs out of the user cache directory; must run before any
# bcr_archive module creates its logger.
os.environ.setdefault(
    "BCR_ARCHIVE_LOG_DIR",
    str(Path(tempfile.gettempdir()) / "bcr-archive-test-logs"),
)


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Enable log propagation for all loggers during tests.

    This allows pytest's caplog fixture to capture logs from the
    bcr_archive loggers, whose root is created with propagate=False.
    """
    original_propagation = {}
    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith("bcr_archive"):
            logger = logging.getLogger(name)
            original_propagation[name] = logger.propagate
            logger.propagate = True

    yield

    for name, propagate_value in original_propagation.items():
        logger = logging.getLogger(name)
        logger.propagate = propagate_value


@pytest.fixture(autouse=True)
def clean_fetch_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove fetch-related environment variables from the test process."""
    for name in (
        "BACKOFF_DELAY_FACTOR",
        "INTEGRATION_TESTING",
        "GITHUB_API_ENDPOINT",
    ):
        monkeypatch.delenv(name, raising=False)

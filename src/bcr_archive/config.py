"""Fetch configuration for release archive downloads.

Network settings are passed to the downloader as an explicit
``FetchConfig`` instead of being read from ambient state inside the
component. Two loaders are provided: ``from_env`` for the process
environment (CI and integration tests) and ``from_file`` for an INI
settings file with a ``[network]`` section.
"""

import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from bcr_archive.constants import (
    DEFAULT_BACKOFF_FACTOR_MS,
    DEFAULT_MAX_CONCURRENT_DOWNLOADS,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    ENV_BACKOFF_DELAY_FACTOR,
    ENV_GITHUB_API_ENDPOINT,
    ENV_INTEGRATION_TESTING,
    KEY_BACKOFF_DELAY_FACTOR,
    KEY_MAX_CONCURRENT_DOWNLOADS,
    KEY_RETRY_ATTEMPTS,
    KEY_TIMEOUT_SECONDS,
    SECTION_NETWORK,
)
from bcr_archive.exceptions import ReleaseArchiveError
from bcr_archive.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchConfig:
    """Retry, timeout and redirect settings for archive downloads.

    Attributes:
        retries: Additional attempts after the first request
        backoff_factor_ms: Base delay unit for exponential backoff
        timeout_seconds: Per-attempt timeout, reset on every retry
        redirect_endpoint: ``scheme://host:port`` of a stand-in server that
            receives every download instead of the original host
        max_concurrent: Connections a shared session opens per host

    """

    retries: int = DEFAULT_RETRIES
    backoff_factor_ms: int = DEFAULT_BACKOFF_FACTOR_MS
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    redirect_endpoint: str | None = None
    max_concurrent: int = DEFAULT_MAX_CONCURRENT_DOWNLOADS

    def __post_init__(self) -> None:
        """Validate value ranges and the redirect endpoint shape."""
        if self.retries < 0:
            msg = f"retries must be >= 0, got {self.retries}"
            raise ReleaseArchiveError.configuration(msg)
        if self.timeout_seconds <= 0:
            msg = f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            raise ReleaseArchiveError.configuration(msg)
        if self.max_concurrent < 1:
            msg = f"max_concurrent must be >= 1, got {self.max_concurrent}"
            raise ReleaseArchiveError.configuration(msg)
        if self.redirect_endpoint is not None:
            parts = urlsplit(self.redirect_endpoint)
            if not parts.scheme or not parts.hostname:
                msg = (
                    "Redirect endpoint must look like scheme://host:port, "
                    f"got '{self.redirect_endpoint}'"
                )
                raise ReleaseArchiveError.configuration(msg)

    @property
    def backoff_factor_seconds(self) -> float:
        """Backoff factor converted to seconds for asyncio.sleep."""
        return self.backoff_factor_ms / 1000

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> "FetchConfig":
        """Build configuration from environment variables.

        ``BACKOFF_DELAY_FACTOR`` overrides the backoff factor in
        milliseconds; empty, zero or non-numeric values fall back to the
        default. When ``INTEGRATION_TESTING`` is set, ``GITHUB_API_ENDPOINT``
        must name the stand-in server all downloads are redirected to.

        Args:
            environ: Environment mapping (defaults to os.environ)

        Returns:
            FetchConfig built from the environment

        Raises:
            ReleaseArchiveError: If integration testing is enabled without
                an endpoint

        """
        env = os.environ if environ is None else environ

        backoff = _parse_backoff(env.get(ENV_BACKOFF_DELAY_FACTOR))

        redirect = None
        if env.get(ENV_INTEGRATION_TESTING):
            redirect = env.get(ENV_GITHUB_API_ENDPOINT)
            if not redirect:
                msg = (
                    f"{ENV_INTEGRATION_TESTING} is set but "
                    f"{ENV_GITHUB_API_ENDPOINT} is missing"
                )
                raise ReleaseArchiveError.configuration(msg)
            logger.debug("Redirecting archive downloads to %s", redirect)

        return cls(backoff_factor_ms=backoff, redirect_endpoint=redirect)

    @classmethod
    def from_file(cls, settings_file: Path) -> "FetchConfig":
        """Build configuration from an INI settings file.

        Reads ``retry_attempts``, ``timeout_seconds``,
        ``backoff_delay_factor`` and ``max_concurrent_downloads`` from the
        ``[network]`` section. A missing
        file or missing keys fall back to defaults.

        Args:
            settings_file: Path to the INI file

        Returns:
            FetchConfig built from the file

        Raises:
            ReleaseArchiveError: If the file cannot be parsed or holds
                non-integer values

        """
        config = configparser.ConfigParser(
            inline_comment_prefixes=("#", ";"),
            interpolation=None,
        )
        if not settings_file.exists():
            logger.debug(
                "Settings file not found, using defaults: %s", settings_file
            )
            return cls()

        try:
            config.read(settings_file, encoding="utf-8")
        except configparser.Error as e:
            msg = f"Invalid settings file {settings_file}: {e}"
            raise ReleaseArchiveError.configuration(msg) from e

        if not config.has_section(SECTION_NETWORK):
            return cls()

        network = config[SECTION_NETWORK]
        try:
            return cls(
                retries=network.getint(KEY_RETRY_ATTEMPTS, DEFAULT_RETRIES),
                timeout_seconds=network.getint(
                    KEY_TIMEOUT_SECONDS, DEFAULT_TIMEOUT_SECONDS
                ),
                backoff_factor_ms=network.getint(
                    KEY_BACKOFF_DELAY_FACTOR, DEFAULT_BACKOFF_FACTOR_MS
                ),
                max_concurrent=network.getint(
                    KEY_MAX_CONCURRENT_DOWNLOADS,
                    DEFAULT_MAX_CONCURRENT_DOWNLOADS,
                ),
            )
        except ValueError as e:
            msg = f"Invalid [{SECTION_NETWORK}] value in {settings_file}: {e}"
            raise ReleaseArchiveError.configuration(msg) from e


def _parse_backoff(raw: str | None) -> int:
    """Parse the backoff override, falling back on unusable values."""
    if not raw:
        return DEFAULT_BACKOFF_FACTOR_MS
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            "Ignoring invalid %s=%r", ENV_BACKOFF_DELAY_FACTOR, raw
        )
        return DEFAULT_BACKOFF_FACTOR_MS
    return value if value > 0 else DEFAULT_BACKOFF_FACTOR_MS

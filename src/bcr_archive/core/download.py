"""Download service for release archives.

Streams a release archive to disk with retry logic. Besides network
errors and 5xx responses (the standard retry conditions for an idempotent
GET), HTTP 404 is retried too: automated release workflows often upload
the archive shortly after the release event fires, so the asset may
appear within a minute or so.

Exponential backoff with 3 retries and the default 10 second factor waits
20s, 40s and 80s (plus jitter) between the four attempts.
"""

import asyncio
import contextlib
import random
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

import aiofiles
import aiohttp

from bcr_archive.config import FetchConfig
from bcr_archive.constants import (
    BACKOFF_JITTER_RATIO,
    CHUNK_SIZE,
    HTTP_NOT_FOUND,
)
from bcr_archive.core.http_session import build_timeout
from bcr_archive.exceptions import ReleaseArchiveError
from bcr_archive.logger import get_logger

logger = get_logger(__name__)

# Failures where the request went out but no usable response came back
NETWORK_ERRORS = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    TimeoutError,
)


def exponential_delay(
    retry_number: int,
    factor_seconds: float,
    jitter: float | None = None,
) -> float:
    """Compute the wait before a retry.

    Args:
        retry_number: 1-based retry count
        factor_seconds: Base delay unit
        jitter: Fraction in [0, 1) scaling the random extra delay
            (random when not given)

    Returns:
        Delay in seconds: ``2**retry_number * factor`` plus up to 20%

    """
    if jitter is None:
        jitter = random.random()  # noqa: S311
    delay = 2**retry_number * factor_seconds
    return delay + delay * BACKOFF_JITTER_RATIO * jitter


def is_retryable_status(status: int) -> bool:
    """Check whether an HTTP error status should be retried.

    5xx is the standard condition for idempotent requests; 404 is retried
    because the archive may still be uploading.
    """
    return status == HTTP_NOT_FOUND or 500 <= status <= 599  # noqa: PLR2004


def redirect_url(url: str, endpoint: str) -> str:
    """Point a URL at another server, keeping its path and query.

    Args:
        url: Original download URL
        endpoint: ``scheme://host:port`` of the replacement server

    Returns:
        URL with scheme, host and port taken from the endpoint

    """
    source = urlsplit(url)
    target = urlsplit(endpoint)
    return urlunsplit(
        (target.scheme, target.netloc, source.path, source.query, "")
    )


class ArchiveDownloader:
    """Streams release archives to disk, retrying transient failures."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: FetchConfig | None = None,
    ) -> None:
        """Initialize downloader with HTTP session and fetch settings.

        Args:
            session: aiohttp session for downloads
            config: Retry, timeout and redirect settings
                (defaults to FetchConfig())

        """
        self.session = session
        self.config = config or FetchConfig()

    def resolve_url(self, url: str) -> str:
        """Apply the configured redirect endpoint, if any."""
        if self.config.redirect_endpoint:
            return redirect_url(url, self.config.redirect_endpoint)
        return url

    async def download(self, url: str, dest: Path) -> None:
        """Download a release archive to ``dest``.

        The destination is created or overwritten. The body is streamed in
        chunks and the call returns once the file is fully written and
        closed.

        Args:
            url: Archive URL
            dest: Destination file path

        Raises:
            ReleaseArchiveError: DOWNLOAD_FAILED for an HTTP error status,
                NO_RESPONSE when retries are exhausted on network errors,
                REQUEST_FAILED when the request cannot be dispatched
            OSError: If writing the file fails

        """
        target = self.resolve_url(url)
        attempts = self.config.retries + 1

        for attempt in range(1, attempts + 1):
            try:
                await self._attempt(target, dest)
            except aiohttp.ClientResponseError as e:
                self._remove_partial(dest)
                if not is_retryable_status(e.status) or attempt == attempts:
                    logger.error(
                        "Download of %s failed with status %s",
                        target,
                        e.status,
                    )
                    raise ReleaseArchiveError.download_failed(
                        url, e.status
                    ) from e
                failure = f"status {e.status}"
            except NETWORK_ERRORS as e:
                self._remove_partial(dest)
                if attempt == attempts:
                    logger.error(
                        "Download of %s failed after %s attempts: %s",
                        target,
                        attempts,
                        e,
                    )
                    raise ReleaseArchiveError.no_response(url) from e
                failure = str(e) or type(e).__name__
            except (aiohttp.ClientError, ValueError) as e:
                self._remove_partial(dest)
                raise ReleaseArchiveError.request_failed(url, str(e)) from e
            else:
                logger.debug("Download completed: %s", dest)
                return

            logger.warning(
                "Attempt %s/%s failed for %s: %s",
                attempt,
                attempts,
                target,
                failure,
            )
            backoff = exponential_delay(
                attempt, self.config.backoff_factor_seconds
            )
            logger.info("Retrying in %.1f seconds...", backoff)
            await asyncio.sleep(backoff)

    async def _attempt(self, url: str, dest: Path) -> None:
        """Make one GET request and stream the body to ``dest``."""
        async with self.session.get(
            url, timeout=build_timeout(self.config)
        ) as response:
            response.raise_for_status()
            total = int(response.headers.get("Content-Length", 0))

            logger.debug("Downloading file: %s", dest.name)
            logger.debug("   URL: %s", url)
            if total > 0:
                logger.debug("   Size: %s bytes", f"{total:,}")

            async with aiofiles.open(dest, mode="wb") as f:
                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    if chunk:
                        await f.write(chunk)

    def _remove_partial(self, dest: Path) -> None:
        if dest.exists():
            logger.debug("Removing partial download: %s", dest)
            with contextlib.suppress(OSError):
                dest.unlink()

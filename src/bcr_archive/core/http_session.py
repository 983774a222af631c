"""aiohttp session and timeout construction for archive downloads."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiohttp

from bcr_archive.config import FetchConfig


def build_timeout(config: FetchConfig) -> aiohttp.ClientTimeout:
    """Build the timeout applied to each download attempt.

    Connecting may take ``timeout_seconds``, a stalled read three times
    that, and a whole attempt sixty times that.
    """
    seconds = config.timeout_seconds
    return aiohttp.ClientTimeout(
        total=seconds * 60,
        sock_read=seconds * 3,
        sock_connect=seconds,
    )


@asynccontextmanager
async def create_http_session(
    config: FetchConfig,
) -> AsyncIterator[aiohttp.ClientSession]:
    """Open a session sized by ``config.max_concurrent``.

    Yields:
        aiohttp.ClientSession closed when the context exits

    """
    connector = aiohttp.TCPConnector(limit_per_host=config.max_concurrent)
    async with aiohttp.ClientSession(
        connector=connector, timeout=build_timeout(config)
    ) as session:
        yield session

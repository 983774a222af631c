"""Pytest configuration and fixtures for download module tests."""

from collections.abc import Callable, Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from tests.core.conftest import async_chunk_gen

ResponseFactory = Callable[..., AsyncMock]


@pytest.fixture
def mock_session() -> MagicMock:
    """Provide a mock aiohttp.ClientSession for download tests."""
    return MagicMock(spec=aiohttp.ClientSession)


@pytest.fixture
def make_response() -> ResponseFactory:
    """Factory for mock responses usable as async context managers.

    Returns:
        Callable ``(status=200, chunks=None) -> AsyncMock``

    """

    def factory(
        status: int = 200, chunks: list[bytes] | None = None
    ) -> AsyncMock:
        body = chunks if chunks is not None else [b"archive bytes"]
        response = AsyncMock()
        response.__aenter__.return_value = response
        response.__aexit__.return_value = None
        response.status = status
        response.headers = {"Content-Length": str(sum(map(len, body)))}
        response.content.iter_chunked = lambda size: async_chunk_gen(body)
        if status >= 400:
            response.raise_for_status = MagicMock(
                side_effect=aiohttp.ClientResponseError(
                    request_info=MagicMock(),
                    history=(),
                    status=status,
                    message="error",
                )
            )
        else:
            response.raise_for_status = MagicMock()
        return response

    return factory


@pytest.fixture
def mock_sleep() -> Iterator[AsyncMock]:
    """Replace asyncio.sleep in the download module to skip real delays."""
    with patch(
        "bcr_archive.core.download.asyncio.sleep", new_callable=AsyncMock
    ) as sleep:
        yield sleep


@pytest.fixture
def fixed_jitter() -> Iterator[MagicMock]:
    """Make backoff jitter deterministic (half of the maximum)."""
    with patch(
        "bcr_archive.core.download.random.random", return_value=0.5
    ) as jitter:
        yield jitter

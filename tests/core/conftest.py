"""Pytest configuration and fixtures for core module tests.

Provides helpers to build real release archives on disk and to simulate
streamed HTTP bodies.
"""

import io
import lzma
import tarfile
import zipfile
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest

MODULE_CONTENT = (
    b'module(\n    name = "rules_foo",\n    version = "1.2.3",\n)\n\n'
    b'bazel_dep(name = "platforms", version = "0.0.10")\n'
)
STRIP_PREFIX = "rules_foo-1.2.3"

ArchiveFactory = Callable[..., Path]


# =============================================================================
# Async Helpers
# =============================================================================


async def async_chunk_gen(
    chunks: list[bytes],
) -> AsyncGenerator[bytes, None]:
    """Async generator yielding chunks for simulating HTTP responses."""
    for chunk in chunks:
        yield chunk


async def collect(source: AsyncGenerator[bytes, None]) -> bytes:
    """Concatenate everything an async byte stream yields."""
    return b"".join([chunk async for chunk in source])


# =============================================================================
# Archive Builders
# =============================================================================


def default_files(strip_prefix: str = STRIP_PREFIX) -> dict[str, bytes]:
    """Typical ruleset layout wrapped in a top-level directory."""
    root = f"{strip_prefix}/" if strip_prefix else ""
    return {
        f"{root}MODULE.bazel": MODULE_CONTENT,
        f"{root}BUILD.bazel": b"",
        f"{root}foo/defs.bzl": b'"""Public API."""\n',
    }


def tar_bytes(files: dict[str, bytes]) -> bytes:
    """Build an uncompressed tar stream from name -> content."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as archive:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def write_archive(path: Path, files: dict[str, bytes]) -> Path:
    """Write ``files`` into an archive whose format follows the suffix."""
    name = path.name
    if name.endswith(".tar.gz"):
        with tarfile.open(path, mode="w:gz") as archive:
            for member, content in files.items():
                info = tarfile.TarInfo(member)
                info.size = len(content)
                archive.addfile(info, io.BytesIO(content))
    elif name.endswith(".tar.xz"):
        path.write_bytes(lzma.compress(tar_bytes(files)))
    elif name.endswith(".zip"):
        with zipfile.ZipFile(path, mode="w") as archive:
            for member, content in files.items():
                archive.writestr(member, content)
    else:
        # Unsupported formats only need to exist on disk
        path.write_bytes(tar_bytes(files))
    return path


@pytest.fixture
def make_archive(tmp_path: Path) -> ArchiveFactory:
    """Factory writing an archive into a fresh directory under tmp_path.

    Returns:
        Callable ``(filename, files=None) -> Path``

    """
    counter = iter(range(1_000))

    def factory(filename: str, files: dict[str, bytes] | None = None) -> Path:
        directory = tmp_path / f"archive-{next(counter)}"
        directory.mkdir()
        return write_archive(
            directory / filename,
            default_files() if files is None else files,
        )

    return factory

"""Release archive extraction.

Archives are dispatched on their file-name suffix:

| suffix    | strategy                                           |
|-----------|----------------------------------------------------|
| .tar.gz   | tarfile (gzip) in a worker thread                  |
| .tar.xz   | file reader -> StreamTransform -> TarStreamSink     |
| .zip      | zipfile in a worker thread                         |

The ``.tar.xz`` path streams: compressed bytes are read from disk,
decompressed by a pluggable codec and fed into a tar unpacker running in a
worker thread. Extraction is complete only once that unpacker reports it
has written every entry; the codec finishing first is not enough, since
entries may still be buffered between the two.
"""

import asyncio
import gzip
import lzma
import queue
import tarfile
import threading
import zipfile
import zlib
from collections.abc import AsyncIterator
from enum import Enum
from pathlib import Path
from typing import Protocol

import aiofiles

from bcr_archive.core.decompress import StreamTransform, XzTransform
from bcr_archive.exceptions import ReleaseArchiveError
from bcr_archive.logger import get_logger

logger = get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024
MAX_PENDING_CHUNKS = 64
_PUT_POLL_SECONDS = 0.1

EXTRACTION_ERRORS = (
    tarfile.TarError,
    zipfile.BadZipFile,
    lzma.LZMAError,
    gzip.BadGzipFile,
    zlib.error,
    EOFError,
)


class ArchiveFormat(Enum):
    """Supported release archive formats, in dispatch precedence."""

    TAR_GZ = ".tar.gz"
    TAR_XZ = ".tar.xz"
    ZIP = ".zip"


def detect_format(archive_path: Path) -> ArchiveFormat:
    """Select the extraction strategy from the file-name suffix.

    Args:
        archive_path: Path of the downloaded archive

    Returns:
        Matching archive format; the first match in enum order wins

    Raises:
        ReleaseArchiveError: UNSUPPORTED_FORMAT carrying the dotted suffix
            after the first name segment (e.g. ``tar.bz2``)

    """
    name = archive_path.name
    for archive_format in ArchiveFormat:
        if name.endswith(archive_format.value):
            return archive_format

    extension = ".".join(name.split(".")[1:])
    raise ReleaseArchiveError.unsupported_format(extension)


class ArchiveSink(Protocol):
    """Consumer of decompressed archive bytes."""

    async def write(self, chunk: bytes) -> None: ...

    async def end(self) -> None: ...

    async def finished(self) -> None: ...

    async def abort(self) -> None: ...


class _ChunkPipe:
    """Blocking file-like reader over a queue of byte chunks.

    ``None`` in the queue marks end of input.
    """

    def __init__(self, chunks: "queue.Queue[bytes | None]") -> None:
        self._chunks = chunks
        self._buffer = bytearray()
        self._eof = False

    def read(self, size: int = -1) -> bytes:
        while not self._eof and (size < 0 or len(self._buffer) < size):
            chunk = self._chunks.get()
            if chunk is None:
                self._eof = True
            else:
                self._buffer += chunk

        if size < 0 or size > len(self._buffer):
            size = len(self._buffer)
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


class TarStreamSink:
    """Unpacks an uncompressed tar byte stream into a directory.

    The tar reader runs in a worker thread and pulls chunks from a bounded
    queue. ``finished()`` resolves only after every entry has been written
    to disk and re-raises any unpacking error.
    """

    def __init__(
        self, dest: Path, max_pending: int = MAX_PENDING_CHUNKS
    ) -> None:
        """Initialize sink scoped to ``dest``.

        Args:
            dest: Directory entries are extracted into
            max_pending: Chunks buffered before ``write`` waits

        """
        self.dest = dest
        self._chunks: queue.Queue[bytes | None] = queue.Queue(
            maxsize=max_pending
        )
        self._done = threading.Event()
        self._error: BaseException | None = None
        self._task: asyncio.Future[None] | None = None

    async def write(self, chunk: bytes) -> None:
        """Queue a chunk of tar data for unpacking.

        Raises:
            tarfile.TarError: If unpacking already failed

        """
        self._ensure_started()
        if self._error is not None:
            raise self._error
        await asyncio.to_thread(self._put, chunk)

    async def end(self) -> None:
        """Signal that no more data will be written."""
        self._ensure_started()
        await asyncio.to_thread(self._put, None)

    async def finished(self) -> None:
        """Wait until all entries are on disk.

        Raises:
            tarfile.TarError: If unpacking failed

        """
        self._ensure_started()
        await self._task

    async def abort(self) -> None:
        """Stop the unpacker after an upstream failure, ignoring its result."""
        if self._task is None:
            return
        await self.end()
        await asyncio.gather(self._task, return_exceptions=True)

    def _ensure_started(self) -> None:
        if self._task is None:
            self._task = asyncio.ensure_future(asyncio.to_thread(self._unpack))

    def _put(self, item: bytes | None) -> None:
        # Chunks arriving after the unpacker stopped (tar end-of-archive
        # padding, or a failure reported via finished()) are dropped.
        while not self._done.is_set():
            try:
                self._chunks.put(item, timeout=_PUT_POLL_SECONDS)
            except queue.Full:
                continue
            return

    def _unpack(self) -> None:
        try:
            with tarfile.open(
                fileobj=_ChunkPipe(self._chunks), mode="r|"
            ) as archive:
                archive.extractall(self.dest, filter="data")
        except BaseException as e:
            self._error = e
            raise
        finally:
            self._done.set()


async def read_file_chunks(
    path: Path, chunk_size: int = READ_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """Yield the raw bytes of a file in chunks."""
    async with aiofiles.open(path, mode="rb") as f:
        while chunk := await f.read(chunk_size):
            yield chunk


async def stream_extract(
    archive_path: Path, sink: ArchiveSink, transform: StreamTransform
) -> None:
    """Pipe an archive through a decompression codec into a sink.

    Completes only after the sink reports that it finished writing, which
    always happens after the codec has produced its last chunk.

    Args:
        archive_path: Compressed archive on disk
        sink: Consumer of decompressed bytes
        transform: Decompression codec

    """
    try:
        async for chunk in transform.transform(read_file_chunks(archive_path)):
            await sink.write(chunk)
        await sink.end()
    except BaseException:
        await sink.abort()
        raise

    await sink.finished()


def _extract_tar_gz(archive_path: Path, dest: Path) -> None:
    with tarfile.open(archive_path, mode="r:gz") as archive:
        archive.extractall(dest, filter="data")


def _extract_zip(archive_path: Path, dest: Path) -> None:
    with zipfile.ZipFile(archive_path) as archive:
        archive.extractall(dest)


async def extract_archive(
    archive_path: Path,
    dest: Path,
    transform: StreamTransform | None = None,
) -> None:
    """Extract a release archive into ``dest``.

    Args:
        archive_path: Downloaded archive
        dest: Extraction directory
        transform: Codec for ``.tar.xz`` (defaults to XzTransform)

    Raises:
        ReleaseArchiveError: UNSUPPORTED_FORMAT for unknown suffixes,
            EXTRACTION_FAILED for corrupt or truncated archives

    """
    archive_format = detect_format(archive_path)
    logger.debug(
        "Extracting %s (%s) into %s",
        archive_path.name,
        archive_format.name,
        dest,
    )

    try:
        if archive_format is ArchiveFormat.TAR_XZ:
            await stream_extract(
                archive_path, TarStreamSink(dest), transform or XzTransform()
            )
        elif archive_format is ArchiveFormat.TAR_GZ:
            await asyncio.to_thread(_extract_tar_gz, archive_path, dest)
        else:
            await asyncio.to_thread(_extract_zip, archive_path, dest)
    except EXTRACTION_ERRORS as e:
        logger.exception("Failed to extract %s", archive_path.name)
        raise ReleaseArchiveError.extraction_failed(
            archive_path.name, str(e)
        ) from e

    logger.debug("Extraction completed: %s", archive_path.name)

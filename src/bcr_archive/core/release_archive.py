"""Release archive lifecycle: fetch, extract, locate MODULE.bazel, clean up.

Typical use::

    archive = await ReleaseArchive.fetch(url, strip_prefix, config=config)
    try:
        module_file = await archive.extract_module_file()
        content = module_file.read_text()
    finally:
        archive.cleanup()

Each fetch downloads into its own ``archive-*`` temporary directory and
extracts next to the downloaded file, so deleting that directory and the
file reclaims everything. Cleanup is never automatic.
"""

import posixpath
import shutil
import tempfile
from pathlib import Path
from urllib.parse import urlsplit

import aiohttp

from bcr_archive.config import FetchConfig
from bcr_archive.constants import TEMP_DIR_PREFIX
from bcr_archive.core.decompress import StreamTransform
from bcr_archive.core.download import ArchiveDownloader
from bcr_archive.core.extract import extract_archive
from bcr_archive.core.http_session import create_http_session
from bcr_archive.core.module_file import ModuleFile, locate_module_file
from bcr_archive.exceptions import ReleaseArchiveError
from bcr_archive.logger import get_logger

logger = get_logger(__name__)

_CONSTRUCT_KEY = object()


def archive_filename(url: str) -> str:
    """Return the final path segment of a URL, ignoring any query."""
    return posixpath.basename(urlsplit(url).path)


class ReleaseArchive:
    """A downloaded release archive and, once extracted, its contents."""

    def __init__(
        self,
        disk_path: Path,
        strip_prefix: str,
        *,
        _key: object = None,
    ) -> None:
        """Bind an already downloaded archive. Use ``fetch`` instead.

        Raises:
            TypeError: When called directly rather than through ``fetch``

        """
        if _key is not _CONSTRUCT_KEY:
            msg = "Use ReleaseArchive.fetch to create ReleaseArchive instances"
            raise TypeError(msg)
        self._disk_path = disk_path
        self._strip_prefix = strip_prefix
        self._extract_dir: Path | None = None

    @classmethod
    async def fetch(
        cls,
        url: str,
        strip_prefix: str,
        *,
        session: aiohttp.ClientSession | None = None,
        config: FetchConfig | None = None,
    ) -> "ReleaseArchive":
        """Download a release archive into a fresh temporary directory.

        Args:
            url: Archive URL; its last path segment names the local file
            strip_prefix: Directory inside the archive holding MODULE.bazel
            session: Session to reuse (a private one is created otherwise)
            config: Retry, timeout and redirect settings
                (defaults to FetchConfig())

        Returns:
            ReleaseArchive bound to the downloaded file

        Raises:
            ReleaseArchiveError: If the URL has no file name or the download
                fails; the temporary directory is removed first

        """
        filename = archive_filename(url)
        if not filename:
            msg = f"Cannot derive a release archive file name from {url}"
            raise ReleaseArchiveError.configuration(msg)

        config = config or FetchConfig()
        temp_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
        disk_path = temp_dir / filename
        logger.info("Downloading release archive %s", url)

        try:
            if session is None:
                async with create_http_session(config) as own_session:
                    await ArchiveDownloader(own_session, config).download(
                        url, disk_path
                    )
            else:
                await ArchiveDownloader(session, config).download(
                    url, disk_path
                )
        except BaseException:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise

        return cls(disk_path, strip_prefix, _key=_CONSTRUCT_KEY)

    @property
    def disk_path(self) -> Path:
        """Absolute path of the downloaded archive file."""
        return self._disk_path

    @property
    def strip_prefix(self) -> str:
        """Strip prefix supplied by the caller."""
        return self._strip_prefix

    @property
    def extract_dir(self) -> Path | None:
        """Extraction directory, or None before extraction."""
        return self._extract_dir

    async def extract_module_file(
        self, transform: StreamTransform | None = None
    ) -> ModuleFile:
        """Extract the archive next to itself and locate MODULE.bazel.

        Args:
            transform: Decompression codec for ``.tar.xz`` archives
                (defaults to XzTransform)

        Returns:
            Handle to the extracted MODULE.bazel

        Raises:
            RuntimeError: If the archive was already extracted
            ReleaseArchiveError: UNSUPPORTED_FORMAT, EXTRACTION_FAILED or
                MISSING_MODULE_FILE

        """
        if self._extract_dir is not None:
            msg = f"Release archive {self._disk_path.name} already extracted"
            raise RuntimeError(msg)

        self._extract_dir = self._disk_path.parent
        logger.info("Extracting release archive %s", self._disk_path.name)
        await extract_archive(self._disk_path, self._extract_dir, transform)

        return locate_module_file(self._extract_dir, self._strip_prefix)

    def cleanup(self) -> None:
        """Delete the release archive and extracted contents.

        Safe to call before extraction and more than once.
        """
        logger.debug("Cleaning up release archive %s", self._disk_path)
        self._disk_path.unlink(missing_ok=True)

        if self._extract_dir is not None:
            shutil.rmtree(self._extract_dir, ignore_errors=True)

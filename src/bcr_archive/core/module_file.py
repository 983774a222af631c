"""Locating MODULE.bazel inside an extracted release archive."""

import posixpath
from dataclasses import dataclass
from pathlib import Path

from bcr_archive.constants import MODULE_FILE_NAME
from bcr_archive.exceptions import ReleaseArchiveError
from bcr_archive.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModuleFile:
    """Handle to a MODULE.bazel file on disk.

    Contents are not parsed here; the handle only guarantees the path
    existed when it was handed out.
    """

    path: Path

    def read_text(self) -> str:
        """Return the file contents as UTF-8 text."""
        return self.path.read_text(encoding="utf-8")

    def read_bytes(self) -> bytes:
        """Return the raw file contents."""
        return self.path.read_bytes()


def _relative_module_path(strip_prefix: str) -> str:
    # A leading "/" still means the archive root, never the host root
    return posixpath.normpath(
        posixpath.join(strip_prefix.lstrip("/"), MODULE_FILE_NAME)
    )


def module_path_in_archive(strip_prefix: str) -> str:
    """Return the archive-relative path, e.g. ``./rules_foo/MODULE.bazel``."""
    return f"./{_relative_module_path(strip_prefix)}"


def locate_module_file(extract_dir: Path, strip_prefix: str) -> ModuleFile:
    """Find MODULE.bazel under the strip prefix of an extracted archive.

    Args:
        extract_dir: Directory the archive was unpacked into
        strip_prefix: Top-level directory the archive wraps its contents in

    Returns:
        Handle bound to the absolute path of MODULE.bazel

    Raises:
        ReleaseArchiveError: MISSING_MODULE_FILE naming the path looked up
            and echoing the configured strip prefix

    """
    relative = _relative_module_path(strip_prefix)
    module_path = extract_dir / relative
    # ".." segments in the prefix must not leave the extraction directory
    if relative.startswith("../") or not module_path.is_file():
        logger.debug("No %s at %s", MODULE_FILE_NAME, module_path)
        raise ReleaseArchiveError.missing_module_file(
            module_path_in_archive(strip_prefix), strip_prefix
        )

    logger.debug("Found %s at %s", MODULE_FILE_NAME, module_path)
    return ModuleFile(module_path)

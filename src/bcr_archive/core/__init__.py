"""Core fetch-and-extract services for release archives."""

from bcr_archive.core.decompress import StreamTransform, XzTransform
from bcr_archive.core.download import ArchiveDownloader
from bcr_archive.core.extract import (
    ArchiveFormat,
    TarStreamSink,
    detect_format,
    extract_archive,
    stream_extract,
)
from bcr_archive.core.module_file import ModuleFile, locate_module_file
from bcr_archive.core.release_archive import ReleaseArchive

__all__ = [
    "ArchiveDownloader",
    "ArchiveFormat",
    "ModuleFile",
    "ReleaseArchive",
    "StreamTransform",
    "TarStreamSink",
    "XzTransform",
    "detect_format",
    "extract_archive",
    "locate_module_file",
    "stream_extract",
]

"""Exception classes for bcr-archive operations.

Every failure surfaced to a caller is a ``ReleaseArchiveError``. The
``kind`` attribute tags the failure and only the fields relevant to that
kind are populated, so callers branch on ``error.kind`` rather than on
exception subclasses.
"""

from enum import Enum

from bcr_archive.constants import (
    HTTP_NOT_FOUND,
    MODULE_FILE_NAME,
    SOURCE_TEMPLATE_FILE,
    SOURCE_TEMPLATE_PATH,
)


class ArchiveErrorKind(Enum):
    """Failure kinds raised while fetching and extracting an archive."""

    UNSUPPORTED_FORMAT = "unsupported_format"
    DOWNLOAD_FAILED = "download_failed"
    NO_RESPONSE = "no_response"
    REQUEST_FAILED = "request_failed"
    MISSING_MODULE_FILE = "missing_module_file"
    EXTRACTION_FAILED = "extraction_failed"
    CONFIGURATION = "configuration"


class ReleaseArchiveError(Exception):
    """User-facing error raised by release archive operations."""

    def __init__(  # noqa: PLR0913
        self,
        message: str,
        kind: ArchiveErrorKind,
        *,
        url: str | None = None,
        status: int | None = None,
        extension: str | None = None,
        path_in_archive: str | None = None,
        strip_prefix: str | None = None,
    ) -> None:
        """Initialize error with message, kind and kind-specific context.

        Args:
            message: Human readable message including remediation hints.
            kind: Failure kind callers branch on.
            url: Archive URL (download failures).
            status: HTTP status code (DOWNLOAD_FAILED only).
            extension: Offending dotted suffix (UNSUPPORTED_FORMAT only).
            path_in_archive: Archive-relative path looked up
                (MISSING_MODULE_FILE only).
            strip_prefix: Configured strip prefix, verbatim
                (MISSING_MODULE_FILE only).

        """
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.url = url
        self.status = status
        self.extension = extension
        self.path_in_archive = path_in_archive
        self.strip_prefix = strip_prefix

    def __str__(self) -> str:
        """Return the user-facing message."""
        return self.message

    @classmethod
    def unsupported_format(cls, extension: str) -> "ReleaseArchiveError":
        """Archive suffix does not match any extraction strategy."""
        return cls(
            f"Unsupported release archive format {extension}",
            ArchiveErrorKind.UNSUPPORTED_FORMAT,
            extension=extension,
        )

    @classmethod
    def download_failed(cls, url: str, status: int) -> "ReleaseArchiveError":
        """Server answered with a status that was not retried away."""
        msg = (
            f"Failed to download release archive from {url}. "
            f"Received status {status}"
        )
        if status == HTTP_NOT_FOUND:
            msg += (
                f"\n\nDouble check that the `url` in your ruleset's "
                f"{SOURCE_TEMPLATE_PATH} is correct, along with its "
                f"`strip_prefix`. Also ensure that the release archive is "
                f"uploaded as part of publishing the release rather than "
                f"uploaded afterward."
            )
        return cls(
            msg, ArchiveErrorKind.DOWNLOAD_FAILED, url=url, status=status
        )

    @classmethod
    def no_response(cls, url: str) -> "ReleaseArchiveError":
        """Request was sent but no response was ever received."""
        return cls(
            f"GET {url} failed; no response received",
            ArchiveErrorKind.NO_RESPONSE,
            url=url,
        )

    @classmethod
    def request_failed(cls, url: str, cause: str) -> "ReleaseArchiveError":
        """Request could not be dispatched at all."""
        return cls(
            f"Failed to GET {url}: {cause}",
            ArchiveErrorKind.REQUEST_FAILED,
            url=url,
        )

    @classmethod
    def missing_module_file(
        cls, path_in_archive: str, strip_prefix: str
    ) -> "ReleaseArchiveError":
        """Marker file is absent at the strip-prefix location."""
        return cls(
            f"Could not find {MODULE_FILE_NAME} in release archive at "
            f"{path_in_archive}.\nIs the strip prefix in "
            f"{SOURCE_TEMPLATE_FILE} correct? (currently it's "
            f"'{strip_prefix}')",
            ArchiveErrorKind.MISSING_MODULE_FILE,
            path_in_archive=path_in_archive,
            strip_prefix=strip_prefix,
        )

    @classmethod
    def extraction_failed(
        cls, archive_name: str, cause: str
    ) -> "ReleaseArchiveError":
        """Archive could not be unpacked."""
        return cls(
            f"Failed to extract release archive {archive_name}: {cause}",
            ArchiveErrorKind.EXTRACTION_FAILED,
        )

    @classmethod
    def configuration(cls, message: str) -> "ReleaseArchiveError":
        """Invalid environment, settings or template configuration."""
        return cls(message, ArchiveErrorKind.CONFIGURATION)

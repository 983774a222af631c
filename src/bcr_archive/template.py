"""Loading fetch settings from a ruleset's source.template.json.

Only the fields this package needs are interpreted; placeholder
substitution (``{OWNER}``, ``{TAG}``...) belongs to the caller.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import orjson

from bcr_archive.exceptions import ReleaseArchiveError
from bcr_archive.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SourceTemplate:
    """Archive location and layout declared by a ruleset.

    Attributes:
        url: Release archive URL
        strip_prefix: Directory inside the archive holding MODULE.bazel
        extra: Remaining keys (e.g. ``integrity``), kept verbatim

    """

    url: str
    strip_prefix: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: Any, source: str = "template"
    ) -> "SourceTemplate":
        """Validate a decoded template.

        Args:
            data: Decoded JSON document
            source: Name used in error messages

        Returns:
            Parsed SourceTemplate

        Raises:
            ReleaseArchiveError: CONFIGURATION when required fields are
                missing or have the wrong type

        """
        if not isinstance(data, dict):
            msg = f"{source} must contain a JSON object"
            raise ReleaseArchiveError.configuration(msg)

        url = data.get("url")
        if not isinstance(url, str) or not url:
            msg = f"{source} is missing a string 'url'"
            raise ReleaseArchiveError.configuration(msg)

        strip_prefix = data.get("strip_prefix") or ""
        if not isinstance(strip_prefix, str):
            msg = f"'strip_prefix' in {source} must be a string"
            raise ReleaseArchiveError.configuration(msg)

        extra = {
            key: value
            for key, value in data.items()
            if key not in ("url", "strip_prefix")
        }
        return cls(url=url, strip_prefix=strip_prefix, extra=extra)

    @classmethod
    def load(cls, path: Path) -> "SourceTemplate":
        """Read and validate a source.template.json file.

        Raises:
            ReleaseArchiveError: CONFIGURATION if the file is unreadable or
                not valid JSON

        """
        try:
            data = orjson.loads(path.read_bytes())
        except OSError as e:
            msg = f"Cannot read {path}: {e}"
            raise ReleaseArchiveError.configuration(msg) from e
        except orjson.JSONDecodeError as e:
            msg = f"Invalid JSON in {path}: {e}"
            raise ReleaseArchiveError.configuration(msg) from e

        logger.debug("Loaded source template %s", path)
        return cls.from_dict(data, source=str(path))

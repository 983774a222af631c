"""Top-level package for bcr-archive.

Fetches a ruleset's release archive, extracts it and locates its
MODULE.bazel under the configured strip prefix.

License: GPL-3.0
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bcr-archive")
except PackageNotFoundError:
    # Fallback for development environments where package isn't installed
    __version__ = "dev"

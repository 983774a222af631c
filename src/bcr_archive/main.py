"""Command-line entry point for bcr-archive.

Fetches a release archive, checks that MODULE.bazel sits under the strip
prefix and optionally prints it.

Examples:
  bcr-archive https://github.com/o/r/releases/download/v1.0/r-v1.0.tar.gz \\
      --strip-prefix r-1.0
  bcr-archive --template .bcr/source.template.json --print

"""

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

import uvloop

from bcr_archive import __version__
from bcr_archive.config import FetchConfig
from bcr_archive.core import ReleaseArchive
from bcr_archive.exceptions import ReleaseArchiveError
from bcr_archive.logger import get_logger, setup_logging
from bcr_archive.template import SourceTemplate

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="bcr-archive",
        description="Download a release archive and locate its MODULE.bazel",
    )
    parser.add_argument(
        "url",
        nargs="?",
        help="release archive URL (.tar.gz, .tar.xz or .zip)",
    )
    parser.add_argument(
        "--strip-prefix",
        default=None,
        help="directory inside the archive that holds MODULE.bazel",
    )
    parser.add_argument(
        "--template",
        type=Path,
        help="read url and strip_prefix from a source.template.json",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        help="INI file with a [network] section (default: environment)",
    )
    parser.add_argument(
        "--print",
        action="store_true",
        dest="print_module",
        help="write MODULE.bazel to stdout",
    )
    parser.add_argument(
        "--keep",
        action="store_true",
        help="do not delete the downloaded and extracted files",
    )
    parser.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="console log level",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def resolve_source(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> tuple[str, str]:
    """Return (url, strip_prefix) from the template or the arguments.

    Command-line values take precedence over the template.
    """
    url = args.url
    strip_prefix = args.strip_prefix
    if args.template is not None:
        template = SourceTemplate.load(args.template)
        url = url or template.url
        if strip_prefix is None:
            strip_prefix = template.strip_prefix

    if not url:
        parser.error("a release archive URL or --template is required")
    return url, strip_prefix or ""


async def async_main(argv: Sequence[str] | None = None) -> int:
    """Run one fetch-extract-locate cycle.

    Returns:
        Process exit status

    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.log_level:
        setup_logging(console_level=args.log_level)

    url, strip_prefix = resolve_source(parser, args)
    if args.settings is not None:
        config = FetchConfig.from_file(args.settings)
    else:
        config = FetchConfig.from_env()

    archive = await ReleaseArchive.fetch(url, strip_prefix, config=config)
    try:
        module_file = await archive.extract_module_file()
        logger.info("Found MODULE.bazel at %s", module_file.path)
        if args.print_module:
            sys.stdout.write(module_file.read_text())
    finally:
        if args.keep:
            logger.info(
                "Keeping release archive files in %s",
                archive.disk_path.parent,
            )
        else:
            archive.cleanup()

    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Run the CLI application.

    Exits with status 1 on a release archive error or interruption.
    """
    try:
        exit_code = uvloop.run(async_main(argv))
    except ReleaseArchiveError as e:
        logger.error("%s", e)  # noqa: TRY400
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Cancelled by user")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

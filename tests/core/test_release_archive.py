"""End-to-end tests for ReleaseArchive fetch, extraction and cleanup."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import aiohttp
import pytest
import pytest_asyncio

from bcr_archive.config import FetchConfig
from bcr_archive.core.release_archive import ReleaseArchive, archive_filename
from bcr_archive.exceptions import ArchiveErrorKind, ReleaseArchiveError
from tests.core.conftest import (
    MODULE_CONTENT,
    STRIP_PREFIX,
    default_files,
    write_archive,
)
from tests.core.stand_in_server import run_stand_in_server

FAST = FetchConfig(backoff_factor_ms=1)
RELEASE_PATH = "/owner/rules_foo/releases/download/v1.2.3"


@pytest_asyncio.fixture
async def stand_in():
    async with run_stand_in_server() as server:
        yield server


def archive_body(tmp_path: Path, filename: str, files=None) -> bytes:
    """Build an archive on disk and return its bytes."""
    source = tmp_path / "source"
    source.mkdir(exist_ok=True)
    path = write_archive(
        source / filename, default_files() if files is None else files
    )
    return path.read_bytes()


async def fetch(stand_in, tmp_path, filename, files=None, prefix=STRIP_PREFIX):
    """Serve an archive and fetch it through ReleaseArchive."""
    path = f"{RELEASE_PATH}/{filename}"
    stand_in.enqueue(path, (200, archive_body(tmp_path, filename, files)))
    return await ReleaseArchive.fetch(
        stand_in.url(path), prefix, config=FAST
    )


def test_archive_filename():
    """The local file name is the URL's last path segment."""
    assert (
        archive_filename("https://h/o/r/archive/v1.tar.gz?x=1") == "v1.tar.gz"
    )
    assert archive_filename("https://h/o/r/") == ""


def test_direct_construction_is_rejected(tmp_path: Path):
    """Instances only come from ReleaseArchive.fetch."""
    with pytest.raises(TypeError):
        ReleaseArchive(tmp_path / "a.zip", "")


class TestFetchAndExtract:
    """Test the full fetch -> extract -> locate flow."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "filename",
        [
            "rules_foo-1.2.3.tar.gz",
            "rules_foo-1.2.3.tar.xz",
            "rules_foo-1.2.3.zip",
        ],
    )
    async def test_supported_formats(self, stand_in, tmp_path, filename):
        """MODULE.bazel is located with byte-identical content."""
        archive = await fetch(stand_in, tmp_path, filename)
        try:
            assert archive.disk_path.name == filename
            assert archive.disk_path.parent.name.startswith("archive-")
            assert archive.extract_dir is None

            module_file = await archive.extract_module_file()

            assert module_file.path.exists()
            assert module_file.read_bytes() == MODULE_CONTENT
            assert archive.extract_dir == archive.disk_path.parent
            assert module_file.path == (
                archive.extract_dir / STRIP_PREFIX / "MODULE.bazel"
            )
        finally:
            archive.cleanup()

    @pytest.mark.asyncio
    async def test_unsupported_format(self, stand_in, tmp_path):
        """archive.tar.bz2 fails with an error naming tar.bz2."""
        archive = await fetch(stand_in, tmp_path, "archive.tar.bz2")
        try:
            with pytest.raises(ReleaseArchiveError) as exc_info:
                await archive.extract_module_file()
        finally:
            archive.cleanup()

        assert exc_info.value.kind is ArchiveErrorKind.UNSUPPORTED_FORMAT
        assert exc_info.value.extension == "tar.bz2"
        assert "tar.bz2" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_module_file(self, stand_in, tmp_path):
        """A wrong strip prefix names the path and the prefix."""
        archive = await fetch(
            stand_in, tmp_path, "rules_foo-1.2.3.tar.gz", prefix="rules_foo"
        )
        try:
            with pytest.raises(ReleaseArchiveError) as exc_info:
                await archive.extract_module_file()
        finally:
            archive.cleanup()

        message = str(exc_info.value)
        assert exc_info.value.kind is ArchiveErrorKind.MISSING_MODULE_FILE
        assert "./rules_foo/MODULE.bazel" in message
        assert "'rules_foo'" in message

    @pytest.mark.asyncio
    async def test_archive_without_module_file(self, stand_in, tmp_path):
        """An archive lacking MODULE.bazel fails even with a valid prefix."""
        files = {f"{STRIP_PREFIX}/BUILD.bazel": b""}
        archive = await fetch(stand_in, tmp_path, "rules_foo.zip", files)
        try:
            with pytest.raises(ReleaseArchiveError) as exc_info:
                await archive.extract_module_file()
        finally:
            archive.cleanup()

        assert exc_info.value.path_in_archive == (
            f"./{STRIP_PREFIX}/MODULE.bazel"
        )
        assert exc_info.value.strip_prefix == STRIP_PREFIX

    @pytest.mark.asyncio
    async def test_extraction_runs_once(self, stand_in, tmp_path):
        """A second extraction attempt is refused."""
        archive = await fetch(stand_in, tmp_path, "rules_foo-1.2.3.tar.gz")
        try:
            await archive.extract_module_file()
            with pytest.raises(RuntimeError):
                await archive.extract_module_file()
        finally:
            archive.cleanup()

    @pytest.mark.asyncio
    async def test_upload_race_is_tolerated(self, stand_in, tmp_path):
        """An archive that 404s at first is fetched once it appears."""
        filename = "rules_foo-1.2.3.tar.xz"
        path = f"{RELEASE_PATH}/{filename}"
        stand_in.enqueue(
            path,
            (404, b""),
            (404, b""),
            (200, archive_body(tmp_path, filename)),
        )

        archive = await ReleaseArchive.fetch(
            stand_in.url(path), STRIP_PREFIX, config=FAST
        )
        try:
            module_file = await archive.extract_module_file()
            assert module_file.read_bytes() == MODULE_CONTENT
        finally:
            archive.cleanup()

        assert stand_in.hits[path] == 3

    @pytest.mark.asyncio
    async def test_concurrent_fetches_use_separate_directories(
        self, stand_in, tmp_path
    ):
        """Each fetch gets its own temporary directory."""
        archives = await asyncio.gather(
            fetch(stand_in, tmp_path, "a.tar.gz"),
            fetch(stand_in, tmp_path, "b.zip"),
        )
        try:
            parents = {archive.disk_path.parent for archive in archives}
            assert len(parents) == 2
            for archive in archives:
                module_file = await archive.extract_module_file()
                assert module_file.read_bytes() == MODULE_CONTENT
        finally:
            for archive in archives:
                archive.cleanup()

    @pytest.mark.asyncio
    async def test_reuses_caller_session(self, stand_in, tmp_path):
        """A caller-provided session is used and left open."""
        filename = "rules_foo-1.2.3.zip"
        path = f"{RELEASE_PATH}/{filename}"
        stand_in.enqueue(path, (200, archive_body(tmp_path, filename)))

        async with aiohttp.ClientSession() as session:
            archive = await ReleaseArchive.fetch(
                stand_in.url(path), STRIP_PREFIX, session=session, config=FAST
            )
            assert not session.closed
        archive.cleanup()


class TestFetchFailures:
    """Test failures during fetch."""

    @pytest.mark.asyncio
    async def test_download_failure_removes_temp_dir(
        self, stand_in, tmp_path
    ):
        """A failed fetch leaves no temporary directory behind."""
        temp_root = tmp_path / "tmp"
        temp_root.mkdir()

        with (
            patch("tempfile.tempdir", str(temp_root)),
            pytest.raises(ReleaseArchiveError) as exc_info,
        ):
            await ReleaseArchive.fetch(
                stand_in.url(f"{RELEASE_PATH}/missing.tar.gz"),
                STRIP_PREFIX,
                config=FAST,
            )

        assert exc_info.value.kind is ArchiveErrorKind.DOWNLOAD_FAILED
        assert exc_info.value.status == 404
        assert list(temp_root.iterdir()) == []

    @pytest.mark.asyncio
    async def test_url_without_file_name(self):
        """URLs ending in a slash cannot name the archive."""
        with pytest.raises(ReleaseArchiveError) as exc_info:
            await ReleaseArchive.fetch("https://example.com/releases/", "")
        assert exc_info.value.kind is ArchiveErrorKind.CONFIGURATION


class TestCleanup:
    """Test cleanup semantics."""

    @pytest.mark.asyncio
    async def test_cleanup_after_extraction(self, stand_in, tmp_path):
        """Archive file and extraction directory are both removed."""
        archive = await fetch(stand_in, tmp_path, "rules_foo-1.2.3.tar.gz")
        await archive.extract_module_file()
        extract_dir = archive.extract_dir

        archive.cleanup()

        assert not archive.disk_path.exists()
        assert not extract_dir.exists()

    @pytest.mark.asyncio
    async def test_cleanup_without_extraction(self, stand_in, tmp_path):
        """Only the archive file is removed when nothing was extracted."""
        archive = await fetch(stand_in, tmp_path, "rules_foo-1.2.3.zip")

        archive.cleanup()

        assert not archive.disk_path.exists()
        assert archive.extract_dir is None
        archive.disk_path.parent.rmdir()

    @pytest.mark.asyncio
    async def test_cleanup_is_idempotent(self, stand_in, tmp_path):
        """Calling cleanup repeatedly does not raise."""
        archive = await fetch(stand_in, tmp_path, "rules_foo-1.2.3.tar.xz")
        await archive.extract_module_file()

        archive.cleanup()
        archive.cleanup()

        assert not archive.disk_path.parent.exists()

    @pytest.mark.asyncio
    async def test_cleanup_after_failed_extraction(self, stand_in, tmp_path):
        """Partial extraction state is removed by cleanup."""
        archive = await fetch(stand_in, tmp_path, "archive.tar.bz2")
        with pytest.raises(ReleaseArchiveError):
            await archive.extract_module_file()

        archive.cleanup()

        assert not archive.disk_path.parent.exists()

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for source resolution.

Covers each source shape, ordering, and the rule that a bad hash aborts
resolution before anything else happens. Git is never actually invoked:
subprocess.run is patched and the calls are inspected.
"""

import hashlib
import subprocess
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from autobuild.build.exceptions import DownloadFailure, HashMismatch, InvalidSourceSpec
from autobuild.sources.models import GitRepository, LocalDirectory, RemoteArchive
from autobuild.sources.resolver import resolve_source, resolve_sources
from autobuild.utils.hashing import compute_sha256

BODY = b"remote tarball bytes"
BODY_HASH = hashlib.sha256(BODY).hexdigest()


def _client(calls: list[str], body: bytes = BODY) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(200, content=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestRemoteArchive:
    def test_downloads_into_downloads_dir(self, tmp_path: Path) -> None:
        calls: list[str] = []
        source = RemoteArchive("https://example.com/dist/libfoo-1.0.tar.gz", BODY_HASH)

        verified = resolve_source(source, tmp_path / "downloads", tmp_path / "scratch", _client(calls))

        assert verified.local_path == tmp_path / "downloads" / "libfoo-1.0.tar.gz"
        assert verified.content_hash == BODY_HASH
        assert calls == ["https://example.com/dist/libfoo-1.0.tar.gz"]

    def test_rerun_reuses_existing_download(self, tmp_path: Path) -> None:
        calls: list[str] = []
        client = _client(calls)
        source = RemoteArchive("https://example.com/libfoo.tar.gz", BODY_HASH)

        resolve_sources([source], tmp_path / "downloads", tmp_path / "scratch", client)
        resolve_sources([source], tmp_path / "downloads", tmp_path / "scratch", client)

        assert len(calls) == 1

    def test_local_file_is_verified_in_place(self, source_archive: tuple[Path, str], tmp_path: Path) -> None:
        archive, digest = source_archive
        calls: list[str] = []

        verified = resolve_source(
            RemoteArchive(str(archive), digest), tmp_path / "downloads", tmp_path / "scratch", _client(calls)
        )

        assert verified.local_path == archive.resolve()
        assert calls == []

    def test_local_file_with_wrong_hash(self, source_archive: tuple[Path, str], tmp_path: Path) -> None:
        archive, _ = source_archive
        with pytest.raises(HashMismatch):
            resolve_source(RemoteArchive(str(archive), "0" * 64), tmp_path / "d", tmp_path / "s")

    def test_hash_mismatch_stops_before_later_sources(self, tmp_path: Path) -> None:
        calls: list[str] = []
        sources = [
            RemoteArchive("https://example.com/bad.tar.gz", "0" * 64),
            RemoteArchive("https://example.com/good.tar.gz", BODY_HASH),
        ]
        with pytest.raises(HashMismatch):
            resolve_sources(sources, tmp_path / "downloads", tmp_path / "scratch", _client(calls))

        assert calls == ["https://example.com/bad.tar.gz"]
        assert not (tmp_path / "downloads" / "bad.tar.gz").exists()


class TestLocalDirectory:
    def test_directory_is_packaged(self, source_tree: Path, tmp_path: Path) -> None:
        scratch = tmp_path / "scratch"
        scratch.mkdir()

        verified = resolve_source(LocalDirectory(source_tree), tmp_path / "downloads", scratch)

        assert verified.local_path == scratch / "libfoo-1.0.tar.gz"
        assert verified.content_hash == compute_sha256(verified.local_path)

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidSourceSpec):
            resolve_source(LocalDirectory(tmp_path / "absent"), tmp_path / "d", tmp_path / "s")


class TestGitRepository:
    def test_first_resolution_clones_a_mirror(self, tmp_path: Path) -> None:
        source = GitRepository("https://example.com/org/libfoo.git", "abc123")
        with patch("autobuild.sources.resolver.subprocess.run") as run:
            verified = resolve_source(source, tmp_path / "downloads", tmp_path / "scratch")

        args = run.call_args.args[0]
        assert args[:3] == ["git", "clone", "--mirror"]
        assert verified.local_path == tmp_path / "downloads" / "libfoo.git"
        assert verified.content_hash == "abc123"

    def test_existing_mirror_is_updated(self, tmp_path: Path) -> None:
        (tmp_path / "downloads" / "libfoo.git").mkdir(parents=True)
        source = GitRepository("https://example.com/org/libfoo.git")
        with patch("autobuild.sources.resolver.subprocess.run") as run:
            resolve_source(source, tmp_path / "downloads", tmp_path / "scratch")

        args = run.call_args.args[0]
        assert "remote" in args and "update" in args

    def test_git_failure_becomes_download_failure(self, tmp_path: Path) -> None:
        source = GitRepository("https://example.com/org/libfoo.git")
        error = subprocess.CalledProcessError(128, ["git"], stderr="fatal: repository not found\n")
        with patch("autobuild.sources.resolver.subprocess.run", side_effect=error):
            with pytest.raises(DownloadFailure, match="repository not found"):
                resolve_source(source, tmp_path / "downloads", tmp_path / "scratch")


class TestOrdering:
    def test_output_order_matches_input(self, source_tree: Path, tmp_path: Path) -> None:
        calls: list[str] = []
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        sources = [
            RemoteArchive("https://example.com/first.tar.gz", BODY_HASH),
            LocalDirectory(source_tree),
            RemoteArchive("https://example.com/third.tar.gz", BODY_HASH),
        ]

        verified = resolve_sources(sources, tmp_path / "downloads", scratch, _client(calls))

        assert [v.local_path.name for v in verified] == [
            "first.tar.gz",
            "libfoo-1.0.tar.gz",
            "third.tar.gz",
        ]

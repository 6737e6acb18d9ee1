# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Source resolution: declared sources → verified local files.

This runs once per build run, before any platform is touched. Its output is
reused for every platform, so a bad hash or a failed download aborts the run
before a single workspace has been created.

The output keeps the input order. Build scripts address sources by position,
so reordering them would silently change what gets built.

Per shape:
  - LocalDirectory: packaged into <scratch>/<name>.tar.gz and hashed.
  - RemoteArchive: a URL that names an existing local file is verified in
    place; anything else is downloaded into <run>/downloads/ and verified.
    Already-downloaded files that verify are not fetched again.
  - GitRepository: bare mirror in <run>/downloads/<name>.git, created with
    `git clone --mirror` the first time and updated with `git remote update`
    after that. No verification.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

import httpx

from autobuild.build.exceptions import DownloadFailure, InvalidSourceSpec
from autobuild.logging.logger import get_logger
from autobuild.packaging.tarball import package
from autobuild.sources.download import download_verify, verify
from autobuild.sources.models import (
    GitRepository,
    LocalDirectory,
    RemoteArchive,
    SourceSpec,
    VerifiedSource,
)
from autobuild.utils.paths import ensure_directory

_logger: logging.Logger = get_logger(__name__)

GIT_TIMEOUT_SECONDS = 1800


def _basename(url: str) -> str:
    return url.rstrip("/").rsplit("/", 1)[-1]


def _resolve_local_directory(source: LocalDirectory, scratch_dir: Path) -> VerifiedSource:
    if not source.path.is_dir():
        raise InvalidSourceSpec(f"Local source {source.path} is not a directory")

    directory = source.path.resolve()
    tarball_path, tarball_hash = package(directory, scratch_dir / directory.name)
    _logger.info(
        "Packaged local source directory",
        extra={"source": str(directory), "tarball": str(tarball_path)},
    )
    return VerifiedSource(local_path=tarball_path, content_hash=tarball_hash)


def _resolve_remote_archive(
    source: RemoteArchive,
    downloads_dir: Path,
    client: Optional[httpx.Client],
) -> VerifiedSource:
    local_candidate = Path(source.url)
    if local_candidate.is_file():
        # abspath now, so a relative source keeps working once the sandbox
        # changes directory.
        src_path = local_candidate.resolve()
        verify(src_path, source.sha256)
        _logger.info("Verified local source file", extra={"path": str(src_path)})
    else:
        src_path = downloads_dir / _basename(source.url)
        download_verify(source.url, source.sha256, src_path, client=client)

    return VerifiedSource(local_path=src_path, content_hash=source.sha256)


def _run_git(args: list[str], description: str) -> None:
    try:
        subprocess.run(
            ["git", *args],
            check=True,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except subprocess.CalledProcessError as err:
        raise DownloadFailure(f"{description} failed: {err.stderr.strip()}") from err
    except subprocess.TimeoutExpired as err:
        raise DownloadFailure(
            f"{description} timed out after {GIT_TIMEOUT_SECONDS} seconds"
        ) from err
    except FileNotFoundError as err:
        raise DownloadFailure(f"{description} failed: git executable not found") from err


def _resolve_git_repository(source: GitRepository, downloads_dir: Path) -> VerifiedSource:
    mirror_path = downloads_dir / _basename(source.url)

    if not mirror_path.is_dir():
        _logger.info(
            "Cloning git mirror",
            extra={"url": source.url, "path": str(mirror_path)},
        )
        _run_git(
            ["clone", "--mirror", source.url, str(mirror_path)],
            f"git clone of {source.url}",
        )
    else:
        _logger.info(
            "Updating existing git mirror",
            extra={"url": source.url, "path": str(mirror_path)},
        )
        _run_git(
            ["--git-dir", str(mirror_path), "remote", "update", "--prune"],
            f"git fetch of {source.url}",
        )

    return VerifiedSource(local_path=mirror_path, content_hash=source.revision)


def resolve_source(
    source: SourceSpec,
    downloads_dir: Path,
    scratch_dir: Path,
    client: Optional[httpx.Client] = None,
) -> VerifiedSource:
    """
    Resolve one declared source.

    Raises:
        InvalidSourceSpec: Not a known shape, or a local path that isn't a directory.
        HashMismatch: Declared hash disagrees with the bytes on disk.
        DownloadFailure: Network or git failure.
    """
    if isinstance(source, LocalDirectory):
        return _resolve_local_directory(source, scratch_dir)
    if isinstance(source, RemoteArchive):
        return _resolve_remote_archive(source, downloads_dir, client)
    if isinstance(source, GitRepository):
        return _resolve_git_repository(source, downloads_dir)
    raise InvalidSourceSpec(
        f"Sources must be a local directory, a url with a hash, or a git url; got {source!r}"
    )


def resolve_sources(
    sources: Sequence[SourceSpec],
    downloads_dir: Path,
    scratch_dir: Path,
    client: Optional[httpx.Client] = None,
) -> list[VerifiedSource]:
    """
    Resolve every declared source, in order.

    Args:
        sources: Declared sources, in the order the build script expects them.
        downloads_dir: Shared <run>/downloads/ directory. Created if missing.
        scratch_dir: Where local directories get packaged. The caller owns its
                     lifetime; the tarballs must outlive the platform loop.
        client: Shared HTTP client.

    Returns:
        One VerifiedSource per input, same order.
    """
    ensure_directory(downloads_dir)
    resolved = [resolve_source(s, downloads_dir, scratch_dir, client) for s in sources]
    _logger.info("Sources resolved", extra={"count": len(resolved)})
    return resolved

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shadow install and uninstall of dependencies.

Dependencies get unpacked into the build prefix before the build script runs,
so it can link against them. The tarball that comes out at the end must hold
only this package's own files, though. So each install records the exact list
of files it placed in <prefix>/manifests/<tarball-stem>.list, and after the
build the same dependency is looked up again for the same platform, its
manifest found, and every file on it removed.

A dependency that can't be resolved or removed leaves the prefix contaminated,
and a contaminated prefix is never packaged: every failure on the uninstall
side is a DependencyCleanupFailure.
"""

import logging
import tarfile
from pathlib import Path
from typing import Iterable, Optional

import httpx

from autobuild.build.exceptions import BuildFailure, DependencyCleanupFailure
from autobuild.dependencies.descriptor import DependencyDescriptor
from autobuild.logging.logger import get_logger
from autobuild.packaging.tarball import extract_tarball
from autobuild.sources.download import download_verify, verify
from autobuild.utils.filesystem import atomic_write, prune_empty_parents
from autobuild.utils.paths import ensure_directory, validate_path_within

_logger: logging.Logger = get_logger(__name__)

MANIFESTS_DIRNAME = "manifests"
_ARCHIVE_SUFFIXES = (".tar.gz", ".tar.xz", ".tar.bz2", ".tgz", ".tar")


def manifest_from_url(url: str, prefix: Path) -> Path:
    """Where the install manifest for the tarball at `url` lives inside `prefix`."""
    name = url.rstrip("/").rsplit("/", 1)[-1]
    for suffix in _ARCHIVE_SUFFIXES:
        if name.endswith(suffix):
            name = name[: -len(suffix)]
            break
    return prefix / MANIFESTS_DIRNAME / f"{name}.list"


def install_dependency(
    descriptor: DependencyDescriptor,
    prefix: Path,
    platform: str,
    client: Optional[httpx.Client] = None,
) -> Path:
    """
    Download, verify and unpack a dependency's tarball into `prefix`.

    Returns:
        Path to the install manifest that was written.

    Raises:
        BuildFailure: If the dependency has nothing for this platform or its
                      tarball is unusable.
        DownloadFailure, HashMismatch: Straight from the download layer.
    """
    try:
        info = descriptor.resolve_download_info(platform)
    except ValueError as err:
        raise BuildFailure(platform, str(err)) from err

    local_candidate = Path(info.url)
    if local_candidate.is_file():
        tarball = local_candidate
        verify(tarball, info.sha256)
    else:
        downloads = ensure_directory(prefix / "downloads")
        tarball = downloads / info.url.rstrip("/").rsplit("/", 1)[-1]
        download_verify(info.url, info.sha256, tarball, client=client)

    try:
        placed = extract_tarball(tarball, prefix)
    except (ValueError, tarfile.TarError) as err:
        raise BuildFailure(platform, str(err)) from err

    manifest_path = manifest_from_url(info.url, prefix)
    atomic_write(manifest_path, "".join(f"{entry}\n" for entry in sorted(placed)))

    _logger.info(
        "Installed dependency",
        extra={
            "dependency": descriptor.location,
            "platform": platform,
            "files": len(placed),
            "manifest": str(manifest_path),
        },
    )
    return manifest_path


def uninstall(manifest_path: Path, prefix: Path) -> int:
    """
    Remove every file listed in an install manifest, then the manifest itself.

    Directories that end up empty are pruned up to (not including) the prefix.

    Returns:
        Number of files removed.

    Raises:
        DependencyCleanupFailure: If the manifest is missing, lists a path
                                  outside the prefix, or a file can't be removed.
    """
    if not manifest_path.is_file():
        raise DependencyCleanupFailure(f"Install manifest not found: {manifest_path}")

    removed = 0
    try:
        entries = manifest_path.read_text(encoding="utf-8").splitlines()
        for entry in entries:
            entry = entry.strip()
            if not entry:
                continue
            path = prefix / entry
            validate_path_within(path.parent, prefix)
            if path.is_symlink() or path.is_file():
                path.unlink()
                removed += 1
            else:
                # Already gone; the build may have overwritten or deleted it.
                _logger.debug("Manifest entry already absent", extra={"path": str(path)})
            prune_empty_parents(path.parent, prefix)

        manifest_path.unlink()
        prune_empty_parents(manifest_path.parent, prefix)
    except (OSError, ValueError) as err:
        raise DependencyCleanupFailure(
            f"Failed to uninstall {manifest_path.name}: {err}"
        ) from err

    _logger.info(
        "Uninstalled dependency files",
        extra={"manifest": manifest_path.name, "removed": removed},
    )
    return removed


def uninstall_dependency(descriptor: DependencyDescriptor, prefix: Path, platform: str) -> int:
    """
    Strip one dependency's files back out of a built prefix.

    The descriptor is evaluated with the platform pinned to the one just
    built, which yields the same URL the install used and therefore the same
    manifest path.

    Raises:
        DependencyCleanupFailure: Descriptor unusable, platform missing from
                                  its table, or uninstall failed.
    """
    try:
        info = descriptor.resolve_download_info(platform)
    except ValueError as err:
        raise DependencyCleanupFailure(
            f"Cannot resolve dependency {descriptor.location} for {platform}: {err}"
        ) from err

    return uninstall(manifest_from_url(info.url, prefix), prefix)


def uninstall_dependencies(
    descriptors: Iterable[DependencyDescriptor], prefix: Path, platform: str
) -> int:
    """Uninstall every dependency, in order. Returns the total files removed."""
    return sum(uninstall_dependency(d, prefix, platform) for d in descriptors)

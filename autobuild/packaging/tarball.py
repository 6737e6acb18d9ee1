# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Directory → content-addressed tarball.

This is the one packaging primitive in autobuild. It's used for two things:
  - packaging a build prefix into <run>/products/<name>.<triplet>.tar.gz
  - packaging a local source directory so it can be treated like any other
    downloaded source archive

The archive is written to a temp file next to the target and renamed into
place, then hashed. The hash is therefore always the digest of the complete
file that sits at the returned path.

Entries are added in sorted order and the gzip header timestamp is pinned to
zero, so packaging the same tree twice yields the same bytes as long as the
files themselves haven't changed.
"""

import gzip
import logging
import tarfile
from pathlib import Path
from typing import Optional

from autobuild.logging.logger import get_logger
from autobuild.platforms.core import tarball_name
from autobuild.utils.filesystem import temporary_sibling
from autobuild.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


def _iter_entries(directory: Path) -> list[Path]:
    return sorted(directory.rglob("*"), key=lambda p: p.relative_to(directory).as_posix())


def _normalize(info: tarfile.TarInfo) -> tarfile.TarInfo:
    # Ownership from the build machine is meaningless to whoever unpacks this.
    info.uid = 0
    info.gid = 0
    info.uname = ""
    info.gname = ""
    return info


def write_tarball(directory: Path, target: Path) -> None:
    """
    Write the contents of `directory` into a gzipped tarball at `target`.

    Paths inside the archive are relative to `directory` (no leading
    component), so unpacking it into a prefix recreates the tree as-is.
    """
    temp_path = temporary_sibling(target, suffix=".tar.gz")
    try:
        with (
            open(temp_path, "wb") as raw,
            gzip.GzipFile(filename="", mode="wb", fileobj=raw, mtime=0) as gz,
            tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar,
        ):
            for path in _iter_entries(directory):
                arcname = path.relative_to(directory).as_posix()
                tar.add(str(path), arcname=arcname, recursive=False, filter=_normalize)
        temp_path.replace(target)
    except BaseException:
        if temp_path.exists():
            temp_path.unlink()
        raise


def package(
    directory: Path,
    output_base: Path,
    platform: Optional[str] = None,
    force: bool = True,
) -> tuple[Path, str]:
    """
    Package a directory into a tarball and return its path and SHA256.

    Args:
        directory: The tree to package.
        output_base: Target path without the platform or extension, e.g.
                     <run>/products/libfoo. The file name is completed by
                     `tarball_name`.
        platform: Platform triplet to embed in the name, if any.
        force: Overwrite an existing tarball at the target path. Reruns of the
               same build rely on this.

    Returns:
        (tarball_path, sha256_hex)

    Raises:
        NotADirectoryError: If `directory` isn't a directory.
        FileExistsError: If the target exists and `force` is False.
    """
    if not directory.is_dir():
        raise NotADirectoryError(f"Cannot package {directory}: not a directory")

    target = output_base.parent / tarball_name(output_base.name, platform)
    if target.exists():
        if not force:
            raise FileExistsError(f"Tarball already exists: {target}")
        _logger.debug("Overwriting existing tarball", extra={"path": str(target)})

    write_tarball(directory, target)
    digest = compute_sha256(target)

    _logger.info(
        "Packaged tarball",
        extra={
            "source": str(directory),
            "tarball": str(target),
            "sha256": digest,
            "platform": platform,
        },
    )
    return target, digest


def _is_safe_member(member: tarfile.TarInfo, extract_dir: Path) -> bool:
    """
    Validate a tar member against path traversal.

    Rejects absolute paths, '..' components, device nodes, and links that
    point outside the extraction directory. Relative symlinks that stay inside
    are fine: shared libraries ship as libfoo.so -> libfoo.so.1 all the time.
    """
    if member.name.startswith(("/", "\\")):
        return False
    if ".." in member.name.split("/"):
        return False

    root = extract_dir.resolve()
    resolved = (extract_dir / member.name).resolve()
    if resolved != root and root not in resolved.parents:
        return False

    if member.isdev():
        return False

    if member.issym():
        link_target = (extract_dir / member.name).parent / member.linkname
        resolved_link = link_target.resolve()
        if member.linkname.startswith("/") or (
            resolved_link != root and root not in resolved_link.parents
        ):
            return False

    if member.islnk():
        resolved_link = (extract_dir / member.linkname).resolve()
        if root not in resolved_link.parents:
            return False

    return True


def extract_tarball(tarball: Path, extract_dir: Path) -> list[str]:
    """
    Unpack a tarball into `extract_dir` and return the files it placed there.

    The returned list holds POSIX paths relative to `extract_dir`, for regular
    files and symlinks only (directories are implied). Dependency installs
    record exactly this list as their manifest.

    Raises:
        ValueError: If any member would land outside `extract_dir`. Nothing is
                    extracted in that case.
        tarfile.TarError: If the archive is unreadable.
    """
    extract_dir.mkdir(parents=True, exist_ok=True)
    placed: list[str] = []

    with tarfile.open(tarball, mode="r:*") as tar:
        members = tar.getmembers()
        unsafe = [m.name for m in members if not _is_safe_member(m, extract_dir)]
        if unsafe:
            raise ValueError(
                f"Refusing to extract {tarball}: unsafe members {', '.join(unsafe[:5])}"
            )

        for member in members:
            tar.extract(member, path=extract_dir, filter="tar")
            if member.isfile() or member.issym() or member.islnk():
                placed.append(member.name.removeprefix("./"))

    _logger.debug(
        "Extracted tarball",
        extra={"tarball": str(tarball), "dest": str(extract_dir), "files": len(placed)},
    )
    return placed

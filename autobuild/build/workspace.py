# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Per-platform workspace lifecycle.

Each platform builds under <run>/build/<triplet>/. The sandbox creates a
ws_* directory in there holding the prefix; once the prefix has been packaged,
that ws_* directory goes away, and so does <run>/build/<triplet>/ if nothing
else is left in it.

"Nothing else" matters: two invocations building the same triplet from the
same directory share <run>/build/<triplet>/, and one run must never delete
the other's in-progress workspace. This is a courtesy check, not a lock.
"""

import logging
import shutil
from pathlib import Path

from autobuild.build.models import Workspace
from autobuild.logging.logger import get_logger
from autobuild.utils.filesystem import is_empty_directory
from autobuild.utils.paths import ensure_directory

_logger: logging.Logger = get_logger(__name__)


def platform_build_dir(run_dir: Path, platform: str) -> Path:
    """Create and return <run>/build/<triplet>/."""
    return ensure_directory(run_dir / "build" / platform)


def workspace_for(prefix: Path, build_dir: Path, platform: str) -> Workspace:
    return Workspace(
        prefix_dir=prefix,
        downloads_dir=prefix / "downloads",
        build_dir=build_dir,
        platform=platform,
    )


def purge_downloads(workspace: Workspace) -> None:
    """Remove the prefix's downloads/ so staged sources never end up in a tarball."""
    if workspace.downloads_dir.exists():
        shutil.rmtree(workspace.downloads_dir)
        _logger.debug("Purged prefix downloads", extra={"path": str(workspace.downloads_dir)})


def destroy_workspace(workspace: Workspace) -> None:
    """Remove the prefix and everything next to it (srcdir, logs)."""
    shutil.rmtree(workspace.root)
    _logger.debug("Workspace destroyed", extra={"path": str(workspace.root)})


def remove_build_dir_if_empty(build_dir: Path) -> bool:
    """
    Remove <run>/build/<triplet>/ if it's empty. Returns whether it was removed.

    If something is still in there, another run is probably building the same
    platform right now, so it stays.
    """
    if is_empty_directory(build_dir):
        build_dir.rmdir()
        return True
    _logger.info(
        "Build directory not empty, leaving it in place",
        extra={"path": str(build_dir)},
    )
    return False

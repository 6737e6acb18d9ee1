# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Safe filesystem operations for autobuild.

Anything that ends up in the products directory is written atomically: we
write to a temporary file in the same directory as the target and rename it.
Rename on the same filesystem is atomic on POSIX, so a crash mid-write leaves
a stray temp file instead of a truncated tarball or manifest.
"""

import tempfile
from pathlib import Path

TEMP_PREFIX = ".autobuild_tmp_"


def atomic_write(target_path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write text to a file atomically.

    Args:
        target_path: Where the final file should end up.
        content: The string content to write.
        encoding: Text encoding to use.

    Raises:
        OSError: If the write or rename fails.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    # delete=False because the file has to survive closing so we can rename it.
    temp_fd = tempfile.NamedTemporaryFile(
        mode="w",
        encoding=encoding,
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_fd.name)

    try:
        temp_fd.write(content)
        temp_fd.flush()
        temp_fd.close()
        temp_path.replace(target_path)
    except BaseException:
        temp_fd.close()
        if temp_path.exists():
            temp_path.unlink()
        raise


def temporary_sibling(target_path: Path, suffix: str = ".tmp") -> Path:
    """
    Reserve a temp file next to `target_path` and return its path.

    The caller owns the file: fill it, then `replace()` it onto the target,
    or unlink it on failure.
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=str(target_path.parent),
        prefix=TEMP_PREFIX,
        suffix=suffix,
        delete=False,
    )
    handle.close()
    return Path(handle.name)


def is_empty_directory(path: Path) -> bool:
    """True if `path` is a directory with nothing in it."""
    return path.is_dir() and not any(path.iterdir())


def prune_empty_parents(path: Path, stop_at: Path) -> int:
    """
    Remove empty directories from `path` upward, never touching `stop_at`.

    Used after uninstalling a dependency: once its files are gone, directories
    like lib/pkgconfig that only it populated should go too.

    Returns:
        Number of directories removed.
    """
    removed = 0
    stop = stop_at.resolve()
    current = path.resolve()
    while current != stop and stop in current.parents:
        if not is_empty_directory(current):
            break
        current.rmdir()
        removed += 1
        current = current.parent
    return removed

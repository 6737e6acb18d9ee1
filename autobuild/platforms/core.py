# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Platform triplets.

The pipeline treats a platform as an opaque string: it is a dictionary key in
the product hash map and a directory name under build/. This module is the
only place that knows anything about a triplet's shape, and it only knows
enough to validate one, name a tarball after it, and recover it from a
tarball's filename.
"""

import re
from typing import Optional

TARBALL_SUFFIX = ".tar.gz"

SUPPORTED_PLATFORMS: tuple[str, ...] = (
    "i686-linux-gnu",
    "x86_64-linux-gnu",
    "aarch64-linux-gnu",
    "arm-linux-gnueabihf",
    "powerpc64le-linux-gnu",
    "i686-linux-musl",
    "x86_64-linux-musl",
    "aarch64-linux-musl",
    "arm-linux-musleabihf",
    "x86_64-apple-darwin14",
    "aarch64-apple-darwin",
    "x86_64-unknown-freebsd11.1",
    "i686-w64-mingw32",
    "x86_64-w64-mingw32",
)

_KNOWN_ARCHES = ("i686", "x86_64", "aarch64", "arm", "armv7l", "powerpc64le")

# arch-[vendor-]os[-abi], where os is one of the families we can build for.
_TRIPLET_RE = re.compile(
    r"^(?P<arch>[a-z0-9_]+)-"
    r"(?:(?P<vendor>[a-z0-9_]+)-)?"
    r"(?P<os>linux|darwin|mingw32|freebsd)(?P<rest>[a-z0-9_.\-]*)$"
)


def parse_platform(text: str) -> str:
    """
    Validate a platform triplet and return it normalized (stripped, lowercase).

    Accepts any triplet with a known architecture and an OS family we target,
    not just the ones in SUPPORTED_PLATFORMS: users can build for platforms
    that aren't in a recipe's default list.

    Raises:
        ValueError: If the string doesn't look like a triplet we can build for.
    """
    candidate = text.strip().lower()
    match = _TRIPLET_RE.match(candidate)
    if match is None or match.group("arch") not in _KNOWN_ARCHES:
        raise ValueError(f"Unrecognized platform triplet: {text!r}")
    return candidate


def tarball_name(base_name: str, platform: Optional[str] = None) -> str:
    """`<base>.<triplet>.tar.gz`, or `<base>.tar.gz` when no platform is given."""
    if platform is None:
        return f"{base_name}{TARBALL_SUFFIX}"
    return f"{base_name}.{platform}{TARBALL_SUFFIX}"


def extract_platform(filename: str) -> Optional[str]:
    """
    Recover the platform triplet from a tarball name built by `tarball_name`.

    Known triplets are matched as suffixes first, since some of them contain
    dots (freebsd11.1). After that every dot in the stem is tried left to
    right and the first suffix that parses as a triplet wins, so dotted
    triplets outside SUPPORTED_PLATFORMS (darwin20.1) are recovered whole.

    Returns:
        The triplet, or None if the filename doesn't carry one.
    """
    if not filename.endswith(TARBALL_SUFFIX):
        return None
    stem = filename[: -len(TARBALL_SUFFIX)]

    for platform in sorted(SUPPORTED_PLATFORMS, key=len, reverse=True):
        if stem.endswith("." + platform):
            return platform

    for index, char in enumerate(stem):
        if char != ".":
            continue
        try:
            return parse_platform(stem[index + 1 :])
        except ValueError:
            continue
    return None


def is_windows(platform: str) -> bool:
    return "mingw32" in platform or "windows" in platform


def is_apple(platform: str) -> bool:
    return "darwin" in platform

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Source declarations and their verified, on-disk counterparts.

A recipe declares each source in one of three shapes. The resolver turns each
into a VerifiedSource: a local path plus the hash that describes it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from autobuild.build.exceptions import InvalidSourceSpec

GIT_SUFFIX = ".git"


@dataclass(frozen=True)
class LocalDirectory:
    """A directory on disk, packaged into a tarball before the build."""

    path: Path


@dataclass(frozen=True)
class RemoteArchive:
    """A file at a URL (or a local file path) pinned by its SHA256."""

    url: str
    sha256: str


@dataclass(frozen=True)
class GitRepository:
    """
    A `.git` URL, mirrored locally.

    `revision` is carried through to the sandbox, which checks it out. The
    mirror itself is never verified against it.
    """

    url: str
    revision: str = ""


SourceSpec = Union[LocalDirectory, RemoteArchive, GitRepository]


@dataclass(frozen=True)
class VerifiedSource:
    """A source that is on disk and matches its declared hash."""

    local_path: Path
    content_hash: str


_EITHER_PATH_OR_URL = "Sources must be either a local directory (path) or a url with a hash"


def parse_source_spec(
    path: Optional[str] = None,
    url: Optional[str] = None,
    sha256: Optional[str] = None,
) -> SourceSpec:
    """
    Turn the fields of one recipe `sources:` entry into a SourceSpec.

    Exactly one of `path` or `url` must be given. A URL ending in `.git` is a
    GitRepository (its `sha256`, if any, is the revision pin); any other URL
    needs a hash.

    Raises:
        InvalidSourceSpec: For any other combination.
    """
    if path is not None:
        if url is not None:
            raise InvalidSourceSpec(_EITHER_PATH_OR_URL)
        if sha256 is not None:
            raise InvalidSourceSpec(
                f"Local directory source {path!r} must not declare a hash"
            )
        return LocalDirectory(Path(path))

    if url is None:
        raise InvalidSourceSpec(_EITHER_PATH_OR_URL)

    if url.endswith(GIT_SUFFIX):
        return GitRepository(url=url, revision=sha256 or "")

    if not sha256:
        raise InvalidSourceSpec(f"Source {url!r} needs a sha256 hash")
    return RemoteArchive(url=url, sha256=sha256.lower())

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Exceptions raised by the autobuild pipeline.

Everything here derives from AutobuildError so the CLI can catch pipeline
failures in one place without importing every subsystem. All of them are
fatal to the run except UnknownPlatformAsset, which release reconstruction
catches and turns into a warning.
"""


class AutobuildError(Exception):
    """Base for all pipeline errors."""


class InvalidSourceSpec(AutobuildError):
    """A declared source is neither a local directory, a url+hash pair, nor a git url."""


class HashMismatch(AutobuildError):
    """The digest of a file on disk disagrees with the declared hash."""

    def __init__(self, path: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Hash mismatch for {path}: expected {expected}, got {actual}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class DownloadFailure(AutobuildError):
    """A transport-level failure while fetching a source, dependency or asset."""


class BuildFailure(AutobuildError):
    """The sandboxed build for one platform reported failure."""

    def __init__(self, platform: str, detail: str = "") -> None:
        message = f"Failed to build {platform}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.platform = platform


class DependencyCleanupFailure(AutobuildError):
    """
    A dependency's files could not be identified or removed from the prefix.

    The prefix is considered contaminated and must not be packaged.
    """


class UnknownPlatformAsset(AutobuildError):
    """A release asset's name does not map to a platform triplet."""

    def __init__(self, asset_name: str) -> None:
        super().__init__(f"Can't extract a platform from asset {asset_name!r}")
        self.asset_name = asset_name


class MissingReconstructionConfig(AutobuildError):
    """Manifest-only mode was requested without a repository slug and tag."""

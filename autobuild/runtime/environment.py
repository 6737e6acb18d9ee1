# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Environment detection for autobuild.

Two things come from the environment rather than the command line:

  - whether we're running under CI (TRAVIS or CI set), which switches on the
    heartbeat for non-verbose runs
  - the release coordinates (repository slug and tag), which decide the base
    download URL written into the build manifest and are required for
    manifest-only runs

Travis-style variables (TRAVIS_REPO_SLUG, TRAVIS_TAG) take precedence; GitHub
Actions (GITHUB_REPOSITORY plus a refs/tags/ GITHUB_REF) is the fallback.
"""

import os
import platform
import sys
from dataclasses import dataclass
from typing import Mapping, NamedTuple, Optional

from autobuild.build.exceptions import MissingReconstructionConfig

MINIMUM_PYTHON_MAJOR = 3
MINIMUM_PYTHON_MINOR = 11

PLACEHOLDER_BIN_PATH = "https://<path to hosted binaries>"
_TAG_REF_PREFIX = "refs/tags/"


class SystemInfo(NamedTuple):
    """Snapshot of the host, logged at the start of a run."""

    python_version: str
    platform: str
    architecture: str


class ReleaseCoordinates(NamedTuple):
    repository: str
    tag: str


@dataclass(frozen=True)
class RunEnvironment:
    ci: bool
    repository: Optional[str]
    tag: Optional[str]

    @property
    def bin_path(self) -> str:
        """
        Base URL the manifest points downloads at.

        Only meaningful for tagged releases; local builds get a placeholder so
        they still produce a manifest.
        """
        if self.repository and self.tag:
            return f"https://github.com/{self.repository}/releases/download/{self.tag}"
        return PLACEHOLDER_BIN_PATH

    def require_release(self) -> ReleaseCoordinates:
        """
        The repository and tag for manifest-only runs.

        Raises:
            MissingReconstructionConfig: If either is missing.
        """
        if not self.repository or not self.tag:
            raise MissingReconstructionConfig(
                "Must provide repository name and tag through environment variables "
                "like TRAVIS_REPO_SLUG and TRAVIS_TAG (or GITHUB_REPOSITORY and a tag GITHUB_REF)!"
            )
        return ReleaseCoordinates(self.repository, self.tag)


def detect_environment(environ: Optional[Mapping[str, str]] = None) -> RunEnvironment:
    """Read CI and release settings from `environ` (defaults to os.environ)."""
    env = os.environ if environ is None else environ

    ci = "TRAVIS" in env or "CI" in env

    repository = env.get("TRAVIS_REPO_SLUG") or None
    tag = env.get("TRAVIS_TAG") or None

    if repository is None:
        repository = env.get("GITHUB_REPOSITORY") or None
    if tag is None:
        ref = env.get("GITHUB_REF", "")
        if ref.startswith(_TAG_REF_PREFIX):
            tag = ref[len(_TAG_REF_PREFIX):]

    return RunEnvironment(ci=ci, repository=repository, tag=tag)


def check_minimum_python() -> None:
    """
    Verify we're running Python 3.11+.

    Raises:
        RuntimeError: If the interpreter is older.
    """
    major, minor = sys.version_info[:2]
    if (major, minor) < (MINIMUM_PYTHON_MAJOR, MINIMUM_PYTHON_MINOR):
        raise RuntimeError(
            f"autobuild requires Python >= {MINIMUM_PYTHON_MAJOR}.{MINIMUM_PYTHON_MINOR}, "
            f"but you're running {major}.{minor}. Please upgrade."
        )


def get_system_info() -> SystemInfo:
    return SystemInfo(
        python_version=platform.python_version(),
        platform=platform.system(),
        architecture=platform.machine(),
    )

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Core value types for the build pipeline.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

from autobuild.products.core import Product
from autobuild.sources.models import VerifiedSource


class ProductHash(NamedTuple):
    """One entry of a product hash map: the tarball's file name and SHA256."""

    filename: str
    sha256: str


# Platform triplet → (tarball filename, sha256). The pipeline's final output.
ProductHashMap = dict[str, ProductHash]


@dataclass(frozen=True)
class Workspace:
    """
    One platform's scratch tree.

    `build_dir` is <run>/build/<triplet>/. The prefix lives in a ws_* directory
    under it, and `downloads_dir` is the prefix's own downloads/ subdirectory.
    """

    prefix_dir: Path
    downloads_dir: Path
    build_dir: Path
    platform: str

    @property
    def root(self) -> Path:
        """The ws_* directory holding the prefix and its sibling scratch dirs."""
        return self.prefix_dir.parent


@dataclass(frozen=True)
class BuildJob:
    """Everything the sandbox needs to run one platform's build."""

    source_name: str
    verified_sources: tuple[VerifiedSource, ...]
    script: str
    products: tuple[Product, ...]
    dependencies: tuple[str, ...]
    platform: str


@dataclass(frozen=True)
class RunContext:
    """
    Per-invocation run state.

    Replaces process-wide flags: the orchestrator reads everything it needs to
    know about its environment from here.
    """

    verbose: bool = False
    ci: bool = False
    heartbeat_interval: float = 4.0
    build_timeout_seconds: int = 4 * 60 * 60
    extra_env: dict[str, str] = field(default_factory=dict)

    @property
    def heartbeat_enabled(self) -> bool:
        return self.ci and not self.verbose

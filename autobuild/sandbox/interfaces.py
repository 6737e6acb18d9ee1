# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The contract between the orchestrator and whatever actually runs builds.

The orchestrator never looks inside a sandbox. It asks for a prefix and an
opaque runner handle, hands the runner a BuildJob, and gets back a yes or no.
LocalSandbox is the default implementation; tests substitute their own.
"""

from pathlib import Path
from typing import Any, Protocol, Sequence

from autobuild.build.models import BuildJob
from autobuild.dependencies.descriptor import DependencyDescriptor


class Sandbox(Protocol):
    def setup_workspace(
        self,
        build_dir: Path,
        source_paths: Sequence[Path],
        source_hashes: Sequence[str],
        dependencies: Sequence[DependencyDescriptor],
        platform: str,
    ) -> tuple[Path, Any]:
        """
        Create a fresh workspace under `build_dir`, stage sources, install
        dependencies into the prefix, and return (prefix, runner).

        The prefix's parent directory is the workspace root; the orchestrator
        removes it after packaging.
        """
        ...

    def run_build(self, runner: Any, job: BuildJob) -> bool:
        """Run the job's script. True only if it succeeded and produced every declared product."""
        ...

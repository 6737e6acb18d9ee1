# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Local sandbox: builds run as a bash subprocess inside a per-platform workspace.

Workspace layout, created fresh for every platform:

    <run>/build/<triplet>/ws_XXXX/
    ├─ srcdir/             sources, unpacked (the script's working directory)
    ├─ destdir/            the prefix: install everything here
    │  ├─ downloads/       staged source files (purged before the build)
    │  └─ manifests/       install manifests of dependencies
    └─ build.log           script output when not running verbose

The script gets $prefix, $WORKSPACE, $srcdir, $target and $nproc in its
environment and runs under `bash -euo pipefail`. This is process isolation
only: no containers, no chroot. The directory layout is what keeps platforms
apart.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import httpx

from autobuild.build.exceptions import BuildFailure
from autobuild.build.models import BuildJob
from autobuild.dependencies.descriptor import DependencyDescriptor
from autobuild.dependencies.shadow import install_dependency
from autobuild.logging.logger import get_logger
from autobuild.packaging.tarball import extract_tarball
from autobuild.products.core import missing_products
from autobuild.sources.resolver import GIT_TIMEOUT_SECONDS
from autobuild.utils.paths import ensure_directory, validate_path_within

_logger: logging.Logger = get_logger(__name__)

_TAR_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2", ".tar")
_LOG_TAIL_LINES = 40


@dataclass(frozen=True)
class LocalRunner:
    """Handle for one prepared workspace."""

    workspace: Path
    srcdir: Path
    prefix: Path
    platform: str
    env: dict[str, str] = field(default_factory=dict)

    @property
    def log_path(self) -> Path:
        return self.workspace / "build.log"


def _stage_source(source_path: Path, revision: str, srcdir: Path, downloads: Path) -> None:
    """Drop one verified source into downloads/ and unpack it into srcdir/."""
    staged = downloads / source_path.name
    validate_path_within(staged, downloads)
    if not staged.exists():
        staged.symlink_to(source_path.resolve())

    name = source_path.name
    if source_path.is_dir():
        # A bare git mirror: check out a working tree from it.
        checkout = srcdir / name.removesuffix(".git")
        subprocess.run(
            ["git", "clone", "--quiet", str(source_path), str(checkout)],
            check=True,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
        if revision:
            subprocess.run(
                ["git", "-C", str(checkout), "checkout", "--quiet", revision],
                check=True,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT_SECONDS,
            )
    elif name.endswith(_TAR_SUFFIXES):
        extract_tarball(source_path, srcdir)
    elif name.endswith(".zip"):
        shutil.unpack_archive(str(source_path), str(srcdir), format="zip")
    else:
        shutil.copy2(source_path, srcdir / name)

    _logger.debug("Staged source", extra={"source": str(source_path), "srcdir": str(srcdir)})


class LocalSandbox:
    """
    The default sandbox: a temp workspace per platform and a bash subprocess per build.

    Args:
        client: HTTP client used to download dependency tarballs.
        verbose: Stream build output to the console instead of build.log.
        timeout_seconds: Hard limit for one build script.
        extra_env: Additional environment variables for build scripts.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        verbose: bool = False,
        timeout_seconds: int = 4 * 60 * 60,
        extra_env: Optional[dict[str, str]] = None,
    ) -> None:
        self._client = client
        self._verbose = verbose
        self._timeout_seconds = timeout_seconds
        self._extra_env = dict(extra_env or {})

    def setup_workspace(
        self,
        build_dir: Path,
        source_paths: Sequence[Path],
        source_hashes: Sequence[str],
        dependencies: Sequence[DependencyDescriptor],
        platform: str,
    ) -> tuple[Path, LocalRunner]:
        workspace = Path(tempfile.mkdtemp(prefix="ws_", dir=str(ensure_directory(build_dir))))
        srcdir = ensure_directory(workspace / "srcdir")
        prefix = ensure_directory(workspace / "destdir")
        downloads = ensure_directory(prefix / "downloads")

        try:
            for source_path, source_hash in zip(source_paths, source_hashes):
                _stage_source(Path(source_path), source_hash, srcdir, downloads)
        except subprocess.CalledProcessError as err:
            raise BuildFailure(platform, f"could not check out source: {err.stderr.strip()}") from err
        except FileNotFoundError as err:
            raise BuildFailure(platform, f"could not check out source: {err}") from err
        except subprocess.TimeoutExpired as err:
            raise BuildFailure(
                platform, f"source checkout timed out after {GIT_TIMEOUT_SECONDS} seconds"
            ) from err

        for dependency in dependencies:
            install_dependency(dependency, prefix, platform, client=self._client)

        env = {
            "prefix": str(prefix),
            "WORKSPACE": str(workspace),
            "srcdir": str(srcdir),
            "target": platform,
            "nproc": str(os.cpu_count() or 1),
            **self._extra_env,
        }

        _logger.info(
            "Workspace ready",
            extra={
                "workspace": str(workspace),
                "platform": platform,
                "sources": len(source_paths),
                "dependencies": len(dependencies),
            },
        )
        return prefix, LocalRunner(
            workspace=workspace, srcdir=srcdir, prefix=prefix, platform=platform, env=env
        )

    def _log_tail(self, runner: LocalRunner) -> str:
        if not runner.log_path.is_file():
            return ""
        lines = runner.log_path.read_text(encoding="utf-8", errors="replace").splitlines()
        return "\n".join(lines[-_LOG_TAIL_LINES:])

    def run_build(self, runner: LocalRunner, job: BuildJob) -> bool:
        env = dict(os.environ)
        env.update(runner.env)

        _logger.info(
            "Running build script",
            extra={"source": job.source_name, "platform": job.platform, "cwd": str(runner.srcdir)},
        )

        try:
            if self._verbose:
                result = subprocess.run(
                    ["bash", "-euo", "pipefail", "-c", job.script],
                    cwd=str(runner.srcdir),
                    env=env,
                    timeout=self._timeout_seconds,
                    check=False,
                )
            else:
                with open(runner.log_path, "w", encoding="utf-8") as log:
                    result = subprocess.run(
                        ["bash", "-euo", "pipefail", "-c", job.script],
                        cwd=str(runner.srcdir),
                        env=env,
                        stdout=log,
                        stderr=subprocess.STDOUT,
                        timeout=self._timeout_seconds,
                        check=False,
                    )
        except subprocess.TimeoutExpired:
            _logger.error(
                "Build timed out",
                extra={"platform": job.platform, "timeout_seconds": self._timeout_seconds},
            )
            return False
        except FileNotFoundError:
            _logger.error("bash not found", extra={"platform": job.platform})
            return False

        if result.returncode != 0:
            _logger.error(
                "Build script failed",
                extra={
                    "platform": job.platform,
                    "exit_code": result.returncode,
                    "log": str(runner.log_path),
                    "tail": self._log_tail(runner),
                },
            )
            return False

        missing = missing_products(runner.prefix, job.products, job.platform)
        if missing:
            _logger.error(
                "Build finished but products are missing",
                extra={"platform": job.platform, "missing": [p.name for p in missing]},
            )
            return False

        _logger.info("Build succeeded", extra={"platform": job.platform})
        return True

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The autobuild orchestrator: sources in, one hashed tarball per platform out.

For a run directory <run>, the flow is:

  1. Resolve every source once (downloads land in <run>/downloads/).
  2. For each platform, strictly one after another:
       a. make <run>/build/<triplet>/ and ask the sandbox for a prefix
       b. purge the prefix's downloads/
       c. run the build script; failure aborts the whole run
       d. uninstall every dependency from the prefix
       e. package the prefix into <run>/products/<name>.<triplet>.tar.gz
       f. remove the workspace, and the build dir if it's empty
  3. Return {triplet: (tarball name, sha256)}.

Fail-fast: the first error stops the run. Tarballs already written for
earlier platforms stay on disk, but no hash map is returned. A workspace
whose build failed is left in place so the failure can be inspected.
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional, Sequence

import httpx

from autobuild.build.exceptions import BuildFailure
from autobuild.build.heartbeat import ci_heartbeat
from autobuild.build.models import BuildJob, ProductHash, ProductHashMap, RunContext
from autobuild.build.workspace import (
    destroy_workspace,
    platform_build_dir,
    purge_downloads,
    remove_build_dir_if_empty,
    workspace_for,
)
from autobuild.dependencies.descriptor import DependencyDescriptor
from autobuild.dependencies.shadow import uninstall_dependencies
from autobuild.logging.logger import get_logger
from autobuild.packaging.tarball import package
from autobuild.products.core import Product
from autobuild.sandbox.interfaces import Sandbox
from autobuild.sandbox.local import LocalSandbox
from autobuild.sources.download import create_client
from autobuild.sources.models import SourceSpec, VerifiedSource
from autobuild.sources.resolver import resolve_sources
from autobuild.utils.paths import ensure_directory

_logger: logging.Logger = get_logger(__name__)


def _build_platform(
    run_dir: Path,
    out_dir: Path,
    src_name: str,
    platform: str,
    verified: Sequence[VerifiedSource],
    script: str,
    products: Sequence[Product],
    dependencies: Sequence[DependencyDescriptor],
    sandbox: Sandbox,
) -> ProductHash:
    build_dir = platform_build_dir(run_dir, platform)

    prefix, runner = sandbox.setup_workspace(
        build_dir,
        [v.local_path for v in verified],
        [v.content_hash for v in verified],
        dependencies,
        platform,
    )
    workspace = workspace_for(prefix, build_dir, platform)
    purge_downloads(workspace)

    job = BuildJob(
        source_name=src_name,
        verified_sources=tuple(verified),
        script=script,
        products=tuple(products),
        dependencies=tuple(d.location for d in dependencies),
        platform=platform,
    )
    if not sandbox.run_build(runner, job):
        _logger.error(
            "Build failed, leaving workspace for inspection",
            extra={"platform": platform, "workspace": str(workspace.root)},
        )
        raise BuildFailure(platform)

    uninstall_dependencies(dependencies, prefix, platform)

    tarball_path, tarball_hash = package(prefix, out_dir / src_name, platform=platform, force=True)

    destroy_workspace(workspace)
    remove_build_dir_if_empty(build_dir)

    return ProductHash(tarball_path.name, tarball_hash)


def autobuild(
    run_dir: Path,
    src_name: str,
    platforms: Sequence[str],
    sources: Sequence[SourceSpec],
    script: str,
    products: Sequence[Product],
    dependencies: Sequence[DependencyDescriptor] = (),
    *,
    sandbox: Optional[Sandbox] = None,
    context: Optional[RunContext] = None,
    client: Optional[httpx.Client] = None,
) -> ProductHashMap:
    """
    Download, build and package `src_name` for every platform in `platforms`.

    Args:
        run_dir: Root of this run. downloads/, build/ and products/ go here.
        src_name: Package name; tarballs are called <src_name>.<triplet>.tar.gz.
        platforms: Triplets to build, in order. Duplicates are built once.
        sources: Declared sources, in the order the script expects them.
        script: Bash build script.
        products: What a successful build must leave in the prefix.
        dependencies: Upstream packages installed before the build and
                      removed again before packaging.
        sandbox: Where builds run. Defaults to a LocalSandbox.
        context: Verbosity, CI detection and build limits.
        client: Shared HTTP client for source and dependency downloads.

    Returns:
        {triplet: ProductHash(tarball filename, sha256)} for every platform.

    Raises:
        InvalidSourceSpec, HashMismatch, DownloadFailure: While resolving
            sources, before any workspace exists.
        BuildFailure: A platform's build failed; later platforms never start.
        DependencyCleanupFailure: A dependency couldn't be stripped from a prefix.
    """
    context = context if context is not None else RunContext()
    run_dir = run_dir.resolve()
    ordered_platforms = list(dict.fromkeys(platforms))
    if len(ordered_platforms) != len(platforms):
        _logger.warning("Duplicate platforms ignored", extra={"platforms": list(platforms)})

    owns_client = client is None
    http = client if client is not None else create_client()
    if sandbox is None:
        sandbox = LocalSandbox(
            client=http,
            verbose=context.verbose,
            timeout_seconds=context.build_timeout_seconds,
            extra_env=context.extra_env,
        )

    product_hashes: ProductHashMap = {}
    try:
        with ci_heartbeat(context.heartbeat_enabled, context.heartbeat_interval):
            # Local source directories are packaged in here; the tarballs have
            # to stay around for every platform.
            with tempfile.TemporaryDirectory(prefix="autobuild_src_") as scratch:
                verified = resolve_sources(sources, run_dir / "downloads", Path(scratch), client=http)
                out_dir = ensure_directory(run_dir / "products")

                for platform in ordered_platforms:
                    _logger.info("Building platform", extra={"platform": platform, "source": src_name})
                    product_hashes[platform] = _build_platform(
                        run_dir,
                        out_dir,
                        src_name,
                        platform,
                        verified,
                        script,
                        products,
                        dependencies,
                        sandbox,
                    )
                    _logger.info(
                        "Platform packaged",
                        extra={
                            "platform": platform,
                            "tarball": product_hashes[platform].filename,
                            "sha256": product_hashes[platform].sha256,
                        },
                    )
    finally:
        if owns_client:
            http.close()

    return product_hashes

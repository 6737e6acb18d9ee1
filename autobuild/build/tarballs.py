# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
build_tarballs: the entry point behind `autobuild build`.

Takes a validated recipe and decides between the two paths:

  - normal: build every platform (the recipe's defaults, or the targets
    given on the command line) and return the product hash map
  - manifest-only: build nothing, reconstruct the hash map from the tagged
    release named by the environment

Then it writes products/build.yaml, unless targets were overridden: an
override usually means a test build or one shard of a sharded build, and a
manifest covering only some platforms would be misleading. Manifest-only runs
always write one. That's their whole purpose.
"""

import logging
from pathlib import Path
from typing import Mapping, Optional, Sequence

import httpx

from autobuild.build.models import ProductHashMap, RunContext
from autobuild.build.orchestrator import autobuild
from autobuild.config.schema import RecipeConfig
from autobuild.dependencies.descriptor import load_dependency
from autobuild.logging.logger import get_logger
from autobuild.manifest.writer import render_build_manifest, write_build_manifest
from autobuild.platforms.core import parse_platform
from autobuild.products.core import Product
from autobuild.release.reconstruct import reconstruct_product_hashes
from autobuild.runtime.environment import detect_environment
from autobuild.sandbox.interfaces import Sandbox
from autobuild.sources.download import create_client
from autobuild.sources.models import parse_source_spec

_logger: logging.Logger = get_logger(__name__)


def recipe_products(recipe: RecipeConfig) -> list[Product]:
    return [
        Product(kind=p.kind, name=p.name, variable=p.variable or p.name)
        for p in recipe.products
    ]


def build_tarballs(
    recipe: RecipeConfig,
    targets: Optional[Sequence[str]] = None,
    *,
    only_manifest: bool = False,
    verbose: bool = False,
    run_dir: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    sandbox: Optional[Sandbox] = None,
    client: Optional[httpx.Client] = None,
    build_timeout_seconds: int = 4 * 60 * 60,
    heartbeat_interval: float = 4.0,
) -> ProductHashMap:
    """
    Build (or reconstruct) and record the tarballs for a recipe.

    Args:
        recipe: Validated recipe.
        targets: Triplets overriding the recipe's platforms.
        only_manifest: Skip building; reconstruct from the release instead.
        verbose: Stream build output and log the written manifest.
        run_dir: Root for downloads/, build/ and products/. Defaults to cwd.
        environ: Environment to read CI and release settings from.
        sandbox: Sandbox override (tests).
        client: Shared HTTP client.

    Returns:
        The product hash map.

    Raises:
        MissingReconstructionConfig: Manifest-only without repository and tag.
            Raised before any network activity.
        ValueError: A target isn't a valid triplet.
        AutobuildError: Anything the build or reconstruction raises.
    """
    environment = detect_environment(environ)
    coordinates = environment.require_release() if only_manifest else None

    run_dir = (run_dir if run_dir is not None else Path.cwd()).resolve()
    override_platforms = bool(targets)
    platforms = (
        [parse_platform(t) for t in targets] if targets else list(recipe.platforms)
    )
    products = recipe_products(recipe)

    owns_client = client is None
    http = client if client is not None else create_client()
    try:
        if coordinates is None:
            _logger.info("Building", extra={"platforms": platforms, "source": recipe.name})
            sources = [parse_source_spec(s.path, s.url, s.sha256) for s in recipe.sources]
            dependencies = [load_dependency(d, client=http) for d in recipe.dependencies]
            context = RunContext(
                verbose=verbose,
                ci=environment.ci,
                heartbeat_interval=heartbeat_interval,
                build_timeout_seconds=build_timeout_seconds,
            )
            product_hashes = autobuild(
                run_dir,
                recipe.name,
                platforms,
                sources,
                recipe.script,
                products,
                dependencies,
                sandbox=sandbox,
                context=context,
                client=http,
            )
        else:
            _logger.info(
                "Reconstructing product hashes from release",
                extra={"repository": coordinates.repository, "tag": coordinates.tag},
            )
            product_hashes = reconstruct_product_hashes(
                coordinates.repository, coordinates.tag, client=http, verbose=verbose
            )
    finally:
        if owns_client:
            http.close()

    if not override_platforms or only_manifest:
        bin_path = environment.bin_path
        write_build_manifest(run_dir, recipe.name, products, product_hashes, bin_path)
        if verbose:
            _logger.info(
                "Wrote the following build manifest",
                extra={"manifest": render_build_manifest(recipe.name, products, product_hashes, bin_path)},
            )

    return product_hashes

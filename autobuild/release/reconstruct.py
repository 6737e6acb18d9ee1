# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Rebuild a product hash map from a published release.

Large packages are often built sharded: each CI job builds a few platforms
and uploads its tarballs to the same tagged release, so no single job ever
sees the complete hash map. This module recovers it after the fact by
downloading every tarball on the release and hashing it. Nothing gets built.

Asset handling:
  - manifest assets (build.yaml, build.jl) are always skipped, by name
  - assets whose names don't carry a platform triplet are skipped with a warning
  - if two assets resolve to the same platform, the later one wins
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from autobuild.build.exceptions import UnknownPlatformAsset
from autobuild.build.models import ProductHash, ProductHashMap
from autobuild.logging.logger import get_logger
from autobuild.manifest.writer import MANIFEST_ASSET_NAMES
from autobuild.platforms.core import extract_platform
from autobuild.release.github import GitHubReleases, ReleaseAsset
from autobuild.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


def asset_platform(asset_name: str) -> str:
    """
    The platform triplet an asset was built for.

    Raises:
        UnknownPlatformAsset: If the name doesn't carry one.
    """
    platform = extract_platform(asset_name)
    if platform is None:
        raise UnknownPlatformAsset(asset_name)
    return platform


def _platform_assets(assets: list[ReleaseAsset]) -> list[tuple[str, ReleaseAsset]]:
    selected: list[tuple[str, ReleaseAsset]] = []
    for asset in assets:
        if asset.name in MANIFEST_ASSET_NAMES:
            _logger.debug("Skipping manifest asset", extra={"asset": asset.name})
            continue
        try:
            selected.append((asset_platform(asset.name), asset))
        except UnknownPlatformAsset as err:
            _logger.warning(
                "Ignoring asset; can't extract its platform",
                extra={"asset": err.asset_name},
            )
    return selected


def reconstruct_product_hashes(
    repository: str,
    tag: str,
    client: Optional[httpx.Client] = None,
    releases: Optional[GitHubReleases] = None,
    verbose: bool = False,
) -> ProductHashMap:
    """
    Download and hash every platform tarball on `repository`'s `tag` release.

    Args:
        repository: owner/name slug.
        tag: Release tag.
        client: HTTP client for a default GitHubReleases.
        releases: Release client to use instead of building one.
        verbose: Log each computed hash at INFO instead of DEBUG.

    Returns:
        {triplet: ProductHash(asset name, sha256)}

    Raises:
        DownloadFailure: Listing or downloading failed.
    """
    owns_releases = releases is None
    gh = releases if releases is not None else GitHubReleases(client=client)

    _logger.info(
        "Reconstructing product hashes from release",
        extra={"repository": repository, "tag": tag},
    )

    product_hashes: ProductHashMap = {}
    try:
        selected = _platform_assets(gh.list_assets(repository, tag))

        with tempfile.TemporaryDirectory(prefix="autobuild_release_") as scratch:
            for platform, asset in selected:
                filepath = gh.download(asset.download_url, Path(scratch) / asset.name)
                digest = compute_sha256(filepath)

                if platform in product_hashes:
                    _logger.warning(
                        "Two assets map to the same platform, keeping the later one",
                        extra={
                            "platform": platform,
                            "previous": product_hashes[platform].filename,
                            "asset": asset.name,
                        },
                    )
                product_hashes[platform] = ProductHash(asset.name, digest)

                _logger.log(
                    logging.INFO if verbose else logging.DEBUG,
                    "Calculated asset hash",
                    extra={"asset": asset.name, "sha256": digest},
                )
    finally:
        if owns_releases:
            gh.close()

    _logger.info("Reconstructed product hashes", extra={"platforms": len(product_hashes)})
    return product_hashes

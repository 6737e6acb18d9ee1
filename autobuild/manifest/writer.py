# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
The build manifest: products/build.yaml.

After a run, this file tells consumers what the package provides and where to
get a tarball for each platform:

    name: libfoo
    bin_prefix: https://github.com/org/libfoo_builder/releases/download/v1.0.0
    products:
      - {kind: library, name: libfoo, variable: libfoo}
    download_info:
      x86_64-linux-gnu:
        url: https://github.com/.../libfoo.x86_64-linux-gnu.tar.gz
        sha256: 9f86d0...

It is also the format autobuild reads back when another package lists this
one as a dependency, so a package's manifest is the next package's dependency
descriptor. It is plain data read with yaml.safe_load; nothing in it is ever
executed.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, NamedTuple, Sequence

import yaml

from autobuild.build.models import ProductHash
from autobuild.logging.logger import get_logger
from autobuild.products.core import Product
from autobuild.utils.filesystem import atomic_write

_logger: logging.Logger = get_logger(__name__)

MANIFEST_FILENAME = "build.yaml"

# Release assets that are manifests rather than platform tarballs. build.jl is
# the legacy manifest name still attached to older releases.
MANIFEST_ASSET_NAMES: frozenset[str] = frozenset({MANIFEST_FILENAME, "build.jl"})

_REQUIRED_MANIFEST_FIELDS: frozenset[str] = frozenset({"name", "download_info"})

_HEADER = "# Generated by autobuild. Do not edit by hand.\n"


class DownloadInfo(NamedTuple):
    url: str
    sha256: str


@dataclass(frozen=True)
class BuildManifest:
    name: str
    bin_prefix: str
    products: list[Product] = field(default_factory=list)
    download_info: dict[str, DownloadInfo] = field(default_factory=dict)


def _product_to_dict(product: Product) -> dict[str, str]:
    return {"kind": product.kind, "name": product.name, "variable": product.variable}


def render_build_manifest(
    name: str,
    products: Sequence[Product],
    product_hashes: Mapping[str, ProductHash],
    bin_path: str,
) -> str:
    """Render the manifest as YAML text. Platforms are sorted."""
    bin_prefix = bin_path.rstrip("/")
    data: dict[str, Any] = {
        "name": name,
        "bin_prefix": bin_prefix,
        "products": [_product_to_dict(p) for p in products],
        "download_info": {
            platform: {
                "url": f"{bin_prefix}/{product_hashes[platform].filename}",
                "sha256": product_hashes[platform].sha256,
            }
            for platform in sorted(product_hashes)
        },
    }
    return _HEADER + yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


def write_build_manifest(
    run_dir: Path,
    name: str,
    products: Sequence[Product],
    product_hashes: Mapping[str, ProductHash],
    bin_path: str,
) -> Path:
    """Write <run_dir>/products/build.yaml atomically and return its path."""
    path = run_dir / "products" / MANIFEST_FILENAME
    atomic_write(path, render_build_manifest(name, products, product_hashes, bin_path))
    _logger.info(
        "Build manifest written",
        extra={"path": str(path), "platforms": len(product_hashes)},
    )
    return path


def parse_build_manifest(text: str) -> BuildManifest:
    """
    Parse manifest YAML into a BuildManifest.

    Raises:
        ValueError: If the text isn't a mapping, required fields are missing,
                    or a download_info entry is malformed.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise ValueError(f"Invalid build manifest YAML: {err}") from err

    if not isinstance(data, dict):
        raise ValueError("Build manifest must be a YAML mapping")

    missing = _REQUIRED_MANIFEST_FIELDS - set(data.keys())
    if missing:
        raise ValueError(
            f"Build manifest is missing required fields: {', '.join(sorted(missing))}"
        )

    raw_info = data["download_info"] or {}
    if not isinstance(raw_info, dict):
        raise ValueError("download_info must be a mapping of platform to {url, sha256}")

    download_info: dict[str, DownloadInfo] = {}
    for platform, entry in raw_info.items():
        if not isinstance(entry, dict) or "url" not in entry or "sha256" not in entry:
            raise ValueError(f"download_info entry for {platform} needs url and sha256")
        download_info[str(platform)] = DownloadInfo(str(entry["url"]), str(entry["sha256"]))

    products = [
        Product(kind=p["kind"], name=p["name"], variable=p.get("variable", p["name"]))
        for p in data.get("products") or []
    ]

    return BuildManifest(
        name=str(data["name"]),
        bin_prefix=str(data.get("bin_prefix", "")),
        products=products,
        download_info=download_info,
    )


def load_build_manifest(path: Path) -> BuildManifest:
    """
    Load a manifest from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If it doesn't parse (see parse_build_manifest).
    """
    if not path.is_file():
        raise FileNotFoundError(f"Build manifest not found: {path}")
    return parse_build_manifest(path.read_text(encoding="utf-8"))

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Dependency descriptors.

A dependency is another autobuild package, referred to by the location of its
build manifest (a local path or a URL to a build.yaml). The descriptor text is
fetched once per run; evaluating it for a platform means parsing the YAML and
looking that platform up in its download_info table. Nothing in a descriptor
is executed, so evaluating one can never install anything.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from autobuild.build.exceptions import DownloadFailure
from autobuild.logging.logger import get_logger
from autobuild.manifest.writer import BuildManifest, DownloadInfo, parse_build_manifest
from autobuild.sources.download import fetch_text

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class DependencyDescriptor:
    """The raw manifest text of one upstream package and where it came from."""

    location: str
    text: str

    def evaluate(self) -> BuildManifest:
        """
        Parse the descriptor.

        Raises:
            ValueError: If the text isn't a valid build manifest.
        """
        return parse_build_manifest(self.text)

    def resolve_download_info(self, platform: str) -> DownloadInfo:
        """
        The (url, sha256) of this dependency's tarball for `platform`.

        Raises:
            ValueError: If the descriptor doesn't parse or has no entry for
                        `platform`.
        """
        manifest = self.evaluate()
        try:
            return manifest.download_info[platform]
        except KeyError:
            raise ValueError(
                f"Dependency {manifest.name} has no tarball for {platform} "
                f"(available: {', '.join(sorted(manifest.download_info)) or 'none'})"
            ) from None


def load_dependency(location: str, client: Optional[httpx.Client] = None) -> DependencyDescriptor:
    """
    Read a dependency descriptor from a local path or URL.

    Raises:
        DownloadFailure: If it can't be read.
    """
    if location.startswith(("http://", "https://")):
        text = fetch_text(location, client=client)
    else:
        path = Path(location)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as err:
            raise DownloadFailure(f"Cannot read dependency descriptor {location}: {err}") from err

    _logger.debug("Loaded dependency descriptor", extra={"location": location})
    return DependencyDescriptor(location=location, text=text)

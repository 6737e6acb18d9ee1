# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Minimal GitHub Releases client.

Two calls: list the assets attached to a tagged release, and download one of
them. Authentication is optional; a GITHUB_TOKEN in the environment raises the
API rate limit and gives access to private repositories.
"""

import logging
import os
from pathlib import Path
from typing import NamedTuple, Optional

import httpx

from autobuild.build.exceptions import DownloadFailure
from autobuild.logging.logger import get_logger
from autobuild.sources.download import create_client, download

_logger: logging.Logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class ReleaseAsset(NamedTuple):
    name: str
    download_url: str


def _build_github_headers(token: Optional[str]) -> dict[str, str]:
    headers: dict[str, str] = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class GitHubReleases:
    """
    Args:
        client: HTTP client. One is created (and owned) if omitted.
        token: API token. Defaults to $GITHUB_TOKEN.
        api_url: API root, overridable for GitHub Enterprise.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
    ) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else create_client()
        self._token = token if token is not None else os.environ.get("GITHUB_TOKEN")
        self._api_url = api_url.rstrip("/")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GitHubReleases":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def list_assets(self, repository: str, tag: str) -> list[ReleaseAsset]:
        """
        Assets attached to the release tagged `tag` in `repository` (owner/name).

        Raises:
            DownloadFailure: Transport errors, a missing release, or a response
                             that isn't shaped like a release.
        """
        url = f"{self._api_url}/repos/{repository}/releases/tags/{tag}"
        try:
            response = self._client.get(url, headers=_build_github_headers(self._token))
            response.raise_for_status()
            release = response.json()
        except httpx.HTTPError as err:
            raise DownloadFailure(f"Failed to fetch release {repository}@{tag}: {err}") from err
        except ValueError as err:
            raise DownloadFailure(f"Release {repository}@{tag} returned invalid JSON") from err

        assets = release.get("assets") if isinstance(release, dict) else None
        if not isinstance(assets, list):
            raise DownloadFailure(f"Release {repository}@{tag} has no asset list")

        result = [ReleaseAsset(a["name"], a["browser_download_url"]) for a in assets]
        _logger.info(
            "Listed release assets",
            extra={"repository": repository, "tag": tag, "assets": len(result)},
        )
        return result

    def download(self, url: str, target: Path) -> Path:
        """Download one asset to `target`."""
        headers = None
        if self._token:
            headers = {"Authorization": f"Bearer {self._token}"}
        return download(url, target, client=self._client, headers=headers)

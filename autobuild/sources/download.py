# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
HTTP downloads with SHA256 verification.

Everything autobuild fetches over the network comes through here: source
archives, dependency tarballs, dependency descriptors and release assets.
Files are streamed to a temp file next to the target and renamed into place
once complete, so an interrupted download never looks like a finished one.

There is no retry layer. A transport error surfaces as DownloadFailure and the
caller decides what happens next (in practice: the run aborts).
"""

import logging
from pathlib import Path
from typing import Optional

import httpx

from autobuild.build.exceptions import DownloadFailure, HashMismatch
from autobuild.logging.logger import get_logger
from autobuild.utils.filesystem import temporary_sibling
from autobuild.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)

USER_AGENT = "autobuild/0.1"
HTTP_TIMEOUT_SECONDS = 60.0
STREAM_CHUNK_SIZE = 1 << 20


def create_client(headers: Optional[dict[str, str]] = None) -> httpx.Client:
    """A client with our User-Agent, redirects on and a sane timeout."""
    merged = {"User-Agent": USER_AGENT}
    if headers:
        merged.update(headers)
    return httpx.Client(
        headers=merged,
        follow_redirects=True,
        timeout=HTTP_TIMEOUT_SECONDS,
    )


def download(
    url: str,
    target: Path,
    client: Optional[httpx.Client] = None,
    headers: Optional[dict[str, str]] = None,
) -> Path:
    """
    Stream `url` to `target`.

    Args:
        url: What to fetch.
        target: Where the complete file should end up.
        client: Shared client; a short-lived one is created if omitted.
        headers: Extra request headers (e.g. Accept for GitHub assets).

    Returns:
        `target`, for chaining.

    Raises:
        DownloadFailure: On connection errors and non-2xx responses.
    """
    owns_client = client is None
    http = client if client is not None else create_client()
    temp_path = temporary_sibling(target, suffix=".part")

    _logger.info("Downloading", extra={"url": url, "target": str(target)})
    try:
        with http.stream("GET", url, headers=headers) as response:
            response.raise_for_status()
            with open(temp_path, "wb") as out:
                for chunk in response.iter_bytes(STREAM_CHUNK_SIZE):
                    out.write(chunk)
        temp_path.replace(target)
    except httpx.HTTPError as err:
        raise DownloadFailure(f"Failed to download {url}: {err}") from err
    finally:
        if temp_path.exists():
            temp_path.unlink()
        if owns_client:
            http.close()

    return target


def fetch_text(url: str, client: Optional[httpx.Client] = None) -> str:
    """GET a small text document (a dependency descriptor, usually)."""
    owns_client = client is None
    http = client if client is not None else create_client()
    try:
        response = http.get(url)
        response.raise_for_status()
        return response.text
    except httpx.HTTPError as err:
        raise DownloadFailure(f"Failed to fetch {url}: {err}") from err
    finally:
        if owns_client:
            http.close()


def verify(path: Path, expected_hash: str) -> str:
    """
    Check that the file at `path` hashes to `expected_hash`.

    Returns:
        The computed digest.

    Raises:
        HashMismatch: If the digests differ.
    """
    actual = compute_sha256(path)
    if actual != expected_hash.lower():
        raise HashMismatch(str(path), expected_hash, actual)
    _logger.debug("Hash verified", extra={"path": str(path), "sha256": actual})
    return actual


def download_verify(
    url: str,
    expected_hash: str,
    target: Path,
    client: Optional[httpx.Client] = None,
) -> Path:
    """
    Make sure `target` holds the bytes `expected_hash` describes.

    If the file is already there and verifies, no request is made: reruns and
    later platforms in the same run reuse the download. A stale file with the
    wrong digest is thrown away and fetched once more. A fresh download that
    still doesn't verify is deleted and reported as HashMismatch.

    Raises:
        DownloadFailure: Transport errors.
        HashMismatch: The downloaded bytes don't match `expected_hash`.
    """
    if target.is_file():
        try:
            verify(target, expected_hash)
            _logger.info(
                "Already downloaded, skipping",
                extra={"url": url, "target": str(target)},
            )
            return target
        except HashMismatch:
            _logger.warning(
                "Existing download has the wrong hash, fetching again",
                extra={"target": str(target)},
            )
            target.unlink()

    download(url, target, client=client)
    try:
        verify(target, expected_hash)
    except HashMismatch:
        target.unlink()
        raise
    return target

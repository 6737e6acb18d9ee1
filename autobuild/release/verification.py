# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Verify a products directory against its build manifest.

Every tarball named in products/build.yaml that exists locally is re-hashed
and compared with the manifest. Reports all mismatches and missing files, not
just the first one.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from autobuild.logging.logger import get_logger
from autobuild.manifest.writer import MANIFEST_FILENAME, load_build_manifest
from autobuild.utils.hashing import compute_sha256

_logger: logging.Logger = get_logger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a verification run."""

    is_valid: bool
    checked_count: int
    mismatches: list[str] = field(default_factory=list)
    missing_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def verify_products(products_dir: Path) -> VerificationResult:
    """
    Re-hash the tarballs in `products_dir` against its build.yaml.

    Returns:
        VerificationResult with pass/fail status and details.
    """
    manifest_path = products_dir / MANIFEST_FILENAME
    try:
        manifest = load_build_manifest(manifest_path)
    except (FileNotFoundError, ValueError) as err:
        return VerificationResult(is_valid=False, checked_count=0, errors=[str(err)])

    mismatches: list[str] = []
    missing_files: list[str] = []
    checked = 0

    for platform, info in sorted(manifest.download_info.items()):
        filename = info.url.rstrip("/").rsplit("/", 1)[-1]
        file_path = products_dir / filename
        if not file_path.is_file():
            missing_files.append(filename)
            _logger.error(
                "Tarball missing during verification",
                extra={"file": filename, "platform": platform},
            )
            continue

        actual_hash = compute_sha256(file_path)
        checked += 1

        if actual_hash != info.sha256.lower():
            mismatches.append(filename)
            _logger.error(
                "Checksum mismatch",
                extra={
                    "file": filename,
                    "expected": info.sha256[:16] + "...",
                    "actual": actual_hash[:16] + "...",
                },
            )
        else:
            _logger.debug("Checksum verified", extra={"file": filename})

    is_valid = not mismatches and not missing_files

    if is_valid:
        _logger.info("All tarballs verified", extra={"checked_count": checked})
    else:
        _logger.error(
            "Tarball verification failed",
            extra={"mismatches": len(mismatches), "missing": len(missing_files)},
        )

    return VerificationResult(
        is_valid=is_valid,
        checked_count=checked,
        mismatches=mismatches,
        missing_files=missing_files,
    )

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the autobuild CLI.

Each handler takes the parsed argparse namespace and returns an exit code
from autobuild.cli.exit_codes. Handlers never raise; every failure is logged
and mapped to a code.

No print() calls. Everything goes through the structured logger.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

from autobuild.build.exceptions import AutobuildError, HashMismatch, MissingReconstructionConfig
from autobuild.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, USER_ERROR, VALIDATION_ERROR
from autobuild.config.exceptions import ConfigError
from autobuild.config.loader import load_config
from autobuild.config.schema import AutobuildConfig
from autobuild.logging.logger import configure_logging, get_logger
from autobuild.platforms.core import parse_platform
from autobuild.runtime.environment import check_minimum_python, get_system_info


def _load_and_configure(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[AutobuildConfig], logging.Logger]:
    """
    The shared setup every command needs: load config, apply logging settings.

    Returns (exit_code, config, logger). If exit_code is not SUCCESS the caller
    returns it immediately.
    """
    logger = get_logger(f"autobuild.cli.{command_name}", log_level=args.log_level or "INFO")

    try:
        check_minimum_python()
    except RuntimeError as err:
        logger.error("Unsupported interpreter", extra={"error": str(err)})
        return RUNTIME_ERROR, None, logger

    config = None
    if args.config is not None:
        try:
            config = load_config(Path(args.config))
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger

    if config is not None:
        log_level = args.log_level or config.global_config.log_level
        log_file = config.global_config.log_file
        configure_logging(log_level, Path(log_file) if log_file else None)
    else:
        configure_logging(args.log_level or "INFO")

    system_info = get_system_info()
    logger.debug(
        "Command setup complete",
        extra={
            "command": command_name,
            "config": args.config,
            "python_version": system_info.python_version,
            "platform": system_info.platform,
            "architecture": system_info.architecture,
        },
    )
    return SUCCESS, config, logger


def _parse_targets(raw: Optional[str]) -> Optional[list[str]]:
    """
    Split a comma-separated target list. None or an empty list means "use the
    recipe's platforms".

    Raises:
        ValueError: If any entry isn't a platform triplet.
    """
    if raw is None:
        return None
    targets = [parse_platform(t.strip()) for t in raw.split(",") if t.strip()]
    return targets or None


def handle_build(args: argparse.Namespace) -> int:
    """Build every platform of the recipe, or reconstruct its manifest."""
    exit_code, config, logger = _load_and_configure(args, "build")
    if exit_code != SUCCESS:
        return exit_code

    if config is None:
        logger.error("build needs a recipe: pass --config <recipe.yaml>")
        return USER_ERROR

    try:
        targets = _parse_targets(args.targets)
    except ValueError as err:
        logger.error("Invalid target list", extra={"targets": args.targets, "error": str(err)})
        return USER_ERROR

    from autobuild.build.tarballs import build_tarballs

    global_config = config.global_config
    try:
        product_hashes = build_tarballs(
            config.recipe,
            targets,
            only_manifest=args.only_manifest,
            verbose=args.verbose,
            run_dir=Path(global_config.run_directory),
            build_timeout_seconds=global_config.build_timeout_seconds,
            heartbeat_interval=global_config.heartbeat_interval_seconds,
        )
    except MissingReconstructionConfig as err:
        logger.error("Cannot reconstruct manifest", extra={"error": str(err)})
        return CONFIG_ERROR
    except HashMismatch as err:
        logger.error("Source verification failed", extra={"error": str(err)})
        return VALIDATION_ERROR
    except AutobuildError as err:
        logger.error("Build failed", extra={"error": str(err)})
        return RUNTIME_ERROR
    except Exception as err:
        logger.error("Build failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    logger.info(
        "Build finished",
        extra={
            "package": config.recipe.name,
            "platforms": sorted(product_hashes),
            "count": len(product_hashes),
        },
    )
    return SUCCESS


def handle_verify(args: argparse.Namespace) -> int:
    """Re-hash the tarballs in a products directory against its build.yaml."""
    exit_code, config, logger = _load_and_configure(args, "verify")
    if exit_code != SUCCESS:
        return exit_code

    if args.products_dir is not None:
        products_dir = Path(args.products_dir)
    else:
        run_dir = Path(config.global_config.run_directory) if config is not None else Path(".")
        products_dir = run_dir / "products"

    if not products_dir.is_dir():
        logger.error("Products directory not found", extra={"path": str(products_dir)})
        return VALIDATION_ERROR

    from autobuild.release.verification import verify_products

    try:
        result = verify_products(products_dir)
    except Exception as err:
        logger.error("Verification failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR

    if not result.is_valid:
        logger.error(
            "Integrity check failed",
            extra={
                "path": str(products_dir),
                "mismatches": result.mismatches,
                "missing": result.missing_files,
                "errors": result.errors,
            },
        )
        return VALIDATION_ERROR

    logger.info(
        "Integrity check passed",
        extra={"path": str(products_dir), "checked": result.checked_count},
    )
    return SUCCESS

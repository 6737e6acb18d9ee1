# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for autobuild.

Every operation is a subcommand of `autobuild`. The global options
(--config, --log-level, --verbose) are inherited by every subcommand through
argparse's parent parser mechanism.

Usage:
    autobuild build --config recipe.yaml
    autobuild build --config recipe.yaml x86_64-linux-gnu,aarch64-linux-gnu
    autobuild build --config recipe.yaml --only-manifest
    autobuild verify --products-dir products
"""

import argparse
import sys
from typing import Optional, Sequence

from autobuild.cli.commands import handle_build, handle_verify
from autobuild.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    # add_help=False keeps the parent's -h from colliding with each subcommand's.
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to the recipe YAML file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (overrides the config).",
    )
    parent.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Stream build output and print the generated manifest.",
    )
    return parent


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    build_parser = subparsers.add_parser(
        "build",
        parents=[parent],
        help="Build tarballs for every target platform.",
    )
    build_parser.add_argument(
        "targets",
        nargs="?",
        default=None,
        help="Comma-separated platform triplets overriding the recipe's list.",
    )
    build_parser.add_argument(
        "--only-manifest",
        action="store_true",
        default=False,
        dest="only_manifest",
        help="Skip building; regenerate build.yaml from the tagged release.",
    )
    build_parser.set_defaults(func=handle_build)

    verify_parser = subparsers.add_parser(
        "verify",
        parents=[parent],
        help="Re-hash built tarballs against products/build.yaml.",
    )
    verify_parser.add_argument(
        "--products-dir",
        type=str,
        default=None,
        dest="products_dir",
        help="Directory holding build.yaml and the tarballs (default: <run>/products).",
    )
    verify_parser.set_defaults(func=handle_verify)


def build_parser() -> argparse.ArgumentParser:
    parent = _build_global_parser()
    root_parser = argparse.ArgumentParser(
        prog="autobuild",
        description="autobuild: build and publish cross-platform binary tarballs.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)
    return root_parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    Parses the command line, calls the chosen subcommand's handler and exits
    with its return code. With no subcommand, prints help and exits with
    USER_ERROR.
    """
    root_parser = build_parser()
    args = root_parser.parse_args(argv)

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

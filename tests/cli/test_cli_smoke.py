# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI smoke tests.

We verify that commands execute, exit codes are correct, and help text exists.
The first group goes through a subprocess the way a user would, which catches
broken imports and entrypoint registration. The rest call the handlers
in-process so they can use a fake sandbox.
"""

import subprocess
import sys
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from autobuild.cli.exit_codes import CONFIG_ERROR, RUNTIME_ERROR, SUCCESS, USER_ERROR, VALIDATION_ERROR
from autobuild.cli.main import build_parser, main


def _run_cli(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "autobuild.cli.main", *args],
        capture_output=True,
        text=True,
        timeout=30,
    )


def _exit_code(*argv: str) -> int:
    with pytest.raises(SystemExit) as excinfo:
        main(list(argv))
    return int(excinfo.value.code)


class TestHelpTexts:
    @pytest.mark.parametrize("subcommand", ["build", "verify"])
    def test_subcommand_help_exits_zero(self, subcommand: str) -> None:
        result = _run_cli(subcommand, "--help")
        assert result.returncode == 0
        assert "usage" in result.stdout.lower()

    def test_root_help_exits_with_user_error(self) -> None:
        assert _run_cli().returncode == USER_ERROR


class TestArgumentParsing:
    def test_build_arguments(self) -> None:
        args = build_parser().parse_args(
            ["build", "--config", "r.yaml", "--verbose", "--only-manifest", "x86_64-linux-gnu,i686-linux-gnu"]
        )
        assert args.targets == "x86_64-linux-gnu,i686-linux-gnu"
        assert args.only_manifest
        assert args.verbose

    def test_verify_arguments(self) -> None:
        args = build_parser().parse_args(["verify", "--products-dir", "out"])
        assert args.products_dir == "out"


class TestBuildCommand:
    def test_requires_a_recipe(self) -> None:
        assert _exit_code("build") == USER_ERROR

    def test_missing_recipe_is_a_config_error(self, tmp_path: Path) -> None:
        assert _exit_code("build", "--config", str(tmp_path / "nope.yaml")) == CONFIG_ERROR

    def test_bad_target_is_a_user_error(self, recipe_file: Path) -> None:
        assert _exit_code("build", "--config", str(recipe_file), "pdp11-unix") == USER_ERROR

    def test_only_manifest_without_release_is_a_config_error(
        self, recipe_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        for variable in ("TRAVIS_REPO_SLUG", "TRAVIS_TAG", "GITHUB_REPOSITORY", "GITHUB_REF"):
            monkeypatch.delenv(variable, raising=False)
        assert _exit_code("build", "--config", str(recipe_file), "--only-manifest") == CONFIG_ERROR

    def test_successful_build(self, recipe_file: Path, fake_sandbox: Any, tmp_path: Path) -> None:
        with patch("autobuild.build.orchestrator.LocalSandbox", return_value=fake_sandbox):
            assert _exit_code("build", "--config", str(recipe_file)) == SUCCESS
        assert (tmp_path / "run" / "products" / "build.yaml").is_file()
        assert fake_sandbox.build_calls == ["x86_64-linux-gnu", "aarch64-linux-gnu"]

    def test_build_failure_is_a_runtime_error(self, recipe_file: Path, fake_sandbox: Any) -> None:
        fake_sandbox.failing = {"x86_64-linux-gnu"}
        with patch("autobuild.build.orchestrator.LocalSandbox", return_value=fake_sandbox):
            assert _exit_code("build", "--config", str(recipe_file)) == RUNTIME_ERROR


class TestVerifyCommand:
    def test_verifies_a_fresh_build(self, recipe_file: Path, fake_sandbox: Any, tmp_path: Path) -> None:
        with patch("autobuild.build.orchestrator.LocalSandbox", return_value=fake_sandbox):
            assert _exit_code("build", "--config", str(recipe_file)) == SUCCESS
        assert _exit_code("verify", "--config", str(recipe_file)) == SUCCESS
        assert _exit_code("verify", "--products-dir", str(tmp_path / "run" / "products")) == SUCCESS

    def test_missing_products_dir(self, tmp_path: Path) -> None:
        assert _exit_code("verify", "--products-dir", str(tmp_path / "absent")) == VALIDATION_ERROR

    def test_tampered_products(self, recipe_file: Path, fake_sandbox: Any, tmp_path: Path) -> None:
        with patch("autobuild.build.orchestrator.LocalSandbox", return_value=fake_sandbox):
            assert _exit_code("build", "--config", str(recipe_file)) == SUCCESS
        tarball = tmp_path / "run" / "products" / "libfoo.x86_64-linux-gnu.tar.gz"
        tarball.write_bytes(b"corrupted")
        assert _exit_code("verify", "--config", str(recipe_file)) == VALIDATION_ERROR

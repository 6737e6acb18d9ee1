# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for CI and release detection from environment variables.
"""

import pytest

from autobuild.build.exceptions import MissingReconstructionConfig
from autobuild.runtime.environment import (
    PLACEHOLDER_BIN_PATH,
    check_minimum_python,
    detect_environment,
    get_system_info,
)


class TestDetectEnvironment:
    def test_empty_environment(self) -> None:
        env = detect_environment({})
        assert not env.ci
        assert env.repository is None
        assert env.tag is None
        assert env.bin_path == PLACEHOLDER_BIN_PATH

    @pytest.mark.parametrize("variable", ["TRAVIS", "CI"])
    def test_ci_detection(self, variable: str) -> None:
        assert detect_environment({variable: "true"}).ci

    def test_travis_coordinates(self) -> None:
        env = detect_environment({"TRAVIS_REPO_SLUG": "org/repo", "TRAVIS_TAG": "v2.0"})
        assert env.bin_path == "https://github.com/org/repo/releases/download/v2.0"
        assert env.require_release() == ("org/repo", "v2.0")

    def test_github_actions_fallback(self) -> None:
        env = detect_environment({"GITHUB_REPOSITORY": "org/repo", "GITHUB_REF": "refs/tags/v3"})
        assert env.require_release() == ("org/repo", "v3")

    def test_branch_ref_is_not_a_tag(self) -> None:
        env = detect_environment({"GITHUB_REPOSITORY": "org/repo", "GITHUB_REF": "refs/heads/main"})
        assert env.tag is None
        assert env.bin_path == PLACEHOLDER_BIN_PATH

    def test_travis_takes_precedence(self) -> None:
        env = detect_environment(
            {
                "TRAVIS_REPO_SLUG": "travis/repo",
                "TRAVIS_TAG": "t1",
                "GITHUB_REPOSITORY": "gh/repo",
                "GITHUB_REF": "refs/tags/t2",
            }
        )
        assert env.require_release() == ("travis/repo", "t1")

    def test_empty_tag_counts_as_missing(self) -> None:
        env = detect_environment({"TRAVIS_REPO_SLUG": "org/repo", "TRAVIS_TAG": ""})
        with pytest.raises(MissingReconstructionConfig):
            env.require_release()


class TestHost:
    def test_running_interpreter_is_supported(self) -> None:
        check_minimum_python()

    def test_system_info(self) -> None:
        info = get_system_info()
        assert info.python_version.startswith("3.")
        assert info.platform

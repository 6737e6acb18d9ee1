# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Shared pytest fixtures for autobuild tests.

Fixtures here are available to every test file automatically. The fake
sandbox lives here because both the orchestrator and the build_tarballs tests
drive the full pipeline with it.
"""

import tempfile
import textwrap
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import pytest

from autobuild.build.models import BuildJob
from autobuild.dependencies.descriptor import DependencyDescriptor
from autobuild.packaging.tarball import package


class FakeSandbox:
    """
    Sandbox stand-in that never runs bash.

    Each build "installs" one file, share/<platform>.txt, into the prefix.
    Platforms listed in `failing` report failure. Every call is recorded so
    tests can check ordering and that nothing ran after a failure.
    """

    def __init__(
        self,
        failing: Sequence[str] = (),
        payload: Optional[Callable[[str], bytes]] = None,
    ) -> None:
        self.failing = set(failing)
        self.payload = payload or (lambda platform: f"built for {platform}\n".encode())
        self.setup_calls: list[str] = []
        self.build_calls: list[str] = []
        self.workspaces: dict[str, Path] = {}
        self.source_args: dict[str, tuple[list[Path], list[str]]] = {}

    def setup_workspace(
        self,
        build_dir: Path,
        source_paths: Sequence[Path],
        source_hashes: Sequence[str],
        dependencies: Sequence[DependencyDescriptor],
        platform: str,
    ) -> tuple[Path, Any]:
        self.setup_calls.append(platform)
        self.source_args[platform] = (list(source_paths), list(source_hashes))
        workspace = Path(tempfile.mkdtemp(prefix="ws_", dir=str(build_dir)))
        prefix = workspace / "destdir"
        (prefix / "downloads").mkdir(parents=True)
        for source_path in source_paths:
            (prefix / "downloads" / Path(source_path).name).write_bytes(b"staged")
        self.workspaces[platform] = workspace
        return prefix, prefix

    def run_build(self, runner: Any, job: BuildJob) -> bool:
        self.build_calls.append(job.platform)
        if job.platform in self.failing:
            return False
        out = Path(runner) / "share" / f"{job.source_name}.txt"
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(self.payload(job.platform))
        return True


@pytest.fixture()
def fake_sandbox() -> FakeSandbox:
    return FakeSandbox()


@pytest.fixture()
def source_tree(tmp_path: Path) -> Path:
    """A small directory that can stand in for an unpacked source release."""
    root = tmp_path / "libfoo-1.0"
    (root / "src").mkdir(parents=True)
    (root / "src" / "foo.c").write_text("int foo(void) { return 42; }\n", encoding="utf-8")
    (root / "README").write_text("libfoo\n", encoding="utf-8")
    return root


@pytest.fixture()
def source_archive(tmp_path: Path, source_tree: Path) -> tuple[Path, str]:
    """`source_tree` packaged as a tarball: (path, sha256)."""
    out_dir = tmp_path / "archives"
    out_dir.mkdir()
    return package(source_tree, out_dir / "libfoo-1.0")


@pytest.fixture()
def make_prefix_tarball(tmp_path: Path) -> Callable[[str, dict[str, str]], tuple[Path, str]]:
    """
    Factory for dependency tarballs: name + {relative path: content} →
    (tarball path, sha256). The tarball is named <name>.<platform>.tar.gz by
    passing the platform as part of `name`.
    """

    def _make(name: str, files: dict[str, str]) -> tuple[Path, str]:
        tree = tmp_path / "trees" / name
        for relative, content in files.items():
            path = tree / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        out_dir = tmp_path / "tarballs"
        out_dir.mkdir(exist_ok=True)
        return package(tree, out_dir / name)

    return _make


@pytest.fixture()
def recipe_file(tmp_path: Path, source_archive: tuple[Path, str]) -> Path:
    """A minimal valid recipe pointing at `source_archive`."""
    archive_path, archive_hash = source_archive
    content = textwrap.dedent(f"""\
        global:
          log_level: "DEBUG"
          run_directory: "{tmp_path / 'run'}"
        recipe:
          name: libfoo
          sources:
            - url: "{archive_path}"
              sha256: "{archive_hash}"
          script: |
            mkdir -p $prefix/share
            cp README $prefix/share/README
          platforms:
            - x86_64-linux-gnu
            - aarch64-linux-gnu
          products:
            - kind: file
              name: share/README
    """)
    path = tmp_path / "recipe.yaml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def broken_yaml_file(tmp_path: Path) -> Path:
    """A file that isn't valid YAML at all."""
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("{{not: yaml: at: all:::", encoding="utf-8")
    return config_file

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Tests for filesystem utilities: atomic writes, temp siblings, empty-directory
pruning and path containment.
"""

from pathlib import Path

import pytest

from autobuild.utils.filesystem import (
    TEMP_PREFIX,
    atomic_write,
    is_empty_directory,
    prune_empty_parents,
    temporary_sibling,
)
from autobuild.utils.paths import ensure_directory, validate_path_within


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "out.txt"
        atomic_write(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "out.txt"
        atomic_write(target, "nested")
        assert target.read_text(encoding="utf-8") == "nested"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "out.txt"
        atomic_write(target, "first")
        atomic_write(target, "second")
        assert target.read_text(encoding="utf-8") == "second"

    def test_no_leftover_temp_files(self, tmp_path: Path) -> None:
        atomic_write(tmp_path / "clean.txt", "x")
        assert list(tmp_path.glob(f"{TEMP_PREFIX}*")) == []


class TestTemporarySibling:
    def test_lives_next_to_target(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.tar.gz"
        temp = temporary_sibling(target, suffix=".part")
        assert temp.parent == target.parent
        assert temp.name.startswith(TEMP_PREFIX)
        assert temp.name.endswith(".part")
        assert temp.exists()
        assert not target.exists()


class TestPruning:
    def test_is_empty_directory(self, tmp_path: Path) -> None:
        empty = ensure_directory(tmp_path / "empty")
        assert is_empty_directory(empty)
        (empty / "f").write_text("x")
        assert not is_empty_directory(empty)
        assert not is_empty_directory(tmp_path / "missing")

    def test_prunes_up_to_but_not_including_stop(self, tmp_path: Path) -> None:
        leaf = ensure_directory(tmp_path / "prefix" / "lib" / "pkgconfig")
        removed = prune_empty_parents(leaf, tmp_path / "prefix")
        assert removed == 2
        assert (tmp_path / "prefix").is_dir()
        assert not (tmp_path / "prefix" / "lib").exists()

    def test_stops_at_first_non_empty_directory(self, tmp_path: Path) -> None:
        leaf = ensure_directory(tmp_path / "prefix" / "lib" / "pkgconfig")
        (tmp_path / "prefix" / "lib" / "libkeep.so").write_text("x")
        assert prune_empty_parents(leaf, tmp_path / "prefix") == 1
        assert (tmp_path / "prefix" / "lib" / "libkeep.so").exists()


class TestValidatePathWithin:
    def test_accepts_child(self, tmp_path: Path) -> None:
        resolved = validate_path_within(tmp_path / "a" / "b", tmp_path)
        assert resolved == (tmp_path / "a" / "b").resolve()

    def test_accepts_root_itself(self, tmp_path: Path) -> None:
        assert validate_path_within(tmp_path, tmp_path) == tmp_path.resolve()

    def test_rejects_traversal(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="outside"):
            validate_path_within(tmp_path / ".." / "etc" / "passwd", tmp_path)

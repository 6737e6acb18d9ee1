# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Declared build products and how to find them in a prefix.

A recipe lists what a successful build must leave behind: shared libraries,
executables, or arbitrary files. After the build script exits, every declared
product has to exist under the prefix or the build counts as failed. The same
list is written into the build manifest so downstream packages know what they
get.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Literal

from autobuild.platforms.core import is_apple, is_windows

ProductKind = Literal["library", "executable", "file"]


@dataclass(frozen=True)
class Product:
    """One thing the build must produce. `variable` is the name downstream code refers to it by."""

    kind: ProductKind
    name: str
    variable: str

    def candidates(self, prefix: Path, platform: str) -> list[Path]:
        """Every path under `prefix` that would satisfy this product on `platform`."""
        if self.kind == "file":
            return [prefix / self.name]

        if self.kind == "executable":
            suffix = ".exe" if is_windows(platform) else ""
            return [prefix / "bin" / f"{self.name}{suffix}"]

        if is_windows(platform):
            return [prefix / "bin" / f"{self.name}.dll"]
        if is_apple(platform):
            return [prefix / "lib" / f"{self.name}.dylib"]
        return [prefix / "lib" / f"{self.name}.so"]

    def locate(self, prefix: Path, platform: str) -> Path | None:
        """
        Find this product under `prefix`, or None.

        Versioned shared objects (libfoo.so.1.2) count for libraries, since a
        lot of build systems only install the versioned file plus a symlink.
        """
        for candidate in self.candidates(prefix, platform):
            if candidate.exists():
                return candidate

        if self.kind == "library" and not is_windows(platform):
            libdir = prefix / "lib"
            if libdir.is_dir():
                extension = ".dylib" if is_apple(platform) else ".so"
                for path in sorted(libdir.glob(f"{self.name}*{extension}*")):
                    if path.is_file():
                        return path
        return None


def missing_products(
    prefix: Path, products: Iterable[Product], platform: str
) -> list[Product]:
    """Return the declared products that can't be found under `prefix`."""
    return [p for p in products if p.locate(prefix, platform) is None]

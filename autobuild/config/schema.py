# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Type-safe schemas for autobuild recipe files.

A recipe is a YAML file with two sections:

    global:
      log_level: INFO
      run_directory: .
    recipe:
      name: libfoo
      sources:
        - url: https://example.org/libfoo-1.2.tar.gz
          sha256: 5891b5b522d5df086d0ff0b110fbd9d21bb4fc7163af34d08286a2e846f6be03
        - url: https://github.com/org/patches.git
          sha256: 0c3f1e2...        # for git sources this is a revision pin
        - path: ./bundled
      script: |
        cd $srcdir/libfoo-1.2
        ./configure --prefix=$prefix --host=$target
        make -j$nproc install
      platforms: [x86_64-linux-gnu, aarch64-linux-gnu]
      products:
        - {kind: library, name: libfoo, variable: libfoo}
      dependencies:
        - https://github.com/org/zlib_builder/releases/download/v1.2.11/build.yaml

All models are frozen with extra="forbid": typos in a recipe fail loudly
instead of being ignored.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from autobuild.platforms.core import SUPPORTED_PLATFORMS, parse_platform


class GlobalConfig(BaseModel):
    """Cross-cutting settings for a run."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    log_level: str = Field(
        default="INFO",
        description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional path for file-based log output",
    )
    run_directory: str = Field(
        default=".",
        description="Where downloads/, build/ and products/ are created",
    )
    build_timeout_seconds: int = Field(
        default=4 * 60 * 60,
        ge=1,
        description="Hard limit for a single platform's build script",
    )
    heartbeat_interval_seconds: float = Field(
        default=4.0,
        gt=0,
        description="Seconds between CI heartbeat markers",
    )


class SourceConfig(BaseModel):
    """
    One declared source. Either `path` (a local directory) or `url`; `sha256`
    is required for non-git URLs. Shape checking beyond that happens in
    autobuild.sources.models.parse_source_spec.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    path: Optional[str] = Field(default=None, description="Local directory to package")
    url: Optional[str] = Field(default=None, description="Archive URL, local file, or .git URL")
    sha256: Optional[str] = Field(default=None, description="Archive hash or git revision")


class ProductConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    kind: Literal["library", "executable", "file"]
    name: str = Field(min_length=1)
    variable: Optional[str] = Field(
        default=None,
        description="Name downstream code uses for this product; defaults to `name`",
    )


class RecipeConfig(BaseModel):
    """What to build and how."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    name: str = Field(min_length=1, description="Source package name; names the tarballs")
    sources: list[SourceConfig] = Field(default_factory=list)
    script: str = Field(description="Bash build script")
    platforms: list[str] = Field(
        default_factory=lambda: list(SUPPORTED_PLATFORMS),
        description="Default target triplets",
    )
    products: list[ProductConfig] = Field(default_factory=list)
    dependencies: list[str] = Field(
        default_factory=list,
        description="Paths or URLs of upstream build.yaml manifests",
    )

    @field_validator("name")
    @classmethod
    def _name_is_path_safe(cls, value: str) -> str:
        if "/" in value or "\\" in value or value in {".", ".."}:
            raise ValueError(f"Recipe name {value!r} must be usable as a file name")
        return value

    @field_validator("platforms")
    @classmethod
    def _platforms_are_triplets(cls, value: list[str]) -> list[str]:
        return [parse_platform(p) for p in value]

    @model_validator(mode="after")
    def _has_platforms(self) -> "RecipeConfig":
        if not self.platforms:
            raise ValueError("A recipe needs at least one platform")
        return self


class AutobuildConfig(BaseModel):
    """Top-level container. `global:` is optional, `recipe:` is not."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    global_config: GlobalConfig = Field(alias="global", default_factory=GlobalConfig)
    recipe: RecipeConfig

# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Recipe loader: reads YAML from disk and produces a validated, frozen AutobuildConfig.

The pipeline is linear:
  1. Read the file
  2. Parse as YAML into a plain dict
  3. Validate with pydantic
  4. Return the frozen config

Anything that goes wrong fails immediately with a clear error. A broken recipe
should stop the run before a single byte is downloaded.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from autobuild.config.exceptions import ConfigLoadError, ConfigValidationError
from autobuild.config.schema import AutobuildConfig


def _read_yaml_file(config_path: Path) -> dict[str, Any]:
    """
    Read a YAML file and return the parsed dict.

    Raises:
        ConfigLoadError: If the file doesn't exist, isn't readable, or isn't a YAML mapping.
    """
    if not config_path.exists():
        raise ConfigLoadError(f"Recipe file not found: {config_path}")

    if not config_path.is_file():
        raise ConfigLoadError(f"Recipe path is not a file: {config_path}")

    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigLoadError(f"Cannot read recipe file {config_path}: {err}") from err

    try:
        parsed = yaml.safe_load(raw_text)
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {config_path}: {err}") from err

    if not isinstance(parsed, dict):
        raise ConfigLoadError(
            f"Recipe file must contain a YAML mapping (dict), got {type(parsed).__name__}"
        )

    return parsed


def load_config(config_path: Path) -> AutobuildConfig:
    """
    Load and validate a recipe file.

    Relative `path:` sources and dependency paths are interpreted relative to
    the recipe file's directory, so recipes work no matter where autobuild is
    invoked from.

    Raises:
        ConfigLoadError: File I/O or YAML parse failures.
        ConfigValidationError: Schema violations.
    """
    raw_data = _read_yaml_file(config_path)

    try:
        config = AutobuildConfig.model_validate(raw_data)
    except ValidationError as err:
        raise ConfigValidationError(
            f"Recipe validation failed for {config_path}:\n{err}"
        ) from err

    return _anchor_relative_paths(config, config_path.resolve().parent)


def _anchor(value: str, base: Path) -> str:
    if "://" in value:
        return value
    candidate = Path(value)
    return value if candidate.is_absolute() else str(base / candidate)


def _anchor_relative_paths(config: AutobuildConfig, base: Path) -> AutobuildConfig:
    recipe = config.recipe
    sources = [
        s.model_copy(
            update={
                "path": _anchor(s.path, base) if s.path is not None else None,
                "url": _anchor(s.url, base)
                if s.url is not None and (base / s.url).is_file()
                else s.url,
            }
        )
        for s in recipe.sources
    ]
    dependencies = [_anchor(d, base) for d in recipe.dependencies]
    return config.model_copy(
        update={"recipe": recipe.model_copy(update={"sources": sources, "dependencies": dependencies})}
    )

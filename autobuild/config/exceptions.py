# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Custom exceptions for the recipe configuration system.

Kept separate so the CLI can catch config failures without importing the
pipeline.
"""


class ConfigError(Exception):
    """Base for all configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when a recipe file cannot be read from disk or parsed as YAML."""


class ConfigValidationError(ConfigError):
    """
    Raised when a recipe parses fine but fails schema validation: missing
    fields, wrong types, unknown keys, bad platform triplets, malformed sources.
    """

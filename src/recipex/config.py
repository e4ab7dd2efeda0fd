"""Runner settings loader.

Settings are layered: built-in defaults, then an optional `.recipex.yaml`
next to the recipe file, then RECIPEX_* environment variables.
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from recipex.errors import ConfigError
from recipex.resolver import DEFAULT_SHELL
from recipex.schemas.validator import validate_data

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = ".recipex.yaml"


@dataclass(frozen=True)
class RunnerSettings:
    """Effective runner settings."""

    shell: tuple[str, ...] = DEFAULT_SHELL
    echo: bool = True
    env: Mapping[str, str] = field(default_factory=dict)
    source: Path | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, source: Path | None = None) -> RunnerSettings:
        """Build settings from a schema-valid mapping, keeping defaults for absent keys."""
        defaults = cls()
        return cls(
            shell=tuple(data.get("shell", defaults.shell)),
            echo=data.get("echo", defaults.echo),
            env=dict(data.get("env", {})),
            source=source,
        )


def load_settings(
    directory: Path,
    environ: Mapping[str, str] | None = None,
) -> RunnerSettings:
    """Load settings for a recipe file living in `directory`.

    Args:
        directory: Directory holding the recipe file
        environ: Environment to read RECIPEX_* overrides from (defaults to os.environ)

    Returns:
        RunnerSettings with every layer applied

    Raises:
        ConfigError: If the settings file is malformed or fails validation
    """
    environ = os.environ if environ is None else environ
    settings = RunnerSettings()

    settings_path = directory / SETTINGS_FILENAME
    if settings_path.exists():
        settings = _load_settings_file(settings_path)
        logger.debug("loaded settings from %s", settings_path)

    return _apply_environment(settings, environ)


def _load_settings_file(path: Path) -> RunnerSettings:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed YAML settings at {path}: {e}") from e

    if data is None:
        data = {}

    ok, errors = validate_data(data, "settings", strict=False)
    if not ok:
        details = "\n".join(f"  - {msg}" for msg in errors)
        raise ConfigError(f"Invalid settings in {path}:\n{details}")

    return RunnerSettings.from_dict(data, source=path)


def _apply_environment(settings: RunnerSettings, environ: Mapping[str, str]) -> RunnerSettings:
    shell_override = environ.get("RECIPEX_SHELL", "").strip()
    if shell_override:
        try:
            shell = tuple(shlex.split(shell_override))
        except ValueError as e:
            raise ConfigError(f"Invalid RECIPEX_SHELL value {shell_override!r}: {e}") from e
        settings = replace(settings, shell=shell)
        logger.debug("shell overridden by RECIPEX_SHELL")

    if environ.get("RECIPEX_QUIET", "0") == "1":
        settings = replace(settings, echo=False)

    return settings

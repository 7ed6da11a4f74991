"""Release configuration loading.

Uses tomlkit to read release.toml from the project root. The file is optional;
without it the defaults in ReleaseConfig describe the Firebase exp release.
"""

from __future__ import annotations

from pathlib import Path

import tomlkit
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from .errors import ConfigError
from .models import ReleaseConfig

CONFIG_FILENAME = "release.toml"


def load_config(root: Path) -> ReleaseConfig:
    """Load and validate the [release] table from root/release.toml.

    Raises:
        ConfigError: If the file cannot be parsed or fails validation.
    """
    path = root / CONFIG_FILENAME
    if not path.exists():
        return ReleaseConfig()

    try:
        doc = tomlkit.parse(path.read_text(encoding="utf-8"))
    except TOMLKitError as exc:
        raise ConfigError(f"Cannot parse {path}: {exc}") from exc

    # unwrap() turns tomlkit containers into plain dicts and lists
    table = doc.unwrap().get("release", {})
    if not isinstance(table, dict):
        raise ConfigError(f"[release] in {path} must be a table")

    try:
        return ReleaseConfig.model_validate(table)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {path}:\n{exc}") from exc

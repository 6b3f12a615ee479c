"""Configuration loading with fail-fast behavior and layered merging.

Configs are merged from two layers: the global user config
(~/.clipsmith/config.json) and the project config
(<cwd>/.clipsmith/config.json). The project layer wins.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from clipsmith.config.load_utils import load_json_file, load_json_file_optional
from clipsmith.config.schema import Config
from clipsmith.core.constants import CLIPSMITH_DIR_NAME, get_clipsmith_dir
from clipsmith.core.errors import ConfigError, LoadError
from clipsmith.core.utils import deep_merge

logger = logging.getLogger(__name__)


def load_config(path: Path | None = None, cwd: Path | None = None) -> Config:
    """Load configuration from file with layered merging.

    Args:
        path: Explicit config file path. If provided, skips layered loading.
        cwd: Working directory for the project layer. Defaults to Path.cwd().

    Returns:
        Validated Config object. Pydantic defaults when no file exists.

    Raises:
        ConfigError: If any config file contains invalid JSON or the merged
            config fails validation.
    """
    if path is not None:
        return _load_from_path(path)

    effective_cwd = cwd or Path.cwd()
    layers = [
        get_clipsmith_dir() / "config.json",
        effective_cwd / CLIPSMITH_DIR_NAME / "config.json",
    ]

    merged: dict[str, Any] = {}
    loaded_from: list[Path] = []
    for layer in layers:
        if layer in loaded_from:
            continue  # cwd is home
        try:
            data = load_json_file_optional(layer, error_context="config")
        except LoadError as e:
            raise ConfigError(e.message) from e
        if data:
            merged = deep_merge(merged, data)
            loaded_from.append(layer)

    if not loaded_from:
        logger.debug("No config files found, using defaults")
        return Config()

    logger.info("Config loaded from: %s", [str(p) for p in loaded_from])
    try:
        return Config.model_validate(merged)
    except ValidationError as e:
        sources = ", ".join(str(p) for p in loaded_from)
        raise ConfigError(f"Config validation failed (merged from {sources}): {e}") from e


def _load_from_path(path: Path) -> Config:
    """Load and validate config from a specific path.

    Raises:
        ConfigError: If file doesn't exist, contains invalid JSON, or fails validation.
    """
    try:
        data = load_json_file(path, error_context="config")
    except LoadError as e:
        raise ConfigError(e.message) from e

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed for {path}: {e}") from e

"""Configuration loading from TOML files and environment variables."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from service_manager.config.models import ServiceManagerSettings
from service_manager.config.paths import (
    get_config_path,
    get_local_config_path,
    get_system_config_path,
)
from service_manager.errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

KIND_ENV_VAR = "SERVICE_MANAGER_KIND"
LEVEL_ENV_VAR = "SERVICE_MANAGER_LEVEL"


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        get_local_config_path(),  # Current directory
        get_config_path(),  # ~/.service-manager/config.toml (or SERVICE_MANAGER_HOME)
        get_system_config_path(),  # System-wide
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Let the environment pick the backend and level over the file."""
    if kind := os.environ.get(KIND_ENV_VAR):
        config["kind"] = kind
    if level := os.environ.get(LEVEL_ENV_VAR):
        config["level"] = level
    return config


def load_config(path: Path | None = None) -> ServiceManagerSettings:
    """Load configuration from a TOML file.

    Args:
        path: Explicit path to config file. If None, searches default
            locations and falls back to defaults when none exists.

    Returns:
        Validated ServiceManagerSettings instance.

    Raises:
        FileNotFoundError: If an explicit path does not exist.
        InvalidConfigurationError: If the file is not valid TOML or does
            not match the settings schema.
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in _get_default_config_paths():
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    raw_config: dict[str, Any] = {}
    if config_path is not None:
        logger.debug("Loading config from %s", config_path)
        try:
            with config_path.open("rb") as f:
                raw_config = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise InvalidConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

    raw_config = _apply_env_overrides(raw_config)

    try:
        return ServiceManagerSettings.model_validate(raw_config)
    except ValidationError as e:
        source = config_path or "environment"
        raise InvalidConfigurationError(f"Invalid configuration ({source}): {e}") from e

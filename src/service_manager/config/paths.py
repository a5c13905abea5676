"""Path management for service-manager configuration.

The per-user base directory can be overridden with the
SERVICE_MANAGER_HOME environment variable.

Default locations:
- Linux/macOS: ~/.service-manager
- Windows: %USERPROFILE%\\.service-manager
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "SERVICE_MANAGER_HOME"
CONFIG_FILE_NAME = "config.toml"
LOCAL_CONFIG_FILE_NAME = "service-manager.toml"


@lru_cache(maxsize=1)
def get_service_manager_home() -> Path:
    """Get the per-user base directory.

    Resolution order:
    1. SERVICE_MANAGER_HOME environment variable (if set)
    2. ~/.service-manager
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".service-manager"


def get_config_path() -> Path:
    """Get the per-user config file path."""
    return get_service_manager_home() / CONFIG_FILE_NAME


def get_local_config_path() -> Path:
    """Get the config file path in the current directory."""
    return Path(LOCAL_CONFIG_FILE_NAME)


def get_system_config_path() -> Path:
    """Get the system-wide config file path."""
    return Path("/etc/service-manager") / CONFIG_FILE_NAME

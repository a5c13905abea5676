"""Configuration module."""

from service_manager.config.loader import load_config
from service_manager.config.models import (
    LaunchdConfig,
    OpenRcConfig,
    RcdConfig,
    ScConfig,
    ScmConfig,
    ServiceManagerSettings,
    SystemdConfig,
    WinSwConfig,
)

__all__ = [
    "LaunchdConfig",
    "OpenRcConfig",
    "RcdConfig",
    "ScConfig",
    "ScmConfig",
    "ServiceManagerSettings",
    "SystemdConfig",
    "WinSwConfig",
    "load_config",
]

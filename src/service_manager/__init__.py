"""Install and control services through the OS-native service manager."""

from service_manager.backends import get_backend
from service_manager.base import LeveledServiceManager, ServiceManager
from service_manager.errors import (
    InvalidConfigurationError,
    NativeCommandError,
    ServiceManagerError,
    UnsupportedError,
)
from service_manager.kind import ServiceManagerKind
from service_manager.label import ServiceLabel
from service_manager.typed import TypedServiceManager
from service_manager.types import (
    RestartKind,
    RestartPolicy,
    ServiceInstallCtx,
    ServiceLevel,
    ServiceStartCtx,
    ServiceState,
    ServiceStatus,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)

__all__ = [
    "InvalidConfigurationError",
    "LeveledServiceManager",
    "NativeCommandError",
    "RestartKind",
    "RestartPolicy",
    "ServiceInstallCtx",
    "ServiceLabel",
    "ServiceLevel",
    "ServiceManager",
    "ServiceManagerError",
    "ServiceManagerKind",
    "ServiceStartCtx",
    "ServiceState",
    "ServiceStatus",
    "ServiceStatusCtx",
    "ServiceStopCtx",
    "ServiceUninstallCtx",
    "TypedServiceManager",
    "UnsupportedError",
    "get_backend",
]

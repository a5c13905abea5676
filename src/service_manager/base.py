"""Capability interface shared by every native service manager."""

from abc import ABC, abstractmethod

from service_manager.errors import UnsupportedError
from service_manager.types import (
    ServiceInstallCtx,
    ServiceLevel,
    ServiceStartCtx,
    ServiceStatus,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)


class ServiceManager(ABC):
    """Interface for a native service manager.

    Implementations handle one OS-specific mechanism:
    - launchd on macOS
    - systemd or OpenRC on Linux
    - rc.d on the BSDs
    - sc.exe, the Service Control Manager API or WinSW on Windows

    Every call is synchronous and performs at most one external command
    or native API call.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'systemd', 'launchd', 'winsw')."""
        ...

    @abstractmethod
    def available(self) -> bool:
        """Check if the native tool or API is present on this system."""
        ...

    @abstractmethod
    def install(self, ctx: ServiceInstallCtx) -> None:
        """Install a new service. Never starts it.

        Raises:
            InvalidConfigurationError: If ``ctx.contents`` fails validation.
            NativeCommandError: If the native tool rejects the service.
        """
        ...

    @abstractmethod
    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        """Remove an installed service and its configuration artifact."""
        ...

    @abstractmethod
    def start(self, ctx: ServiceStartCtx) -> None:
        """Start an installed service."""
        ...

    @abstractmethod
    def stop(self, ctx: ServiceStopCtx) -> None:
        """Stop a running service."""
        ...

    @abstractmethod
    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        """Query the current status of a service."""
        ...

    @property
    def level(self) -> ServiceLevel:
        """Level the manager currently targets."""
        return ServiceLevel.SYSTEM

    def set_level(self, level: ServiceLevel) -> None:
        """Switch the manager between system and user services.

        System-only backends accept ``SYSTEM`` and reject ``USER``.

        Raises:
            UnsupportedError: If the backend cannot target ``level``.
        """
        if level != ServiceLevel.SYSTEM:
            raise UnsupportedError(f"{self.name} does not support user-level services")


class LeveledServiceManager(ServiceManager):
    """Base for managers that can target both system and user services."""

    def __init__(self, user: bool = False):
        self.user = user

    @property
    def level(self) -> ServiceLevel:
        return ServiceLevel.USER if self.user else ServiceLevel.SYSTEM

    def set_level(self, level: ServiceLevel) -> None:
        self.user = level == ServiceLevel.USER

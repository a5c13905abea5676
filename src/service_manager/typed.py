"""A service manager tagged with the kind of backend it wraps."""

from dataclasses import dataclass

from service_manager.backends import get_backend
from service_manager.base import ServiceManager
from service_manager.config.models import ServiceManagerSettings
from service_manager.kind import ServiceManagerKind
from service_manager.types import (
    ServiceInstallCtx,
    ServiceLevel,
    ServiceStartCtx,
    ServiceStatus,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)


@dataclass(frozen=True)
class TypedServiceManager:
    """One concrete backend plus its kind.

    Callers that need backend-specific behavior can branch on ``kind`` (or
    the ``is_*`` predicates) and reach the adapter through ``manager``;
    everyone else uses the forwarded operations.

    Example:
        >>> manager = TypedServiceManager.native()
        >>> manager.install(ServiceInstallCtx(label, Path("/usr/bin/app")))
    """

    kind: ServiceManagerKind
    manager: ServiceManager

    def __post_init__(self) -> None:
        if self.manager.name != self.kind.value:
            raise ValueError(
                f"{self.manager.name} backend cannot be tagged as {self.kind.value}"
            )

    @classmethod
    def target(
        cls,
        kind: ServiceManagerKind | str,
        settings: ServiceManagerSettings | None = None,
    ) -> "TypedServiceManager":
        """Build the backend for ``kind``, whether or not it is available."""
        kind = ServiceManagerKind(kind)
        return cls(kind, get_backend(kind, settings))

    @classmethod
    def native(
        cls, settings: ServiceManagerSettings | None = None
    ) -> "TypedServiceManager":
        """Build the backend native to this OS.

        Raises:
            UnsupportedError: If the OS has no supported service manager.
        """
        return cls.target(ServiceManagerKind.native(), settings)

    @classmethod
    def target_or_native(
        cls,
        kind: ServiceManagerKind | str | None,
        settings: ServiceManagerSettings | None = None,
    ) -> "TypedServiceManager":
        """Build ``kind`` when given, else the native backend."""
        if kind is None:
            return cls.native(settings)
        return cls.target(kind, settings)

    @classmethod
    def from_manager(cls, manager: ServiceManager) -> "TypedServiceManager":
        """Tag an already constructed backend with its kind."""
        return cls(ServiceManagerKind(manager.name), manager)

    def available(self) -> bool:
        return self.manager.available()

    def install(self, ctx: ServiceInstallCtx) -> None:
        self.manager.install(ctx)

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        self.manager.uninstall(ctx)

    def start(self, ctx: ServiceStartCtx) -> None:
        self.manager.start(ctx)

    def stop(self, ctx: ServiceStopCtx) -> None:
        self.manager.stop(ctx)

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        return self.manager.status(ctx)

    @property
    def level(self) -> ServiceLevel:
        return self.manager.level

    def set_level(self, level: ServiceLevel) -> None:
        self.manager.set_level(level)

    def is_launchd(self) -> bool:
        return self.kind == ServiceManagerKind.LAUNCHD

    def is_openrc(self) -> bool:
        return self.kind == ServiceManagerKind.OPENRC

    def is_rcd(self) -> bool:
        return self.kind == ServiceManagerKind.RCD

    def is_sc(self) -> bool:
        return self.kind == ServiceManagerKind.SC

    def is_scm(self) -> bool:
        return self.kind == ServiceManagerKind.SCM

    def is_systemd(self) -> bool:
        return self.kind == ServiceManagerKind.SYSTEMD

    def is_winsw(self) -> bool:
        return self.kind == ServiceManagerKind.WINSW

"""Native backend factory."""

import importlib

from service_manager.base import ServiceManager
from service_manager.config.models import ServiceManagerSettings
from service_manager.kind import ServiceManagerKind

_BACKENDS = {
    ServiceManagerKind.LAUNCHD: "service_manager.backends.launchd.LaunchdServiceManager",
    ServiceManagerKind.OPENRC: "service_manager.backends.openrc.OpenRcServiceManager",
    ServiceManagerKind.RCD: "service_manager.backends.rcd.RcdServiceManager",
    ServiceManagerKind.SC: "service_manager.backends.sc.ScServiceManager",
    ServiceManagerKind.SCM: "service_manager.backends.scm.ScmServiceManager",
    ServiceManagerKind.SYSTEMD: "service_manager.backends.systemd.SystemdServiceManager",
    ServiceManagerKind.WINSW: "service_manager.backends.winsw.WinSwServiceManager",
}


def get_backend(
    kind: ServiceManagerKind | str,
    settings: ServiceManagerSettings | None = None,
) -> ServiceManager:
    """Build the backend for ``kind`` configured from ``settings``.

    The backend's own config section is passed in and the settings level
    applied. Modules are imported on demand, so Windows-only code is never
    loaded elsewhere.

    Raises:
        ValueError: If ``kind`` names no backend.
        UnsupportedError: If the backend cannot target the configured level.
    """
    kind = ServiceManagerKind(kind)
    settings = settings or ServiceManagerSettings()

    module_path, class_name = _BACKENDS[kind].rsplit(".", 1)
    module = importlib.import_module(module_path)
    backend_class = getattr(module, class_name)

    # Each settings section is named after the backend kind
    backend: ServiceManager = backend_class(config=getattr(settings, kind.value))
    backend.set_level(settings.level)
    return backend


__all__ = ["get_backend"]

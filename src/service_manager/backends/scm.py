"""Windows Service Control Manager backend using pywin32."""

import importlib.util
import logging
import subprocess
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from service_manager.base import ServiceManager
from service_manager.config.models import ScmConfig, ScmStartType
from service_manager.errors import NativeCommandError, UnsupportedError
from service_manager.types import (
    ServiceInstallCtx,
    ServiceStartCtx,
    ServiceStatus,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)

logger = logging.getLogger(__name__)

# Access rights (winsvc.h)
SC_MANAGER_ALL_ACCESS = 0xF003F
SERVICE_ALL_ACCESS = 0xF01FF
SERVICE_QUERY_STATUS = 0x0004
SERVICE_START = 0x0010
SERVICE_STOP = 0x0020
DELETE = 0x10000

SERVICE_CONTROL_STOP = 0x1
SERVICE_CONFIG_DESCRIPTION = 1
SERVICE_CONFIG_DELAYED_AUTO_START_INFO = 3
SERVICE_STOPPED = 0x1

ERROR_SERVICE_DOES_NOT_EXIST = 1060
ERROR_SERVICE_SPECIFIC_ERROR = 1066


@dataclass(frozen=True)
class Win32Api:
    """The pywin32 entry points the backend calls.

    ``service`` provides the win32service functions and ``error`` is the
    exception type they raise (``pywintypes.error``).
    """

    service: Any
    error: type[Exception]

    @classmethod
    def load(cls) -> "Win32Api":
        import pywintypes
        import win32service

        return cls(service=win32service, error=pywintypes.error)


class ScmServiceManager(ServiceManager):
    """Windows services through the Service Control Manager API.

    Handles are opened with the narrowest access each operation needs and
    closed before returning. System services only.
    """

    def __init__(self, config: ScmConfig | None = None, api: Win32Api | None = None):
        self.config = config or ScmConfig()
        self._api = api

    @property
    def name(self) -> str:
        return "scm"

    @property
    def api(self) -> Win32Api:
        if self._api is None:
            try:
                self._api = Win32Api.load()
            except ImportError as e:
                raise UnsupportedError(
                    "Service control manager is not supported on this platform"
                ) from e
        return self._api

    def available(self) -> bool:
        if self._api is not None:
            return True
        if sys.platform != "win32":
            return False
        return importlib.util.find_spec("win32service") is not None

    @contextmanager
    def _open_manager(self) -> Iterator[Any]:
        handle = self._call("OpenSCManager", None, None, SC_MANAGER_ALL_ACCESS)
        try:
            yield handle
        finally:
            self.api.service.CloseServiceHandle(handle)

    @contextmanager
    def _open_service(self, name: str, access: int) -> Iterator[Any]:
        with self._open_manager() as manager:
            handle = self._call("OpenService", manager, name, access)
            try:
                yield handle
            finally:
                self.api.service.CloseServiceHandle(handle)

    def _call(self, func: str, *args: Any) -> Any:
        """Invoke a win32service function, converting its errors."""
        try:
            return getattr(self.api.service, func)(*args)
        except self.api.error as e:
            code = getattr(e, "winerror", None)
            if code is None:
                code = e.args[0] if e.args else -1
            message = getattr(e, "strerror", None) or str(e)
            raise NativeCommandError(code, f"{func}: {message}") from e

    def install(self, ctx: ServiceInstallCtx) -> None:
        service_name = ctx.label.to_qualified_name()
        config = self.config.install

        if ctx.restart_policy.restarts:
            logger.warning(
                "Service Control Manager recovery actions are not configured; restart policy will be ignored for service '%s'",
                service_name,
            )

        start_type = config.start_type
        if start_type is None:
            start_type = (
                ScmStartType.AUTO_START if ctx.autostart else ScmStartType.ON_DEMAND
            )

        with self._open_manager() as manager:
            service = self._call(
                "CreateService",
                manager,
                service_name,
                config.display_name or service_name,
                SERVICE_ALL_ACCESS,
                int(config.service_type),
                int(start_type),
                int(config.error_severity),
                subprocess.list2cmdline(list(ctx.cmd_iter())),
                None,
                0,
                config.dependencies,
                ctx.username,
                None,
            )
            try:
                if config.delayed_autostart:
                    self._call(
                        "ChangeServiceConfig2",
                        service,
                        SERVICE_CONFIG_DELAYED_AUTO_START_INFO,
                        True,
                    )
                if config.description is not None:
                    self._call(
                        "ChangeServiceConfig2",
                        service,
                        SERVICE_CONFIG_DESCRIPTION,
                        config.description,
                    )
            finally:
                self.api.service.CloseServiceHandle(service)

        logger.info("Created service %s", service_name)

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        with self._open_service(ctx.label.to_qualified_name(), DELETE) as service:
            self._call("DeleteService", service)

    def start(self, ctx: ServiceStartCtx) -> None:
        with self._open_service(ctx.label.to_qualified_name(), SERVICE_START) as service:
            self._call("StartService", service, None)

    def stop(self, ctx: ServiceStopCtx) -> None:
        with self._open_service(ctx.label.to_qualified_name(), SERVICE_STOP) as service:
            self._call("ControlService", service, SERVICE_CONTROL_STOP)

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        try:
            with self._open_service(
                ctx.label.to_qualified_name(), SERVICE_QUERY_STATUS
            ) as service:
                status = self._call("QueryServiceStatus", service)
        except NativeCommandError as e:
            if e.exit_code == ERROR_SERVICE_DOES_NOT_EXIST:
                return ServiceStatus.not_installed()
            raise

        # (type, state, controls, win32 exit code, service exit code, ...)
        state, win32_exit_code, service_exit_code = status[1], status[3], status[4]
        if state != SERVICE_STOPPED:
            return ServiceStatus.running()
        return ServiceStatus.stopped(_stop_reason(win32_exit_code, service_exit_code))


def _stop_reason(win32_exit_code: int, service_exit_code: int) -> str | None:
    if win32_exit_code == ERROR_SERVICE_SPECIFIC_ERROR:
        return f"Service specific error code: {service_exit_code:x}"
    if win32_exit_code:
        return f"Win32 error code: {win32_exit_code:x}"
    return None

"""sc.exe backend for Windows."""

import logging
import subprocess

from service_manager.base import ServiceManager
from service_manager.config.models import ScConfig, WindowsStartType
from service_manager.errors import NativeCommandError
from service_manager.types import (
    ServiceInstallCtx,
    ServiceStartCtx,
    ServiceStatus,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)
from service_manager.utils import (
    CommandOutput,
    find_binary,
    run_command,
    wrap_output,
)

logger = logging.getLogger(__name__)

SC_EXE = "sc.exe"

# ERROR_SERVICE_DOES_NOT_EXIST
SERVICE_DOES_NOT_EXIST = 1060


def _sc(cmd: str, service: str, *args: str) -> CommandOutput:
    return run_command(SC_EXE, cmd, service, *args)


class ScServiceManager(ServiceManager):
    """Windows services through sc.exe. System services only.

    Nothing is written to disk; the service definition lives in the
    registry under the label's qualified name.
    """

    def __init__(self, config: ScConfig | None = None):
        self.config = config or ScConfig()

    @property
    def name(self) -> str:
        return "sc"

    def available(self) -> bool:
        return find_binary(SC_EXE) is not None

    def install(self, ctx: ServiceInstallCtx) -> None:
        service_name = ctx.label.to_qualified_name()
        config = self.config.install

        if ctx.restart_policy.restarts:
            logger.warning(
                "sc.exe install does not configure recovery actions; restart policy will be ignored for service '%s'",
                service_name,
            )

        start_type = WindowsStartType.AUTO if ctx.autostart else config.start_type
        binpath = subprocess.list2cmdline(list(ctx.cmd_iter()))

        # sc.exe wants each option name, "=" included, as its own argument
        wrap_output(
            _sc(
                "create",
                service_name,
                "type=",
                str(config.service_type),
                "start=",
                str(start_type),
                "error=",
                str(config.error_severity),
                "binpath=",
                binpath,
                "displayname=",
                service_name,
            )
        )

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        wrap_output(_sc("delete", ctx.label.to_qualified_name()))

    def start(self, ctx: ServiceStartCtx) -> None:
        wrap_output(_sc("start", ctx.label.to_qualified_name()))

    def stop(self, ctx: ServiceStopCtx) -> None:
        wrap_output(_sc("stop", ctx.label.to_qualified_name()))

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        output = _sc("query", ctx.label.to_qualified_name())

        if output.returncode == SERVICE_DOES_NOT_EXIST:
            return ServiceStatus.not_installed()
        if not output.success:
            raise NativeCommandError(output.returncode, output.message())

        for line in output.stdout.splitlines():
            line = line.strip()
            if line.upper().startswith("STATE"):
                if "RUNNING" in line.upper():
                    return ServiceStatus.running()
                return ServiceStatus.stopped()

        return ServiceStatus.stopped()

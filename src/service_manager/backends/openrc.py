"""OpenRC backend for Linux."""

import logging
from pathlib import Path

from service_manager.base import ServiceManager
from service_manager.config.models import OpenRcConfig
from service_manager.errors import NativeCommandError
from service_manager.label import ServiceLabel
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
    shell_double_quote,
    wrap_output,
    write_file,
)

logger = logging.getLogger(__name__)

RC_SERVICE = "rc-service"
RC_UPDATE = "rc-update"
SCRIPT_FILE_PERMISSIONS = 0o755
RUNLEVEL = "default"


def service_dir_path() -> Path:
    return Path("/etc/init.d")


def _rc_service(cmd: str, service: str) -> CommandOutput:
    return run_command(RC_SERVICE, service, cmd)


def _rc_update(cmd: str, service: str) -> CommandOutput:
    return run_command(RC_UPDATE, cmd, service, RUNLEVEL)


class OpenRcServiceManager(ServiceManager):
    """OpenRC backend. System services only."""

    def __init__(self, config: OpenRcConfig | None = None):
        self.config = config or OpenRcConfig()

    @property
    def name(self) -> str:
        return "openrc"

    def script_path(self, label: ServiceLabel) -> Path:
        return service_dir_path() / label.to_script_name()

    def available(self) -> bool:
        return find_binary(RC_SERVICE) is not None

    def install(self, ctx: ServiceInstallCtx) -> None:
        script_name = ctx.label.to_script_name()
        script_path = self.script_path(ctx.label)
        script_path.parent.mkdir(parents=True, exist_ok=True)

        if ctx.restart_policy.restarts:
            logger.warning(
                "OpenRC does not support automatic restart; restart policy will be ignored for service '%s'",
                script_name,
            )

        if ctx.contents is not None:
            script = ctx.contents
        else:
            script = make_script(script_name, script_name, ctx)

        write_file(script_path, script, SCRIPT_FILE_PERMISSIONS)

        if ctx.autostart:
            wrap_output(_rc_update("add", script_name))

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        script_name = ctx.label.to_script_name()
        # Not in the runlevel when installed without autostart
        _rc_update("delete", script_name)
        self.script_path(ctx.label).unlink(missing_ok=True)

    def start(self, ctx: ServiceStartCtx) -> None:
        wrap_output(_rc_service("start", ctx.label.to_script_name()))

    def stop(self, ctx: ServiceStopCtx) -> None:
        wrap_output(_rc_service("stop", ctx.label.to_script_name()))

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        output = _rc_service("status", ctx.label.to_script_name())

        match output.returncode:
            case 0:
                return ServiceStatus.running()
            case 3:
                return ServiceStatus.stopped()
            case 1 if "does not exist" in output.message():
                return ServiceStatus.not_installed()
            case _:
                raise NativeCommandError(output.returncode, output.message())


def make_script(description: str, provide: str, ctx: ServiceInstallCtx) -> str:
    """Render an openrc-run script for the service."""
    lines = [
        "#!/sbin/openrc-run",
        "",
        f"description={shell_double_quote(description)}",
        f"command={shell_double_quote(str(ctx.program))}",
        f"command_args={shell_double_quote(' '.join(ctx.args_iter()))}",
        'pidfile="/run/${RC_SVCNAME}.pid"',
        "command_background=true",
    ]

    if ctx.username is not None:
        lines.append(f"command_user={shell_double_quote(ctx.username)}")

    if ctx.working_directory is not None:
        lines.append(f"directory={shell_double_quote(str(ctx.working_directory))}")

    for key, value in ctx.environment or []:
        lines.append(f"export {key}={shell_double_quote(value)}")

    lines += [
        "",
        "depend() {",
        f"    provide {provide}",
        "}",
    ]
    return "\n".join(lines) + "\n"

"""rc.d backend for FreeBSD and the other BSDs."""

import logging
from pathlib import Path

from service_manager.base import ServiceManager
from service_manager.config.models import RcdConfig
from service_manager.errors import NativeCommandError
from service_manager.label import ServiceLabel
from service_manager.types import (
    RestartKind,
    ServiceInstallCtx,
    ServiceStartCtx,
    ServiceStatus,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)
from service_manager.utils import (
    CommandOutput,
    run_command,
    shell_double_quote,
    wrap_output,
    write_file,
)

logger = logging.getLogger(__name__)

SERVICE = "service"


def service_dir_path() -> Path:
    return Path("/etc/rc.d")


def _service(cmd: str, service: str) -> CommandOutput:
    return run_command(SERVICE, service, cmd)


class RcdServiceManager(ServiceManager):
    """rc.d backend. System services only.

    Scripts go to /etc/rc.d and run the program under daemon(8), which
    writes the pid file and restarts the child when asked to.
    """

    def __init__(self, config: RcdConfig | None = None):
        self.config = config or RcdConfig()

    @property
    def name(self) -> str:
        return "rcd"

    def script_path(self, label: ServiceLabel) -> Path:
        return service_dir_path() / label.to_script_name()

    def available(self) -> bool:
        return service_dir_path().exists()

    def install(self, ctx: ServiceInstallCtx) -> None:
        script_name = ctx.label.to_script_name()
        script_path = self.script_path(ctx.label)

        if ctx.contents is not None:
            script = ctx.contents
        else:
            script = make_script(self.config, script_name, script_name, ctx)

        write_file(script_path, script, self.config.file_mode)
        wrap_output(_service("enable", script_name))

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        wrap_output(_service("delete", ctx.label.to_script_name()))
        self.script_path(ctx.label).unlink(missing_ok=True)

    def start(self, ctx: ServiceStartCtx) -> None:
        wrap_output(_service("start", ctx.label.to_script_name()))

    def stop(self, ctx: ServiceStopCtx) -> None:
        wrap_output(_service("stop", ctx.label.to_script_name()))

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        output = _service("status", ctx.label.to_script_name())

        match output.returncode:
            case 0:
                return ServiceStatus.running()
            case 3:
                return ServiceStatus.stopped()
            case 1:
                return ServiceStatus.not_installed()
            case code:
                raise NativeCommandError(code, output.message())


def _daemon_flags(name: str, ctx: ServiceInstallCtx) -> str:
    """Extra daemon(8) flags for the user and restart policy."""
    flags = []

    if ctx.username is not None:
        flags.append(f"-u {ctx.username}")

    policy = ctx.restart_policy
    if policy.kind in (RestartKind.ON_FAILURE, RestartKind.ON_SUCCESS):
        logger.warning(
            "daemon(8) restarts on any exit; treating %s as always for service '%s'",
            policy.kind,
            name,
        )

    if policy.restarts:
        if policy.delay_secs is not None:
            flags.append(f"-R {policy.delay_secs}")
        else:
            flags.append("-r")

    return "".join(f" {flag}" for flag in flags)


def make_script(
    config: RcdConfig, description: str, provide: str, ctx: ServiceInstallCtx
) -> str:
    """Render an rc.subr script that runs the program under daemon(8)."""
    # rc.subr variable names cannot contain dashes
    name = provide.replace("-", "_")
    args = " ".join(ctx.args_iter())

    lines = [
        "#!/bin/sh",
        "#",
        f"# PROVIDE: {provide}",
        f"# REQUIRE: {' '.join(config.require)}",
    ]
    if config.before:
        lines.append(f"# BEFORE: {' '.join(config.before)}")
    lines += [
        "# KEYWORD: shutdown",
        "",
        ". /etc/rc.subr",
        "",
        f'name="{name}"',
        f"desc={shell_double_quote(description)}",
        f'rcvar="{name}_enable"',
        "",
        "load_rc_config ${name}",
        "",
        f": ${{{name}_options={shell_double_quote(args)}}}",
    ]

    if ctx.working_directory is not None:
        lines.append(f"{name}_chdir={shell_double_quote(str(ctx.working_directory))}")

    # daemon(8) inherits the exported environment
    for key, value in ctx.environment or []:
        lines.append(f"export {key}={shell_double_quote(value)}")

    lines += [
        "",
        f'pidfile="/var/run/{name}.pid"',
        f"procname={shell_double_quote(str(ctx.program))}",
        'command="/usr/sbin/daemon"',
        f'command_args="-c -S -T ${{name}} -p ${{pidfile}}{_daemon_flags(provide, ctx)}'
        f' ${{procname}} ${{{name}_options}}"',
        "",
        'run_rc_command "$1"',
    ]
    return "\n".join(lines) + "\n"

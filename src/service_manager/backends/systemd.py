"""Systemd backend for Linux."""

import logging
import os
from pathlib import Path

from service_manager.base import LeveledServiceManager
from service_manager.config.models import SystemdConfig, SystemdInstallConfig
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
    find_binary,
    lines_with,
    run_command,
    wrap_output,
    write_file,
)

logger = logging.getLogger(__name__)

SYSTEMCTL = "systemctl"
SERVICE_FILE_PERMISSIONS = 0o644

# `systemctl status` exit codes (LSB): 3 is "not running", 4 is "no such unit"
STATUS_STOPPED = 3
STATUS_UNKNOWN_UNIT = 4

_RESTART_VALUES = {
    RestartKind.ALWAYS: "always",
    RestartKind.ON_FAILURE: "on-failure",
    RestartKind.ON_SUCCESS: "on-success",
}


def global_dir_path() -> Path:
    return Path("/etc/systemd/system")


def user_dir_path() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "systemd" / "user"


class SystemdServiceManager(LeveledServiceManager):
    """Systemd backend for Linux.

    Unit files are named after the label's script name and live in
    /etc/systemd/system, or in the XDG user unit directory for user
    services (managed with ``systemctl --user``).
    """

    def __init__(self, user: bool = False, config: SystemdConfig | None = None):
        super().__init__(user)
        self.config = config or SystemdConfig()

    @classmethod
    def system(cls) -> "SystemdServiceManager":
        return cls()

    @classmethod
    def for_user(cls) -> "SystemdServiceManager":
        return cls(user=True)

    @property
    def name(self) -> str:
        return "systemd"

    def unit_dir(self) -> Path:
        return user_dir_path() if self.user else global_dir_path()

    def unit_path(self, label: ServiceLabel) -> Path:
        return self.unit_dir() / f"{label.to_script_name()}.service"

    def available(self) -> bool:
        return find_binary(SYSTEMCTL) is not None

    def _systemctl(self, cmd: str, target: str) -> CommandOutput:
        if self.user:
            return run_command(SYSTEMCTL, "--user", cmd, target)
        return run_command(SYSTEMCTL, cmd, target)

    def install(self, ctx: ServiceInstallCtx) -> None:
        unit_path = self.unit_path(ctx.label)
        unit_path.parent.mkdir(parents=True, exist_ok=True)

        if ctx.contents is not None:
            unit = ctx.contents
        else:
            unit = make_service(
                self.config.install, ctx.label.to_script_name(), ctx, self.user
            )

        write_file(unit_path, unit, SERVICE_FILE_PERMISSIONS)
        wrap_output(self._systemctl("enable", str(unit_path)))

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        unit_path = self.unit_path(ctx.label)
        wrap_output(self._systemctl("disable", str(unit_path)))
        unit_path.unlink(missing_ok=True)

    def start(self, ctx: ServiceStartCtx) -> None:
        wrap_output(self._systemctl("start", ctx.label.to_script_name()))

    def stop(self, ctx: ServiceStopCtx) -> None:
        wrap_output(self._systemctl("stop", ctx.label.to_script_name()))

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        output = self._systemctl("status", ctx.label.to_script_name())
        text = output.stdout + output.stderr

        if output.returncode == STATUS_UNKNOWN_UNIT or "could not be found" in text:
            return ServiceStatus.not_installed()

        if output.returncode not in (0, STATUS_STOPPED):
            wrap_output(output)

        active = lines_with(output.stdout, "Active:")
        if active:
            line = active[0]
            if "running" in line and "not running" not in line:
                return ServiceStatus.running()
            return ServiceStatus.stopped(line.split("Active:", 1)[1].strip())

        # Exit 0 means the unit is active even without a readable status line
        if output.returncode == 0:
            return ServiceStatus.running()
        return ServiceStatus.stopped()


def _quote_exec_arg(arg: str) -> str:
    """Escape an ExecStart word.

    ``%`` and ``$`` are escaped so systemd does not expand specifiers or
    variables; words with whitespace or quotes are double-quoted.
    """
    arg = arg.replace("%", "%%").replace("$", "$$")
    if arg and not any(ch.isspace() or ch in "\"'\\" for ch in arg):
        return arg
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def make_service(
    config: SystemdInstallConfig,
    description: str,
    ctx: ServiceInstallCtx,
    user: bool,
) -> str:
    """Render a unit file for the service."""
    lines = ["[Unit]", f"Description={description}"]

    if config.start_limit_interval_sec is not None:
        lines.append(f"StartLimitIntervalSec={config.start_limit_interval_sec}")
    if config.start_limit_burst is not None:
        lines.append(f"StartLimitBurst={config.start_limit_burst}")

    exec_start = " ".join(_quote_exec_arg(arg) for arg in ctx.cmd_iter())
    lines += ["", "[Service]", f"ExecStart={exec_start}"]

    policy = ctx.restart_policy
    restart = _RESTART_VALUES.get(policy.kind)
    if restart is not None:
        lines.append(f"Restart={restart}")
        delay = (
            policy.delay_secs
            if policy.delay_secs is not None
            else config.restart_sec
        )
        if delay is not None:
            lines.append(f"RestartSec={delay}")

    for key, value in ctx.environment or []:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        lines.append(f'Environment="{key}={escaped}"')

    if ctx.working_directory is not None:
        lines.append(f"WorkingDirectory={ctx.working_directory}")

    if ctx.username is not None:
        lines.append(f"User={ctx.username}")

    wanted_by = "default.target" if user else "multi-user.target"
    lines += ["", "[Install]", f"WantedBy={wanted_by}"]

    return "\n".join(lines) + "\n"

"""Launchd backend for macOS."""

import logging
import plistlib
from pathlib import Path
from typing import Any
from xml.parsers.expat import ExpatError

from service_manager.base import LeveledServiceManager
from service_manager.config.models import LaunchdConfig, LaunchdInstallConfig
from service_manager.errors import InvalidConfigurationError
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

LAUNCHCTL = "launchctl"
PLIST_FILE_PERMISSIONS = 0o644

# `launchctl print` exits with 64 when it cannot find the service
NOT_FOUND_EXIT_CODE = 64


def global_daemon_dir_path() -> Path:
    return Path("/Library/LaunchDaemons")


def user_agent_dir_path() -> Path:
    return Path.home() / "Library" / "LaunchAgents"


def _launchctl(cmd: str, target: str) -> CommandOutput:
    return run_command(LAUNCHCTL, cmd, target)


class LaunchdServiceManager(LeveledServiceManager):
    """Launchd backend for macOS.

    System services are daemons in /Library/LaunchDaemons, user services
    are agents in ~/Library/LaunchAgents. Both are named by the label's
    qualified name.
    """

    def __init__(self, user: bool = False, config: LaunchdConfig | None = None):
        super().__init__(user)
        self.config = config or LaunchdConfig()

    @classmethod
    def system(cls) -> "LaunchdServiceManager":
        return cls()

    @classmethod
    def for_user(cls) -> "LaunchdServiceManager":
        return cls(user=True)

    @property
    def name(self) -> str:
        return "launchd"

    def plist_dir(self) -> Path:
        return user_agent_dir_path() if self.user else global_daemon_dir_path()

    def plist_path(self, label: ServiceLabel) -> Path:
        return self.plist_dir() / f"{label.to_qualified_name()}.plist"

    def available(self) -> bool:
        return find_binary(LAUNCHCTL) is not None

    def install(self, ctx: ServiceInstallCtx) -> None:
        qualified_name = ctx.label.to_qualified_name()

        if ctx.contents is not None:
            _load_plist(ctx.contents.encode("utf-8"))
            plist = ctx.contents.encode("utf-8")
        else:
            plist = make_plist(self.config.install, qualified_name, ctx)

        plist_path = self.plist_path(ctx.label)
        plist_path.parent.mkdir(parents=True, exist_ok=True)

        # Drop any stale definition; failure just means nothing was loaded
        if plist_path.exists():
            _launchctl("remove", qualified_name)

        write_file(plist_path, plist, PLIST_FILE_PERMISSIONS)

        # Keep-alive services carry Disabled=true, so loading never starts them
        wrap_output(_launchctl("load", str(plist_path)))

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        # Keep-alive services may already have been removed
        _launchctl("remove", ctx.label.to_qualified_name())
        self.plist_path(ctx.label).unlink(missing_ok=True)

    def start(self, ctx: ServiceStartCtx) -> None:
        qualified_name = ctx.label.to_qualified_name()
        plist_path = self.plist_path(ctx.label)

        if not plist_path.exists():
            raise FileNotFoundError(f"Service {qualified_name} is not installed")

        plist = _load_plist(plist_path.read_bytes())

        if plist.get("Disabled") is True:
            del plist["Disabled"]
            write_file(
                plist_path,
                plistlib.dumps(plist, sort_keys=False),
                PLIST_FILE_PERMISSIONS,
            )
            _launchctl("unload", str(plist_path))
            wrap_output(_launchctl("load", str(plist_path)))
        else:
            wrap_output(_launchctl("start", qualified_name))

    def stop(self, ctx: ServiceStopCtx) -> None:
        """Stop a service.

        A keep-alive service is restarted by launchd right away; use
        ``uninstall`` to halt one for good.
        """
        wrap_output(_launchctl("stop", ctx.label.to_qualified_name()))

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        """Query the service through ``launchctl print``.

        The tool cannot look a service up by its bare label. The first
        attempt fails with exit code 64 but lists the fully-qualified
        target (domain prefix included) on a line containing the label,
        and the second attempt queries that target. No such line means
        the service is not installed.
        """
        service_name = ctx.label.to_qualified_name()
        output = _launchctl("print", service_name)

        if not output.success:
            if output.returncode != NOT_FOUND_EXIT_CODE:
                wrap_output(output)

            candidates = lines_with(output.message(), service_name)
            if not candidates:
                return ServiceStatus.not_installed()

            service_name = candidates[0]
            output = _launchctl("print", service_name)
            if not output.success:
                wrap_output(output)

        state_lines = lines_with(output.stdout, "state")
        if any(
            "running" in line and "not running" not in line for line in state_lines
        ):
            return ServiceStatus.running()
        return ServiceStatus.stopped()


def _load_plist(data: bytes) -> dict[str, Any]:
    try:
        plist = plistlib.loads(data)
    except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
        raise InvalidConfigurationError(f"Not a valid property list: {e}") from e
    if not isinstance(plist, dict):
        raise InvalidConfigurationError("Property list must be a dictionary")
    return plist


def make_plist(
    config: LaunchdInstallConfig, label: str, ctx: ServiceInstallCtx
) -> bytes:
    """Build the property list for a service.

    Returns:
        XML plist bytes.
    """
    plist: dict[str, Any] = {
        "Label": label,
        "ProgramArguments": list(ctx.cmd_iter()),
    }

    keep_alive = _keep_alive(config, label, ctx)
    if keep_alive is not None:
        plist["KeepAlive"] = keep_alive

    if ctx.username is not None:
        plist["UserName"] = ctx.username

    if ctx.working_directory is not None:
        plist["WorkingDirectory"] = str(ctx.working_directory)

    if ctx.environment is not None:
        plist["EnvironmentVariables"] = dict(ctx.environment)

    plist["RunAtLoad"] = ctx.autostart

    # Loading a keep-alive job starts it immediately; Disabled holds it
    # back until start() clears the flag
    if keep_alive is not None:
        plist["Disabled"] = True

    return plistlib.dumps(plist, sort_keys=False)


def _keep_alive(
    config: LaunchdInstallConfig, label: str, ctx: ServiceInstallCtx
) -> bool | dict[str, bool] | None:
    """KeepAlive value for the plist, or None to leave it out."""
    if config.keep_alive is not None:
        return True if config.keep_alive else None

    policy = ctx.restart_policy
    if policy.delay_secs is not None:
        logger.warning(
            "Launchd does not support restart delays; delay_secs will be ignored for service '%s'",
            label,
        )

    match policy.kind:
        case RestartKind.NEVER:
            return None
        case RestartKind.ALWAYS:
            return True
        case RestartKind.ON_FAILURE:
            return {"SuccessfulExit": False}
        case RestartKind.ON_SUCCESS:
            return {"SuccessfulExit": True}

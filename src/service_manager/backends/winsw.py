"""WinSW backend for Windows.

WinSW wraps an arbitrary program as a Windows service. Each service gets
a directory under ``WinSwConfig.service_definition_dir`` holding its XML
definition, and every winsw.exe call runs from that directory.
"""

import logging
import os
import shutil
import xml.etree.ElementTree as ET
from pathlib import Path

from service_manager.base import ServiceManager
from service_manager.config.models import WinSwConfig, WinSwOnFailureAction
from service_manager.errors import InvalidConfigurationError, NativeCommandError
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
    run_command,
    wrap_output,
    write_file,
)

logger = logging.getLogger(__name__)

WINSW_EXE = "winsw.exe"
WINSW_PATH_ENV = "WINSW_PATH"
CONFIG_FILE_PERMISSIONS = 0o644

MISSING_CONFIG_MESSAGE = (
    "System.IO.FileNotFoundException: Unable to locate WinSW.[xml|yml] file "
    "within executable directory"
)


def winsw_exe() -> str:
    """The WinSW executable: ``WINSW_PATH`` if it exists, else PATH lookup."""
    override = os.environ.get(WINSW_PATH_ENV)
    if override and Path(override).is_file():
        return override
    return WINSW_EXE


class WinSwServiceManager(ServiceManager):
    """WinSW backend. System services only."""

    def __init__(self, config: WinSwConfig | None = None):
        self.config = config or WinSwConfig()

    @property
    def name(self) -> str:
        return "winsw"

    def service_dir(self, label: ServiceLabel) -> Path:
        return self.config.service_definition_dir / label.to_qualified_name()

    def config_path(self, label: ServiceLabel) -> Path:
        return self.service_dir(label) / f"{label.to_qualified_name()}.xml"

    def available(self) -> bool:
        override = os.environ.get(WINSW_PATH_ENV)
        if override and Path(override).is_file():
            return True
        return find_binary(WINSW_EXE) is not None

    def _winsw(self, cmd: str, label: ServiceLabel) -> CommandOutput:
        return run_command(
            winsw_exe(),
            cmd,
            f"{label.to_qualified_name()}.xml",
            cwd=self.service_dir(label),
        )

    def install(self, ctx: ServiceInstallCtx) -> None:
        if ctx.contents is not None:
            _validate_xml(ctx.contents)
            data: str | bytes = ctx.contents
        else:
            data = make_service_configuration(self.config, ctx)

        service_dir = self.service_dir(ctx.label)
        service_dir.mkdir(parents=True, exist_ok=True)
        write_file(self.config_path(ctx.label), data, CONFIG_FILE_PERMISSIONS)

        wrap_output(self._winsw("install", ctx.label))

    def uninstall(self, ctx: ServiceUninstallCtx) -> None:
        wrap_output(self._winsw("uninstall", ctx.label))
        shutil.rmtree(self.service_dir(ctx.label))
        logger.info("Removed %s", self.service_dir(ctx.label))

    def start(self, ctx: ServiceStartCtx) -> None:
        wrap_output(self._winsw("start", ctx.label))

    def stop(self, ctx: ServiceStopCtx) -> None:
        wrap_output(self._winsw("stop", ctx.label))

    def status(self, ctx: ServiceStatusCtx) -> ServiceStatus:
        if not self.service_dir(ctx.label).exists():
            return ServiceStatus.not_installed()

        output = self._winsw("status", ctx.label)
        if not output.success:
            if MISSING_CONFIG_MESSAGE in output.stderr:
                return ServiceStatus.not_installed()
            raise NativeCommandError(output.returncode, output.message())

        if "NonExistent" in output.stdout:
            return ServiceStatus.not_installed()
        if "running" in output.stdout:
            return ServiceStatus.running()
        return ServiceStatus.stopped()


def _validate_xml(contents: str) -> None:
    try:
        ET.fromstring(contents)
    except ET.ParseError as e:
        raise InvalidConfigurationError(
            "The contents override was not a valid XML document"
        ) from e


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _failure_action(
    config: WinSwConfig, ctx: ServiceInstallCtx
) -> WinSwOnFailureAction:
    """Configured ``onfailure`` action, or one derived from the restart policy."""
    configured = config.install.failure_action
    if configured.action != "none":
        return configured

    policy = ctx.restart_policy
    match policy.kind:
        case RestartKind.ALWAYS | RestartKind.ON_FAILURE:
            delay = None
            if policy.delay_secs is not None:
                delay = f"{policy.delay_secs} sec"
            return WinSwOnFailureAction(action="restart", delay=delay)
        case RestartKind.ON_SUCCESS:
            logger.warning(
                "WinSW only restarts on failure; restart policy will be ignored for service '%s'",
                ctx.label.to_qualified_name(),
            )
    return configured


def make_service_configuration(config: WinSwConfig, ctx: ServiceInstallCtx) -> bytes:
    """Build the WinSW XML definition for a service."""
    qualified_name = ctx.label.to_qualified_name()
    install = config.install
    options = config.options

    root = ET.Element("service")

    def element(tag: str, text: str | None = None, **attrib: str) -> ET.Element:
        child = ET.SubElement(root, tag, attrib)
        if text is not None:
            child.text = text
        return child

    element("id", qualified_name)
    element("executable", str(ctx.program))
    element("name", install.display_name or qualified_name)
    element("description", install.description or f"Service for {qualified_name}")
    element("arguments", " ".join(ctx.args_iter()))

    if ctx.working_directory is not None:
        element("workingdirectory", str(ctx.working_directory))

    for key, value in ctx.environment or []:
        element("env", name=key, value=value)

    failure_action = _failure_action(config, ctx)
    if failure_action.delay is not None:
        element("onfailure", action=failure_action.action, delay=failure_action.delay)
    else:
        element("onfailure", action=failure_action.action)

    if install.reset_failure_time is not None:
        element("resetfailure", install.reset_failure_time)
    if install.security_descriptor is not None:
        element("securityDescriptor", install.security_descriptor)

    if options.priority is not None:
        element("priority", str(options.priority))
    if options.stop_timeout is not None:
        element("stoptimeout", options.stop_timeout)
    if options.stop_executable is not None:
        element("stopexecutable", str(options.stop_executable))
    if options.stop_args is not None:
        element("stoparguments", " ".join(options.stop_args))

    if options.start_mode is not None:
        element("startmode", str(options.start_mode))
    else:
        element("startmode", "Automatic" if ctx.autostart else "Manual")

    if options.delayed_autostart is not None:
        element("delayedAutoStart", _bool(options.delayed_autostart))
    for service in options.dependent_services or []:
        element("depend", service)
    if options.interactive is not None:
        element("interactive", _bool(options.interactive))
    if options.beep_on_shutdown is not None:
        element("beeponshutdown", _bool(options.beep_on_shutdown))

    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"

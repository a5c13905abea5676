"""Configuration models using Pydantic.

One model per backend, grouped under ``ServiceManagerSettings`` so a
single TOML file can configure whichever backend ends up selected.
"""

from enum import IntEnum, StrEnum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from service_manager.kind import ServiceManagerKind
from service_manager.types import ServiceLevel


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


# -- launchd ------------------------------------------------------------------


class LaunchdInstallConfig(_Section):
    """Launchd options applied at install time.

    ``keep_alive`` takes precedence over the generic restart policy when set.
    """

    keep_alive: bool | None = None


class LaunchdConfig(_Section):
    install: LaunchdInstallConfig = Field(default_factory=LaunchdInstallConfig)


# -- systemd ------------------------------------------------------------------


class SystemdInstallConfig(_Section):
    """Extra unit directives.

    ``restart_sec`` is used when the restart policy carries no delay.
    """

    start_limit_interval_sec: int | None = None
    start_limit_burst: int | None = None
    restart_sec: int | None = None


class SystemdConfig(_Section):
    install: SystemdInstallConfig = Field(default_factory=SystemdInstallConfig)


# -- OpenRC / rc.d --------------------------------------------------------------


class OpenRcConfig(_Section):
    pass


class RcdConfig(_Section):
    """rc.d script options.

    FreeBSD ships its own scripts as r-xr-xr-x, hence the 0555 default.
    """

    require: list[str] = Field(default_factory=lambda: ["LOGIN", "FILESYSTEMS"])
    before: list[str] = Field(default_factory=list)
    file_mode: int = 0o555


# -- sc.exe ---------------------------------------------------------------------


class WindowsServiceType(StrEnum):
    OWN = "own"
    SHARE = "share"
    KERNEL = "kernel"
    FILESYS = "filesys"
    REC = "rec"


class WindowsStartType(StrEnum):
    BOOT = "boot"
    SYSTEM = "system"
    AUTO = "auto"
    DEMAND = "demand"
    DISABLED = "disabled"


class WindowsErrorSeverity(StrEnum):
    NORMAL = "normal"
    SEVERE = "severe"
    CRITICAL = "critical"
    IGNORE = "ignore"


class ScInstallConfig(_Section):
    service_type: WindowsServiceType = WindowsServiceType.OWN
    start_type: WindowsStartType = WindowsStartType.AUTO
    error_severity: WindowsErrorSeverity = WindowsErrorSeverity.NORMAL


class ScConfig(_Section):
    install: ScInstallConfig = Field(default_factory=ScInstallConfig)


# -- Service Control Manager API ----------------------------------------------------


class ScmServiceType(IntEnum):
    """``dwServiceType`` bit values."""

    KERNEL = 0x1
    FILE_SYS = 0x2
    OWN = 0x10
    SHARE = 0x20
    USER_OWN = 0x50
    USER_SHARE = 0x60
    INTERACTIVE = 0x100


class ScmStartType(IntEnum):
    """``dwStartType`` values."""

    BOOT_START = 0
    SYSTEM_START = 1
    AUTO_START = 2
    ON_DEMAND = 3
    DISABLED = 4


class ScmErrorControl(IntEnum):
    """``dwErrorControl`` values."""

    IGNORE = 0
    NORMAL = 1
    SEVERE = 2
    CRITICAL = 3


class ScmInstallConfig(_Section):
    """Options for services created through the SCM API.

    ``start_type`` left unset means auto start when the install context
    asks for autostart and on-demand otherwise.
    """

    description: str | None = None
    dependencies: list[str] | None = None
    display_name: str | None = None
    start_type: ScmStartType | None = None
    service_type: ScmServiceType = ScmServiceType.OWN
    error_severity: ScmErrorControl = ScmErrorControl.NORMAL
    delayed_autostart: bool = False


class ScmConfig(_Section):
    install: ScmInstallConfig = Field(default_factory=ScmInstallConfig)


# -- WinSW --------------------------------------------------------------------------


class WinSwStartType(StrEnum):
    AUTOMATIC = "Automatic"
    BOOT = "Boot"
    MANUAL = "Manual"
    SYSTEM = "System"


class WinSwPriority(StrEnum):
    NORMAL = "Normal"
    IDLE = "Idle"
    HIGH = "High"
    REAL_TIME = "RealTime"
    BELOW_NORMAL = "BelowNormal"
    ABOVE_NORMAL = "AboveNormal"


class WinSwOnFailureAction(_Section):
    """``<onfailure>`` element. ``delay`` is only meaningful for restart."""

    action: Literal["restart", "reboot", "none"] = "none"
    delay: str | None = None

    @model_validator(mode="after")
    def _delay_only_for_restart(self) -> "WinSwOnFailureAction":
        if self.delay is not None and self.action != "restart":
            raise ValueError("onfailure delay is only valid with the restart action")
        return self


class WinSwInstallConfig(_Section):
    description: str | None = None
    display_name: str | None = None
    failure_action: WinSwOnFailureAction = Field(default_factory=WinSwOnFailureAction)
    reset_failure_time: str | None = None
    security_descriptor: str | None = None


class WinSwOptionsConfig(_Section):
    priority: WinSwPriority | None = None
    stop_timeout: str | None = None
    stop_executable: Path | None = None
    stop_args: list[str] | None = None
    start_mode: WinSwStartType | None = None
    delayed_autostart: bool | None = None
    dependent_services: list[str] | None = None
    interactive: bool | None = None
    beep_on_shutdown: bool | None = None


class WinSwConfig(_Section):
    """WinSW settings. Each service gets its own ``service_definition_dir`` child."""

    install: WinSwInstallConfig = Field(default_factory=WinSwInstallConfig)
    options: WinSwOptionsConfig = Field(default_factory=WinSwOptionsConfig)
    service_definition_dir: Path = Path("C:\\ProgramData\\service-manager")


# -- top level ----------------------------------------------------------------------


class ServiceManagerSettings(_Section):
    """Root configuration.

    ``kind`` pins a backend; left unset, the native backend is probed.
    """

    kind: ServiceManagerKind | None = None
    level: ServiceLevel = ServiceLevel.SYSTEM
    launchd: LaunchdConfig = Field(default_factory=LaunchdConfig)
    systemd: SystemdConfig = Field(default_factory=SystemdConfig)
    openrc: OpenRcConfig = Field(default_factory=OpenRcConfig)
    rcd: RcdConfig = Field(default_factory=RcdConfig)
    sc: ScConfig = Field(default_factory=ScConfig)
    scm: ScmConfig = Field(default_factory=ScmConfig)
    winsw: WinSwConfig = Field(default_factory=WinSwConfig)

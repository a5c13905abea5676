"""Portable descriptors and results passed to and from service managers."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from service_manager.label import ServiceLabel


class ServiceLevel(StrEnum):
    """Whether a service is system-wide or tied to the current user."""

    SYSTEM = "system"
    USER = "user"


class RestartKind(StrEnum):
    """When the native manager should restart the program."""

    NEVER = "never"
    ALWAYS = "always"
    ON_FAILURE = "on-failure"
    ON_SUCCESS = "on-success"


@dataclass(frozen=True)
class RestartPolicy:
    """Restart behavior handed to the native service manager.

    ``delay_secs`` is how long to wait before restarting. Backends without
    a delay primitive log a warning and ignore it.
    """

    kind: RestartKind = RestartKind.ON_FAILURE
    delay_secs: int | None = None

    def __post_init__(self) -> None:
        if self.kind == RestartKind.NEVER and self.delay_secs is not None:
            raise ValueError("A restart delay requires a policy other than never")
        if self.delay_secs is not None and self.delay_secs < 0:
            raise ValueError(f"Restart delay cannot be negative, got {self.delay_secs}")

    @classmethod
    def never(cls) -> "RestartPolicy":
        return cls(RestartKind.NEVER)

    @classmethod
    def always(cls, delay_secs: int | None = None) -> "RestartPolicy":
        return cls(RestartKind.ALWAYS, delay_secs)

    @classmethod
    def on_failure(cls, delay_secs: int | None = None) -> "RestartPolicy":
        return cls(RestartKind.ON_FAILURE, delay_secs)

    @classmethod
    def on_success(cls, delay_secs: int | None = None) -> "RestartPolicy":
        return cls(RestartKind.ON_SUCCESS, delay_secs)

    @property
    def restarts(self) -> bool:
        return self.kind != RestartKind.NEVER


@dataclass(frozen=True)
class ServiceInstallCtx:
    """Everything needed to install a service.

    When ``contents`` is set it is written verbatim in place of the
    generated configuration; structured formats are validated first.
    """

    label: ServiceLabel
    program: Path
    args: list[str] = field(default_factory=list)
    contents: str | None = None
    username: str | None = None
    working_directory: Path | None = None
    environment: list[tuple[str, str]] | None = None
    autostart: bool = True
    restart_policy: RestartPolicy = field(default_factory=RestartPolicy)

    def cmd_iter(self) -> Iterator[str]:
        """Program followed by its arguments."""
        yield str(self.program)
        yield from self.args_iter()

    def args_iter(self) -> Iterator[str]:
        yield from (str(arg) for arg in self.args)


@dataclass(frozen=True)
class ServiceUninstallCtx:
    label: ServiceLabel


@dataclass(frozen=True)
class ServiceStartCtx:
    label: ServiceLabel


@dataclass(frozen=True)
class ServiceStopCtx:
    label: ServiceLabel


@dataclass(frozen=True)
class ServiceStatusCtx:
    label: ServiceLabel


class ServiceState(StrEnum):
    """Service running state."""

    RUNNING = "running"
    STOPPED = "stopped"
    NOT_INSTALLED = "not_installed"


@dataclass(frozen=True)
class ServiceStatus:
    """Service status information.

    ``reason`` is only ever set for ``STOPPED`` and carries whatever the
    native manager reported about why.
    """

    state: ServiceState
    reason: str | None = None

    @classmethod
    def running(cls) -> "ServiceStatus":
        return cls(ServiceState.RUNNING)

    @classmethod
    def stopped(cls, reason: str | None = None) -> "ServiceStatus":
        return cls(ServiceState.STOPPED, reason)

    @classmethod
    def not_installed(cls) -> "ServiceStatus":
        return cls(ServiceState.NOT_INSTALLED)

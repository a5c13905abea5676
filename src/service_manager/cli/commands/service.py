"""Service lifecycle commands."""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, TypeVar

import typer

from service_manager.cli.console import (
    console,
    create_table,
    dim,
    error,
    format_state,
    success,
)
from service_manager.config import load_config
from service_manager.errors import ServiceManagerError
from service_manager.kind import ServiceManagerKind
from service_manager.label import ServiceLabel
from service_manager.typed import TypedServiceManager
from service_manager.types import (
    RestartKind,
    RestartPolicy,
    ServiceInstallCtx,
    ServiceLevel,
    ServiceStartCtx,
    ServiceStatusCtx,
    ServiceStopCtx,
    ServiceUninstallCtx,
)

T = TypeVar("T")


@dataclass
class CliOptions:
    """Global options collected by the app callback."""

    kind: ServiceManagerKind | None = None
    user: bool = False
    config: Path | None = None


def _fail(msg: str) -> typer.Exit:
    error(msg)
    return typer.Exit(1)


def get_manager(options: CliOptions) -> TypedServiceManager:
    """Build the manager selected by the global options and config file."""
    try:
        settings = load_config(options.config)
        if options.user:
            settings = settings.model_copy(update={"level": ServiceLevel.USER})
        return TypedServiceManager.target_or_native(
            options.kind or settings.kind, settings
        )
    except (ServiceManagerError, FileNotFoundError) as e:
        raise _fail(str(e)) from None


def _run(action: Callable[[], T]) -> T:
    """Run a manager operation, reporting failures and exiting with 1."""
    try:
        return action()
    except (ServiceManagerError, OSError) as e:
        raise _fail(str(e)) from None


def _parse_label(value: str) -> ServiceLabel:
    try:
        return ServiceLabel.parse(value)
    except ValueError as e:
        raise _fail(str(e)) from None


def _parse_env(pairs: list[str]) -> list[tuple[str, str]]:
    env = []
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise _fail(f"Invalid environment variable '{pair}', expected KEY=VALUE")
        env.append((key, value))
    return env


def register(app: typer.Typer) -> None:
    """Register service lifecycle commands."""

    @app.command("install")
    def service_install(
        ctx: typer.Context,
        label: Annotated[str, typer.Argument(help="Service label, e.g. com.example.app")],
        program: Annotated[Path, typer.Argument(help="Program to run")],
        args: Annotated[
            list[str] | None,
            typer.Argument(help="Arguments passed to the program"),
        ] = None,
        working_directory: Annotated[
            Path | None,
            typer.Option("--working-directory", "-w", help="Working directory"),
        ] = None,
        env: Annotated[
            list[str] | None,
            typer.Option("--env", "-e", help="Environment variable as KEY=VALUE"),
        ] = None,
        username: Annotated[
            str | None,
            typer.Option("--username", "-u", help="Account to run the service as"),
        ] = None,
        no_autostart: Annotated[
            bool,
            typer.Option("--no-autostart", help="Do not start at boot or login"),
        ] = False,
        restart: Annotated[
            RestartKind,
            typer.Option("--restart", help="When to restart the program"),
        ] = RestartKind.ON_FAILURE,
        restart_delay: Annotated[
            int | None,
            typer.Option("--restart-delay", help="Seconds to wait before restarting"),
        ] = None,
        contents_file: Annotated[
            Path | None,
            typer.Option(
                "--contents-file",
                help="Use this file verbatim as the native service definition",
            ),
        ] = None,
    ) -> None:
        """Install a service. Does not start it."""
        service_label = _parse_label(label)

        try:
            policy = RestartPolicy(restart, restart_delay)
        except ValueError as e:
            raise _fail(str(e)) from None

        contents = None
        if contents_file is not None:
            if not contents_file.exists():
                raise _fail(f"Contents file not found: {contents_file}")
            contents = contents_file.read_text()

        install_ctx = ServiceInstallCtx(
            label=service_label,
            program=program,
            args=list(args or []),
            contents=contents,
            username=username,
            working_directory=working_directory,
            environment=_parse_env(env) if env else None,
            autostart=not no_autostart,
            restart_policy=policy,
        )

        manager = get_manager(ctx.obj)
        _run(lambda: manager.install(install_ctx))
        success(f"Installed {service_label} ({manager.kind.value})")

    @app.command("uninstall")
    def service_uninstall(
        ctx: typer.Context,
        label: Annotated[str, typer.Argument(help="Service label")],
    ) -> None:
        """Uninstall a service."""
        service_label = _parse_label(label)
        manager = get_manager(ctx.obj)
        _run(lambda: manager.uninstall(ServiceUninstallCtx(service_label)))
        success(f"Uninstalled {service_label}")

    @app.command("start")
    def service_start(
        ctx: typer.Context,
        label: Annotated[str, typer.Argument(help="Service label")],
    ) -> None:
        """Start an installed service."""
        service_label = _parse_label(label)
        manager = get_manager(ctx.obj)
        _run(lambda: manager.start(ServiceStartCtx(service_label)))
        success(f"Started {service_label}")

    @app.command("stop")
    def service_stop(
        ctx: typer.Context,
        label: Annotated[str, typer.Argument(help="Service label")],
    ) -> None:
        """Stop a running service."""
        service_label = _parse_label(label)
        manager = get_manager(ctx.obj)
        _run(lambda: manager.stop(ServiceStopCtx(service_label)))
        success(f"Stopped {service_label}")

    @app.command("status")
    def service_status(
        ctx: typer.Context,
        label: Annotated[str, typer.Argument(help="Service label")],
    ) -> None:
        """Show the status of a service."""
        service_label = _parse_label(label)
        manager = get_manager(ctx.obj)
        status = _run(lambda: manager.status(ServiceStatusCtx(service_label)))

        table = create_table(
            "Service Status",
            [
                ("Property", "cyan"),
                ("Value", ""),
            ],
        )
        table.add_row("Label", str(service_label))
        table.add_row("Backend", manager.kind.value)
        table.add_row("Level", manager.level.value)
        table.add_row("State", format_state(status.state))
        if status.reason:
            table.add_row("Reason", status.reason)

        console.print(table)

    @app.command("native")
    def service_native() -> None:
        """Show the service manager native to this system."""
        try:
            kind = ServiceManagerKind.native()
        except ServiceManagerError as e:
            raise _fail(str(e)) from None

        console.print(kind.value)
        if not TypedServiceManager.target(kind).available():
            dim(f"{kind.value} was selected but its tooling is not available")

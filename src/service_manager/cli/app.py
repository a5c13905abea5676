"""Main CLI application."""

from pathlib import Path
from typing import Annotated

import typer

from service_manager.cli.commands import service
from service_manager.cli.commands.service import CliOptions
from service_manager.kind import ServiceManagerKind
from service_manager.logging import configure_logging

app = typer.Typer(
    name="service-manager",
    help="Install and control services with the OS service manager",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    kind: Annotated[
        ServiceManagerKind | None,
        typer.Option(
            "--kind",
            "-k",
            help="Service manager to use instead of the native one",
        ),
    ] = None,
    user: Annotated[
        bool,
        typer.Option(
            "--user",
            help="Manage user-level services",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Log level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = None,
) -> None:
    """Install and control services with the OS service manager."""
    configure_logging(log_level, use_rich=True)
    ctx.obj = CliOptions(kind=kind, user=user, config=config)


service.register(app)


if __name__ == "__main__":
    app()

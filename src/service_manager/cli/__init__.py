"""Command-line interface."""

from service_manager.cli.app import app

__all__ = ["app"]

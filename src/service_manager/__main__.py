"""Allow running as ``python -m service_manager``."""

from service_manager.cli.app import app

if __name__ == "__main__":
    app()

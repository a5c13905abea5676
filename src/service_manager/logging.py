"""Logging configuration for service-manager.

The library only creates module loggers; applications (and the CLI) call
configure_logging() once at startup.

Logging Levels:
- DEBUG: Every native command run and its exit code
- INFO: Files written or removed, services created through the API
- WARNING: Restart options a backend cannot honor
- ERROR: Failures reported by the CLI
"""

import logging
import os

ENV_VAR = "SERVICE_MANAGER_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ComponentFormatter(logging.Formatter):
    """Formatter that extracts component name from logger path.

    Backend loggers are named after the backend, everything else after
    its top-level module:
    - service_manager.backends.systemd -> systemd
    - service_manager.config.loader -> config
    - service_manager.utils -> utils
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = record.name.split(".")
        if len(parts) >= 3 and parts[:2] == ["service_manager", "backends"]:
            record.component = parts[2]
        elif len(parts) >= 2 and parts[0] == "service_manager":
            record.component = parts[1]
        else:
            record.component = parts[0]
        return super().format(record)


def resolve_level(level: str | None = None) -> str:
    """Resolve a level name from the argument, the environment, or the default."""
    if level is None:
        level = os.environ.get(ENV_VAR, DEFAULT_LEVEL)
    level = level.upper()
    if level not in LEVELS:
        return DEFAULT_LEVEL
    return level


def configure_logging(level: str | None = None, use_rich: bool = False) -> None:
    """Configure logging for service-manager.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
            If None, uses SERVICE_MANAGER_LOG_LEVEL env var or WARNING.
        use_rich: Use Rich handler for colorful terminal output.
    """
    log_level = getattr(logging, resolve_level(level))

    if use_rich:
        from rich.logging import RichHandler

        handler: logging.Handler = RichHandler(
            rich_tracebacks=False,
            show_path=False,
            show_time=False,
            markup=False,
        )
        handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            ComponentFormatter(
                "%(asctime)s | %(levelname)-8s | %(component)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )

    logging.basicConfig(level=log_level, handlers=[handler], force=True)

"""Errors raised by service managers.

An unavailable backend is reported by ``available()`` returning False, and
a missing service is the ``NOT_INSTALLED`` status, so neither has an
exception here.
"""


class ServiceManagerError(Exception):
    """Base class for all service manager failures."""


class UnsupportedError(ServiceManagerError):
    """The backend cannot provide the requested capability (e.g. user level)."""


class InvalidConfigurationError(ServiceManagerError):
    """Caller-supplied configuration failed validation."""


class NativeCommandError(ServiceManagerError):
    """A native tool or API call failed without a recognized sentinel.

    Attributes:
        exit_code: Process exit code, or the native API error code.
        output: Captured text used to build the message.
    """

    def __init__(self, exit_code: int, output: str, message: str | None = None):
        self.exit_code = exit_code
        self.output = output
        super().__init__(
            message or f"Command failed with exit code {exit_code}: {output}"
        )

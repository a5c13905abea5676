"""Shared test fixtures and factories."""

from collections import deque
from pathlib import Path

import pytest

from service_manager.label import ServiceLabel
from service_manager.types import RestartPolicy, ServiceInstallCtx
from service_manager.utils import CommandOutput

# =============================================================================
# Native Command Fakes
# =============================================================================


class FakeRunner:
    """Stand-in for ``run_command`` that records calls and replays results.

    Results are consumed in order; once exhausted every call succeeds with
    empty output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []
        self.cwds: list[Path | None] = []
        self._results: deque[tuple[int, str, str]] = deque()

    def returns(self, returncode: int = 0, stdout: str = "", stderr: str = "") -> None:
        self._results.append((returncode, stdout, stderr))

    def __call__(
        self, program: str | Path, *args: str, cwd: Path | None = None
    ) -> CommandOutput:
        argv = (str(program), *args)
        self.calls.append(argv)
        self.cwds.append(cwd)
        if self._results:
            returncode, stdout, stderr = self._results.popleft()
        else:
            returncode, stdout, stderr = 0, "", ""
        return CommandOutput(argv, returncode, stdout, stderr)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def label() -> ServiceLabel:
    return ServiceLabel.parse("com.example.echo")


@pytest.fixture
def install_ctx(label: ServiceLabel) -> ServiceInstallCtx:
    """Install context with a program, arguments and the default policy."""
    return ServiceInstallCtx(
        label=label,
        program=Path("/usr/local/bin/echo-server"),
        args=["--port", "8080"],
    )


def make_ctx(label: ServiceLabel, **overrides) -> ServiceInstallCtx:
    """Factory for install contexts with selected fields overridden."""
    fields = {
        "label": label,
        "program": Path("/usr/local/bin/echo-server"),
        "args": ["--port", "8080"],
        "restart_policy": RestartPolicy.on_failure(),
    }
    fields.update(overrides)
    return ServiceInstallCtx(**fields)


# =============================================================================
# CLI Test Helpers
# =============================================================================


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})

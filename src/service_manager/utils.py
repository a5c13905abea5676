"""File and process helpers shared by the backends."""

import logging
import os
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from service_manager.errors import NativeCommandError

logger = logging.getLogger(__name__)

NO_OUTPUT_MESSAGE = "Failed to execute command with no output"


@dataclass(frozen=True)
class CommandOutput:
    """Exit code and decoded output of a finished native command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def message(self) -> str:
        """Stderr if it has content, otherwise stdout."""
        if self.stderr.strip():
            return self.stderr
        return self.stdout


def write_file(path: Path, data: str | bytes, mode: int) -> None:
    """Create or overwrite ``path`` with ``mode`` and sync it to disk.

    The mode is applied even when the file already exists, since
    ``os.open`` only honors it on creation.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())
    os.chmod(path, mode)
    logger.info("Wrote %s", path)


def run_command(
    program: str | Path, *args: str, cwd: Path | None = None
) -> CommandOutput:
    """Run a native tool to completion, capturing both output streams.

    ``subprocess.run`` drains stdout and stderr together, so a chatty tool
    cannot block on a full pipe. There is no timeout.

    Raises:
        FileNotFoundError: If the program does not exist.
    """
    argv = (str(program), *args)
    logger.debug("Running %s", " ".join(argv))
    result = subprocess.run(
        argv,
        stdin=subprocess.DEVNULL,
        capture_output=True,
        cwd=cwd,
    )
    output = CommandOutput(
        args=argv,
        returncode=result.returncode,
        stdout=result.stdout.decode(errors="replace"),
        stderr=result.stderr.decode(errors="replace"),
    )
    if not output.success:
        logger.debug("%s exited with %d", argv[0], output.returncode)
    return output


def wrap_output(output: CommandOutput) -> CommandOutput:
    """Return ``output`` unchanged, or raise if the command failed.

    Raises:
        NativeCommandError: With the exit code and stderr (or stdout).
    """
    if output.success:
        return output
    message = output.message() or NO_OUTPUT_MESSAGE
    raise NativeCommandError(output.returncode, message)


def find_binary(name: str) -> str | None:
    """Locate an executable on PATH."""
    return shutil.which(name)


def shell_double_quote(value: str) -> str:
    """Quote ``value`` for a POSIX shell double-quoted string."""
    for ch in ("\\", '"', "$", "`"):
        value = value.replace(ch, "\\" + ch)
    return f'"{value}"'


def lines_with(text: str, needle: str) -> Sequence[str]:
    """Trimmed lines of ``text`` that contain ``needle``."""
    return [line.strip() for line in text.splitlines() if needle in line]

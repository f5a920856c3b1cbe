"""
External converter invocation.

The batch generator talks to the converter only through the CommandRunner
protocol (find an executable, run an argument list with a timeout), so tests
can substitute a fake and never spawn ImageMagick.
"""

from __future__ import annotations

import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from srcsetkit.logging_config import get_logger, log_commands
from srcsetkit.utils.exceptions import ToolNotFoundError

logger = get_logger(__name__)

INSTALL_HINT = (
    "Install ImageMagick (https://imagemagick.org/script/download.php, "
    "e.g. `brew install imagemagick` or `apt install imagemagick`) "
    "or point SRCSETKIT_CONVERTER / --converter at the binary."
)

# Keep at most this much converter output in failure reasons
_OUTPUT_MAX = 2000


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one converter run."""

    returncode: int | None  # None when the process was killed on timeout
    stdout: str = ""
    stderr: str = ""
    elapsed: float = 0.0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.returncode == 0

    @property
    def output(self) -> str:
        """Stderr if present, else stdout, stripped and truncated."""
        text = (self.stderr or "").strip() or (self.stdout or "").strip()
        if len(text) > _OUTPUT_MAX:
            text = text[:_OUTPUT_MAX] + "..."
        return text


class CommandRunner(Protocol):
    """Narrow interface over subprocess used by the batch generator."""

    def find_executable(self, name: str) -> str | None:
        """Return the resolved path of ``name`` or None if it is not available."""
        ...

    def run(self, args: list[str], timeout: float) -> CommandResult:
        """Run ``args``, wait for exit or ``timeout`` seconds, capture output."""
        ...


class SubprocessRunner:
    """CommandRunner backed by shutil.which and subprocess.Popen."""

    def find_executable(self, name: str) -> str | None:
        return shutil.which(name)

    def run(self, args: list[str], timeout: float) -> CommandResult:
        start = time.monotonic()
        try:
            process = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(
                f"Converter not found: {args[0]}. {INSTALL_HINT}", tool=args[0]
            ) from e
        except OSError as e:
            # PermissionError, ENOEXEC: the binary exists but cannot run
            raise ToolNotFoundError(
                f"Converter could not be started: {args[0]} ({e}). {INSTALL_HINT}", tool=args[0]
            ) from e
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            stdout, stderr = process.communicate()
            return CommandResult(
                returncode=None,
                stdout=stdout or "",
                stderr=stderr or "",
                elapsed=time.monotonic() - start,
                timed_out=True,
            )
        return CommandResult(
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            elapsed=time.monotonic() - start,
        )


def resolve_converter(runner: CommandRunner, converter: str) -> str:
    """
    Return the resolved executable for ``converter``.

    Raises:
        ToolNotFoundError: If the converter cannot be found
    """
    resolved = runner.find_executable(converter)
    if not resolved:
        raise ToolNotFoundError(
            f"Converter {converter!r} was not found on PATH. {INSTALL_HINT}", tool=converter
        )
    logger.debug("Using converter %s", resolved)
    return resolved


def build_convert_command(
    tool: str,
    source: str | Path,
    target: str | Path,
    width: int,
    quality: int,
) -> list[str]:
    """
    Build the ImageMagick argument list for one variant.

    The output encoding follows the target's extension. "<width>x" scales to
    the exact width and keeps the aspect ratio.
    """
    return [
        tool,
        str(source),
        "-auto-orient",
        "-resize",
        f"{width}x",
        "-strip",
        "-quality",
        str(quality),
        str(target),
    ]


def run_convert(
    runner: CommandRunner,
    args: list[str],
    timeout: float,
) -> CommandResult:
    """Run one converter command, logging the command line at verbosity >= 1."""
    if log_commands():
        logger.info("$ %s", shlex.join(args))
    result = runner.run(args, timeout)
    logger.debug(
        "Converter exited with %s in %.2fs%s",
        result.returncode,
        result.elapsed,
        " (timed out)" if result.timed_out else "",
    )
    return result


__all__ = [
    "INSTALL_HINT",
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    "build_convert_command",
    "resolve_converter",
    "run_convert",
]

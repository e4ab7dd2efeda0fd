"""Process runners for binding helpers and recipe lines."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecResult:
    """Result envelope for a captured subprocess."""

    argv: tuple[str, ...]
    cwd: Path
    returncode: int
    stdout: str
    stderr: str


class ExecError(RuntimeError):
    """Raised when a captured command returns non-zero in check mode."""

    def __init__(self, result: ExecResult):
        rendered = " ".join(result.argv)
        detail = (result.stderr or result.stdout).strip()
        super().__init__(f"command failed ({result.returncode}): {rendered}\n{detail}".rstrip())
        self.result = result


def shell_argv(shell: Sequence[str], command: str) -> list[str]:
    """Build the argument vector handing `command` to the shell."""
    return [*shell, command]


def run_captured(
    argv: list[str],
    *,
    cwd: Path,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> ExecResult:
    """Run command with captured output and return structured result."""
    completed = subprocess.run(
        argv,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        check=False,
    )
    result = ExecResult(
        argv=tuple(argv),
        cwd=cwd.resolve(),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    logger.debug("captured %s exited %d", argv[0], result.returncode)
    if check and result.returncode != 0:
        raise ExecError(result)
    return result


def run_streaming(
    argv: list[str],
    *,
    cwd: Path,
    env: Mapping[str, str],
) -> int:
    """Run command attached to the caller's stdio and return its exit status.

    Ctrl-C reaches the child through the shared process group; the
    KeyboardInterrupt raised here propagates after the child is gone.
    """
    with subprocess.Popen(argv, cwd=cwd, env=dict(env)) as process:
        try:
            returncode = process.wait()
        except KeyboardInterrupt:
            process.wait()
            raise
    if returncode < 0:
        # Killed by signal N: report 128+N the way a shell does.
        returncode = 128 - returncode
    logger.debug("%s exited %d", argv[0], returncode)
    return returncode

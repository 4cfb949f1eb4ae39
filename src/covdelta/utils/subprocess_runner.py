"""Async runner for the make, node and lint commands covdelta drives."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

TIMEOUT_RETURNCODE = -1
"""Exit code recorded for a command killed after its timeout."""


@dataclass(frozen=True)
class SubprocessResult:
    """Exit status and captured streams of a finished command."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Non-empty streams joined, stdout first."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part.strip())

    def describe_failure(self, tail_chars: int = 2000) -> str:
        """One-line reason plus the end of stderr, for error messages."""
        if self.timed_out:
            return "timed out"
        tail = self.stderr.strip()[-tail_chars:]
        if tail:
            return f"exit code {self.returncode}\n{tail}"
        return f"exit code {self.returncode}"


class SubprocessError(Exception):
    """A command could not be started."""

    def __init__(self, command: Sequence[str], reason: str) -> None:
        super().__init__(f"Could not run {command[0]}: {reason}")
        self.command = list(command)
        self.reason = reason


async def run_subprocess(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout: float = 1800.0,
    env: Mapping[str, str] | None = None,
) -> SubprocessResult:
    """Run *command* to completion and capture its output.

    A non-zero exit is reported through the result, not raised. A command
    that outlives *timeout* is killed and comes back with ``timed_out`` set.

    Args:
        command: Program and arguments, e.g. ``['make', 'test-cov']``.
        cwd: Working directory. Defaults to the current directory.
        timeout: Seconds to wait before killing the process.
        env: Extra variables layered over the inherited environment.

    Raises:
        SubprocessError: If the program is missing or cannot be executed.
        ValueError: If the command is empty, the timeout is not positive or
            *cwd* does not exist.
    """
    if not command:
        raise ValueError("Command cannot be empty")
    if timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout}")

    work_dir = cwd.resolve() if cwd else Path.cwd()
    if not work_dir.is_dir():
        raise ValueError(f"Working directory does not exist: {work_dir}")

    logger.debug("Running %s in %s (timeout %ss)", " ".join(command), work_dir, timeout)

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=work_dir,
            env={**os.environ, **env} if env else None,
        )
    except FileNotFoundError as exc:
        raise SubprocessError(command, "command not found") from exc
    except OSError as exc:
        raise SubprocessError(command, str(exc)) from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        logger.warning("%s timed out after %ss, killing it", command[0], timeout)
        await _kill(process)
        return SubprocessResult(
            returncode=TIMEOUT_RETURNCODE,
            stdout="",
            stderr=f"Killed after {timeout}s timeout",
            timed_out=True,
        )

    result = SubprocessResult(
        returncode=process.returncode if process.returncode is not None else TIMEOUT_RETURNCODE,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    logger.debug("%s exited with %d", command[0], result.returncode)
    return result


async def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()

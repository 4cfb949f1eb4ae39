"""Checks for locally installed command-line tools."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


def get_command_path(command: str, project_path: Path | None = None) -> Path | None:
    """Find a command, preferring the project's ``node_modules/.bin``.

    Args:
        command: The command name (e.g., "make", "eslint").
        project_path: Project root whose local binaries are searched first.

    Returns:
        Path to the command if found, None otherwise.
    """
    if project_path is not None:
        local_cmd = project_path / "node_modules" / ".bin" / command
        if local_cmd.exists():
            return local_cmd

    system_cmd = shutil.which(command)
    if system_cmd:
        return Path(system_cmd)

    return None


def find_missing_tools(commands: Sequence[str], project_path: Path | None = None) -> list[str]:
    """Return the commands that cannot be found, in the order given."""
    missing = [cmd for cmd in commands if get_command_path(cmd, project_path) is None]
    if missing:
        logger.debug("Missing tools: %s", ", ".join(missing))
    return missing

"""Lint changed JavaScript files with an external linter."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from covdelta.utils.subprocess_runner import run_subprocess

logger = logging.getLogger(__name__)


@dataclass
class LintResult:
    """Outcome of a linter run."""

    files: list[str] = field(default_factory=list)
    """Files passed to the linter."""

    success: bool = True
    output: str = ""


class JavaScriptLinter:
    """Run a linter command (eslint by default) over changed source files."""

    def __init__(
        self,
        project_root: Path,
        command: list[str] | None = None,
        extensions: list[str] | None = None,
        timeout: float = 600.0,
    ) -> None:
        self._root = project_root
        self._command = command or ["npx", "eslint"]
        self._extensions = tuple(extensions or [".js"])
        self._timeout = timeout

    def select_files(self, changed: list[str]) -> list[str]:
        """Keep existing files with a lintable extension, deduplicated in order."""
        selected: list[str] = []
        for path in changed:
            if not path.endswith(self._extensions) or path in selected:
                continue
            if not (self._root / path).is_file():
                logger.debug("Skipping deleted or missing file %s", path)
                continue
            selected.append(path)
        return selected

    async def lint(self, changed: list[str]) -> LintResult:
        """Lint the lintable subset of *changed*.

        Raises:
            SubprocessError: If the linter cannot be started.
        """
        files = self.select_files(changed)
        if not files:
            logger.info("No files to lint")
            return LintResult()

        logger.info("Linting %d file(s) with %s", len(files), " ".join(self._command))
        result = await run_subprocess(
            [*self._command, *files], cwd=self._root, timeout=self._timeout
        )
        return LintResult(
            files=files,
            success=result.success,
            output=result.output,
        )

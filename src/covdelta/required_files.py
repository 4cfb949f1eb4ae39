"""Check that a pull request adding a new package contains all required files."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

README_NAME = "README.md"
SIGNATURE = "-- stdlib-bot"

BASE_FILES = (
    "package.json",
    "README.md",
    "docs/repl.txt",
    "docs/types/index.d.ts",
    "docs/types/test.ts",
    "lib/index.js",
    "lib/main.js",
    "benchmark/benchmark.js",
    "examples/index.js",
    "test/test.js",
)

CLI_FILES = (
    "bin/cli",
    "docs/usage.txt",
    "etc/cli_opts.json",
    "test/test.cli.js",
)

C_API_FILES = (
    "manifest.json",
    "binding.gyp",
    "include.gypi",
    "src/Makefile",
    "include/stdlib",
)

C_EXAMPLE_FILES = (
    "examples/c/example.c",
    "examples/c/Makefile",
    "benchmark/c/Makefile",
    "benchmark/c/benchmark.c",
)

_CLI_SECTION = "## CLI"
_C_API_SECTION = "## C APIs"
_C_EXAMPLES_RE = re.compile(r"^### Examples[ \t]*\r?\n\s*```c\b", re.MULTILINE)


@dataclass
class RequiredFilesPolicy:
    """Which files a new package must contain, by README feature."""

    base: list[str] = field(default_factory=lambda: list(BASE_FILES))
    cli: list[str] = field(default_factory=lambda: list(CLI_FILES))
    c_api: list[str] = field(default_factory=lambda: list(C_API_FILES))
    c_examples: list[str] = field(default_factory=lambda: list(C_EXAMPLE_FILES))

    def required_files_for(self, readme_text: str) -> list[str]:
        """Return the ordered list of required files for a package README."""
        required = list(self.base)
        if _CLI_SECTION in readme_text:
            required.extend(self.cli)
        if _C_API_SECTION in readme_text:
            required.extend(self.c_api)
        if _C_EXAMPLES_RE.search(readme_text):
            required.extend(self.c_examples)
        return required


@dataclass(frozen=True)
class RequiredFileEntry:
    file: str
    present: bool


@dataclass
class RequiredFilesResult:
    """Ordered presence list for every required file."""

    entries: list[RequiredFileEntry] = field(default_factory=list)

    @property
    def required(self) -> list[str]:
        return [entry.file for entry in self.entries]

    @property
    def missing(self) -> list[str]:
        return [entry.file for entry in self.entries if not entry.present]

    @property
    def complete(self) -> bool:
        return not self.missing

    def checklist(self) -> str:
        """Render a Markdown checkbox list, one line per required file."""
        return "\n".join(
            f"-   [{'x' if entry.present else ' '}] {entry.file}" for entry in self.entries
        )


def find_readme(added: Sequence[str]) -> str | None:
    """Return the first added path that is a README."""
    return next((path for path in added if path.endswith(README_NAME)), None)


def check_required_files(required: Sequence[str], added: Sequence[str]) -> RequiredFilesResult:
    """Mark each required file present when any added path contains it."""
    entries = [
        RequiredFileEntry(file=file, present=any(file in path for path in added))
        for file in required
    ]
    result = RequiredFilesResult(entries=entries)
    logger.debug(
        "Required files: %d required, %d missing", len(result.required), len(result.missing)
    )
    return result


def render_comment(result: RequiredFilesResult, user: str) -> str:
    """Render the PR comment body for a required-files check."""
    if result.complete:
        lines = [
            f"Hi @{user}, thank you for your contribution!",
            "",
            ":tada: Your pull request contains all required files for the new package: :tada:",
            "",
            result.checklist(),
        ]
    else:
        lines = [
            f"Hi @{user}, thank you for your contribution! Your pull request contains a new "
            "package, but is missing some of the required files.",
            "",
            "Use the following checklist to keep track of the required files and which ones "
            "are still missing:",
            "",
            result.checklist(),
            "",
            "Please add the missing files to the pull request.",
        ]
    lines.extend(["", SIGNATURE])
    return "\n".join(lines)

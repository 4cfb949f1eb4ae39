"""CI context detection and step output helpers."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

_OUTPUT_ENV_KEY = "GITHUB_OUTPUT"


@dataclass
class CIContext:
    """Detected CI execution context."""

    is_ci: bool
    """Running in a CI environment."""

    provider: str | None
    """CI provider name (``github`` or ``generic``)."""

    repository: str | None
    """``owner/repo`` when known."""

    output_path: Path | None
    """File receiving step outputs, when the provider supports them."""


def detect_ci_context() -> CIContext:
    """Detect the CI context from environment variables."""
    if os.getenv("GITHUB_ACTIONS") == "true":
        output = os.getenv(_OUTPUT_ENV_KEY)
        return CIContext(
            is_ci=True,
            provider="github",
            repository=os.getenv("GITHUB_REPOSITORY") or None,
            output_path=Path(output) if output else None,
        )

    if os.getenv("CI") == "true":
        return CIContext(is_ci=True, provider="generic", repository=None, output_path=None)

    return CIContext(is_ci=False, provider=None, repository=None, output_path=None)


def encode_output_value(value: str) -> str:
    """Fold a multi-line value onto one line, encoding newlines as ``\\n``."""
    return value.replace("\r\n", "\n").replace("\n", "\\n")


def set_output(key: str, value: str, output_path: Path | str | None = None) -> None:
    """Write a ``key=value`` step output line.

    The line is appended to *output_path*, else to the file named by
    ``GITHUB_OUTPUT``, else printed to stdout.
    """
    line = f"{key}={encode_output_value(value)}\n"

    target = output_path or os.environ.get(_OUTPUT_ENV_KEY)
    if not target:
        sys.stdout.write(line)
        sys.stdout.flush()
        return

    with Path(target).open("a", encoding="utf-8") as f:
        f.write(line)
    logger.debug("Wrote output '%s' to %s", key, target)

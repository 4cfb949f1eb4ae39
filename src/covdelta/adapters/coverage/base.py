"""Base classes and errors for coverage adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from covdelta.models.coverage import CoverageReport


class ReportParseError(ValueError):
    """Raised when a coverage report does not hold the expected fractions."""


class CoverageRunError(RuntimeError):
    """Raised when building, testing, or locating a package's report fails."""


class CoverageReportParser(ABC):
    """Abstract base class for coverage report parsers.

    Each concrete parser knows one coverage tool's output and translates it
    into the package-level CoverageReport.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Coverage tool identifier (e.g. 'istanbul')."""

    @abstractmethod
    def parse_text(self, text: str) -> CoverageReport:
        """Parse report content already loaded into memory.

        Raises:
            ReportParseError: If the content is malformed.
        """

    @abstractmethod
    def parse_coverage_file(self, coverage_file: Path) -> CoverageReport:
        """Parse a coverage report file.

        Args:
            coverage_file: Path to the native coverage report file.

        Returns:
            A CoverageReport with the four package-level metrics.

        Raises:
            ReportParseError: If the file is unreadable or malformed.
        """

"""Coverage adapters: run the instrumented tests and parse their reports."""

from covdelta.adapters.coverage.base import (
    CoverageReportParser,
    CoverageRunError,
    ReportParseError,
)
from covdelta.adapters.coverage.istanbul import IstanbulReportParser, parse_coverage_file
from covdelta.adapters.coverage.runner import CoverageRunner, CoverageRunnerSettings

__all__ = [
    "CoverageReportParser",
    "CoverageRunError",
    "CoverageRunner",
    "CoverageRunnerSettings",
    "IstanbulReportParser",
    "ReportParseError",
    "parse_coverage_file",
]

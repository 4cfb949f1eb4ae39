"""Istanbul coverage report parser.

Istanbul (via nyc or c8) writes an ``lcov-report`` HTML tree whose summary
pages carry four ``covered/total`` fractions in a fixed order: statements,
branches, functions, lines. The ``json-summary`` reporter writes the same
numbers to ``coverage-summary.json``.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from covdelta.adapters.coverage.base import CoverageReportParser, ReportParseError
from covdelta.models.coverage import METRIC_NAMES, CoverageReport

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

# <span class="fraction">80/100</span> (Istanbul mixes quote styles across versions)
_FRACTION_RE = re.compile(
    r"""<span\s+class=["']fraction["']\s*>\s*(\d+)\s*/\s*(\d+)\s*</span>""",
    re.IGNORECASE,
)

_SUMMARY_TOTAL_KEY = "total"


# ── Parser ───────────────────────────────────────────────────────


class IstanbulReportParser(CoverageReportParser):
    """Parse Istanbul HTML summary pages and JSON summaries."""

    @property
    def name(self) -> str:
        return "istanbul"

    def parse_coverage_file(self, coverage_file: Path) -> CoverageReport:
        """Parse an Istanbul report, dispatching on the file suffix."""
        try:
            text = coverage_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ReportParseError(f"Failed to read coverage report {coverage_file}: {e}") from e

        if coverage_file.suffix == ".json":
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                raise ReportParseError(f"Invalid JSON in {coverage_file}: {e}") from e
            return self.parse_summary_json(data)

        return self.parse_html_report(text)

    def parse_text(self, text: str) -> CoverageReport:
        return self.parse_html_report(text)

    def parse_html_report(self, html: str) -> CoverageReport:
        """Extract the four summary fractions from an lcov-report page.

        Raises:
            ReportParseError: If the page does not hold exactly four fractions.
        """
        pairs = [(int(covered), int(total)) for covered, total in _FRACTION_RE.findall(html)]
        if len(pairs) != len(METRIC_NAMES):
            raise ReportParseError(
                f"Expected {len(METRIC_NAMES)} coverage fractions "
                f"({', '.join(METRIC_NAMES)}), found {len(pairs)}"
            )

        try:
            return CoverageReport.from_pairs(pairs)
        except ValueError as e:
            raise ReportParseError(str(e)) from e

    def parse_summary_json(self, data: dict[str, Any]) -> CoverageReport:
        """Extract the package totals from a ``coverage-summary.json`` document.

        Format::

            {
              "total": {
                "statements": {"total": 100, "covered": 80, "skipped": 0, "pct": 80},
                "branches":   {...},
                "functions":  {...},
                "lines":      {...}
              },
              "/abs/path/file.js": {...}
            }
        """
        total = data.get(_SUMMARY_TOTAL_KEY) if isinstance(data, dict) else None
        if not isinstance(total, dict):
            raise ReportParseError("Coverage summary has no 'total' section")

        pairs: list[tuple[int, int]] = []
        for metric in METRIC_NAMES:
            entry = total.get(metric)
            if not isinstance(entry, dict):
                raise ReportParseError(f"Coverage summary is missing '{metric}'")
            try:
                pairs.append((int(entry["covered"]), int(entry["total"])))
            except (KeyError, TypeError, ValueError) as e:
                raise ReportParseError(f"Malformed '{metric}' entry in coverage summary") from e

        try:
            return CoverageReport.from_pairs(pairs)
        except ValueError as e:
            raise ReportParseError(str(e)) from e


def parse_coverage_file(coverage_file: Path) -> CoverageReport:
    """Parse an Istanbul report file with the default parser."""
    logger.debug("Parsing coverage report %s", coverage_file)
    return IstanbulReportParser().parse_coverage_file(coverage_file)

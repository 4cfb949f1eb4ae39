"""Tests for the Istanbul coverage report parser."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from covdelta.adapters.coverage.base import ReportParseError
from covdelta.adapters.coverage.istanbul import IstanbulReportParser, parse_coverage_file

# ── Fixtures ─────────────────────────────────────────────────────

_LABELS = ("Statements", "Branches", "Functions", "Lines")


def _summary_page(*pairs: tuple[int, int]) -> str:
    """Build an lcov-report summary page holding the given fractions."""
    blocks = "\n".join(
        f"""
        <div class='fl pad1y space-right2'>
            <span class="strong">{covered / total * 100 if total else 100:.2f}% </span>
            <span class="quiet">{label}</span>
            <span class='fraction'>{covered}/{total}</span>
        </div>"""
        for label, (covered, total) in zip(_LABELS, pairs, strict=False)
    )
    return f"""<!doctype html>
<html lang="en">
<head><title>Code coverage report for lib</title></head>
<body>
<div class='wrapper'>
    <div class='pad1'>
        <h1><a href="../index.html">All files</a> lib</h1>
        <div class='clearfix'>{blocks}
        </div>
    </div>
</div>
</body>
</html>
"""


@pytest.fixture()
def parser() -> IstanbulReportParser:
    return IstanbulReportParser()


# ── HTML ─────────────────────────────────────────────────────────


def test_parser_name(parser: IstanbulReportParser) -> None:
    assert parser.name == "istanbul"


def test_parse_html_report(parser: IstanbulReportParser) -> None:
    report = parser.parse_html_report(_summary_page((80, 100), (10, 20), (5, 5), (79, 99)))

    assert report.statements.covered == 80
    assert report.statements.total == 100
    assert report.branches.display == "10/20"
    assert report.functions.display == "5/5"
    assert report.lines.display == "79/99"


def test_parse_html_report_handles_both_quote_styles(parser: IstanbulReportParser) -> None:
    html = (
        '<span class="fraction">1/2</span>'
        "<span class='fraction'>3/4</span>"
        '<span class="fraction"> 5 / 6 </span>'
        "<span class='fraction'>7/8</span>"
    )

    report = parser.parse_text(html)

    assert [m.display for m in report.metrics()] == ["1/2", "3/4", "5/6", "7/8"]


def test_parse_html_report_with_empty_totals(parser: IstanbulReportParser) -> None:
    report = parser.parse_html_report(_summary_page((3, 3), (0, 0), (1, 1), (3, 3)))

    assert report.branches.total == 0
    assert report.branches.fraction == 1.0


def test_parse_html_report_too_few_fractions(parser: IstanbulReportParser) -> None:
    with pytest.raises(ReportParseError, match="found 3"):
        parser.parse_html_report(_summary_page((80, 100), (10, 20), (5, 5)))


def test_parse_html_report_too_many_fractions(parser: IstanbulReportParser) -> None:
    html = _summary_page((1, 1), (1, 1), (1, 1), (1, 1)) + '<span class="fraction">1/1</span>'

    with pytest.raises(ReportParseError, match="found 5"):
        parser.parse_html_report(html)


def test_parse_html_report_rejects_impossible_fraction(parser: IstanbulReportParser) -> None:
    with pytest.raises(ReportParseError):
        parser.parse_html_report(_summary_page((11, 10), (1, 1), (1, 1), (1, 1)))


def test_parse_unrelated_page(parser: IstanbulReportParser) -> None:
    with pytest.raises(ReportParseError):
        parser.parse_text("<html><body>404 Not Found</body></html>")


# ── Files ────────────────────────────────────────────────────────


def test_parse_coverage_file_html(tmp_path: Path) -> None:
    index = tmp_path / "index.html"
    index.write_text(_summary_page((8, 10), (2, 4), (1, 1), (8, 10)), encoding="utf-8")

    report = parse_coverage_file(index)

    assert report.statements.display == "8/10"


def test_parse_coverage_file_missing(tmp_path: Path, parser: IstanbulReportParser) -> None:
    with pytest.raises(ReportParseError, match="Failed to read"):
        parser.parse_coverage_file(tmp_path / "missing.html")


def test_parse_coverage_summary_json(tmp_path: Path, parser: IstanbulReportParser) -> None:
    summary = {
        "total": {
            "lines": {"total": 50, "covered": 40, "skipped": 0, "pct": 80},
            "statements": {"total": 55, "covered": 44, "skipped": 0, "pct": 80},
            "functions": {"total": 6, "covered": 6, "skipped": 0, "pct": 100},
            "branches": {"total": 10, "covered": 5, "skipped": 0, "pct": 50},
        },
        "/repo/lib/main.js": {},
    }
    path = tmp_path / "coverage-summary.json"
    path.write_text(json.dumps(summary), encoding="utf-8")

    report = parser.parse_coverage_file(path)

    assert report.statements.display == "44/55"
    assert report.branches.display == "5/10"
    assert report.functions.display == "6/6"
    assert report.lines.display == "40/50"


def test_parse_coverage_summary_json_invalid(tmp_path: Path, parser: IstanbulReportParser) -> None:
    path = tmp_path / "coverage-summary.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ReportParseError, match="Invalid JSON"):
        parser.parse_coverage_file(path)


def test_parse_summary_json_missing_total(parser: IstanbulReportParser) -> None:
    with pytest.raises(ReportParseError, match="no 'total'"):
        parser.parse_summary_json({"/repo/lib/main.js": {}})


def test_parse_summary_json_missing_metric(parser: IstanbulReportParser) -> None:
    data = {"total": {"lines": {"total": 1, "covered": 1}}}

    with pytest.raises(ReportParseError, match="missing 'statements'"):
        parser.parse_summary_json(data)

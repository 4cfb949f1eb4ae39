"""Markdown summary table and per-package coverage artifacts."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from covdelta.models.coverage import SummaryTable
from covdelta.utils.ci_context import set_output

if TYPE_CHECKING:
    from collections.abc import Iterable

    from covdelta.models.coverage import CoverageMetric, MetricDelta, ReportRow

logger = logging.getLogger(__name__)

DEFAULT_REPORT_LINK = "https://coverage.stdlib.io/{package}/index.html"

TABLE_HEADER = (
    "| Package | Statements | Branches | Functions | Lines |",
    "| ------- | ---------- | -------- | --------- | ----- |",
)

OUTPUT_KEY = "table"


def format_cell(metric: CoverageMetric, delta: MetricDelta) -> str:
    """Render one coverage cell: colored fraction, then the colored delta below it."""
    fraction = f"$\\color{{{metric.color}}}{{{metric.display}}}$"
    # % starts a comment in TeX.
    change = delta.display.replace("%", "\\%")
    return f"{fraction}<br>$\\color{{{delta.color}}}{{{change}}}$"


def format_row(row: ReportRow, link_template: str = DEFAULT_REPORT_LINK) -> str:
    link = link_template.format(package=row.package.name)
    cells = [f"[{row.package.name}]({link})"]
    cells.extend(
        format_cell(metric, delta)
        for metric, delta in zip(row.report.metrics(), row.delta.deltas(), strict=True)
    )
    return "| " + " | ".join(cells) + " |"


def format_table(rows: Iterable[ReportRow], link_template: str = DEFAULT_REPORT_LINK) -> SummaryTable:
    """Collect rows into a summary table ordered by package name."""
    ordered = sorted(rows, key=lambda row: row.package.name)
    return SummaryTable(rows=ordered, link_template=link_template)


def render_markdown(table: SummaryTable) -> str:
    """Render the table as newline-delimited Markdown (empty string for no rows)."""
    if table.is_empty:
        return ""
    link_template = table.link_template or DEFAULT_REPORT_LINK
    lines = list(TABLE_HEADER)
    lines.extend(format_row(row, link_template) for row in table.rows)
    return "\n".join(lines)


def persist_artifacts(row: ReportRow, artifacts_dir: Path) -> Path | None:
    """Copy a package's freshly generated report into the artifact tree.

    Returns:
        The artifact directory, or None when the row has no report location.
    """
    if row.location is None:
        return None

    destination = artifacts_dir / row.package.name
    if destination.exists():
        shutil.rmtree(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(row.location.source_root, destination)

    logger.info(
        "Saved %s report for %s to %s",
        "nested" if row.location.nested else "top-level",
        row.package.name,
        destination,
    )
    return destination


def write_output(table: SummaryTable, output_path: Path | str | None = None) -> str:
    """Expose the rendered table as the ``table`` step output and return it."""
    markdown = render_markdown(table)
    set_output(OUTPUT_KEY, markdown, output_path)
    return markdown

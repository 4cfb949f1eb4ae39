"""Coverage report models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

# Fixed order in which Istanbul reports the four coverage dimensions.
METRIC_NAMES = ("statements", "branches", "functions", "lines")

GREEN = "green"
RED = "red"


@dataclass(frozen=True)
class PackageIdentifier:
    """A publishable package inside the monorepo."""

    name: str
    """Package path relative to the package-root prefix (e.g. ``math/base/special/sin``)."""

    path: str
    """Full package directory relative to the repository root."""


@dataclass(frozen=True)
class CoverageMetric:
    """Covered and total counts for one coverage dimension."""

    covered: int
    total: int

    def __post_init__(self) -> None:
        if self.covered < 0 or self.total < 0:
            raise ValueError(f"Coverage counts must be non-negative, got {self.display}")
        if self.covered > self.total:
            raise ValueError(f"Covered count exceeds total: {self.display}")

    @property
    def fraction(self) -> float:
        """Return covered/total, or 1.0 when there is nothing to cover."""
        if self.total == 0:
            return 1.0
        return self.covered / self.total

    @property
    def percentage(self) -> float:
        return self.fraction * 100.0

    @property
    def is_complete(self) -> bool:
        return self.covered == self.total

    @property
    def color(self) -> str:
        return GREEN if self.is_complete else RED

    @property
    def display(self) -> str:
        return f"{self.covered}/{self.total}"


@dataclass(frozen=True)
class CoverageReport:
    """Package-level coverage summary across the four Istanbul dimensions."""

    statements: CoverageMetric
    branches: CoverageMetric
    functions: CoverageMetric
    lines: CoverageMetric

    def metrics(self) -> tuple[CoverageMetric, CoverageMetric, CoverageMetric, CoverageMetric]:
        """Return the metrics in report order."""
        return (self.statements, self.branches, self.functions, self.lines)

    @classmethod
    def from_pairs(cls, pairs: list[tuple[int, int]]) -> CoverageReport:
        """Build a report from four ``(covered, total)`` pairs in report order."""
        if len(pairs) != len(METRIC_NAMES):
            raise ValueError(f"Expected {len(METRIC_NAMES)} coverage pairs, got {len(pairs)}")
        metrics = [CoverageMetric(covered=covered, total=total) for covered, total in pairs]
        return cls(*metrics)


class DeltaKind(Enum):
    """How a metric delta was derived."""

    NEW = "new"
    """No usable baseline; the value is the new coverage percentage."""

    CHANGED = "changed"
    """Relative change against a published baseline."""


@dataclass(frozen=True)
class MetricDelta:
    """Change of a single coverage metric against its baseline."""

    kind: DeltaKind
    change: float
    """Signed percentage, rounded to two decimals."""

    color: str

    @property
    def display(self) -> str:
        return f"{self.change:+.2f}%"


@dataclass(frozen=True)
class CoverageDelta:
    """Per-metric deltas in report order."""

    statements: MetricDelta
    branches: MetricDelta
    functions: MetricDelta
    lines: MetricDelta

    def deltas(self) -> tuple[MetricDelta, MetricDelta, MetricDelta, MetricDelta]:
        return (self.statements, self.branches, self.functions, self.lines)

    @property
    def is_new(self) -> bool:
        return all(delta.kind is DeltaKind.NEW for delta in self.deltas())


@dataclass(frozen=True)
class CoverageReportLocation:
    """Where the coverage tool wrote a package's HTML report."""

    index_path: Path
    """Summary page holding the four coverage fractions."""

    source_root: Path
    """Report subtree to persist as the package's artifact."""

    nested: bool
    """True when the report is keyed by package (package has dependencies)."""


@dataclass
class ReportRow:
    """One table row per package touched by the change set."""

    package: PackageIdentifier
    report: CoverageReport
    delta: CoverageDelta
    location: CoverageReportLocation | None = None


@dataclass
class SummaryTable:
    """Ordered report rows under a fixed Markdown header."""

    rows: list[ReportRow] = field(default_factory=list)
    link_template: str = ""
    """``str.format`` template with a ``{package}`` field for the package hyperlink."""

    @property
    def is_empty(self) -> bool:
        return not self.rows

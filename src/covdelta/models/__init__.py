"""Data models for covdelta."""

from covdelta.models.coverage import (
    METRIC_NAMES,
    CoverageDelta,
    CoverageMetric,
    CoverageReport,
    CoverageReportLocation,
    DeltaKind,
    MetricDelta,
    PackageIdentifier,
    ReportRow,
    SummaryTable,
)

__all__ = [
    "METRIC_NAMES",
    "CoverageDelta",
    "CoverageMetric",
    "CoverageReport",
    "CoverageReportLocation",
    "DeltaKind",
    "MetricDelta",
    "PackageIdentifier",
    "ReportRow",
    "SummaryTable",
]

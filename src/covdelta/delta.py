"""Compare fresh coverage against the published baseline."""

from __future__ import annotations

from typing import TYPE_CHECKING

from covdelta.models.coverage import GREEN, RED, CoverageDelta, DeltaKind, MetricDelta

if TYPE_CHECKING:
    from covdelta.models.coverage import CoverageReport


def compare_metric(old: float | None, new: float) -> MetricDelta:
    """Compute the delta for a single coverage fraction.

    A missing baseline, or a baseline of exactly zero, marks the metric as new:
    the value is the new coverage percentage and it is always green.

    Args:
        old: Baseline fraction (0.0-1.0), or None when there is no baseline.
        new: Fresh fraction (0.0-1.0).

    Returns:
        The signed percentage change with its color tag.
    """
    if old is None or old == 0:
        return MetricDelta(kind=DeltaKind.NEW, change=round(new * 100, 2), color=GREEN)

    # Adding 0.0 turns a rounded -0.0 into 0.0.
    change = round(((new - old) / old) * 100, 2) + 0.0
    return MetricDelta(
        kind=DeltaKind.CHANGED,
        change=change,
        color=GREEN if change >= 0 else RED,
    )


def compare(old: CoverageReport | None, new: CoverageReport) -> CoverageDelta:
    """Compare a package's fresh report against its baseline, metric by metric."""
    if old is None:
        deltas = [compare_metric(None, metric.fraction) for metric in new.metrics()]
    else:
        deltas = [
            compare_metric(old_metric.fraction, new_metric.fraction)
            for old_metric, new_metric in zip(old.metrics(), new.metrics(), strict=True)
        ]
    return CoverageDelta(*deltas)

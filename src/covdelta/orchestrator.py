"""Coverage delta pipeline: resolve, measure, compare, and report per package.

Packages are processed strictly one at a time because the coverage tool
writes to a single shared report location.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from covdelta.adapters.coverage.istanbul import IstanbulReportParser
from covdelta.adapters.coverage.runner import CoverageRunner
from covdelta.baseline import BaselineStore
from covdelta.delta import compare
from covdelta.models.coverage import ReportRow, SummaryTable
from covdelta.reporters.table import format_table, persist_artifacts
from covdelta.resolver import resolve_packages
from covdelta.utils.heartbeat import heartbeat
from covdelta.utils.prerequisites import find_missing_tools

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from covdelta.adapters.coverage.base import CoverageReportParser
    from covdelta.config import CovDeltaConfig
    from covdelta.models.coverage import PackageIdentifier

logger = logging.getLogger(__name__)


class MissingToolError(RuntimeError):
    """Raised when a required local tool is not installed."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required tools: {', '.join(missing)}")
        self.missing = missing


@dataclass
class PipelineSettings:
    """Inputs of a pipeline run that are not owned by a collaborator."""

    package_prefix: str
    artifacts_dir: Path
    link_template: str
    heartbeat_interval: float = 60.0
    required_tools: list[str] = field(default_factory=list)


class CoverageDeltaPipeline:
    """Run the per-package coverage loop and build the summary table."""

    def __init__(
        self,
        project_root: Path,
        settings: PipelineSettings,
        *,
        runner: CoverageRunner,
        baseline: BaselineStore,
        parser: CoverageReportParser | None = None,
        on_heartbeat: Callable[[float], None] | None = None,
    ) -> None:
        self._root = project_root
        self._settings = settings
        self._runner = runner
        self._baseline = baseline
        self._parser = parser or IstanbulReportParser()
        self._on_heartbeat = on_heartbeat

    @classmethod
    def from_config(cls, config: CovDeltaConfig) -> CoverageDeltaPipeline:
        """Wire a pipeline from loaded configuration."""
        root = config.root_path
        artifacts_dir = Path(config.coverage.artifacts_dir)
        if not artifacts_dir.is_absolute():
            artifacts_dir = root / artifacts_dir

        settings = PipelineSettings(
            package_prefix=config.project.package_prefix,
            artifacts_dir=artifacts_dir,
            link_template=config.report.link_template,
            heartbeat_interval=config.heartbeat.interval,
            required_tools=list(config.tools.required),
        )
        return cls(
            root,
            settings,
            runner=CoverageRunner(root, config.coverage.to_runner_settings()),
            baseline=BaselineStore(
                config.baseline.url_template, timeout=config.baseline.timeout
            ),
        )

    def check_tools(self) -> None:
        """Fail fast when a required tool is missing.

        Raises:
            MissingToolError: If any required tool cannot be found.
        """
        missing = find_missing_tools(self._settings.required_tools, self._root)
        if missing:
            raise MissingToolError(missing)

    async def run(self, changed: Iterable[str]) -> SummaryTable:
        """Produce the summary table for a change set.

        Any build, test, or parse failure aborts the run; the heartbeat is
        stopped and the coverage directory cleared before the error propagates.

        Raises:
            MissingToolError: If a required tool is missing.
            CoverageRunError: If a package fails to build or test.
            ReportParseError: If a generated report is malformed.
        """
        packages = sorted(
            resolve_packages(changed, self._settings.package_prefix), key=lambda p: p.name
        )
        if not packages:
            logger.info("No packages affected by the change set")
            return format_table([], self._settings.link_template)

        self.check_tools()
        logger.info("Measuring coverage for %d package(s)", len(packages))

        rows: list[ReportRow] = []
        async with heartbeat(self._settings.heartbeat_interval, self._on_heartbeat):
            for package in packages:
                rows.append(await self._process(package))

        return format_table(rows, self._settings.link_template)

    async def _process(self, package: PackageIdentifier) -> ReportRow:
        try:
            location = await self._runner.run(package)
            report = self._parser.parse_coverage_file(location.index_path)
            old = await asyncio.to_thread(self._baseline.fetch, package)
            row = ReportRow(
                package=package,
                report=report,
                delta=compare(old, report),
                location=location,
            )
            persist_artifacts(row, self._settings.artifacts_dir)
        finally:
            self._runner.clear()

        logger.info(
            "%s: %s",
            package.name,
            ", ".join(
                f"{metric.display} ({delta.display})"
                for metric, delta in zip(report.metrics(), row.delta.deltas(), strict=True)
            ),
        )
        return row

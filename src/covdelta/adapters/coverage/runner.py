"""Run a package's coverage-instrumented tests and locate the generated report.

The coverage tool writes a single shared report tree, so packages must be run
one at a time and the tree cleared between runs.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from covdelta.adapters.coverage.base import CoverageRunError
from covdelta.models.coverage import CoverageReportLocation
from covdelta.utils.subprocess_runner import SubprocessError, run_subprocess

if TYPE_CHECKING:
    from covdelta.models.coverage import PackageIdentifier

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_REPORT_SUBDIR = "lcov-report"
_SUMMARY_PAGE = Path("lib") / "index.html"
_STDERR_TAIL_CHARS = 2000


@dataclass
class CoverageRunnerSettings:
    """Commands and paths used to produce a package's coverage report."""

    test_command: list[str] = field(default_factory=lambda: ["make", "test-cov"])
    """Coverage-instrumented test command."""

    test_filter_env: str = "TESTS_FILTER"
    """Environment variable receiving the test-name filter."""

    test_filter_template: str = ".*/{package}/test/.*"
    """Filter restricting the run to the package's tests."""

    build_command: list[str] = field(default_factory=lambda: ["make", "install-node-addons"])
    """Command compiling a package's native addon."""

    build_filter_env: str = "NODE_ADDONS_PATTERN"
    """Environment variable restricting the addon build to one package."""

    addon_descriptor: str = "binding.gyp"
    """File whose presence marks a package with a native addon."""

    coverage_dir: str = "reports/coverage"
    """Directory the coverage tool writes to; cleared after every package."""

    timeout: float = 1800.0
    """Maximum seconds for a single build or test command."""


class CoverageRunner:
    """Produce one package's coverage report at a time."""

    def __init__(self, project_root: Path, settings: CoverageRunnerSettings | None = None) -> None:
        self._root = project_root
        self._settings = settings or CoverageRunnerSettings()

    @property
    def coverage_dir(self) -> Path:
        return self._root / self._settings.coverage_dir

    @property
    def report_dir(self) -> Path:
        return self.coverage_dir / _REPORT_SUBDIR

    def has_native_addon(self, package: PackageIdentifier) -> bool:
        return (self._root / package.path / self._settings.addon_descriptor).is_file()

    async def run(self, package: PackageIdentifier) -> CoverageReportLocation:
        """Build (if needed) and test a package, returning its report location.

        Raises:
            CoverageRunError: If the build or the tests fail, or no report is found.
        """
        if self.has_native_addon(package):
            logger.info("Building native addon for %s", package.name)
            await self._execute(
                self._settings.build_command,
                {self._settings.build_filter_env: package.name},
                f"Native addon build failed for {package.name}",
            )

        test_filter = self._settings.test_filter_template.format(package=package.name)
        logger.info("Running coverage for %s (filter=%s)", package.name, test_filter)
        await self._execute(
            self._settings.test_command,
            {self._settings.test_filter_env: test_filter},
            f"Coverage run failed for {package.name}",
        )

        return self.locate_report(package)

    def locate_report(self, package: PackageIdentifier) -> CoverageReportLocation:
        """Find the package's summary page in the report tree.

        A package without inter-package dependencies gets the report tree to
        itself; otherwise Istanbul nests it under the package name. The
        top-level shape is checked first.
        """
        top_level = self.report_dir / _SUMMARY_PAGE
        if top_level.is_file():
            return CoverageReportLocation(
                index_path=top_level, source_root=self.report_dir, nested=False
            )

        nested_root = self.report_dir / package.name
        nested = nested_root / _SUMMARY_PAGE
        if nested.is_file():
            return CoverageReportLocation(index_path=nested, source_root=nested_root, nested=True)

        raise CoverageRunError(
            f"No coverage report found for {package.name} (looked for {top_level} and {nested})"
        )

    def clear(self) -> None:
        """Remove the coverage output so the next package starts clean."""
        if self.coverage_dir.exists():
            logger.debug("Clearing coverage directory %s", self.coverage_dir)
            shutil.rmtree(self.coverage_dir)

    async def _execute(self, command: list[str], env: dict[str, str], failure: str) -> None:
        try:
            result = await run_subprocess(
                command, cwd=self._root, env=env, timeout=self._settings.timeout
            )
        except SubprocessError as e:
            raise CoverageRunError(f"{failure}: {e}") from e

        if not result.success:
            raise CoverageRunError(f"{failure}: {result.describe_failure(_STDERR_TAIL_CHARS)}")

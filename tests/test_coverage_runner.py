"""Tests for the per-package coverage runner."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from covdelta.adapters.coverage.base import CoverageRunError
from covdelta.adapters.coverage.runner import CoverageRunner, CoverageRunnerSettings
from covdelta.models.coverage import PackageIdentifier
from covdelta.utils.subprocess_runner import SubprocessError, SubprocessResult

_PACKAGE = PackageIdentifier(
    name="math/base/special/sin", path="lib/node_modules/@stdlib/math/base/special/sin"
)


def _ok() -> SubprocessResult:
    return SubprocessResult(returncode=0, stdout="", stderr="")


def _write_index(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    (path / "index.html").write_text("<html></html>", encoding="utf-8")


@pytest.fixture()
def runner(tmp_path: Path) -> CoverageRunner:
    (tmp_path / _PACKAGE.path).mkdir(parents=True)
    return CoverageRunner(tmp_path)


# ── locate_report ────────────────────────────────────────────────


def test_locate_top_level_report(runner: CoverageRunner) -> None:
    _write_index(runner.report_dir / "lib")

    location = runner.locate_report(_PACKAGE)

    assert location.index_path == runner.report_dir / "lib" / "index.html"
    assert location.source_root == runner.report_dir
    assert not location.nested


def test_locate_nested_report(runner: CoverageRunner) -> None:
    _write_index(runner.report_dir / _PACKAGE.name / "lib")

    location = runner.locate_report(_PACKAGE)

    assert location.index_path == runner.report_dir / _PACKAGE.name / "lib" / "index.html"
    assert location.source_root == runner.report_dir / _PACKAGE.name
    assert location.nested


def test_locate_prefers_top_level_report(runner: CoverageRunner) -> None:
    _write_index(runner.report_dir / "lib")
    _write_index(runner.report_dir / _PACKAGE.name / "lib")

    assert not runner.locate_report(_PACKAGE).nested


def test_locate_missing_report(runner: CoverageRunner) -> None:
    with pytest.raises(CoverageRunError, match="No coverage report found"):
        runner.locate_report(_PACKAGE)


# ── run ──────────────────────────────────────────────────────────


async def test_run_sets_test_filter(runner: CoverageRunner, tmp_path: Path) -> None:
    _write_index(runner.report_dir / "lib")
    mock_run = AsyncMock(return_value=_ok())

    with patch("covdelta.adapters.coverage.runner.run_subprocess", mock_run):
        location = await runner.run(_PACKAGE)

    assert location.nested is False
    mock_run.assert_awaited_once()
    args, kwargs = mock_run.call_args
    assert args[0] == ["make", "test-cov"]
    assert kwargs["env"] == {"TESTS_FILTER": ".*/math/base/special/sin/test/.*"}
    assert kwargs["cwd"] == tmp_path


async def test_run_builds_native_addon_first(runner: CoverageRunner, tmp_path: Path) -> None:
    (tmp_path / _PACKAGE.path / "binding.gyp").write_text("{}", encoding="utf-8")
    _write_index(runner.report_dir / "lib")
    mock_run = AsyncMock(return_value=_ok())

    with patch("covdelta.adapters.coverage.runner.run_subprocess", mock_run):
        await runner.run(_PACKAGE)

    assert mock_run.await_count == 2
    build_call, test_call = mock_run.call_args_list
    assert build_call.args[0] == ["make", "install-node-addons"]
    assert build_call.kwargs["env"] == {"NODE_ADDONS_PATTERN": "math/base/special/sin"}
    assert test_call.args[0] == ["make", "test-cov"]


async def test_run_without_addon_skips_build(runner: CoverageRunner) -> None:
    _write_index(runner.report_dir / "lib")
    mock_run = AsyncMock(return_value=_ok())

    with patch("covdelta.adapters.coverage.runner.run_subprocess", mock_run):
        await runner.run(_PACKAGE)

    commands = [c.args[0] for c in mock_run.call_args_list]
    assert ["make", "install-node-addons"] not in commands


async def test_run_test_failure_raises(runner: CoverageRunner) -> None:
    failed = SubprocessResult(returncode=2, stdout="", stderr="1 test failed")

    with (
        patch("covdelta.adapters.coverage.runner.run_subprocess", AsyncMock(return_value=failed)),
        pytest.raises(CoverageRunError, match="exit code 2") as exc_info,
    ):
        await runner.run(_PACKAGE)

    assert "1 test failed" in str(exc_info.value)
    assert "math/base/special/sin" in str(exc_info.value)


async def test_run_build_failure_skips_tests(runner: CoverageRunner, tmp_path: Path) -> None:
    (tmp_path / _PACKAGE.path / "binding.gyp").write_text("{}", encoding="utf-8")
    failed = SubprocessResult(returncode=1, stdout="", stderr="")
    mock_run = AsyncMock(return_value=failed)

    with (
        patch("covdelta.adapters.coverage.runner.run_subprocess", mock_run),
        pytest.raises(CoverageRunError, match="Native addon build failed"),
    ):
        await runner.run(_PACKAGE)

    assert mock_run.await_count == 1


async def test_run_timeout_raises(runner: CoverageRunner) -> None:
    timed_out = SubprocessResult(
        returncode=-9, stdout="", stderr="", timed_out=True
    )

    with (
        patch(
            "covdelta.adapters.coverage.runner.run_subprocess",
            AsyncMock(return_value=timed_out),
        ),
        pytest.raises(CoverageRunError, match="timed out"),
    ):
        await runner.run(_PACKAGE)


async def test_run_command_not_found_raises(runner: CoverageRunner) -> None:
    error = SubprocessError(["make", "test-cov"], "command not found")

    with (
        patch("covdelta.adapters.coverage.runner.run_subprocess", AsyncMock(side_effect=error)),
        pytest.raises(CoverageRunError, match="Could not run make: command not found"),
    ):
        await runner.run(_PACKAGE)


async def test_run_uses_custom_settings(tmp_path: Path) -> None:
    settings = CoverageRunnerSettings(
        test_command=["npm", "run", "coverage"],
        test_filter_env="PKG_FILTER",
        test_filter_template="{package}",
        coverage_dir="out/cov",
    )
    runner = CoverageRunner(tmp_path, settings)
    _write_index(tmp_path / "out" / "cov" / "lcov-report" / "lib")
    mock_run = AsyncMock(return_value=_ok())

    with patch("covdelta.adapters.coverage.runner.run_subprocess", mock_run):
        location = await runner.run(_PACKAGE)

    kwargs: dict[str, Any] = mock_run.call_args.kwargs
    assert mock_run.call_args.args[0] == ["npm", "run", "coverage"]
    assert kwargs["env"] == {"PKG_FILTER": "math/base/special/sin"}
    assert location.source_root == tmp_path / "out" / "cov" / "lcov-report"


# ── clear ────────────────────────────────────────────────────────


def test_clear_removes_coverage_dir(runner: CoverageRunner) -> None:
    _write_index(runner.report_dir / "lib")

    runner.clear()

    assert not runner.coverage_dir.exists()


def test_clear_without_coverage_dir(runner: CoverageRunner) -> None:
    runner.clear()

    assert not runner.coverage_dir.exists()

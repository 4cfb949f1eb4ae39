"""Tests for the async command runner."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from covdelta.utils.subprocess_runner import (
    TIMEOUT_RETURNCODE,
    SubprocessError,
    SubprocessResult,
    run_subprocess,
)

_PY = sys.executable


def _python(code: str) -> list[str]:
    return [_PY, "-c", code]


# ── SubprocessResult ─────────────────────────────────────────────


def test_result_success_requires_zero_exit() -> None:
    assert SubprocessResult(returncode=0, stdout="", stderr="").success
    assert not SubprocessResult(returncode=2, stdout="", stderr="").success
    assert not SubprocessResult(returncode=0, stdout="", stderr="", timed_out=True).success


def test_result_output_joins_non_empty_streams() -> None:
    assert SubprocessResult(returncode=1, stdout="a.js: error", stderr="").output == "a.js: error"
    assert SubprocessResult(returncode=1, stdout="out", stderr="err").output == "out\nerr"
    assert SubprocessResult(returncode=0, stdout="  \n", stderr="").output == ""


def test_describe_failure_keeps_stderr_tail() -> None:
    result = SubprocessResult(returncode=2, stdout="", stderr="x" * 50 + "not ok 3\n")

    assert result.describe_failure(tail_chars=8) == "exit code 2\nnot ok 3"


def test_describe_failure_without_stderr() -> None:
    assert SubprocessResult(returncode=1, stdout="", stderr="").describe_failure() == "exit code 1"


def test_describe_failure_for_timeout() -> None:
    result = SubprocessResult(returncode=-1, stdout="", stderr="killed", timed_out=True)

    assert result.describe_failure() == "timed out"


# ── run_subprocess ───────────────────────────────────────────────


async def test_captures_streams_separately() -> None:
    result = await run_subprocess(
        _python("import sys; print('built'); sys.stderr.write('gyp info ok')")
    )

    assert result.success
    assert result.stdout.strip() == "built"
    assert result.stderr == "gyp info ok"


async def test_nonzero_exit_is_returned_not_raised() -> None:
    result = await run_subprocess(_python("import sys; sys.exit(42)"))

    assert result.returncode == 42
    assert not result.success
    assert not result.timed_out


async def test_runs_in_working_directory(tmp_path: Path) -> None:
    (tmp_path / "Makefile").write_text("test-cov:\n", encoding="utf-8")

    result = await run_subprocess(_python("import os; print(sorted(os.listdir()))"), cwd=tmp_path)

    assert "Makefile" in result.stdout


async def test_env_is_layered_over_inherited_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("COVDELTA_INHERITED", "kept")

    result = await run_subprocess(
        _python("import os; print(os.getenv('TESTS_FILTER'), os.getenv('COVDELTA_INHERITED'))"),
        env={"TESTS_FILTER": ".*/math/base/special/sin/test/.*"},
    )

    assert result.stdout.strip() == ".*/math/base/special/sin/test/.* kept"


async def test_timeout_kills_process() -> None:
    result = await run_subprocess(_python("import time; time.sleep(10)"), timeout=0.2)

    assert result.timed_out
    assert result.returncode == TIMEOUT_RETURNCODE
    assert not result.success


async def test_non_utf8_output_is_replaced() -> None:
    result = await run_subprocess(_python("import sys; sys.stdout.buffer.write(b'ok \\xff')"))

    assert result.stdout.startswith("ok ")
    assert "�" in result.stdout


async def test_missing_program_raises() -> None:
    with pytest.raises(SubprocessError, match="command not found") as exc_info:
        await run_subprocess(["covdelta_missing_tool_xyz", "--version"])

    assert exc_info.value.command == ["covdelta_missing_tool_xyz", "--version"]


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"timeout": 0}, "Timeout must be positive"),
        ({"cwd": Path("/nonexistent/covdelta/xyz")}, "Working directory does not exist"),
    ],
)
async def test_invalid_arguments_raise(kwargs: dict[str, object], message: str) -> None:
    with pytest.raises(ValueError, match=message):
        await run_subprocess(_python("pass"), **kwargs)  # type: ignore[arg-type]


async def test_empty_command_raises() -> None:
    with pytest.raises(ValueError, match="Command cannot be empty"):
        await run_subprocess([])

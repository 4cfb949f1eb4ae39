"""Command-line interface for covdelta."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
import yaml
from rich.logging import RichHandler

from covdelta import __version__
from covdelta.adapters.coverage.base import CoverageRunError, ReportParseError
from covdelta.adapters.lint import JavaScriptLinter
from covdelta.config import CONFIG_FILENAME, CovDeltaConfig, load_config, validate_config
from covdelta.orchestrator import CoverageDeltaPipeline, MissingToolError
from covdelta.reporters.github_comment import GitHubCommentReporter, post_table_from_env
from covdelta.reporters.table import write_output
from covdelta.reporters.terminal import console, reporter
from covdelta.required_files import check_required_files, find_readme, render_comment
from covdelta.telemetry.sentry_integration import capture_exception, init_sentry
from covdelta.utils.ci_context import set_output
from covdelta.utils.github import GitHubAPI, GitHubAPIError, get_pr_info_from_env, parse_repository
from covdelta.utils.prerequisites import find_missing_tools
from covdelta.utils.subprocess_runner import SubprocessError

logger = logging.getLogger(__name__)

# Masking thresholds
_MIN_MASKED_VALUE_LENGTH = 8
_SENSITIVE_KEYS = {"dsn", "token"}

_PATH_OPTION = click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Repository root directory.",
)


def _configure_logging(*, verbose: bool) -> None:
    root = logging.getLogger()
    root.handlers = [RichHandler(console=console, show_path=False, markup=False)]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def _collect_changed(files: tuple[str, ...], files_from: str | None) -> list[str]:
    """Merge positional paths with whitespace-separated paths read from a file or stdin."""
    changed = list(files)
    if files_from:
        if files_from == "-":
            text = click.get_text_stream("stdin").read()
        else:
            text = Path(files_from).read_text(encoding="utf-8")
        changed.extend(text.split())
    return changed


def _load_validated_config(path: str) -> CovDeltaConfig:
    try:
        config = load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e

    errors = validate_config(config)
    if errors:
        reporter.print_error(f"Invalid configuration in {CONFIG_FILENAME}:")
        for error in errors:
            reporter.print_error(f"  {error}")
        raise click.Abort

    init_sentry(config.sentry)
    return config


def _mask_sensitive_values(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively mask secrets before displaying configuration."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key in _SENSITIVE_KEYS and isinstance(value, str) and value:
            if len(value) > _MIN_MASKED_VALUE_LENGTH:
                result[key] = f"{value[:4]}...{value[-4:]}"
            else:
                result[key] = "***"
        elif isinstance(value, dict):
            result[key] = _mask_sensitive_values(value)
        else:
            result[key] = value
    return result


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="covdelta")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """covdelta: per-package coverage deltas and pull request checks for CI."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


# ── report ───────────────────────────────────────────────────────


@cli.command()
@click.argument("files", nargs=-1)
@_PATH_OPTION
@click.option(
    "--files-from",
    type=str,
    default=None,
    help="Read whitespace-separated changed paths from a file ('-' for stdin).",
)
@click.option(
    "--artifacts-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory receiving per-package coverage reports.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="File receiving the 'table=' line (defaults to $GITHUB_OUTPUT, then stdout).",
)
@click.option("--pr", "pr_number", type=int, default=None, help="Also post the table to this PR.")
def report(
    files: tuple[str, ...],
    path: str,
    files_from: str | None,
    artifacts_dir: str | None,
    output_path: str | None,
    pr_number: int | None,
) -> None:
    """Measure coverage for packages touched by FILES and report deltas.

    Examples:
        covdelta report lib/node_modules/@stdlib/math/base/special/sin/lib/main.js
        git diff --name-only main | covdelta report --files-from -
    """
    config = _load_validated_config(path)
    if artifacts_dir:
        config.coverage.artifacts_dir = str(Path(artifacts_dir).resolve())

    changed = _collect_changed(files, files_from)
    pipeline = CoverageDeltaPipeline.from_config(config)

    try:
        table = asyncio.run(pipeline.run(changed))
    except MissingToolError as e:
        reporter.print_error(str(e))
        raise click.Abort from e
    except (CoverageRunError, ReportParseError, SubprocessError) as e:
        capture_exception(e)
        reporter.print_error(str(e))
        raise click.Abort from e

    write_output(table, output_path)
    reporter.print_summary_table(table)

    if pr_number is not None or config.report.post_comment:
        post_table_from_env(table, get_pr_info_from_env(pr_number))


# ── check-files ──────────────────────────────────────────────────


@cli.command("check-files")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--user", required=True, help="Pull request author to address in the comment.")
@click.option("--repo", default=None, help="Repository as owner/repo (defaults to config).")
@_PATH_OPTION
@click.option(
    "--body-file",
    type=click.Path(dir_okay=False),
    default="comment-body.txt",
    show_default=True,
    help="Where to write the comment body.",
)
@click.option("--post", is_flag=True, help="Upsert the checklist as a PR comment.")
def check_files(
    pr_number: int,
    user: str,
    repo: str | None,
    path: str,
    body_file: str,
    *,
    post: bool,
) -> None:
    """Check that a pull request adding a package contains all required files."""
    config = _load_validated_config(path)
    repository = repo or os.environ.get("GITHUB_REPOSITORY") or config.required_files.repository

    try:
        pr_info = parse_repository(repository, pr_number)
        added = GitHubAPI().list_pull_request_files(pr_info, status="added")
    except GitHubAPIError as e:
        reporter.print_error(f"Failed to list pull request files: {e}")
        raise click.Abort from e

    set_output("files", " ".join(added))

    readme_path = find_readme(added)
    if readme_path is None:
        reporter.print_error("Pull request does not contain a new README.md file.")
        raise click.Abort

    readme_file = Path(path) / readme_path
    if readme_file.is_file():
        readme_text = readme_file.read_text(encoding="utf-8")
    else:
        reporter.print_warning(f"{readme_path} is not checked out; using the base file list")
        readme_text = ""

    required = config.required_files.to_policy().required_files_for(readme_text)
    result = check_required_files(required, added)

    set_output("missing_files", " ".join(result.missing))
    set_output("required_files", " ".join(result.required))

    body = render_comment(result, user)
    Path(body_file).write_text(body + "\n", encoding="utf-8")

    reporter.print_required_files(result)
    if result.complete:
        reporter.print_success("All required files are present.")
    else:
        reporter.print_warning(f"Missing {len(result.missing)} required file(s).")

    if post:
        try:
            GitHubCommentReporter().post_required_files(pr_info, body)
        except GitHubAPIError as e:
            reporter.print_error(f"Failed to post comment: {e}")
            raise click.Abort from e


# ── lint ─────────────────────────────────────────────────────────


@cli.command()
@click.argument("files", nargs=-1)
@_PATH_OPTION
@click.option("--files-from", type=str, default=None, help="Read changed paths from a file.")
def lint(files: tuple[str, ...], path: str, files_from: str | None) -> None:
    """Lint the changed JavaScript FILES with the configured linter."""
    config = _load_validated_config(path)
    linter = JavaScriptLinter(
        Path(path),
        command=config.lint.command,
        extensions=config.lint.extensions,
        timeout=config.lint.timeout,
    )

    try:
        result = asyncio.run(linter.lint(_collect_changed(files, files_from)))
    except SubprocessError as e:
        reporter.print_error(str(e))
        raise click.Abort from e

    if result.output:
        console.print(result.output, markup=False, highlight=False)

    if not result.success:
        reporter.print_error(f"Lint errors in {len(result.files)} file(s).")
        raise click.Abort

    reporter.print_success(f"Linted {len(result.files)} file(s).")


# ── check-tools ──────────────────────────────────────────────────


@cli.command("check-tools")
@click.argument("names", nargs=-1)
@_PATH_OPTION
def check_tools(names: tuple[str, ...], path: str) -> None:
    """Check that NAMES (default: tools.required) are installed locally."""
    config = _load_validated_config(path)
    tools = list(names) or config.tools.required

    missing = find_missing_tools(tools, Path(path))
    for tool in tools:
        if tool in missing:
            reporter.print_error(f"{tool} is not installed")
        else:
            reporter.print_success(f"{tool} found")

    if missing:
        raise click.Abort


# ── config ───────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Inspect covdelta configuration."""


@config_group.command("show")
@_PATH_OPTION
def config_show(path: str) -> None:
    """Print the effective configuration as YAML (secrets masked)."""
    config = _load_validated_config(path)
    data = asdict(config)
    data.pop("raw", None)
    click.echo(yaml.safe_dump(_mask_sensitive_values(data), sort_keys=False))


@config_group.command("validate")
@_PATH_OPTION
def config_validate(path: str) -> None:
    """Validate the configuration file."""
    _load_validated_config(path)
    reporter.print_success("Configuration is valid.")

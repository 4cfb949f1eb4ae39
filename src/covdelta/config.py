"""Configuration parsing from ``.covdelta.yml``."""

from __future__ import annotations

import logging
import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from covdelta.adapters.coverage.runner import CoverageRunnerSettings
from covdelta.baseline import DEFAULT_BASELINE_URL
from covdelta.reporters.table import DEFAULT_REPORT_LINK
from covdelta.required_files import (
    BASE_FILES,
    C_API_FILES,
    C_EXAMPLE_FILES,
    CLI_FILES,
    RequiredFilesPolicy,
)
from covdelta.resolver import DEFAULT_PACKAGE_PREFIX

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".covdelta.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

_TRUTHY = {True, "true", "1", "yes"}


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _command(value: Any, default: list[str]) -> list[str]:
    """Accept a command either as a shell-style string or as a list of arguments."""
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list):
        return [str(arg) for arg in value]
    return list(default)


def _string_list(value: Any, default: tuple[str, ...] | list[str]) -> list[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    return list(default)


@dataclass
class ProjectConfig:
    """Project-level configuration."""

    root: str
    """Repository root directory."""

    package_prefix: str = DEFAULT_PACKAGE_PREFIX
    """Path prefix under which packages live."""


@dataclass
class CoverageConfig:
    """How coverage is produced for a package."""

    test_command: list[str] = field(default_factory=lambda: ["make", "test-cov"])
    """Coverage-instrumented test command."""

    test_filter_env: str = "TESTS_FILTER"
    """Environment variable receiving the test filter."""

    test_filter_template: str = ".*/{package}/test/.*"
    """Test filter; ``{package}`` is replaced with the package name."""

    build_command: list[str] = field(default_factory=lambda: ["make", "install-node-addons"])
    """Native addon build command."""

    build_filter_env: str = "NODE_ADDONS_PATTERN"
    """Environment variable restricting the addon build to one package."""

    addon_descriptor: str = "binding.gyp"
    """File marking a package with a native addon."""

    coverage_dir: str = "reports/coverage"
    """Coverage output directory, cleared after each package."""

    artifacts_dir: str = "artifacts/coverage"
    """Directory receiving per-package report copies."""

    timeout: float = 1800.0
    """Seconds allowed for one build or test command."""

    def to_runner_settings(self) -> CoverageRunnerSettings:
        return CoverageRunnerSettings(
            test_command=list(self.test_command),
            test_filter_env=self.test_filter_env,
            test_filter_template=self.test_filter_template,
            build_command=list(self.build_command),
            build_filter_env=self.build_filter_env,
            addon_descriptor=self.addon_descriptor,
            coverage_dir=self.coverage_dir,
            timeout=self.timeout,
        )


@dataclass
class BaselineConfig:
    """Published coverage reports used as the comparison point."""

    url_template: str = DEFAULT_BASELINE_URL
    """URL of a package's published summary page; ``{package}`` is the package name."""

    timeout: float = 30.0
    """HTTP timeout in seconds."""


@dataclass
class ReportConfig:
    """Summary table output configuration."""

    link_template: str = DEFAULT_REPORT_LINK
    """Hyperlink target for the package column."""

    post_comment: bool = False
    """Also upsert the table as a PR comment."""


@dataclass
class HeartbeatConfig:
    """Liveness output while packages are processed."""

    interval: float = 60.0
    """Seconds between heartbeat lines (0 disables)."""


@dataclass
class RequiredFilesConfig:
    """Required-files check for pull requests adding a package."""

    repository: str = "stdlib-js/stdlib"
    """``owner/repo`` whose pull requests are checked."""

    base: list[str] = field(default_factory=lambda: list(BASE_FILES))
    cli: list[str] = field(default_factory=lambda: list(CLI_FILES))
    c_api: list[str] = field(default_factory=lambda: list(C_API_FILES))
    c_examples: list[str] = field(default_factory=lambda: list(C_EXAMPLE_FILES))

    def to_policy(self) -> RequiredFilesPolicy:
        return RequiredFilesPolicy(
            base=list(self.base),
            cli=list(self.cli),
            c_api=list(self.c_api),
            c_examples=list(self.c_examples),
        )


@dataclass
class LintConfig:
    """External linter configuration."""

    command: list[str] = field(default_factory=lambda: ["npx", "eslint"])
    extensions: list[str] = field(default_factory=lambda: [".js"])
    timeout: float = 600.0


@dataclass
class ToolsConfig:
    """Locally installed tools that must be present."""

    required: list[str] = field(default_factory=lambda: ["make"])
    """Checked before any package is processed."""


@dataclass
class SentryConfig:
    """Sentry error monitoring configuration."""

    enabled: bool = False
    """Opt-in flag. No Sentry data sent unless True."""

    dsn: str = ""
    """Sentry DSN (Data Source Name)."""

    traces_sample_rate: float = 0.0
    """Fraction of transactions sent for tracing (0.0-1.0)."""

    environment: str = ""
    """Override environment tag (auto-detected if empty)."""


@dataclass
class CovDeltaConfig:
    """Complete covdelta configuration from ``.covdelta.yml``."""

    project: ProjectConfig
    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    baseline: BaselineConfig = field(default_factory=BaselineConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    heartbeat: HeartbeatConfig = field(default_factory=HeartbeatConfig)
    required_files: RequiredFilesConfig = field(default_factory=RequiredFilesConfig)
    lint: LintConfig = field(default_factory=LintConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    sentry: SentryConfig = field(default_factory=SentryConfig)

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""

    @property
    def root_path(self) -> Path:
        return Path(self.project.root)


def _parse_coverage_config(raw: dict[str, Any]) -> CoverageConfig:
    """Parse the coverage section, with environment fallbacks for CI overrides."""
    coverage_raw = _section(raw, "coverage")
    defaults = CoverageConfig()

    return CoverageConfig(
        test_command=_command(coverage_raw.get("test_command"), defaults.test_command),
        test_filter_env=str(coverage_raw.get("test_filter_env", defaults.test_filter_env)),
        test_filter_template=str(
            coverage_raw.get("test_filter_template", defaults.test_filter_template)
        ),
        build_command=_command(coverage_raw.get("build_command"), defaults.build_command),
        build_filter_env=str(coverage_raw.get("build_filter_env", defaults.build_filter_env)),
        addon_descriptor=str(coverage_raw.get("addon_descriptor", defaults.addon_descriptor)),
        coverage_dir=str(coverage_raw.get("coverage_dir", defaults.coverage_dir)),
        artifacts_dir=str(
            coverage_raw.get(
                "artifacts_dir",
                os.environ.get("COVDELTA_ARTIFACTS_DIR", defaults.artifacts_dir),
            )
        ),
        timeout=float(coverage_raw.get("timeout", defaults.timeout)),
    )


def _parse_required_files_config(raw: dict[str, Any]) -> RequiredFilesConfig:
    section = _section(raw, "required_files")
    return RequiredFilesConfig(
        repository=str(section.get("repository", RequiredFilesConfig.repository)),
        base=_string_list(section.get("base"), BASE_FILES),
        cli=_string_list(section.get("cli"), CLI_FILES),
        c_api=_string_list(section.get("c_api"), C_API_FILES),
        c_examples=_string_list(section.get("c_examples"), C_EXAMPLE_FILES),
    )


def _parse_sentry_config(raw: dict[str, Any]) -> SentryConfig:
    section = _section(raw, "sentry")
    enabled_raw = section.get("enabled", os.environ.get("COVDELTA_SENTRY_ENABLED", ""))

    return SentryConfig(
        enabled=enabled_raw in _TRUTHY,
        dsn=str(section.get("dsn", os.environ.get("COVDELTA_SENTRY_DSN", ""))),
        traces_sample_rate=float(
            section.get(
                "traces_sample_rate",
                os.environ.get("COVDELTA_SENTRY_TRACES_SAMPLE_RATE", "0.0"),
            )
        ),
        environment=str(section.get("environment", "")),
    )


def load_config(root: str | Path) -> CovDeltaConfig:
    """Load and parse ``.covdelta.yml`` from *root*.

    Falls back to defaults and ``COVDELTA_*`` environment variables when the
    file is missing or incomplete.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        else:
            logger.warning("Ignoring %s: expected a mapping at the top level", config_file)

    project_raw = _section(raw, "project")
    project = ProjectConfig(
        root=str(project_raw.get("root", root_path)),
        package_prefix=str(project_raw.get("package_prefix", DEFAULT_PACKAGE_PREFIX)),
    )

    baseline_raw = _section(raw, "baseline")
    baseline = BaselineConfig(
        url_template=str(
            baseline_raw.get(
                "url_template", os.environ.get("COVDELTA_BASELINE_URL", DEFAULT_BASELINE_URL)
            )
        ),
        timeout=float(baseline_raw.get("timeout", 30.0)),
    )

    report_raw = _section(raw, "report")
    report = ReportConfig(
        link_template=str(report_raw.get("link_template", DEFAULT_REPORT_LINK)),
        post_comment=report_raw.get("post_comment", False) in _TRUTHY,
    )

    heartbeat_raw = _section(raw, "heartbeat")
    heartbeat = HeartbeatConfig(
        interval=float(
            heartbeat_raw.get(
                "interval", os.environ.get("COVDELTA_HEARTBEAT_INTERVAL", HeartbeatConfig.interval)
            )
        ),
    )

    lint_raw = _section(raw, "lint")
    lint_defaults = LintConfig()
    lint = LintConfig(
        command=_command(lint_raw.get("command"), lint_defaults.command),
        extensions=_string_list(lint_raw.get("extensions"), lint_defaults.extensions),
        timeout=float(lint_raw.get("timeout", lint_defaults.timeout)),
    )

    tools_raw = _section(raw, "tools")
    tools = ToolsConfig(required=_string_list(tools_raw.get("required"), ToolsConfig().required))

    return CovDeltaConfig(
        project=project,
        coverage=_parse_coverage_config(raw),
        baseline=baseline,
        report=report,
        heartbeat=heartbeat,
        required_files=_parse_required_files_config(raw),
        lint=lint,
        tools=tools,
        sentry=_parse_sentry_config(raw),
        raw=raw,
    )


def _validate_coverage_config(coverage: CoverageConfig) -> list[str]:
    errors: list[str] = []

    if not coverage.test_command:
        errors.append("coverage.test_command must not be empty")
    if not coverage.build_command:
        errors.append("coverage.build_command must not be empty")
    if "{package}" not in coverage.test_filter_template:
        errors.append(
            "coverage.test_filter_template must contain '{package}' "
            f"(got: {coverage.test_filter_template})"
        )
    if not coverage.coverage_dir:
        errors.append("coverage.coverage_dir is required")
    if not coverage.artifacts_dir:
        errors.append("coverage.artifacts_dir is required")
    if coverage.timeout <= 0:
        errors.append(f"coverage.timeout must be positive (got: {coverage.timeout})")

    return errors


def _validate_templates(config: CovDeltaConfig) -> list[str]:
    errors: list[str] = []

    if "{package}" not in config.baseline.url_template:
        errors.append(
            f"baseline.url_template must contain '{{package}}' (got: {config.baseline.url_template})"
        )
    if "{package}" not in config.report.link_template:
        errors.append(
            f"report.link_template must contain '{{package}}' (got: {config.report.link_template})"
        )

    return errors


def _validate_sentry_config(sentry: SentryConfig) -> list[str]:
    errors: list[str] = []

    if sentry.enabled and not sentry.dsn:
        errors.append("sentry.dsn is required when sentry.enabled is true")

    if not 0.0 <= sentry.traces_sample_rate <= 1.0:
        errors.append(
            f"sentry.traces_sample_rate must be between 0.0 and 1.0 "
            f"(got: {sentry.traces_sample_rate})"
        )

    return errors


def validate_config(config: CovDeltaConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.project.root:
        errors.append("project.root is required")
    if not config.project.package_prefix.strip("/"):
        errors.append("project.package_prefix must not be empty")

    errors.extend(_validate_coverage_config(config.coverage))
    errors.extend(_validate_templates(config))

    if config.baseline.timeout <= 0:
        errors.append(f"baseline.timeout must be positive (got: {config.baseline.timeout})")
    if config.heartbeat.interval < 0:
        errors.append(
            f"heartbeat.interval must be non-negative (got: {config.heartbeat.interval})"
        )
    if not config.lint.command:
        errors.append("lint.command must not be empty")

    errors.extend(_validate_sentry_config(config.sentry))

    return errors

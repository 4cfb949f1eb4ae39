"""Reporters for covdelta results: Markdown table, PR comments, terminal."""

from covdelta.reporters.github_comment import GitHubCommentReporter
from covdelta.reporters.table import format_table, persist_artifacts, render_markdown, write_output
from covdelta.reporters.terminal import CLIReporter

__all__ = [
    "CLIReporter",
    "GitHubCommentReporter",
    "format_table",
    "persist_artifacts",
    "render_markdown",
    "write_output",
]

"""GitHub comment reporter for posting coverage tables and required-file checklists to PRs.

Comments are upserted by marker, so re-running a workflow updates the existing
comment instead of adding a new one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from covdelta.reporters.table import render_markdown
from covdelta.utils.github import GitHubAPI, GitHubAPIError, compute_comment_marker

if TYPE_CHECKING:
    from covdelta.models.coverage import SummaryTable
    from covdelta.utils.github import GitHubPRInfo

logger = logging.getLogger(__name__)

_COVERAGE_MARKER = "covdelta:coverage"
_REQUIRED_FILES_MARKER = "covdelta:required-files"


class GitHubCommentReporter:
    """Reporter that posts covdelta results as GitHub PR comments."""

    def __init__(self, github_token: str | None = None) -> None:
        """Initialize the GitHub comment reporter.

        Args:
            github_token: GitHub token. If not provided, will try to read from
                the GITHUB_TOKEN environment variable.

        Raises:
            GitHubAPIError: If no token is available.
        """
        self._api = GitHubAPI(token=github_token)

    def post_table(self, pr_info: GitHubPRInfo, table: SummaryTable) -> dict[str, str]:
        """Post the coverage summary table as a PR comment.

        Returns:
            Dict with status and comment URL.

        Raises:
            GitHubAPIError: If posting the comment fails.
        """
        logger.info(
            "Posting coverage table to PR #%d in %s/%s",
            pr_info.pr_number,
            pr_info.owner,
            pr_info.repo,
        )
        marker = compute_comment_marker(_COVERAGE_MARKER)
        body = self._format_coverage_comment(table)
        result = self._api.upsert_comment(pr_info, f"{marker}\n{body}", marker)
        return {"status": "success", "comment_url": result.get("html_url", "")}

    def post_required_files(self, pr_info: GitHubPRInfo, body: str) -> dict[str, str]:
        """Post a required-files checklist as a PR comment."""
        logger.info("Posting required files checklist to PR #%d", pr_info.pr_number)
        marker = compute_comment_marker(_REQUIRED_FILES_MARKER)
        result = self._api.upsert_comment(pr_info, f"{marker}\n{body}", marker)
        return {"status": "success", "comment_url": result.get("html_url", "")}

    def _format_coverage_comment(self, table: SummaryTable) -> str:
        sections = ["## Coverage Report", ""]
        if table.is_empty:
            sections.append("No packages with coverage changes.")
        else:
            sections.append(render_markdown(table))
        sections.extend(["", "The above coverage report was generated for the changes in this PR."])
        return "\n".join(sections)


def post_table_from_env(table: SummaryTable, pr_info: GitHubPRInfo | None) -> bool:
    """Post the coverage table when running against a PR.

    Returns:
        True if the comment was posted, False otherwise. Failures are logged.
    """
    if pr_info is None:
        logger.info("Not running in a pull request context, skipping GitHub comment")
        return False

    try:
        result = GitHubCommentReporter().post_table(pr_info, table)
    except GitHubAPIError as exc:
        logger.error("Failed to post coverage table: %s", exc)
        return False

    logger.info("Posted coverage table: %s", result.get("comment_url"))
    return True

"""GitHub REST API client for pull request files and comments."""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
_GITHUB_AUTH_ENV_KEY = "GITHUB_" + "TOKEN"

# Expected number of parts when splitting "owner/repo"
_OWNER_REPO_PARTS = 2

_PER_PAGE = 100
_REQUEST_TIMEOUT = 30


@dataclass
class GitHubPRInfo:
    """Information about a GitHub pull request."""

    owner: str
    """Repository owner (username or organization)."""

    repo: str
    """Repository name."""

    pr_number: int
    """Pull request number."""


class GitHubAPIError(Exception):
    """Exception raised when GitHub API operations fail."""


def parse_repository(full_name: str, pr_number: int) -> GitHubPRInfo:
    """Build PR info from an ``owner/repo`` string.

    Raises:
        GitHubAPIError: If the repository name is not of the form ``owner/repo``.
    """
    parts = full_name.strip().split("/")
    if len(parts) != _OWNER_REPO_PARTS or not all(parts):
        raise GitHubAPIError(f"Repository must be of the form 'owner/repo', got '{full_name}'")
    owner, repo = parts
    return GitHubPRInfo(owner=owner, repo=repo, pr_number=pr_number)


def get_pr_info_from_env(pr_number: int | None = None) -> GitHubPRInfo | None:
    """Get PR information from GitHub Actions environment variables.

    Args:
        pr_number: Explicit PR number; when omitted it is read from ``GITHUB_REF``
            (``refs/pull/<number>/merge``).

    Returns:
        GitHubPRInfo if enough context is available, None otherwise.
    """
    github_repository = os.environ.get("GITHUB_REPOSITORY")
    if not github_repository:
        return None

    if pr_number is None:
        github_ref = os.environ.get("GITHUB_REF", "")
        if not github_ref.startswith("refs/pull/"):
            return None
        try:
            pr_number = int(github_ref.split("/")[2])
        except (IndexError, ValueError):
            return None

    try:
        return parse_repository(github_repository, pr_number)
    except GitHubAPIError:
        return None


def compute_comment_marker(prefix: str) -> str:
    """Generate an HTML comment marker identifying a bot comment.

    Args:
        prefix: Prefix for the marker (e.g., "covdelta:coverage").

    Returns:
        HTML comment marker string.
    """
    hash_str = hashlib.sha256(prefix.encode()).hexdigest()[:8]
    return f"<!-- {prefix}:{hash_str} -->"


class GitHubAPI:
    """Client for the GitHub REST API endpoints covdelta uses."""

    def __init__(self, token: str | None = None) -> None:
        """Initialize the GitHub API client.

        Args:
            token: GitHub token. If not provided, will try to read from the
                GITHUB_TOKEN environment variable.

        Raises:
            GitHubAPIError: If no token is available.
        """
        self._token = token or os.environ.get(_GITHUB_AUTH_ENV_KEY)
        if not self._token:
            raise GitHubAPIError(
                f"GitHub token required. Set {_GITHUB_AUTH_ENV_KEY} environment variable "
                "or pass token to constructor."
            )

        self._session_headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def list_pull_request_files(
        self, pr_info: GitHubPRInfo, status: str | None = None
    ) -> list[str]:
        """List the files of a pull request, following pagination.

        Pages of 100 are requested until an empty page is returned.

        Args:
            pr_info: Pull request information.
            status: Only return files with this status (e.g. ``"added"``).

        Returns:
            File names in API order.

        Raises:
            GitHubAPIError: If an API request fails.
        """
        base_url = (
            f"{GITHUB_API_BASE}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"pulls/{pr_info.pr_number}/files"
        )

        files: list[str] = []
        for entries in self._pages(base_url):
            if not entries:
                break
            files.extend(
                entry["filename"]
                for entry in entries
                if status is None or entry.get("status") == status
            )

        logger.debug("PR #%d has %d matching file(s)", pr_info.pr_number, len(files))
        return files

    def create_comment(self, pr_info: GitHubPRInfo, body: str) -> dict[str, Any]:
        """Create a new comment on a pull request."""
        url = (
            f"{GITHUB_API_BASE}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/{pr_info.pr_number}/comments"
        )
        result: dict[str, Any] = self._post(url, {"body": body})
        return result

    def update_comment(self, pr_info: GitHubPRInfo, comment_id: int, body: str) -> dict[str, Any]:
        """Replace the body of an existing pull request comment."""
        url = (
            f"{GITHUB_API_BASE}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/comments/{comment_id}"
        )
        result: dict[str, Any] = self._patch(url, {"body": body})
        return result

    def find_comment_by_marker(self, pr_info: GitHubPRInfo, marker: str) -> dict[str, Any] | None:
        """Return the first PR comment whose body contains *marker*, if any.

        Comment pages are walked until a match or a short (final) page.
        """
        url = (
            f"{GITHUB_API_BASE}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/{pr_info.pr_number}/comments"
        )
        for comments in self._pages(url):
            for comment in comments:
                if marker in (comment.get("body") or ""):
                    return comment
            if len(comments) < _PER_PAGE:
                break
        return None

    def upsert_comment(self, pr_info: GitHubPRInfo, body: str, marker: str) -> dict[str, Any]:
        """Create or update the PR comment identified by *marker*.

        Args:
            pr_info: Pull request information.
            body: Comment body (markdown formatted). The marker is prepended if absent.
            marker: Unique marker identifying this comment.

        Returns:
            GitHub API response as a dictionary.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        if marker not in body:
            body = f"{marker}\n{body}"

        existing = self.find_comment_by_marker(pr_info, marker)
        if existing:
            logger.info("Updating existing comment %d", existing["id"])
            return self.update_comment(pr_info, existing["id"], body)

        logger.info("Creating new comment on PR #%d", pr_info.pr_number)
        return self.create_comment(pr_info, body)

    def _pages(self, url: str) -> Iterator[list[dict[str, Any]]]:
        """Yield successive pages of a list endpoint; the caller decides when to stop."""
        page = 1
        while True:
            yield self._get(f"{url}?page={page}&per_page={_PER_PAGE}")
            page += 1

    def _get(self, url: str) -> Any:
        try:
            response = requests.get(url, headers=self._session_headers, timeout=_REQUEST_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise GitHubAPIError(f"GET request failed: {exc}") from exc

    def _post(self, url: str, data: dict[str, Any]) -> Any:
        try:
            response = requests.post(
                url, json=data, headers=self._session_headers, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise GitHubAPIError(f"POST request failed: {exc}") from exc

    def _patch(self, url: str, data: dict[str, Any]) -> Any:
        try:
            response = requests.patch(
                url, json=data, headers=self._session_headers, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise GitHubAPIError(f"PATCH request failed: {exc}") from exc

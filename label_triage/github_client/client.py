"""GitHub API client using PyGitHub."""

import logging
import os

import requests
from github import Auth, Github
from github.GithubException import (
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)
from github.Label import Label
from github.PullRequest import PullRequest
from github.Repository import Repository

from ..config import DEFAULT_API_TIMEOUT
from ..errors import TransientAPIError
from .models import GitHubLabel, GitHubPullRequest

logger = logging.getLogger(__name__)

# Status codes GitHub uses for throttling and server-side trouble.
TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


def _raise_transient(exc: Exception, what: str) -> None:
    """Re-raise ``exc`` as TransientAPIError when it is a transient failure."""
    if isinstance(exc, RateLimitExceededException):
        raise TransientAPIError(f"Rate limit exceeded while {what}") from exc
    if isinstance(exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)):
        raise TransientAPIError(f"Network error while {what}: {exc}") from exc
    if isinstance(exc, GithubException) and exc.status in TRANSIENT_STATUSES:
        raise TransientAPIError(
            f"GitHub returned {exc.status} while {what}: {exc.data}"
        ) from exc


class GitHubClient:
    """GitHub API client with authentication and bounded request timeouts.

    Transient failures are surfaced as ``TransientAPIError`` and never retried
    here; the caller decides what a failed call means.
    """

    def __init__(self, token: str | None = None, timeout: float = DEFAULT_API_TIMEOUT):
        """Initialize GitHub client with authentication.

        Args:
            token: GitHub personal access token. If None, reads from
                GITHUB_TOKEN env var.
            timeout: Timeout in seconds applied to every HTTP request.
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GitHub token is required. Set GITHUB_TOKEN environment variable."
            )

        self.timeout = timeout
        # No transport retries: each call is bounded by one timeout.
        self.github = Github(auth=Auth.Token(self.token), timeout=timeout, retry=None)

    def _check_rate_limit(self) -> None:
        """Log the remaining rate limit budget."""
        try:
            rate_limit = self.github.get_rate_limit()
            remaining = rate_limit.rate.remaining
            logger.debug("GitHub API rate limit: %s requests remaining", remaining)
            if remaining < 10:
                logger.warning(
                    "GitHub API rate limit low (%s remaining), resets at %s",
                    remaining,
                    rate_limit.rate.reset,
                )
        except Exception as e:
            # Not critical; the actual calls report rate limiting themselves.
            logger.debug("Rate limit check failed: %s", e)

    def _convert_label(self, github_label: Label) -> GitHubLabel:
        """Convert PyGitHub label to our model."""
        return GitHubLabel(
            name=github_label.name,
            color=github_label.color,
            description=github_label.description,
        )

    def _convert_pull_request(self, pull: PullRequest) -> GitHubPullRequest:
        """Convert PyGitHub pull request to our model."""
        return GitHubPullRequest(
            number=pull.number,
            title=pull.title,
            labels=[self._convert_label(label) for label in pull.labels],
        )

    def get_repository(self, org: str, repo: str) -> Repository:
        """Get repository object."""
        try:
            return self.github.get_repo(f"{org}/{repo}")
        except UnknownObjectException:
            raise ValueError(f"Repository {org}/{repo} not found")
        except Exception as e:
            _raise_transient(e, f"fetching repository {org}/{repo}")
            raise

    def list_open_pull_requests(self, org: str, repo: str) -> list[GitHubPullRequest]:
        """List every open pull request in a repository.

        Args:
            org: Organization name
            repo: Repository name

        Returns:
            List of GitHubPullRequest objects

        Raises:
            ValueError: If repository not found
            TransientAPIError: For network, timeout or rate limit failures
        """
        self._check_rate_limit()
        repository = self.get_repository(org, repo)

        try:
            pulls = [
                self._convert_pull_request(pull)
                for pull in repository.get_pulls(state="open")
            ]
        except Exception as e:
            _raise_transient(e, f"listing open pull requests in {org}/{repo}")
            raise

        logger.info("Found %d open pull request(s) in %s/%s", len(pulls), org, repo)
        return pulls

    def list_pull_request_files(self, org: str, repo: str, number: int) -> list[str]:
        """List the paths of every file changed by a pull request.

        Args:
            org: Organization name
            repo: Repository name
            number: Pull request number

        Returns:
            List of file paths relative to the repository root

        Raises:
            ValueError: If repository or pull request not found
            TransientAPIError: For network, timeout or rate limit failures
        """
        repository = self.get_repository(org, repo)

        try:
            pull = repository.get_pull(number)
            return [changed.filename for changed in pull.get_files()]
        except UnknownObjectException:
            raise ValueError(f"Pull request #{number} not found in {org}/{repo}")
        except Exception as e:
            _raise_transient(e, f"listing files of #{number}")
            raise

    def add_issue_labels(
        self, org: str, repo: str, issue_number: int, labels: list[str]
    ) -> bool:
        """Add labels to an issue or pull request, keeping existing ones.

        Args:
            org: Organization name
            repo: Repository name
            issue_number: Issue number
            labels: List of label names to add

        Returns:
            True if successful

        Raises:
            ValueError: If repository or issue not found
            TransientAPIError: For network, timeout or rate limit failures
        """
        repository = self.get_repository(org, repo)

        try:
            github_issue = repository.get_issue(issue_number)
            github_issue.add_to_labels(*labels)
        except UnknownObjectException:
            raise ValueError(f"Issue #{issue_number} not found in {org}/{repo}")
        except Exception as e:
            _raise_transient(e, f"adding labels to #{issue_number}")
            raise

        logger.info("Added labels to #%d: %s", issue_number, labels)
        return True

    def add_issue_comment(
        self, org: str, repo: str, issue_number: int, comment: str
    ) -> bool:
        """Add a comment to an issue or pull request.

        Args:
            org: Organization name
            repo: Repository name
            issue_number: Issue number
            comment: Comment text to add

        Returns:
            True if successful

        Raises:
            ValueError: If repository or issue not found
            TransientAPIError: For network, timeout or rate limit failures
        """
        repository = self.get_repository(org, repo)

        try:
            github_issue = repository.get_issue(issue_number)
            github_issue.create_comment(comment)
        except UnknownObjectException:
            raise ValueError(f"Issue #{issue_number} not found in {org}/{repo}")
        except Exception as e:
            _raise_transient(e, f"commenting on #{issue_number}")
            raise

        logger.info("Added comment to #%d", issue_number)
        return True

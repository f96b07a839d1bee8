"""The repository operations the triage service depends on."""

from typing import Protocol

from .models import GitHubPullRequest


class RepositoryAPI(Protocol):
    """Repository hosting API used by the adapter, matcher and executor.

    ``GitHubClient`` implements it; tests substitute in-memory fakes.
    """

    def list_open_pull_requests(self, org: str, repo: str) -> list[GitHubPullRequest]: ...

    def list_pull_request_files(self, org: str, repo: str, number: int) -> list[str]: ...

    def add_issue_labels(
        self, org: str, repo: str, issue_number: int, labels: list[str]
    ) -> bool: ...

    def add_issue_comment(
        self, org: str, repo: str, issue_number: int, comment: str
    ) -> bool: ...

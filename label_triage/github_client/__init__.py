"""GitHub client package for API interaction."""

from .api import RepositoryAPI
from .client import GitHubClient
from .models import GitHubLabel, GitHubPullRequest

__all__ = [
    "GitHubClient",
    "GitHubLabel",
    "GitHubPullRequest",
    "RepositoryAPI",
]

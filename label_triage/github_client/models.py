"""Pydantic models for GitHub data structures.

These models map to the subset of GitHub's REST API v3 responses the triage
service reads.
API Reference: https://docs.github.com/en/rest/issues
"""

from pydantic import BaseModel, Field


class GitHubLabel(BaseModel):
    """GitHub label model representing repository labels.

    Maps to GitHub REST API Label object.
    API Reference: https://docs.github.com/en/rest/issues/labels
    """

    name: str = Field(..., description="Name of the label (string)")
    color: str = Field(
        ..., description="Hexadecimal color code without leading # (string)"
    )
    description: str | None = Field(
        None, description="Short description of the label (string, max 100 characters)"
    )


class GitHubPullRequest(BaseModel):
    """Open pull request as seen by a scheduled scan.

    Maps to GitHub REST API Pull Request object.
    API Reference: https://docs.github.com/en/rest/pulls/pulls
    """

    number: int = Field(..., description="Pull request number (integer)")
    title: str = Field(..., description="Title of the pull request (string)")
    labels: list[GitHubLabel] = Field(
        default_factory=list, description="Labels attached to the pull request"
    )

    @property
    def label_names(self) -> list[str]:
        return [label.name for label in self.labels]

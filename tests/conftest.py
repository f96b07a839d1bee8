"""Test configuration and fixtures."""

import threading
from pathlib import Path

import pytest

from label_triage.errors import TransientAPIError
from label_triage.events.models import Event, TriggerKind
from label_triage.github_client.models import GitHubLabel, GitHubPullRequest
from label_triage.rules.loader import parse_rules
from label_triage.rules.models import RuleSet


class FakeRepositoryAPI:
    """In-memory repository API that records every mutating call."""

    def __init__(self) -> None:
        self.files: dict[int, list[str]] = {}
        self.labels: dict[int, list[str]] = {}
        self.open_pulls: list[GitHubPullRequest] = []
        self.added_labels: list[tuple[int, list[str]]] = []
        self.comments: list[tuple[int, str]] = []
        self.file_requests: list[int] = []
        # Calls listed here raise TransientAPIError
        self.timeouts: set[tuple[str, int]] = set()
        # When set, add_issue_comment waits for this event before returning
        self.comment_gate: threading.Event | None = None
        self.comment_started = threading.Event()
        self._lock = threading.Lock()

    def _maybe_timeout(self, operation: str, number: int) -> None:
        if (operation, number) in self.timeouts:
            raise TransientAPIError(f"Network error while {operation} #{number}: timed out")

    def list_open_pull_requests(self, org: str, repo: str) -> list[GitHubPullRequest]:
        if ("list_pulls", 0) in self.timeouts:
            raise TransientAPIError("Rate limit exceeded while listing open pull requests")
        return list(self.open_pulls)

    def list_pull_request_files(self, org: str, repo: str, number: int) -> list[str]:
        with self._lock:
            self.file_requests.append(number)
        self._maybe_timeout("files", number)
        return list(self.files.get(number, []))

    def add_issue_labels(
        self, org: str, repo: str, issue_number: int, labels: list[str]
    ) -> bool:
        self._maybe_timeout("label", issue_number)
        with self._lock:
            self.added_labels.append((issue_number, list(labels)))
            current = self.labels.setdefault(issue_number, [])
            current.extend(label for label in labels if label not in current)
        return True

    def add_issue_comment(
        self, org: str, repo: str, issue_number: int, comment: str
    ) -> bool:
        gate = self.comment_gate
        self.comment_started.set()
        if gate is not None:
            gate.wait(timeout=5)
        self._maybe_timeout("comment", issue_number)
        with self._lock:
            self.comments.append((issue_number, comment))
        return True


def _make_pull(number: int, labels: list[str] | None = None) -> GitHubPullRequest:
    return GitHubPullRequest(
        number=number,
        title=f"PR {number}",
        labels=[GitHubLabel(name=name, color="ededed") for name in labels or []],
    )


def _label_added(
    target: int,
    label: str,
    is_pull_request: bool = False,
    current: list[str] | None = None,
) -> Event:
    return Event(
        target=target,
        kind=TriggerKind.LABEL_ADDED,
        labels=frozenset({label}),
        current_labels=frozenset({label, *(current or [])}),
        is_pull_request=is_pull_request,
        repository="bytecodealliance/wasmtime",
        actor="maintainer",
    )


@pytest.fixture
def make_pull():
    """Factory for open pull requests as the client returns them."""
    return _make_pull


@pytest.fixture
def label_added():
    """Factory for label-added events."""
    return _label_added


@pytest.fixture
def fake_api() -> FakeRepositoryAPI:
    return FakeRepositoryAPI()


@pytest.fixture
def rules() -> RuleSet:
    """The rule set used across pipeline and executor tests."""
    return parse_rules(
        {
            "labeler": [
                {
                    "label": "wasi",
                    "paths": ["crates/wasi/**", "!crates/wasi/README.md"],
                },
                {"label": "cranelift", "paths": ["cranelift/**"]},
            ],
            "subscriptions": [
                {"label": "wasi", "mentions": ["alice"]},
                {"label": "cranelift", "mentions": ["@bob", "carol"]},
            ],
            "messages": [
                {
                    "label": "fuzz-bug",
                    "template": "Thanks for the report on #{{ number }}!",
                },
            ],
        }
    )


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    """Write a small valid rule file and return its path."""
    path = tmp_path / "triage.yml"
    path.write_text(
        "labeler:\n"
        "  - label: wasi\n"
        "    paths: ['crates/wasi/**', '!crates/wasi/README.md']\n"
        "subscriptions:\n"
        "  - label: wasi\n"
        "    mentions: [alice, '@bob']\n"
        "messages:\n"
        "  - label: fuzz-bug\n"
        "    template: 'Thanks for the report on #{{ number }}!'\n",
        encoding="utf-8",
    )
    return path

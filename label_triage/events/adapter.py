"""Turn raw triggers into normalized events.

Two trigger sources exist: repository webhook payloads (as delivered to a
GitHub Actions job through ``GITHUB_EVENT_PATH``) and a timer. A timer fire
fans out into one event per open pull request, because ``labeled`` webhooks
are not delivered reliably for pull requests opened from forks.
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors import MalformedEventError
from ..github_client.api import RepositoryAPI
from .models import Event, TriggerKind

logger = logging.getLogger(__name__)

LABELED_ACTIONS = {"labeled"}
PULL_REQUEST_CHANGE_ACTIONS = {"opened", "synchronize", "reopened"}


def _label_names(raw_labels: Any) -> frozenset[str]:
    if raw_labels is None:
        return frozenset()
    if not isinstance(raw_labels, list):
        raise MalformedEventError(f"Expected a list of labels, got {type(raw_labels).__name__}")
    names = set()
    for raw in raw_labels:
        name = raw.get("name") if isinstance(raw, Mapping) else raw
        if not isinstance(name, str) or not name:
            raise MalformedEventError(f"Label without a name: {raw!r}")
        names.add(name)
    return frozenset(names)


def _login(user: Any) -> str | None:
    if isinstance(user, Mapping) and isinstance(user.get("login"), str):
        return user["login"]
    return None


class EventSourceAdapter:
    """Normalizes webhook payloads and timer fires into events.

    Args:
        allowed_repository: When set, events from any other repository are
            dropped. Matching is case-insensitive.
    """

    def __init__(self, allowed_repository: str | None = None):
        self.allowed_repository = allowed_repository

    def _is_allowed(self, repository: str | None) -> bool:
        if not self.allowed_repository or not repository:
            return True
        return repository.lower() == self.allowed_repository.lower()

    def from_webhook(self, event_name: str, payload: Mapping[str, Any]) -> Event | None:
        """Convert one webhook payload to zero or one event.

        Raises:
            MalformedEventError: If the payload is missing required fields
        """
        if not isinstance(payload, Mapping):
            raise MalformedEventError("Webhook payload must be a JSON object")

        action = payload.get("action")
        repository = payload.get("repository") or {}
        full_name = repository.get("full_name") if isinstance(repository, Mapping) else None
        actor = _login(payload.get("sender"))

        if event_name == "issues":
            key = "issue"
            item = payload.get(key)
            is_pull_request = isinstance(item, Mapping) and "pull_request" in item
        elif event_name in {"pull_request", "pull_request_target"}:
            key = "pull_request"
            item = payload.get(key)
            is_pull_request = True
        else:
            logger.info("Ignoring unsupported event %r", event_name)
            return None

        if not isinstance(item, Mapping):
            raise MalformedEventError(f"{event_name} payload has no {key} object")

        if action in LABELED_ACTIONS:
            label = payload.get("label")
            if not isinstance(label, Mapping) or not label.get("name"):
                raise MalformedEventError("labeled payload has no label name")
            kind = TriggerKind.LABEL_ADDED
            added = frozenset({label["name"]})
        elif is_pull_request and event_name != "issues" and action in PULL_REQUEST_CHANGE_ACTIONS:
            kind = TriggerKind.PULL_REQUEST_CHANGED
            added = frozenset()
        else:
            logger.info("Ignoring %s event with action %r", event_name, action)
            return None

        if not self._is_allowed(full_name):
            logger.info(
                "Ignoring event from %s (only %s is triaged)",
                full_name,
                self.allowed_repository,
            )
            return None

        try:
            return Event(
                target=item.get("number"),
                kind=kind,
                labels=added,
                current_labels=_label_names(item.get("labels")) | added,
                is_pull_request=is_pull_request,
                repository=full_name,
                actor=actor,
            )
        except ValidationError as e:
            raise MalformedEventError(f"Invalid {event_name} payload: {e}") from e

    def normalize(self, event_name: str, payload: Any) -> list[Event]:
        """Convert a webhook payload, dropping it with a warning if malformed."""
        try:
            event = self.from_webhook(event_name, payload)
        except MalformedEventError as e:
            logger.warning("Dropping malformed %s event: %s", event_name, e)
            return []
        return [event] if event else []

    def from_event_file(self, event_name: str, path: Path) -> list[Event]:
        """Read a webhook payload from disk, as GitHub Actions provides it."""
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Dropping unreadable event payload %s: %s", path, e)
            return []
        return self.normalize(event_name, payload)

    def from_schedule(self, client: RepositoryAPI, org: str, repo: str) -> list[Event]:
        """Fan a timer fire out into one scan event per open pull request."""
        full_name = f"{org}/{repo}"
        if not self._is_allowed(full_name):
            logger.info(
                "Skipping scan of %s (only %s is triaged)",
                full_name,
                self.allowed_repository,
            )
            return []

        fired_at = datetime.now(timezone.utc)
        events = [
            Event(
                target=pull.number,
                kind=TriggerKind.SCHEDULED_SCAN,
                current_labels=frozenset(pull.label_names),
                is_pull_request=True,
                repository=full_name,
                timestamp=fired_at,
            )
            for pull in client.list_open_pull_requests(org, repo)
        ]
        logger.info("Scheduled scan produced %d event(s)", len(events))
        return events

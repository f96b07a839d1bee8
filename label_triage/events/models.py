"""Normalized trigger events."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TriggerKind(str, Enum):
    """What caused an event to be produced."""

    LABEL_ADDED = "label-added"
    SCHEDULED_SCAN = "scheduled-scan"
    PULL_REQUEST_CHANGED = "pull-request-changed"


class Event(BaseModel):
    """A single triage event for one issue or pull request.

    Events are immutable once created. ``labels`` holds only the labels the
    trigger added; ``current_labels`` is everything on the target at the time
    the event was observed.
    """

    model_config = ConfigDict(frozen=True)

    target: int = Field(..., gt=0, description="Issue or pull request number")
    kind: TriggerKind = Field(..., description="Trigger kind")
    labels: frozenset[str] = Field(
        default_factory=frozenset, description="Labels added by this trigger"
    )
    current_labels: frozenset[str] = Field(
        default_factory=frozenset, description="All labels on the target"
    )
    is_pull_request: bool = Field(False, description="Target is a pull request")
    repository: str | None = Field(None, description="Repository in owner/name form")
    actor: str | None = Field(None, description="Login that caused the trigger")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event was received",
    )

    def has_label(self, label: str) -> bool:
        """Case-insensitive check against the labels added by this trigger."""
        wanted = label.lower()
        return any(name.lower() == wanted for name in self.labels)

    def target_has_label(self, label: str) -> bool:
        """Case-insensitive check against all labels on the target."""
        wanted = label.lower()
        return any(name.lower() == wanted for name in self.current_labels)

    def describe(self) -> str:
        kind = "PR" if self.is_pull_request else "issue"
        return f"{self.kind.value} {kind} #{self.target}"

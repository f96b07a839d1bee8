"""Results of executing triage actions."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from ..dispatch.scheduler import RunState
from ..rules.models import RuleKind


class ActionOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


class ActionResult(BaseModel):
    """What happened when one matched rule was executed for one target.

    Exactly one result is produced per matched rule per event.
    """

    rule_id: str = Field(..., description="Identifier of the rule that matched")
    target: int = Field(..., description="Issue or pull request number")
    action: RuleKind = Field(..., description="Side effect the rule produces")
    outcome: ActionOutcome = Field(..., description="applied, skipped or failed")
    detail: str = Field("", description="Human-readable description of the action")
    error: str | None = Field(None, description="Error detail when failed")

    @property
    def ok(self) -> bool:
        return self.outcome is not ActionOutcome.FAILED


class RunReport(BaseModel):
    """Summary of one triage run, for logs and operators."""

    run_id: str = Field(..., description="Run identifier")
    group: str = Field(..., description="Concurrency group")
    trigger: str = Field(..., description="What started the run")
    state: RunState = Field(RunState.COMPLETED, description="Final run state")
    dry_run: bool = Field(False, description="No side effects were performed")
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = Field(None)
    events_processed: int = Field(0, description="Events that went through matching")
    results: list[ActionResult] = Field(default_factory=list)
    errors: list[str] = Field(
        default_factory=list, description="Run-level problems that did not stop the run"
    )

    def count(self, outcome: ActionOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    @property
    def failed(self) -> list[ActionResult]:
        return [r for r in self.results if r.outcome is ActionOutcome.FAILED]

    @property
    def has_failures(self) -> bool:
        return any(r.outcome is ActionOutcome.FAILED for r in self.results)

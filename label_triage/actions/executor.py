"""Apply matched rules through the repository API."""

import logging
from collections.abc import Callable, Sequence

from ..dispatch.scheduler import RunToken
from ..events.models import Event
from ..github_client.api import RepositoryAPI
from ..rules.models import CommentRule, MentionRule, PathLabelRule, Rule, RuleKind
from .comments import CommentGenerator
from .models import ActionOutcome, ActionResult

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Executes matched rules, one isolated API call per rule.

    A failing call yields a ``failed`` result and execution moves on to the
    next rule; nothing is retried. Rules passed in one call run in order, which is
    how callers keep label mutations on a single target from racing.
    """

    def __init__(
        self,
        client: RepositoryAPI,
        org: str,
        repo: str,
        dry_run: bool = False,
        comments: CommentGenerator | None = None,
    ):
        self.client = client
        self.org = org
        self.repo = repo
        self.dry_run = dry_run
        self.comments = comments or CommentGenerator()
        self.handlers: dict[RuleKind, Callable[[Rule, Event], None]] = {
            RuleKind.ADD_LABEL: self._add_label,
            RuleKind.MENTION: self._post_mention,
            RuleKind.COMMENT: self._post_message,
        }

    def _add_label(self, rule: PathLabelRule, event: Event) -> None:
        self.client.add_issue_labels(self.org, self.repo, event.target, [rule.label])

    def _post_mention(self, rule: MentionRule, event: Event) -> None:
        body = self.comments.generate_mention_comment(rule, event)
        self.client.add_issue_comment(self.org, self.repo, event.target, body)

    def _post_message(self, rule: CommentRule, event: Event) -> None:
        body = self.comments.generate_message_comment(rule, event)
        self.client.add_issue_comment(self.org, self.repo, event.target, body)

    def describe(self, rule: Rule, event: Event) -> str:
        """One-line description of what executing ``rule`` does."""
        if isinstance(rule, PathLabelRule):
            return f"add label {rule.label!r} to #{event.target}"
        if isinstance(rule, MentionRule):
            mentions = ", ".join(f"@{login}" for login in rule.mentions)
            return f"mention {mentions} on #{event.target}"
        return f"post {rule.label!r} message on #{event.target}"

    def execute_rule(self, rule: Rule, event: Event) -> ActionResult:
        """Execute one rule for one event and report the outcome."""
        detail = self.describe(rule, event)

        if self.dry_run:
            logger.info("[DRY-RUN] would %s (%s)", detail, rule.id)
            return ActionResult(
                rule_id=rule.id,
                target=event.target,
                action=rule.kind,
                outcome=ActionOutcome.SKIPPED,
                detail=detail,
            )

        handler = self.handlers[rule.kind]
        try:
            handler(rule, event)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            logger.warning("Action failed: %s (%s): %s", detail, rule.id, error)
            return ActionResult(
                rule_id=rule.id,
                target=event.target,
                action=rule.kind,
                outcome=ActionOutcome.FAILED,
                detail=detail,
                error=error,
            )

        logger.info("Applied: %s (%s)", detail, rule.id)
        return ActionResult(
            rule_id=rule.id,
            target=event.target,
            action=rule.kind,
            outcome=ActionOutcome.APPLIED,
            detail=detail,
        )

    def execute(
        self, event: Event, rules: Sequence[Rule], token: RunToken | None = None
    ) -> list[ActionResult]:
        """Execute every rule for one event, in order.

        Raises:
            RunCancelled: If ``token`` is cancelled between two actions
        """
        results = []
        for rule in rules:
            if token is not None:
                token.raise_if_cancelled()
            results.append(self.execute_rule(rule, event))
        return results

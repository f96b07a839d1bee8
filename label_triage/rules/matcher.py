"""Evaluate rules against events."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from ..events.models import Event, TriggerKind
from .globs import GlobSet
from .models import PathLabelRule, Rule, RuleSet

logger = logging.getLogger(__name__)

FilesProvider = Callable[[int], list[str]]


@dataclass(frozen=True)
class RuleMatch:
    """A rule whose predicate held for an event."""

    rule: Rule
    reason: str


@dataclass
class MatchResult:
    """Everything the matcher decided for one event.

    ``errors`` holds rules whose predicate could not be evaluated, paired with
    the error text. They are reported as failed, never dropped.
    """

    event: Event
    matches: list[RuleMatch] = field(default_factory=list)
    errors: list[tuple[Rule, str]] = field(default_factory=list)
    rules_evaluated: int = 0

    @property
    def has_matches(self) -> bool:
        return len(self.matches) > 0

    @property
    def matched_rule_ids(self) -> list[str]:
        return [m.rule.id for m in self.matches]


class RuleMatcher:
    """Match events against a static rule set.

    Rules are independent: there is no priority and no rule stops another
    from matching.
    """

    def __init__(self, rules: RuleSet):
        self.rules = rules
        self._globs = {rule.id: GlobSet(rule.paths) for rule in rules.labeler}

    def _wants_paths(self, event: Event) -> bool:
        return event.is_pull_request and bool(self.rules.labeler)

    def match(self, event: Event, files_provider: FilesProvider | None = None) -> MatchResult:
        """Return the rules whose predicate holds for ``event``, in rule order.

        Args:
            event: Event to evaluate
            files_provider: Returns the changed files of a pull request. Only
                called for pull request events, at most once.
        """
        result = MatchResult(event=event)

        files: list[str] | None = None
        files_error: str | None = None
        if self._wants_paths(event):
            if files_provider is None:
                files_error = "No changed-file source available"
            else:
                try:
                    files = files_provider(event.target)
                except Exception as e:
                    files_error = f"Could not list changed files: {e}"
                    logger.warning("#%d: %s", event.target, files_error)

        for rule in self.rules.rules:
            result.rules_evaluated += 1
            if isinstance(rule, PathLabelRule):
                if not event.is_pull_request:
                    continue
                if event.target_has_label(rule.label):
                    continue
                if files_error is not None:
                    result.errors.append((rule, files_error))
                    continue
                hit = self._globs[rule.id].first_match(files or [])
                if hit is not None:
                    result.matches.append(
                        RuleMatch(rule=rule, reason=f"{hit} matches {rule.id}")
                    )
            elif event.kind is TriggerKind.LABEL_ADDED and event.has_label(rule.label):
                result.matches.append(
                    RuleMatch(rule=rule, reason=f"label {rule.label!r} was added")
                )

        logger.debug(
            "%s: %d rule(s) matched %s",
            event.describe(),
            len(result.matches),
            result.matched_rule_ids,
        )
        return result

"""One triage run: normalize the trigger, match rules, execute actions."""

import logging
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from github.GithubException import GithubException

from .actions.comments import CommentGenerator
from .actions.executor import ActionExecutor
from .actions.models import ActionOutcome, ActionResult, RunReport
from .dispatch.scheduler import RunState, RunToken
from .errors import TransientAPIError
from .events.adapter import EventSourceAdapter
from .events.models import Event
from .github_client.api import RepositoryAPI
from .rules.matcher import RuleMatcher
from .rules.models import RuleSet

logger = logging.getLogger(__name__)


class TriagePipeline:
    """Runs events through the matcher and executor for one repository.

    Each event is matched exactly once. Targets are processed in parallel;
    events and actions for the same target are processed in order on one
    worker.
    """

    def __init__(
        self,
        client: RepositoryAPI,
        org: str,
        repo: str,
        rules: RuleSet,
        adapter: EventSourceAdapter | None = None,
        dry_run: bool = False,
        max_workers: int = 4,
        comments: CommentGenerator | None = None,
    ):
        self.client = client
        self.org = org
        self.repo = repo
        self.rules = rules
        self.adapter = adapter or EventSourceAdapter()
        self.dry_run = dry_run
        self.max_workers = max_workers
        self.matcher = RuleMatcher(rules)
        self.executor = ActionExecutor(
            client, org, repo, dry_run=dry_run, comments=comments
        )

    def _changed_files(self, number: int) -> list[str]:
        return self.client.list_pull_request_files(self.org, self.repo, number)

    def triage_event(self, event: Event, token: RunToken | None = None) -> list[ActionResult]:
        """Match one event and execute what matched."""
        if token is not None:
            token.raise_if_cancelled()

        match = self.matcher.match(event, self._changed_files)
        results = [
            ActionResult(
                rule_id=rule.id,
                target=event.target,
                action=rule.kind,
                outcome=ActionOutcome.FAILED,
                detail=self.executor.describe(rule, event),
                error=error,
            )
            for rule, error in match.errors
        ]
        rules = [m.rule for m in match.matches]
        results.extend(self.executor.execute(event, rules, token))
        return results

    def _triage_target(
        self, events: list[Event], token: RunToken | None
    ) -> list[ActionResult]:
        results: list[ActionResult] = []
        for event in events:
            results.extend(self.triage_event(event, token))
        return results

    def process(
        self, events: Sequence[Event], token: RunToken, trigger: str
    ) -> RunReport:
        """Triage a batch of events and report every action result.

        Raises:
            RunCancelled: If the run is cancelled before it finishes
        """
        report = RunReport(
            run_id=token.run_id,
            group=token.group,
            trigger=trigger,
            state=RunState.RUNNING,
            dry_run=self.dry_run,
            started_at=token.started_at,
        )

        by_target: dict[int, list[Event]] = {}
        for event in events:
            by_target.setdefault(event.target, []).append(event)

        logger.info(
            "Run %s: %d event(s) across %d target(s) from %s",
            token.run_id,
            len(events),
            len(by_target),
            trigger,
        )

        if len(by_target) <= 1 or self.max_workers <= 1:
            for target_events in by_target.values():
                report.results.extend(self._triage_target(target_events, token))
        else:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(by_target)),
                thread_name_prefix="triage-target",
            ) as pool:
                futures = [
                    pool.submit(self._triage_target, target_events, token)
                    for target_events in by_target.values()
                ]
                for future in futures:
                    report.results.extend(future.result())

        token.raise_if_cancelled()
        report.events_processed = len(events)
        report.state = RunState.COMPLETED
        report.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Run %s finished: %d applied, %d skipped, %d failed",
            token.run_id,
            report.count(ActionOutcome.APPLIED),
            report.count(ActionOutcome.SKIPPED),
            report.count(ActionOutcome.FAILED),
        )
        return report

    def webhook_job(
        self, event_name: str, payload: Mapping[str, Any]
    ) -> Callable[[RunToken], RunReport]:
        """Build a dispatcher job for one webhook delivery."""

        def job(token: RunToken) -> RunReport:
            events = self.adapter.normalize(event_name, payload)
            return self.process(events, token, trigger=f"webhook:{event_name}")

        return job

    def event_file_job(
        self, event_name: str, path: Path
    ) -> Callable[[RunToken], RunReport]:
        """Build a dispatcher job for a payload saved by the CI runner."""

        def job(token: RunToken) -> RunReport:
            events = self.adapter.from_event_file(event_name, path)
            return self.process(events, token, trigger=f"webhook:{event_name}")

        return job

    def schedule_job(self) -> Callable[[RunToken], RunReport]:
        """Build a dispatcher job for one timer fire."""

        def job(token: RunToken) -> RunReport:
            try:
                events = self.adapter.from_schedule(self.client, self.org, self.repo)
            except (TransientAPIError, ValueError, GithubException) as e:
                # A missing repository or bad credentials is recorded like throttling.
                logger.error("Scheduled scan could not list pull requests: %s", e)
                report = self.process([], token, trigger="schedule")
                report.errors.append(str(e))
                return report
            return self.process(events, token, trigger="schedule")

        return job

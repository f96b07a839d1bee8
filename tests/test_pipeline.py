"""Tests for complete triage runs."""

import threading
from unittest.mock import patch

import pytest
from github.GithubException import GithubException

from label_triage.actions.models import ActionOutcome
from label_triage.dispatch.scheduler import Dispatcher, RunCancelled, RunState, RunToken
from label_triage.events.models import Event, TriggerKind
from label_triage.pipeline import TriagePipeline
from label_triage.rules.models import RuleSet


@pytest.fixture
def pipeline(fake_api, rules: RuleSet) -> TriagePipeline:
    return TriagePipeline(fake_api, "bytecodealliance", "wasmtime", rules)


def labeled_payload(number: int, label: str, pull_request: bool = False) -> dict:
    issue: dict = {"number": number, "labels": [{"name": label}]}
    if pull_request:
        issue["pull_request"] = {}
    return {
        "action": "labeled",
        "issue": issue,
        "label": {"name": label},
        "repository": {"full_name": "bytecodealliance/wasmtime"},
        "sender": {"login": "maintainer"},
    }


class TestTriageEvent:
    """Test triage of single events."""

    def test_wasi_label_mentions_alice(self, pipeline, fake_api, label_added) -> None:
        """Issue 42 labeled wasi produces exactly one comment mentioning @alice."""
        results = pipeline.triage_event(label_added(42, "wasi"))

        assert len(results) == 1
        assert results[0].outcome is ActionOutcome.APPLIED
        assert len(fake_api.comments) == 1
        number, body = fake_api.comments[0]
        assert number == 42
        assert "@alice" in body

    def test_no_matching_rule_means_no_actions(self, pipeline, fake_api) -> None:
        """An event with no label added and no path match yields nothing."""
        fake_api.files[5] = ["README.md"]
        event = Event(target=5, kind=TriggerKind.SCHEDULED_SCAN, is_pull_request=True)

        assert pipeline.triage_event(event) == []
        assert fake_api.comments == []
        assert fake_api.added_labels == []

    def test_one_result_per_matching_rule(self, pipeline, fake_api, label_added) -> None:
        fake_api.files[17] = ["crates/wasi/src/lib.rs", "cranelift/codegen/lib.rs"]

        results = pipeline.triage_event(label_added(17, "cranelift", is_pull_request=True))

        assert [r.rule_id for r in results] == ["labeler:wasi", "subscribe:cranelift"]
        assert fake_api.added_labels == [(17, ["wasi"])]

    def test_file_listing_failure_is_reported(self, pipeline, fake_api) -> None:
        """Path rules that could not be evaluated are failed results."""
        fake_api.timeouts.add(("files", 5))
        event = Event(target=5, kind=TriggerKind.SCHEDULED_SCAN, is_pull_request=True)

        results = pipeline.triage_event(event)

        assert [r.rule_id for r in results] == ["labeler:wasi", "labeler:cranelift"]
        assert all(r.outcome is ActionOutcome.FAILED for r in results)
        assert "timed out" in results[0].error

    def test_timeout_only_fails_its_own_rule(self, pipeline, fake_api, label_added) -> None:
        """A timed-out label call does not stop the subscription comment."""
        fake_api.files[17] = ["crates/wasi/src/lib.rs"]
        fake_api.timeouts.add(("label", 17))

        results = pipeline.triage_event(label_added(17, "cranelift", is_pull_request=True))

        outcomes = {r.rule_id: r.outcome for r in results}
        assert outcomes == {
            "labeler:wasi": ActionOutcome.FAILED,
            "subscribe:cranelift": ActionOutcome.APPLIED,
        }
        assert len(fake_api.comments) == 1

    def test_same_event_twice_same_intended_actions(
        self, fake_api, rules, label_added
    ) -> None:
        """Replaying an event in dry-run mode plans the same actions."""
        pipeline = TriagePipeline(fake_api, "o", "r", rules, dry_run=True)
        fake_api.files[17] = ["crates/wasi/src/lib.rs"]
        event = label_added(17, "cranelift", is_pull_request=True)

        first = pipeline.triage_event(event)
        second = pipeline.triage_event(event)

        assert [(r.rule_id, r.detail) for r in first] == [
            (r.rule_id, r.detail) for r in second
        ]
        assert all(r.outcome is ActionOutcome.SKIPPED for r in first)


class TestProcess:
    """Test whole runs."""

    def test_report(self, pipeline, fake_api, label_added) -> None:
        token = RunToken(group="issue-triage")
        events = [label_added(42, "wasi"), label_added(3, "fuzz-bug")]

        report = pipeline.process(events, token, trigger="test")

        assert report.run_id == token.run_id
        assert report.group == "issue-triage"
        assert report.state is RunState.COMPLETED
        assert report.events_processed == 2
        assert report.count(ActionOutcome.APPLIED) == 2
        assert not report.has_failures
        assert report.finished_at is not None
        assert sorted(n for n, _ in fake_api.comments) == [3, 42]

    def test_targets_run_in_parallel(self, fake_api, rules, label_added) -> None:
        """Each target's events stay in order on one worker."""
        pipeline = TriagePipeline(fake_api, "o", "r", rules, max_workers=4)
        events = [label_added(n, "wasi") for n in range(1, 9)]

        report = pipeline.process(events, RunToken(group="g"), trigger="test")

        assert report.count(ActionOutcome.APPLIED) == 8
        assert sorted(n for n, _ in fake_api.comments) == list(range(1, 9))

    def test_events_for_one_target_keep_order(self, pipeline, fake_api, label_added) -> None:
        events = [label_added(42, "wasi"), label_added(42, "fuzz-bug")]

        report = pipeline.process(events, RunToken(group="g"), trigger="test")

        assert [r.rule_id for r in report.results] == ["subscribe:wasi", "message:fuzz-bug"]

    def test_cancelled_run_raises(self, pipeline, label_added) -> None:
        token = RunToken(group="g")
        token.cancel()

        with pytest.raises(RunCancelled):
            pipeline.process([label_added(42, "wasi")], token, trigger="test")

    def test_empty_run(self, pipeline) -> None:
        report = pipeline.process([], RunToken(group="g"), trigger="test")

        assert report.results == []
        assert report.state == "completed"


class TestJobs:
    """Test dispatcher jobs."""

    def test_webhook_job(self, pipeline, fake_api) -> None:
        job = pipeline.webhook_job("issues", labeled_payload(42, "wasi"))

        report = job(RunToken(group="g"))

        assert report.trigger == "webhook:issues"
        assert [r.rule_id for r in report.results] == ["subscribe:wasi"]

    def test_malformed_webhook_is_dropped(self, pipeline, fake_api) -> None:
        report = pipeline.webhook_job("issues", {"action": "labeled"})(
            RunToken(group="g")
        )

        assert report.events_processed == 0
        assert report.results == []

    def test_schedule_job_labels_open_pull_requests(
        self, pipeline, fake_api, make_pull
    ) -> None:
        fake_api.open_pulls = [make_pull(1), make_pull(2, labels=["wasi"]), make_pull(3)]
        fake_api.files = {
            1: ["crates/wasi/src/lib.rs"],
            2: ["crates/wasi/src/lib.rs"],
            3: ["docs/README.md"],
        }

        report = pipeline.schedule_job()(RunToken(group="g"))

        assert report.trigger == "schedule"
        assert report.events_processed == 3
        assert fake_api.added_labels == [(1, ["wasi"])]
        assert fake_api.comments == []

    def test_schedule_job_is_idempotent(self, pipeline, fake_api, make_pull) -> None:
        """A second scan after labels were applied does nothing."""
        fake_api.open_pulls = [make_pull(1)]
        fake_api.files = {1: ["crates/wasi/src/lib.rs"]}
        pipeline.schedule_job()(RunToken(group="g"))

        fake_api.open_pulls = [make_pull(1, labels=fake_api.labels[1])]
        report = pipeline.schedule_job()(RunToken(group="g"))

        assert report.results == []
        assert fake_api.added_labels == [(1, ["wasi"])]

    def test_schedule_job_listing_failure(self, pipeline, fake_api) -> None:
        fake_api.timeouts.add(("list_pulls", 0))

        report = pipeline.schedule_job()(RunToken(group="g"))

        assert report.results == []
        assert len(report.errors) == 1
        assert "Rate limit" in report.errors[0]

    def test_schedule_job_missing_repository(self, pipeline, fake_api) -> None:
        """A repository that cannot be found is a run-level error, not a crash."""
        with patch.object(
            fake_api,
            "list_open_pull_requests",
            side_effect=ValueError("Repository o/r not found"),
        ):
            report = pipeline.schedule_job()(RunToken(group="g"))

        assert report.state is RunState.COMPLETED
        assert report.results == []
        assert report.errors == ["Repository o/r not found"]

    def test_schedule_job_permission_error(self, pipeline, fake_api) -> None:
        with patch.object(
            fake_api,
            "list_open_pull_requests",
            side_effect=GithubException(403, {"message": "Resource not accessible"}, None),
        ):
            report = pipeline.schedule_job()(RunToken(group="g"))

        assert report.state is RunState.COMPLETED
        assert len(report.errors) == 1
        assert "403" in report.errors[0]


class TestDispatchedRuns:
    """Test runs going through a dispatcher."""

    def test_second_trigger_cancels_first_run(self, fake_api, rules) -> None:
        """Only the second run's results are observed."""
        pipeline = TriagePipeline(fake_api, "o", "r", rules)
        gate = threading.Event()
        fake_api.comment_gate = gate

        with Dispatcher() as dispatcher:
            first = dispatcher.start(
                "issue-triage",
                pipeline.webhook_job("issues", labeled_payload(42, "wasi")),
            )
            assert fake_api.comment_started.wait(timeout=5)

            fake_api.comment_gate = None
            second = dispatcher.start(
                "issue-triage",
                pipeline.webhook_job("issues", labeled_payload(43, "fuzz-bug")),
            )
            assert first.state is RunState.CANCELLED
            report = second.result(timeout=5)
            gate.set()

            with pytest.raises(RunCancelled):
                first.result(timeout=5)

        assert first.state is RunState.CANCELLED
        assert report.state == "completed"
        assert [(r.target, r.rule_id) for r in report.results] == [
            (43, "message:fuzz-bug")
        ]

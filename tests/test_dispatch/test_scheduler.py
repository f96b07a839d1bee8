"""Tests for concurrency groups and latest-wins cancellation."""

import threading

import pytest

from label_triage.dispatch.scheduler import (
    Dispatcher,
    GroupState,
    RunCancelled,
    RunState,
    RunToken,
)


@pytest.fixture
def dispatcher():
    with Dispatcher(max_concurrent_runs=4) as d:
        yield d


class BlockingJob:
    """Job that blocks until released, then honours its token."""

    def __init__(self, value: str):
        self.value = value
        self.started = threading.Event()
        self.release = threading.Event()
        self.token: RunToken | None = None

    def __call__(self, token: RunToken) -> str:
        self.token = token
        self.started.set()
        self.release.wait(timeout=5)
        token.raise_if_cancelled()
        return self.value


class TestRunToken:
    """Test the per-run cancellation flag."""

    def test_cancel(self) -> None:
        token = RunToken(group="issue-triage")

        assert not token.cancelled
        token.raise_if_cancelled()

        token.cancel()

        assert token.cancelled
        with pytest.raises(RunCancelled, match="issue-triage"):
            token.raise_if_cancelled()

    def test_run_ids_are_unique(self) -> None:
        assert RunToken(group="g").run_id != RunToken(group="g").run_id


class TestDispatcher:
    """Test run lifecycle and group exclusivity."""

    def test_run_returns_job_value(self, dispatcher: Dispatcher) -> None:
        assert dispatcher.run("issue-triage", lambda token: 42) == 42
        assert dispatcher.group_state("issue-triage") is GroupState.IDLE

    def test_job_receives_token_for_group(self, dispatcher: Dispatcher) -> None:
        token = dispatcher.run("issue-triage", lambda token: token)

        assert token.group == "issue-triage"

    def test_second_trigger_cancels_first(self, dispatcher: Dispatcher) -> None:
        """Two triggers in one group: the first is cancelled, the second wins."""
        first = BlockingJob("first")
        second = BlockingJob("second")
        second.release.set()

        first_handle = dispatcher.start("issue-triage", first)
        assert first.started.wait(timeout=5)
        assert dispatcher.group_state("issue-triage") is GroupState.RUNNING
        assert first_handle.state is RunState.RUNNING

        second_handle = dispatcher.start("issue-triage", second)
        assert first_handle.token.cancelled
        assert first_handle.state is RunState.CANCELLED

        first.release.set()

        assert second_handle.result(timeout=5) == "second"
        assert second_handle.state is RunState.COMPLETED
        with pytest.raises(RunCancelled):
            first_handle.result(timeout=5)
        assert first_handle.state is RunState.CANCELLED
        assert dispatcher.group_state("issue-triage") is GroupState.IDLE

    def test_completion_after_cancel_is_cancelled(self, dispatcher: Dispatcher) -> None:
        """A job that ignores its token still ends up cancelled."""
        started = threading.Event()
        release = threading.Event()

        def stubborn(token: RunToken) -> str:
            started.set()
            release.wait(timeout=5)
            return "stale"

        handle = dispatcher.start("issue-triage", stubborn)
        assert started.wait(timeout=5)
        later = dispatcher.start("issue-triage", lambda token: "fresh")
        release.set()

        assert handle.wait(timeout=5) is RunState.CANCELLED
        with pytest.raises(RunCancelled):
            handle.result(timeout=5)
        assert later.result(timeout=5) == "fresh"

    def test_error_after_cancel_is_not_failed(self, dispatcher: Dispatcher) -> None:
        """A superseded run that then raises still reports cancelled."""
        started = threading.Event()
        release = threading.Event()

        def crashing(token: RunToken) -> str:
            started.set()
            release.wait(timeout=5)
            raise RuntimeError("connection reset")

        handle = dispatcher.start("issue-triage", crashing)
        assert started.wait(timeout=5)
        dispatcher.start("issue-triage", lambda token: "fresh")
        assert handle.state is RunState.CANCELLED

        release.set()

        assert handle.wait(timeout=5) is RunState.CANCELLED

    def test_groups_are_independent(self, dispatcher: Dispatcher) -> None:
        """Runs in different groups never cancel each other."""
        job = BlockingJob("scan")
        handle = dispatcher.start("scan", job)
        assert job.started.wait(timeout=5)

        assert dispatcher.run("labels", lambda token: "labels") == "labels"
        assert not handle.token.cancelled

        job.release.set()
        assert handle.result(timeout=5) == "scan"

    def test_failed_job(self, dispatcher: Dispatcher) -> None:
        def broken(token: RunToken) -> None:
            raise RuntimeError("boom")

        handle = dispatcher.start("issue-triage", broken)

        assert handle.wait(timeout=5) is RunState.FAILED
        with pytest.raises(RuntimeError, match="boom"):
            handle.result()
        assert dispatcher.group_state("issue-triage") is GroupState.IDLE

    def test_active_run(self, dispatcher: Dispatcher) -> None:
        job = BlockingJob("x")
        handle = dispatcher.start("issue-triage", job)
        assert job.started.wait(timeout=5)

        assert dispatcher.active_run("issue-triage") is handle

        job.release.set()
        handle.wait(timeout=5)
        assert dispatcher.active_run("issue-triage") is None

    def test_dispatchers_do_not_share_state(self) -> None:
        job = BlockingJob("x")
        with Dispatcher() as one, Dispatcher() as two:
            handle = one.start("issue-triage", job)
            assert job.started.wait(timeout=5)

            assert two.group_state("issue-triage") is GroupState.IDLE
            assert two.run("issue-triage", lambda token: 1) == 1
            assert not handle.token.cancelled

            job.release.set()
            assert handle.result(timeout=5) == "x"

    def test_shutdown_cancels_active_runs(self) -> None:
        job = BlockingJob("x")
        dispatcher = Dispatcher()
        handle = dispatcher.start("issue-triage", job)
        assert job.started.wait(timeout=5)

        job.release.set()
        dispatcher.shutdown()

        assert handle.state in {RunState.CANCELLED, RunState.COMPLETED}

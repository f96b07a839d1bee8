"""Concurrency groups with latest-wins cancellation.

A run belongs to a named concurrency group. Starting a run while another
run of the same group is still active cancels the active one immediately
instead of queueing behind it. Triage is idempotent, so the newest run
re-derives everything the cancelled one would have done.

Cancellation is cooperative: each run receives a ``RunToken`` and checks it
between actions. Nothing already applied is rolled back.
"""

import logging
import threading
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as futures_wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class GroupState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RunCancelled(Exception):
    """Raised inside a job when its token has been cancelled."""


@dataclass
class RunToken:
    """Identity and cancellation flag of one run."""

    group: str
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RunCancelled(f"Run {self.run_id} in group {self.group!r} was cancelled")


class RunHandle(Generic[T]):
    """A started run. ``result()`` blocks until it finishes."""

    def __init__(self, token: RunToken, future: "Future[T]"):
        self.token = token
        self._future = future
        self._state = RunState.PENDING
        self._lock = threading.Lock()

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    def _set_state(self, state: RunState) -> None:
        # Cancelled is final; a late finish must not report the run as running
        # or completed.
        with self._lock:
            if self._state is not RunState.CANCELLED:
                self._state = state

    def _cancel(self) -> None:
        with self._lock:
            if self._state in (RunState.PENDING, RunState.RUNNING):
                self._state = RunState.CANCELLED
            self.token.cancel()

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: float | None = None) -> RunState:
        """Wait for the run to finish and return its final state."""
        futures_wait([self._future], timeout=timeout)
        return self.state

    def result(self, timeout: float | None = None) -> T:
        """Return the job's value.

        Raises:
            RunCancelled: If the run was cancelled before it finished
        """
        value = self._future.result(timeout=timeout)
        if self.state is RunState.CANCELLED:
            raise RunCancelled(
                f"Run {self.token.run_id} in group {self.token.group!r} was cancelled"
            )
        return value


Job = Callable[[RunToken], T]


class Dispatcher:
    """Runs jobs so that at most one run per concurrency group is active.

    Group bookkeeping lives on the instance; two dispatchers never share
    state.
    """

    def __init__(self, max_concurrent_runs: int = 4):
        self._pool = ThreadPoolExecutor(
            max_workers=max_concurrent_runs, thread_name_prefix="triage-run"
        )
        self._lock = threading.Lock()
        self._active: dict[str, RunHandle] = {}

    def group_state(self, group: str) -> GroupState:
        with self._lock:
            return GroupState.RUNNING if group in self._active else GroupState.IDLE

    def active_run(self, group: str) -> RunHandle | None:
        with self._lock:
            return self._active.get(group)

    def start(self, group: str, job: "Job[T]") -> "RunHandle[T]":
        """Start ``job`` in ``group``, cancelling whatever run is active there."""
        token = RunToken(group=group)
        started = threading.Event()
        holder: list[RunHandle[T]] = []

        def runner() -> T:
            started.wait()
            handle = holder[0]
            if token.cancelled:
                handle._set_state(RunState.CANCELLED)
                self._release(group, handle)
                raise RunCancelled(f"Run {token.run_id} cancelled before it started")

            handle._set_state(RunState.RUNNING)
            try:
                value = job(token)
            except RunCancelled:
                handle._set_state(RunState.CANCELLED)
                raise
            except Exception:
                handle._set_state(RunState.FAILED)
                if handle.state is RunState.FAILED:
                    logger.exception("Run %s in group %r failed", token.run_id, group)
                raise
            else:
                handle._set_state(
                    RunState.CANCELLED if token.cancelled else RunState.COMPLETED
                )
                return value
            finally:
                self._release(group, handle)

        with self._lock:
            previous = self._active.get(group)
            if previous is not None:
                logger.info(
                    "Cancelling run %s in group %r in favour of run %s",
                    previous.token.run_id,
                    group,
                    token.run_id,
                )
                previous._cancel()
            handle: RunHandle[T] = RunHandle(token, self._pool.submit(runner))
            holder.append(handle)
            self._active[group] = handle

        started.set()
        logger.debug("Started run %s in group %r", token.run_id, group)
        return handle

    def run(self, group: str, job: "Job[T]") -> T:
        """Start ``job`` and block until it finishes."""
        return self.start(group, job).result()

    def _release(self, group: str, handle: RunHandle) -> None:
        with self._lock:
            if self._active.get(group) is handle:
                del self._active[group]

    def shutdown(self, cancel_active: bool = True) -> None:
        if cancel_active:
            with self._lock:
                for handle in self._active.values():
                    handle._cancel()
        self._pool.shutdown(wait=True)

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

"""Run scheduling with per-group cancellation."""

from .scheduler import (
    Dispatcher,
    GroupState,
    RunCancelled,
    RunHandle,
    RunState,
    RunToken,
)

__all__ = [
    "Dispatcher",
    "GroupState",
    "RunCancelled",
    "RunHandle",
    "RunState",
    "RunToken",
]

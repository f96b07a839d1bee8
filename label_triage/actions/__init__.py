"""Execution of matched rules."""

from .comments import CommentGenerator, render_template
from .executor import ActionExecutor
from .models import ActionOutcome, ActionResult, RunReport

__all__ = [
    "ActionExecutor",
    "ActionOutcome",
    "ActionResult",
    "CommentGenerator",
    "RunReport",
    "render_template",
]

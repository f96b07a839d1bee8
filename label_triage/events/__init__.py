"""Trigger normalization."""

from .adapter import EventSourceAdapter
from .models import Event, TriggerKind

__all__ = ["Event", "EventSourceAdapter", "TriggerKind"]

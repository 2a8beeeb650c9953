"""Event exports."""

from .bus import EventBus, EventHandler
from .types import AttackEvent, EventType

__all__ = ["AttackEvent", "EventBus", "EventHandler", "EventType"]

"""Event bus with sequence assignment."""

from __future__ import annotations

import random
import uuid
from typing import Callable

from .types import AttackEvent, EventType


EventHandler = Callable[[AttackEvent], None]


class EventBus:
    """Simple in-process pub/sub event bus."""

    VALID_EVENT_ID_MODES = {"deterministic", "random", "seeded_random"}

    def __init__(
        self,
        *,
        event_id_mode: str = "deterministic",
        event_id_seed: int | None = None,
    ) -> None:
        mode = event_id_mode.lower().strip()
        if mode not in self.VALID_EVENT_ID_MODES:
            raise ValueError(f"unknown event id mode {event_id_mode}")
        self._handlers: list[EventHandler] = []
        self._seq = 0
        self._event_id_mode = mode
        self._rng = random.Random(event_id_seed)

    def subscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            return
        self._handlers.append(handler)

    def _next_event_id(self) -> str:
        if self._event_id_mode == "random":
            return str(uuid.uuid4())
        if self._event_id_mode == "seeded_random":
            value = self._rng.getrandbits(128)
            return f"{value:032x}"
        return f"evt-{self._seq:08d}"

    def publish(
        self,
        *,
        event_type: EventType,
        time: float,
        correlation_id: str,
        target_id: str | None = None,
        node_id: str | None = None,
        op: str | None = None,
        threads: int | None = None,
        stage: str | None = None,
        payload: dict | None = None,
    ) -> AttackEvent:
        event = AttackEvent(
            event_id=self._next_event_id(),
            seq=self._seq,
            correlation_id=correlation_id,
            time=max(0.0, time),
            type=event_type,
            target_id=target_id,
            node_id=node_id,
            op=op,
            threads=threads,
            stage=stage,
            payload=payload or {},
        )
        self._seq += 1
        for handler in list(self._handlers):
            handler(event)
        return event

    def reset(self) -> None:
        self._seq = 0
        self._handlers.clear()

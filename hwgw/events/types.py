"""Attack event definitions."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    PASS_STARTED = "PassStarted"
    STAGE_ENTERED = "StageEntered"
    JOB_ISSUED = "JobIssued"
    INSUFFICIENT_CAPACITY = "InsufficientCapacity"
    LAUNCH_REJECTED = "LaunchRejected"
    PASS_COMPLETED = "PassCompleted"
    TARGET_CHANGED = "TargetChanged"
    INVALID_TARGET = "InvalidTarget"
    SERVER_ROOTED = "ServerRooted"
    CAPACITY_ACQUIRED = "CapacityAcquired"
    LOOP_STOPPED = "LoopStopped"


class AttackEvent(BaseModel):
    """Normalized event envelope for tracing and metrics."""

    model_config = ConfigDict(extra="forbid")

    event_id: str
    seq: int = Field(ge=0)
    correlation_id: str
    time: float = Field(ge=0)
    type: EventType
    target_id: Optional[str] = None
    node_id: Optional[str] = None
    op: Optional[str] = None
    threads: Optional[int] = None
    stage: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False)

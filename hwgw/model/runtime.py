"""Runtime types shared across the scheduler, orchestrator and backends."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from hwgw.errors import InsufficientCapacityError


CAPACITY_EPSILON = 1e-9


class OpType(str, Enum):
    WEAKEN = "weaken"
    GROW = "grow"
    HACK = "hack"


class Stage(str, Enum):
    """Dominant phase of a scheduling pass, in cascade order."""

    WEAKEN = "weaken"
    GROW = "grow"
    HACK = "hack"

    @property
    def order(self) -> int:
        return _STAGE_ORDER[self]


_STAGE_ORDER = {Stage.WEAKEN: 0, Stage.GROW: 1, Stage.HACK: 2}


@dataclass(frozen=True, slots=True)
class TargetState:
    """Observed or projected state of the attacked server.

    Security never drops below its minimum and money stays within
    ``[1, money_max]`` so ratio math downstream never divides by zero.
    """

    target_id: str
    security_current: float
    security_min: float
    money_current: float
    money_max: float
    hack_time: float
    grow_time: float
    weaken_time: float
    hack_steal_fraction: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "security_current", max(self.security_min, self.security_current))
        money_max = max(1.0, float(self.money_max))
        object.__setattr__(self, "money_max", money_max)
        object.__setattr__(self, "money_current", min(money_max, max(1.0, float(self.money_current))))

    @property
    def security_excess(self) -> float:
        return max(0.0, self.security_current - self.security_min)

    @property
    def money_ratio(self) -> float:
        return self.money_current / self.money_max

    def op_time(self, op: OpType) -> float:
        if op == OpType.HACK:
            return self.hack_time
        if op == OpType.GROW:
            return self.grow_time
        return self.weaken_time

    def evolve(self, **changes: float) -> "TargetState":
        return replace(self, **changes)


@dataclass(slots=True)
class ResourceNode:
    """One worker node borrowed by the scheduler for a single allocation decision."""

    node_id: str
    capacity_total: float
    capacity_used: float = 0.0

    @classmethod
    def observe(
        cls,
        node_id: str,
        total: float,
        free: float,
        *,
        reserved: float = 0.0,
        limit: Optional[float] = None,
    ) -> "ResourceNode":
        capacity_total = max(0.0, float(total))
        if limit is not None:
            capacity_total = min(capacity_total, limit)
        available = min(max(0.0, float(free)), capacity_total)
        used = capacity_total - available + max(0.0, reserved)
        return cls(node_id=node_id, capacity_total=capacity_total, capacity_used=min(used, capacity_total))

    @property
    def capacity_free(self) -> float:
        return max(0.0, self.capacity_total - self.capacity_used)

    def can_fit(self, cost: float) -> bool:
        return cost <= self.capacity_free + CAPACITY_EPSILON

    def reserve(self, cost: float) -> None:
        if not self.can_fit(cost):
            raise InsufficientCapacityError(self.node_id, cost, self.capacity_free)
        self.capacity_used = min(self.capacity_total, self.capacity_used + cost)


@dataclass(frozen=True, slots=True)
class Job:
    """One planned or issued operation."""

    op: OpType
    threads: int
    node_id: str
    target_id: str
    start_delay: float
    planned_duration: float
    correlation_id: str
    stage: Stage
    step: str = ""
    batch: Optional[int] = None
    cost: float = 0.0

    @property
    def end_time(self) -> float:
        return self.start_delay + self.planned_duration

    def to_dict(self) -> dict:
        return {
            "correlation_id": self.correlation_id,
            "op": self.op.value,
            "threads": self.threads,
            "node_id": self.node_id,
            "target_id": self.target_id,
            "start_delay": self.start_delay,
            "planned_duration": self.planned_duration,
            "end_time": self.end_time,
            "stage": self.stage.value,
            "step": self.step,
            "batch": self.batch,
            "cost": self.cost,
        }


@dataclass(frozen=True, slots=True)
class BatchPlan:
    """Working budget of one pass."""

    stage: Stage
    remaining_weaken_threads: int = 0
    remaining_grow_threads: int = 0
    remaining_batches: int = 0
    virtual_duration: float = 0.0

    def advance(self, stage: Stage, **budget: int) -> "BatchPlan":
        if stage.order < self.stage.order:
            raise ValueError(f"stage cannot move back from {self.stage.value} to {stage.value}")
        return replace(self, stage=stage, **budget)

    def consume(self, *, weaken: int = 0, grow: int = 0, batches: int = 0) -> "BatchPlan":
        return replace(
            self,
            remaining_weaken_threads=max(0, self.remaining_weaken_threads - weaken),
            remaining_grow_threads=max(0, self.remaining_grow_threads - grow),
            remaining_batches=max(0, self.remaining_batches - batches),
        )

    def extend(self, end_time: float) -> "BatchPlan":
        if end_time <= self.virtual_duration:
            return self
        return replace(self, virtual_duration=end_time)

"""Scheduler interfaces and the immutable pass context."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from hwgw.core import ICapacityQuery, IJobLauncher
from hwgw.core import effects
from hwgw.core.effects import GrowthFn
from hwgw.events import EventBus
from hwgw.model import BatchPlan, Job, OpType, ResourceNode, SchedulerParams, Stage, TargetState


@dataclass(slots=True)
class PassEnv:
    """Read-only collaborators a phase handler consults while planning."""

    nodes: Sequence[str]
    capacity: ICapacityQuery
    growth: GrowthFn
    params: SchedulerParams

    def visit(self, ctx: "PassContext", node_id: str) -> ResourceNode:
        # Re-read authoritative capacity and subtract what this pass already planned there.
        total, free = self.capacity.get_capacity(node_id)
        return ResourceNode.observe(
            node_id,
            total,
            free,
            reserved=ctx.reserved.get(node_id, 0.0),
            limit=self.params.max_node_capacity,
        )


@dataclass(frozen=True, slots=True)
class PassContext:
    """Working state of one pass, threaded through the phase handlers.

    Handlers never mutate a context; ``issue`` and friends return a new one.
    """

    pass_id: str
    target: TargetState
    plan: BatchPlan
    stages: tuple[Stage, ...] = ()
    jobs: tuple[Job, ...] = ()
    reserved: dict[str, float] = field(default_factory=dict)
    floor_duration: float = 0.0
    next_batch: int = 0

    def enter(self, stage: Stage, **budget: int) -> "PassContext":
        return replace(self, plan=self.plan.advance(stage, **budget), stages=self.stages + (stage,))

    def with_floor(self, duration: float) -> "PassContext":
        return replace(
            self,
            floor_duration=max(self.floor_duration, duration),
            plan=self.plan.extend(duration),
        )

    def consume(self, **budget: int) -> "PassContext":
        return replace(self, plan=self.plan.consume(**budget))

    def project(self, op: OpType, threads: int, *, grow_threads_needed: Optional[int] = None) -> "PassContext":
        target = effects.apply(self.target, op, threads, grow_threads_needed=grow_threads_needed)
        return replace(self, target=target)

    def take_batch(self) -> tuple[int, "PassContext"]:
        return self.next_batch, replace(self, next_batch=self.next_batch + 1)

    def issue(
        self,
        node: ResourceNode,
        op: OpType,
        threads: int,
        start_delay: float,
        *,
        step: str,
        batch: Optional[int] = None,
    ) -> "PassContext":
        """Plan one job on ``node``; reserves its capacity on the borrowed node."""
        if threads < 1:
            raise ValueError(f"job on {node.node_id} needs at least one thread, got {threads}")
        cost = effects.op_cost(op, threads)
        node.reserve(cost)
        job = Job(
            op=op,
            threads=threads,
            node_id=node.node_id,
            target_id=self.target.target_id,
            start_delay=max(0.0, start_delay),
            planned_duration=self.target.op_time(op),
            correlation_id=f"{self.pass_id}:{len(self.jobs):04d}",
            stage=self.plan.stage,
            step=step,
            batch=batch,
            cost=cost,
        )
        reserved = dict(self.reserved)
        reserved[node.node_id] = reserved.get(node.node_id, 0.0) + cost
        return replace(
            self,
            jobs=self.jobs + (job,),
            reserved=reserved,
            plan=self.plan.extend(job.end_time),
        )


@dataclass(frozen=True, slots=True)
class PassPlan:
    """Pure planning output; nothing has been launched yet."""

    pass_id: str
    target_id: str
    entry_stage: Stage
    stages: tuple[Stage, ...]
    jobs: tuple[Job, ...]
    projected: TargetState
    floor_duration: float
    virtual_duration: float

    def threads_by_op(self) -> dict[str, int]:
        totals = {op.value: 0 for op in OpType}
        for job in self.jobs:
            totals[job.op.value] += job.threads
        return totals


@dataclass(slots=True)
class PassResult:
    plan: PassPlan
    launched: list[Job]
    rejected: list[Job]
    skipped: list[Job]
    duration: float

    @property
    def pass_id(self) -> str:
        return self.plan.pass_id


class IScheduler(ABC):
    """Scheduling interface used by the orchestrator."""

    @abstractmethod
    def plan(
        self,
        target: TargetState,
        nodes: Sequence[str],
        capacity: ICapacityQuery,
        growth: GrowthFn,
        *,
        bound_sec: float,
        bound_money: float,
        withheld: dict[str, float] | None = None,
        pass_id: str = "pass-0000",
    ) -> PassPlan:
        """Compute a full pass without side effects."""

    @abstractmethod
    def execute(
        self,
        plan: PassPlan,
        launcher: IJobLauncher,
        capacity: ICapacityQuery,
        *,
        bus: EventBus | None = None,
        now: float = 0.0,
    ) -> PassResult:
        """Launch the planned jobs; the only step with side effects."""

"""Weaken/grow/hack cascade scheduler."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from hwgw.core import ICapacityQuery, IJobLauncher
from hwgw.core import effects
from hwgw.core.effects import GrowthFn
from hwgw.errors import LaunchRejectedError
from hwgw.events import EventBus, EventType
from hwgw.model import CAPACITY_EPSILON, BatchPlan, Job, SchedulerParams, Stage, TargetState

from .base import IScheduler, PassContext, PassEnv, PassPlan, PassResult
from .phases import PhaseResult, grow_phase, hack_phase, weaken_phase


logger = logging.getLogger(__name__)

PhaseHandler = Callable[[PassContext, PassEnv], PhaseResult]


class BatchScheduler(IScheduler):
    """Plan a pass in three stages and cascade leftover capacity forward.

    ``plan`` is pure: it reads capacity but never launches. ``execute``
    interprets the plan against a launcher and reports every outcome.
    """

    HANDLERS: dict[Stage, PhaseHandler] = {
        Stage.WEAKEN: weaken_phase,
        Stage.GROW: grow_phase,
        Stage.HACK: hack_phase,
    }
    CASCADE: dict[Stage, Optional[Stage]] = {
        Stage.WEAKEN: Stage.GROW,
        Stage.GROW: Stage.HACK,
        Stage.HACK: None,
    }

    def __init__(self, params: SchedulerParams | dict | None = None, *, name: str = "hwgw") -> None:
        if isinstance(params, SchedulerParams):
            self._params = params
        else:
            self._params = SchedulerParams.model_validate(params or {})
        self.name = name

    @property
    def params(self) -> SchedulerParams:
        return self._params

    @staticmethod
    def select_stage(target: TargetState, bound_sec: float, bound_money: float) -> Stage:
        if target.security_current > target.security_min + bound_sec + CAPACITY_EPSILON:
            return Stage.WEAKEN
        if target.money_current < target.money_max * bound_money:
            return Stage.GROW
        return Stage.HACK

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
        entry = self.select_stage(target, bound_sec, bound_money)
        env = PassEnv(nodes=list(nodes), capacity=capacity, growth=growth, params=self._params)
        ctx = PassContext(
            pass_id=pass_id,
            target=target,
            plan=BatchPlan(stage=entry),
            reserved={node_id: amount for node_id, amount in (withheld or {}).items() if amount > 0},
        )

        stage: Optional[Stage] = entry
        while stage is not None:
            ctx, leftover = self.HANDLERS[stage](ctx, env)
            stage = self.CASCADE[stage] if leftover else None

        logger.debug(
            "planned %s for %s: stages=%s jobs=%d virtual_duration=%.1f",
            pass_id,
            target.target_id,
            "/".join(item.value for item in ctx.stages),
            len(ctx.jobs),
            ctx.plan.virtual_duration,
        )
        return PassPlan(
            pass_id=pass_id,
            target_id=target.target_id,
            entry_stage=entry,
            stages=ctx.stages,
            jobs=ctx.jobs,
            projected=ctx.target,
            floor_duration=ctx.floor_duration,
            virtual_duration=ctx.plan.virtual_duration,
        )

    def execute(
        self,
        plan: PassPlan,
        launcher: IJobLauncher,
        capacity: ICapacityQuery,
        *,
        bus: EventBus | None = None,
        now: float = 0.0,
    ) -> PassResult:
        launched: list[Job] = []
        rejected: list[Job] = []
        skipped: list[Job] = []

        for stage in plan.stages:
            self._publish(bus, EventType.STAGE_ENTERED, now, plan.pass_id, plan, stage=stage.value)

        for job in plan.jobs:
            _, free = capacity.get_capacity(job.node_id)
            if job.cost > free + CAPACITY_EPSILON:
                logger.warning(
                    "skipping %s x%d on %s: needs %.2f, %.2f free",
                    job.op.value,
                    job.threads,
                    job.node_id,
                    job.cost,
                    free,
                )
                skipped.append(job)
                self._publish_job(bus, EventType.INSUFFICIENT_CAPACITY, now, job, {"available": free})
                continue

            reason = "launcher returned no handle"
            try:
                handle = launcher.launch(job.node_id, job.op, job.threads, job.target_id, job.start_delay)
            except LaunchRejectedError as exc:
                handle = None
                reason = str(exc)
            if handle is None:
                logger.warning("launch rejected for %s: %s", job.correlation_id, reason)
                rejected.append(job)
                self._publish_job(bus, EventType.LAUNCH_REJECTED, now, job, {"reason": reason})
                continue

            launched.append(job)
            self._publish_job(bus, EventType.JOB_ISSUED, now, job, {"handle": str(handle)})

        duration = max([plan.floor_duration] + [job.end_time for job in launched])
        self._publish(
            bus,
            EventType.PASS_COMPLETED,
            now,
            plan.pass_id,
            plan,
            payload={
                "launched": len(launched),
                "rejected": len(rejected),
                "skipped": len(skipped),
                "duration": duration,
            },
        )
        logger.info(
            "%s on %s: launched=%d rejected=%d skipped=%d duration=%.1f",
            plan.pass_id,
            plan.target_id,
            len(launched),
            len(rejected),
            len(skipped),
            duration,
        )
        return PassResult(plan=plan, launched=launched, rejected=rejected, skipped=skipped, duration=duration)

    def run_pass(
        self,
        target: TargetState,
        nodes: Sequence[str],
        capacity: ICapacityQuery,
        launcher: IJobLauncher,
        growth: GrowthFn,
        *,
        bound_sec: float,
        bound_money: float,
        withheld: dict[str, float] | None = None,
        pass_id: str = "pass-0000",
        bus: EventBus | None = None,
        now: float = 0.0,
    ) -> PassResult:
        plan = self.plan(
            target,
            nodes,
            capacity,
            growth,
            bound_sec=bound_sec,
            bound_money=bound_money,
            withheld=withheld,
            pass_id=pass_id,
        )
        return self.execute(plan, launcher, capacity, bus=bus, now=now)

    @staticmethod
    def _publish(
        bus: EventBus | None,
        event_type: EventType,
        now: float,
        correlation_id: str,
        plan: PassPlan,
        *,
        stage: str | None = None,
        payload: dict | None = None,
    ) -> None:
        if bus is None:
            return
        bus.publish(
            event_type=event_type,
            time=now,
            correlation_id=correlation_id,
            target_id=plan.target_id,
            stage=stage,
            payload=payload,
        )

    @staticmethod
    def _publish_job(bus: EventBus | None, event_type: EventType, now: float, job: Job, extra: dict) -> None:
        if bus is None:
            return
        payload = {
            "start_delay": job.start_delay,
            "duration": job.planned_duration,
            "cost": effects.op_cost(job.op, job.threads),
            "step": job.step,
            "batch": job.batch,
        }
        payload.update(extra)
        bus.publish(
            event_type=event_type,
            time=now,
            correlation_id=job.correlation_id,
            target_id=job.target_id,
            node_id=job.node_id,
            op=job.op.value,
            threads=job.threads,
            stage=job.stage.value,
            payload=payload,
        )

"""Stage handlers.

Each handler is a reducer: it takes a ``PassContext`` and returns the next
context plus a flag telling whether any node still had capacity left once
the stage's own demand was served. That flag drives the cascade
WEAKEN -> GROW -> HACK within a single pass.

Landing order rules:

* GROW: grow lands one tick before its counter-weaken, weaken lands last.
* HACK: ``H < W1 < G < W2``, one tick apart, batches ``batch_offset`` apart.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Optional

from hwgw.core import effects
from hwgw.model import BatchSizing, OpType, ResourceNode, Stage, TargetState

from .base import PassContext, PassEnv


PhaseResult = tuple[PassContext, bool]


@dataclass(frozen=True, slots=True)
class BatchShape:
    """Thread counts of one HWGW batch."""

    hack: int
    weaken_hack: int
    grow: int
    weaken_grow: int

    @classmethod
    def balanced(cls, hack: int, grow: int) -> "BatchShape":
        return cls(
            hack=hack,
            weaken_hack=max(1, effects.weaken_threads_to_offset_hack(hack)),
            grow=grow,
            weaken_grow=max(1, effects.weaken_threads_to_offset_grow(grow)),
        )

    @property
    def cost(self) -> float:
        return (
            effects.op_cost(OpType.HACK, self.hack)
            + effects.op_cost(OpType.WEAKEN, self.weaken_hack + self.weaken_grow)
            + effects.op_cost(OpType.GROW, self.grow)
        )


def _fit(capacity_free: float, cost: float) -> int:
    if cost <= 0 or capacity_free <= 0:
        return 0
    return max(0, math.floor(round(capacity_free / cost, 9)))


def _has_leftover(node: ResourceNode, next_stage_cost: float) -> bool:
    """Whether ``node`` could still serve the smallest unit of the next stage."""
    return node.can_fit(next_stage_cost)


def split_grow(threads: int, grow_weaken_ratio: float) -> tuple[int, int]:
    """Split ``threads`` into ``(grow, weaken)`` with grow taking the larger share."""
    weaken = math.ceil(threads / (grow_weaken_ratio + 1))
    grow = threads - weaken
    needed = effects.weaken_threads_to_offset_grow(grow)
    if weaken < needed:
        weaken = needed
        grow = threads - weaken
    return grow, weaken


def weaken_phase(ctx: PassContext, env: PassEnv) -> PhaseResult:
    needed = effects.weaken_threads_for(ctx.target.security_excess)
    ctx = ctx.enter(Stage.WEAKEN, remaining_weaken_threads=needed)
    ctx = ctx.with_floor(ctx.target.weaken_time + env.params.slack)

    leftover = False
    for node_id in env.nodes:
        node = env.visit(ctx, node_id)
        remaining = ctx.plan.remaining_weaken_threads
        max_threads = effects.threads_that_fit(node.capacity_free, OpType.WEAKEN)
        if remaining > 0 and max_threads > 0:
            threads = min(max_threads, remaining)
            ctx = ctx.issue(node, OpType.WEAKEN, threads, 0.0, step="W")
            ctx = ctx.project(OpType.WEAKEN, threads).consume(weaken=threads)
        if _has_leftover(node, effects.GROW_PAIR_COST):
            leftover = True
    return ctx, leftover


def grow_phase(ctx: PassContext, env: PassEnv) -> PhaseResult:
    """Issue grow/weaken pairs, the counter-weaken landing one tick after its grow.

    After a WEAKEN cascade the first counter-weaken lands exactly when the
    pass's initial weaken window closes. A node with room for a single
    thread gets nothing, since one thread cannot be split into a pair.
    """
    target = ctx.target
    tick = env.params.tick
    needed = effects.grow_threads_to_reach_max(target.money_current, target.money_max, env.growth)
    ctx = ctx.enter(Stage.GROW, remaining_grow_threads=needed)

    # Counter-weaken landing; never earlier than a grow started right now could allow.
    land = max(ctx.plan.virtual_duration, target.grow_time + tick, target.weaken_time)

    leftover = False
    for node_id in env.nodes:
        node = env.visit(ctx, node_id)
        remaining = ctx.plan.remaining_grow_threads
        max_threads = effects.threads_that_fit(node.capacity_free, OpType.GROW)
        if remaining > 0 and max_threads >= 2:
            threads = min(max_threads, remaining + effects.weaken_threads_to_offset_grow(remaining))
            grow, weaken = split_grow(threads, env.params.grow_weaken_ratio)
            if grow > 0 and weaken > 0:
                ctx = ctx.issue(node, OpType.GROW, grow, land - tick - target.grow_time, step="G")
                ctx = ctx.project(OpType.GROW, grow, grow_threads_needed=remaining)
                ctx = ctx.issue(node, OpType.WEAKEN, weaken, land - target.weaken_time, step="W")
                ctx = ctx.project(OpType.WEAKEN, weaken).consume(grow=grow)
                land += 2 * tick
        if _has_leftover(node, effects.SIMPLE_TRIPLE_COST):
            leftover = True
    return ctx, leftover


def steal_shape(target: TargetState, env: PassEnv) -> Optional[BatchShape]:
    params = env.params
    hack = effects.hack_threads_for_fraction(params.steal_fraction, target.hack_steal_fraction)
    if hack <= 0:
        return None
    grow = max(1, effects.grow_threads_for_multiplier(1 / (1 - params.steal_fraction), env.growth))
    return BatchShape.balanced(hack, grow)


def ratio_shape(target: TargetState, env: PassEnv, capacity_free: float) -> Optional[BatchShape]:
    params = env.params
    if target.hack_steal_fraction <= 0:
        return None
    base = BatchShape.balanced(params.hack_ratio, params.grow_ratio)
    hack_cap = effects.hack_threads_for_fraction(params.steal_fraction, target.hack_steal_fraction)
    scale = min(_fit(capacity_free, base.cost), max(1, hack_cap // params.hack_ratio))
    if scale < 1:
        return None
    return BatchShape.balanced(params.hack_ratio * scale, params.grow_ratio * scale)


def hack_anchor(ctx: PassContext, tick: float) -> float:
    """Landing time of the first hack in this stage.

    The lower bound keeps every step's start delay non-negative, for HWGW
    batches and for the simple H-G-W fallback alike.
    """
    target = ctx.target
    earliest = max(target.hack_time, target.grow_time - tick, target.weaken_time - tick)
    if ctx.plan.virtual_duration > 0:
        return max(earliest, ctx.plan.virtual_duration + tick)
    return earliest


def batch_landing(anchor: float, batch: int, per_cycle: int, batch_offset: float, tick: float) -> float:
    cycle = batch // per_cycle
    return anchor + batch * batch_offset + cycle * tick


def _issue_steps(
    ctx: PassContext,
    env: PassEnv,
    node: ResourceNode,
    steps: tuple[tuple[OpType, int, float, str], ...],
    batch: int,
) -> PassContext:
    for op, threads, lands_at, label in steps:
        grow_needed = None
        if op == OpType.GROW:
            grow_needed = effects.grow_threads_to_reach_max(
                ctx.target.money_current, ctx.target.money_max, env.growth
            )
        ctx = ctx.issue(node, op, threads, lands_at - ctx.target.op_time(op), step=label, batch=batch)
        ctx = ctx.project(op, threads, grow_threads_needed=grow_needed)
    return ctx


def issue_hwgw(
    ctx: PassContext,
    env: PassEnv,
    node: ResourceNode,
    shape: BatchShape,
    land: float,
    batch: int,
) -> PassContext:
    tick = env.params.tick
    steps = (
        (OpType.HACK, shape.hack, land, "H"),
        (OpType.WEAKEN, shape.weaken_hack, land + tick, "W1"),
        (OpType.GROW, shape.grow, land + 2 * tick, "G"),
        (OpType.WEAKEN, shape.weaken_grow, land + 3 * tick, "W2"),
    )
    return _issue_steps(ctx, env, node, steps, batch)


def issue_simple_triple(
    ctx: PassContext,
    env: PassEnv,
    node: ResourceNode,
    threads: int,
    land: float,
    batch: int,
) -> PassContext:
    tick = env.params.tick
    steps = (
        (OpType.HACK, threads, land, "H"),
        (OpType.GROW, threads, land + tick, "G"),
        (OpType.WEAKEN, threads, land + 2 * tick, "W"),
    )
    return _issue_steps(ctx, env, node, steps, batch)


def hack_phase(ctx: PassContext, env: PassEnv) -> PhaseResult:
    params = env.params
    offset = params.offset
    per_cycle = max(1, math.floor(ctx.target.weaken_time / offset))
    ctx = ctx.enter(Stage.HACK, remaining_batches=per_cycle * params.max_cycles)
    if ctx.target.hack_steal_fraction <= 0:
        return ctx, False

    anchor = hack_anchor(ctx, params.tick)
    shared_shape = steal_shape(ctx.target, env) if params.batch_sizing == BatchSizing.STEAL else None

    for node_id in env.nodes:
        if ctx.plan.remaining_batches <= 0:
            break
        node = env.visit(ctx, node_id)

        if params.batch_sizing == BatchSizing.RATIO:
            shape = ratio_shape(ctx.target, env, node.capacity_free)
            count = 1 if shape is not None else 0
        else:
            shape = shared_shape
            count = 0
            if shape is not None:
                count = min(
                    _fit(node.capacity_free, shape.cost),
                    params.max_batches_per_node,
                    ctx.plan.remaining_batches,
                )

        if shape is not None and count > 0:
            for _ in range(count):
                batch, ctx = ctx.take_batch()
                land = batch_landing(anchor, batch, per_cycle, offset, params.tick)
                ctx = issue_hwgw(ctx, env, node, shape, land, batch).consume(batches=1)
            continue

        # Too small for a full batch: a plain H-G-W triple still beats idling.
        threads = _fit(node.capacity_free, effects.SIMPLE_TRIPLE_COST)
        if threads >= 1:
            batch, ctx = ctx.take_batch()
            land = batch_landing(anchor, batch, per_cycle, offset, params.tick)
            ctx = issue_simple_triple(ctx, env, node, threads, land, batch).consume(batches=1)
    return ctx, False

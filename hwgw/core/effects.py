"""Per-thread operation effects and counter-thread calculations.

All ``*_threads_*`` helpers round up. Provisioning one counter-thread too
few leaves residual security or money drift that compounds across passes,
so the rounding direction is part of the contract.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

from hwgw.model import OpType, TargetState


SEC_WEAKEN = 0.05
SEC_GROW = 0.004
SEC_HACK = 0.002

COST_WEAKEN = 1.75
COST_GROW = 1.75
COST_HACK = 1.70

OP_COST: dict[OpType, float] = {
    OpType.WEAKEN: COST_WEAKEN,
    OpType.GROW: COST_GROW,
    OpType.HACK: COST_HACK,
}
GROW_PAIR_COST = COST_GROW + COST_WEAKEN
SIMPLE_TRIPLE_COST = COST_HACK + COST_GROW + COST_WEAKEN

GrowthFn = Callable[[float], float]


def _ceil(value: float) -> int:
    # Strip float noise so exact multiples (e.g. 10 / 0.05) do not round up.
    return max(0, math.ceil(round(value, 9)))


def weaken_threads_for(security_excess: float) -> int:
    if security_excess <= 0:
        return 0
    return _ceil(security_excess / SEC_WEAKEN)


def weaken_threads_to_offset_grow(grow_threads: int) -> int:
    if grow_threads <= 0:
        return 0
    return _ceil(grow_threads * SEC_GROW / SEC_WEAKEN)


def weaken_threads_to_offset_hack(hack_threads: int) -> int:
    if hack_threads <= 0:
        return 0
    return _ceil(hack_threads * SEC_HACK / SEC_WEAKEN)


def grow_threads_for_multiplier(multiplier: float, growth: GrowthFn) -> int:
    if multiplier <= 1:
        return 0
    return _ceil(growth(multiplier))


def grow_threads_to_reach_max(money_current: float, money_max: float, growth: GrowthFn) -> int:
    multiplier = money_max / max(1.0, money_current)
    return grow_threads_for_multiplier(multiplier, growth)


def hack_threads_for_fraction(fraction: float, per_thread_steal_fraction: float) -> int:
    if fraction <= 0 or per_thread_steal_fraction <= 0:
        return 0
    return _ceil(fraction / per_thread_steal_fraction)


def op_cost(op: OpType, threads: int = 1) -> float:
    return OP_COST[op] * threads


def threads_that_fit(capacity_free: float, op: OpType) -> int:
    if capacity_free <= 0:
        return 0
    return max(0, math.floor(round(capacity_free / OP_COST[op], 9)))


def security_delta(op: OpType, threads: int) -> float:
    if op == OpType.WEAKEN:
        return -SEC_WEAKEN * threads
    if op == OpType.GROW:
        return SEC_GROW * threads
    return SEC_HACK * threads


def apply(
    state: TargetState,
    op: OpType,
    threads: int,
    *,
    grow_threads_needed: Optional[int] = None,
) -> TargetState:
    """Project ``threads`` threads of ``op`` onto ``state``.

    Grow is approximated linearly: the money gap closes by the share of the
    needed threads that were issued. The real curve belongs to the game.
    """
    if threads <= 0:
        return state
    security = state.security_current + security_delta(op, threads)
    money = state.money_current
    if op == OpType.HACK:
        stolen = math.floor(money * min(1.0, state.hack_steal_fraction * threads))
        money = money - stolen
    elif op == OpType.GROW:
        if grow_threads_needed is None or grow_threads_needed <= threads:
            money = state.money_max
        else:
            money = money + (state.money_max - money) * threads / grow_threads_needed
    return state.evolve(security_current=security, money_current=money)

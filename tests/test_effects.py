from __future__ import annotations

import math

import pytest

from hwgw.core import effects
from hwgw.model import OpType, TargetState


def _target(**overrides) -> TargetState:
    values = dict(
        target_id="t",
        security_current=5.0,
        security_min=5.0,
        money_current=1000.0,
        money_max=1000.0,
        hack_time=3000.0,
        grow_time=4000.0,
        weaken_time=5000.0,
        hack_steal_fraction=0.01,
    )
    values.update(overrides)
    return TargetState(**values)


def test_weaken_threads_for_ten_security_is_two_hundred() -> None:
    assert effects.weaken_threads_for(10) == 200


def test_weaken_threads_for_is_monotonic_and_zero_at_zero() -> None:
    assert effects.weaken_threads_for(0) == 0
    assert effects.weaken_threads_for(-3) == 0
    previous = 0
    for step in range(0, 400):
        value = effects.weaken_threads_for(step * 0.037)
        assert isinstance(value, int)
        assert value >= previous
        previous = value


def test_weaken_threads_for_rounds_up() -> None:
    assert effects.weaken_threads_for(0.01) == 1
    assert effects.weaken_threads_for(0.051) == 2


@pytest.mark.parametrize("grow_threads", [1, 7, 12, 25, 99, 250, 1001])
def test_grow_offset_weaken_never_raises_security(grow_threads: int) -> None:
    weaken = effects.weaken_threads_to_offset_grow(grow_threads)
    delta = effects.security_delta(OpType.GROW, grow_threads) + effects.security_delta(OpType.WEAKEN, weaken)
    assert delta <= 1e-9


@pytest.mark.parametrize("hack_threads", [1, 24, 25, 26, 500])
def test_hack_offset_weaken_never_raises_security(hack_threads: int) -> None:
    weaken = effects.weaken_threads_to_offset_hack(hack_threads)
    delta = effects.security_delta(OpType.HACK, hack_threads) + effects.security_delta(OpType.WEAKEN, weaken)
    assert delta <= 1e-9


def test_hack_threads_for_half_at_one_percent_is_fifty() -> None:
    assert effects.hack_threads_for_fraction(0.5, 0.01) == 50


def test_hack_threads_for_fraction_handles_zero_steal() -> None:
    assert effects.hack_threads_for_fraction(0.5, 0.0) == 0
    assert effects.hack_threads_for_fraction(0.0, 0.01) == 0


def test_grow_threads_use_external_growth_curve() -> None:
    growth = lambda multiplier: math.log(multiplier) / math.log(1.05)  # noqa: E731
    assert effects.grow_threads_for_multiplier(1.0, growth) == 0
    assert effects.grow_threads_for_multiplier(2.0, growth) == 15
    assert effects.grow_threads_to_reach_max(100, 1000, growth) == 48
    assert effects.grow_threads_to_reach_max(1000, 1000, growth) == 0


def test_threads_that_fit_and_costs() -> None:
    assert effects.threads_that_fit(175, OpType.WEAKEN) == 100
    assert effects.threads_that_fit(1.74, OpType.WEAKEN) == 0
    assert effects.threads_that_fit(1.7, OpType.HACK) == 1
    assert effects.op_cost(OpType.GROW, 4) == pytest.approx(7.0)
    assert effects.SIMPLE_TRIPLE_COST == pytest.approx(5.2)


def test_apply_weaken_clamps_at_minimum() -> None:
    state = _target(security_current=5.2)
    projected = effects.apply(state, OpType.WEAKEN, 100)
    assert projected.security_current == 5.0


def test_apply_hack_steals_and_raises_security() -> None:
    projected = effects.apply(_target(), OpType.HACK, 50)
    assert projected.money_current == 500
    assert projected.security_current == pytest.approx(5.1)


def test_apply_grow_closes_gap_linearly() -> None:
    state = _target(money_current=100.0)
    half = effects.apply(state, OpType.GROW, 24, grow_threads_needed=48)
    assert half.money_current == pytest.approx(550.0)
    full = effects.apply(state, OpType.GROW, 48, grow_threads_needed=48)
    assert full.money_current == 1000.0


def test_apply_never_drops_money_below_one() -> None:
    projected = effects.apply(_target(money_current=2.0, hack_steal_fraction=0.9), OpType.HACK, 5)
    assert projected.money_current >= 1.0

from __future__ import annotations

import math
from typing import Any

import pytest

from hwgw.model import OpType, WorldSpec
from hwgw.orchestrator import read_target_state
from hwgw.scheduler import BatchScheduler
from hwgw.world import SimWorld


def _world_payload(**target_overrides: Any) -> dict[str, Any]:
    target = {
        "id": "target",
        "ram": 0,
        "admin": True,
        "money_max": 1_000_000,
        "money": 1_000_000,
        "security_min": 5,
        "security": 5,
        "growth": 1.05,
        "hack_time": 1000,
        "steal_per_thread": 0.01,
    }
    target.update(target_overrides)
    return {
        "version": "0.1",
        "home": "home",
        "player": {"skill": 10},
        "servers": [
            {"id": "home", "ram": 32, "admin": True, "purchased": True, "connections": ["target", "w1"]},
            target,
            {"id": "w1", "ram": 200, "admin": True, "purchased": True},
        ],
    }


def _world(**target_overrides: Any) -> SimWorld:
    return SimWorld(WorldSpec.model_validate(_world_payload(**target_overrides)))


def test_operation_times_scale_with_security() -> None:
    world = _world(security=10)
    assert world.get_operation_time("target", OpType.HACK) == pytest.approx(2000.0)
    assert world.get_operation_time("target", OpType.GROW) == pytest.approx(6400.0)
    assert world.get_operation_time("target", OpType.WEAKEN) == pytest.approx(8000.0)


def test_steal_fraction_and_growth_threads() -> None:
    world = _world()
    assert world.get_hack_steal_fraction("target") == pytest.approx(0.01 * 0.95)
    expected = math.log(2.0) / math.log(1.05)
    assert world.get_growth_threads("target", 2.0) == pytest.approx(expected)
    assert world.get_growth_threads("target", 1.0) == 0.0


def test_launch_reserves_and_releases_capacity() -> None:
    world = _world(security=6)
    handle = world.launch("home", OpType.WEAKEN, 10, "target", 100.0)
    assert handle is not None
    assert world.get_capacity("home") == (32, pytest.approx(32 - 17.5))

    world.sleep(100.0 + 4000.0 * 6 / 5 + 1)
    assert world.get_capacity("home") == (32, pytest.approx(32))
    assert world.get_security("target") == (pytest.approx(5.5), 5)
    assert [completion.op for completion in world.completions] == [OpType.WEAKEN]


def test_launch_refuses_when_node_is_full() -> None:
    world = _world()
    assert world.launch("home", OpType.GROW, 19, "target", 0.0) is None
    assert world.get_capacity("home") == (32, 32)


def test_launch_rejects_zero_threads() -> None:
    with pytest.raises(ValueError):
        _world().launch("home", OpType.HACK, 0, "target", 0.0)


def test_grow_completion_applies_multiplier() -> None:
    world = _world(money=1000)
    world.launch("w1", OpType.GROW, 2, "target", 0.0)
    world.sleep(world.get_operation_time("target", OpType.GROW) + 1)
    money, _ = world.get_money("target")
    assert money == pytest.approx((1000 + 2) * 1.05**2)


def test_sleep_advances_virtual_clock() -> None:
    world = _world()
    world.sleep(1234.0)
    assert world.now == pytest.approx(1234.0)
    assert world.clock() == pytest.approx(1234.0)


def test_network_view() -> None:
    world = _world()
    assert world.scan("home") == ["target", "w1"]
    assert world.scan("target") == ["home"]
    info = world.get_server("w1")
    assert info.purchased and info.has_admin_rights and info.capacity_total == 200
    assert world.player_skill() == 10
    with pytest.raises(KeyError):
        world.get_server("nowhere")


def test_hwgw_batch_completes_in_landing_order() -> None:
    world = _world()
    scheduler = BatchScheduler({"max_batches_per_node": 1})
    result = scheduler.run_pass(
        read_target_state(world, "target"),
        ["w1"],
        world,
        world,
        world.growth_fn("target"),
        bound_sec=4.0,
        bound_money=0.6,
    )
    assert len(result.launched) == 4

    world.sleep(result.duration + 100)
    assert [completion.op for completion in world.completions] == [
        OpType.HACK,
        OpType.WEAKEN,
        OpType.GROW,
        OpType.WEAKEN,
    ]
    times = [completion.time for completion in world.completions]
    for earlier, later in zip(times, times[1:]):
        assert later - earlier == pytest.approx(20.0)
    security, security_min = world.get_security("target")
    assert security == pytest.approx(security_min)
    money, money_max = world.get_money("target")
    assert money == pytest.approx(money_max)


def test_nuke_needs_skill_and_enough_port_tools() -> None:
    payload = _world_payload()
    payload["servers"].append({"id": "locked", "ram": 16, "required_skill": 20, "ports_required": 2})
    payload["servers"][0]["connections"].append("locked")
    world = SimWorld(WorldSpec.model_validate(payload))

    assert world.get_server("locked").ports_required == 2
    assert world.nuke("locked") is False
    world.set_skill(20)
    assert world.nuke("locked") is False
    world.set_port_tools(2)
    assert world.nuke("locked") is True
    assert world.get_server("locked").has_admin_rights
    assert world.nuke("home") is True


def test_purchase_and_upgrade_spend_player_money() -> None:
    payload = _world_payload()
    payload["player"]["money"] = 100_000
    payload["market"] = {"ram_cost": 1_000, "server_limit": 2, "max_ram": 64}
    world = SimWorld(WorldSpec.model_validate(payload))
    assert world.purchased_servers() == {"w1": 200}

    assert world.purchase_server("pserv-0", 8) == "pserv-0"
    assert world.player_money() == pytest.approx(92_000)
    assert "pserv-0" in world.scan("home")
    assert world.get_server("pserv-0").has_admin_rights
    assert world.purchase_server("pserv-1", 8) is None

    assert world.upgrade_server("pserv-0", 16) is True
    assert world.get_capacity("pserv-0") == (16, 16)
    assert world.player_money() == pytest.approx(76_000)
    assert world.upgrade_server("pserv-0", 128) is False
    assert world.upgrade_server("home", 64) is False


def test_purchase_refused_without_money() -> None:
    world = _world()
    assert world.player_money() == 0
    assert world.purchase_server("pserv-0", 4) is None
    assert "pserv-0" not in world.scan("home")


def test_hack_credits_player_money() -> None:
    world = _world()
    world.launch("w1", OpType.HACK, 1, "target", 0.0)
    world.sleep(world.get_operation_time("target", OpType.HACK) + 1)
    assert world.player_money() == pytest.approx(9_500, abs=1)

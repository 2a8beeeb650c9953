"""Baseline planning cost for fleets of growing size."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import time

from hwgw.io import WorldLoader
from hwgw.orchestrator import ServerRegistry, read_target_state
from hwgw.scheduler import create_scheduler
from hwgw.world import SimWorld


def _parse_int_list(raw: str) -> list[int]:
    return [int(item.strip()) for item in raw.split(",") if item.strip()]


def _parse_float_list(raw: str | None) -> list[float]:
    if raw is None or not raw.strip():
        return []
    return [float(item.strip()) for item in raw.split(",") if item.strip()]


def _build_payload(node_count: int) -> dict:
    workers = [f"node-{idx:03d}" for idx in range(node_count)]
    servers: list[dict] = [
        {"id": "home", "ram": 256, "admin": True, "purchased": True, "connections": ["target"] + workers},
        {
            "id": "target",
            "ram": 0,
            "admin": True,
            "money_max": 2_500_000_000,
            "money": 2_500_000_000,
            "security_min": 10,
            "security": 10,
            "growth": 1.03,
            "hack_time": 5000,
            "steal_per_thread": 0.002,
        },
    ]
    for idx, worker in enumerate(workers):
        servers.append({"id": worker, "ram": 32 * (1 + idx % 8), "admin": True, "purchased": True})
    return {"version": "0.1", "home": "home", "player": {"skill": 100}, "servers": servers}


def _run_case(node_count: int, scheduler_name: str) -> dict:
    world = SimWorld(WorldLoader().load_data(_build_payload(node_count)))
    registry = ServerRegistry(world).initialize()
    scheduler = create_scheduler(scheduler_name)
    target = read_target_state(world, "target")
    started = time.perf_counter()
    plan = scheduler.plan(
        target,
        registry.attackers(),
        world,
        world.growth_fn("target"),
        bound_sec=4.0,
        bound_money=0.6,
    )
    elapsed_ms = (time.perf_counter() - started) * 1000.0
    return {
        "node_count": node_count,
        "wall_time_ms": elapsed_ms,
        "jobs": len(plan.jobs),
        "stages": [stage.value for stage in plan.stages],
        "virtual_duration": plan.virtual_duration,
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run baseline planning checks for large fleets")
    parser.add_argument("--nodes", default="25,100", help="comma-separated fleet sizes, e.g. 25,100")
    parser.add_argument(
        "--max-wall-ms",
        default="",
        help="comma-separated wall-time thresholds, aligned with --nodes",
    )
    parser.add_argument("--scheduler", default="hwgw", help="scheduler preset")
    parser.add_argument(
        "--output",
        default="artifacts/perf/plan-baseline.json",
        help="where to write json report",
    )
    args = parser.parse_args(argv)

    node_counts = _parse_int_list(args.nodes)
    thresholds = _parse_float_list(args.max_wall_ms)
    if thresholds and len(thresholds) != len(node_counts):
        raise ValueError("--max-wall-ms length must match --nodes length")

    cases: list[dict] = []
    failed = False
    for idx, node_count in enumerate(node_counts):
        case = _run_case(node_count, args.scheduler)
        max_wall = thresholds[idx] if thresholds else None
        case["max_wall_ms"] = max_wall
        case["pass"] = max_wall is None or case["wall_time_ms"] <= max_wall
        failed = failed or not case["pass"]
        cases.append(case)
        verdict = "PASS" if case["pass"] else "FAIL"
        print(f"[{verdict}] nodes={node_count} wall_ms={case['wall_time_ms']:.2f} jobs={case['jobs']}")

    report = {"scheduler": args.scheduler, "cases": cases}
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"[INFO] wrote plan report: {output_path}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())

"""CLI entrypoint for attack config, planning and simulation."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import re
from typing import Any

from hwgw.errors import ConfigError, InvalidTargetError
from hwgw.events import AttackEvent, EventBus
from hwgw.io import ConfigStore, WorldLoader
from hwgw.metrics.core import AttackMetrics
from hwgw.model import AttackConfig
from hwgw.orchestrator import AttackOrchestrator, CapacityProvisioner, ServerRegistry
from hwgw.world import SimWorld


DEFAULT_CONFIG_PATH = "hwgw-config.json"

_BUDGET_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmbt]?)\s*$", re.IGNORECASE)
_BUDGET_SCALE = {"": 1, "k": 1_000, "m": 1_000_000, "b": 1_000_000_000, "t": 1_000_000_000_000}


def parse_lock_budget(value: str) -> float:
    """Parse ``20k`` / ``250m`` / ``1.5b`` style amounts."""
    match = _BUDGET_PATTERN.match(value)
    if match is None:
        raise ValueError(f"invalid budget '{value}', expected e.g. 20k, 250m, 1b")
    number, suffix = match.groups()
    return float(number) * _BUDGET_SCALE[suffix.lower()]


def _write_jsonl(path: str, events: list[AttackEvent]) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        for event in events:
            f.write(event.to_json() + "\n")


def _write_json(path: str, payload: dict[str, Any]) -> None:
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    target = getattr(args, "target", None)
    if target:
        if target == "auto":
            changes.update(target="", auto_target=True)
        else:
            changes.update(target=target, auto_target=False)
    scheduler = getattr(args, "scheduler", None)
    if scheduler:
        changes["scheduler"] = scheduler
    return changes


def _load_config(args: argparse.Namespace) -> AttackConfig:
    config = ConfigStore(args.config).load() if args.config else AttackConfig()
    changes = _config_overrides(args)
    if not changes:
        return config
    return ConfigStore.load_data({**config.model_dump(mode="json"), **changes})


def _simulation_store(args: argparse.Namespace) -> ConfigStore:
    """Config store the simulated loop reads every pass.

    With ``-c`` the file itself is used, so ``started`` and target changes
    persist; command-line overrides are written to it first. Without a file
    the loop runs from an in-memory, started default.
    """
    changes = _config_overrides(args)
    if args.start:
        changes["started"] = True
    if args.config is None:
        config = ConfigStore.load_data({**AttackConfig(started=True).model_dump(mode="json"), **changes})
        return ConfigStore(initial=config)
    store = ConfigStore(args.config)
    if changes:
        store.update(**changes)
    else:
        store.load()
    return store


def _build_orchestrator(
    world: SimWorld,
    store: ConfigStore,
    event_bus: EventBus | None = None,
) -> tuple[AttackOrchestrator, AttackMetrics]:
    registry = ServerRegistry(world, home=world.home).initialize()
    orchestrator = AttackOrchestrator(
        store,
        registry,
        world,
        world,
        world,
        event_bus=event_bus,
        sleep=world.sleep,
        clock=world.clock,
        alert=lambda message: print(f"[ALERT] {message}"),
        provisioner=CapacityProvisioner(world),
    )
    metrics = AttackMetrics()
    orchestrator.event_bus.subscribe(metrics.consume)
    return orchestrator, metrics


def cmd_config(args: argparse.Namespace) -> int:
    store = ConfigStore(args.file)
    changes = _config_overrides(args)
    if args.start:
        changes["started"] = True
    if args.stop:
        changes["started"] = False
    if args.bound_sec is not None:
        changes["bound_sec"] = args.bound_sec
    if args.bound_money is not None:
        changes["bound_money"] = args.bound_money
    if args.lock_ram is not None:
        changes["locked_ram"] = max(0.0, args.lock_ram)
    if args.auto_grow is not None:
        changes["auto_grow"] = args.auto_grow
    try:
        if args.lock_budget is not None:
            changes["locked_budget"] = parse_lock_budget(args.lock_budget)
        config = store.update(**changes) if changes else store.load()
    except (ConfigError, ValueError) as exc:
        print(f"[ERROR] {exc}")
        return 1

    if args.info:
        print(json.dumps(config.model_dump(mode="json"), ensure_ascii=False, indent=2))
    print(f"[OK] config saved to {args.file}" if changes else f"[OK] config loaded from {args.file}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    try:
        spec = WorldLoader().load(args.world)
        if args.config:
            ConfigStore(args.config).load()
    except ConfigError as exc:
        print(f"[ERROR] {exc}")
        return 1
    print(f"[OK] world validation passed, servers={len(spec.servers)}")
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    try:
        world = SimWorld.from_file(args.world)
        config = _load_config(args)
        orchestrator, _ = _build_orchestrator(world, ConfigStore(initial=config))
        plan = orchestrator.preview(config)
    except (ConfigError, ValueError) as exc:
        print(f"[ERROR] {exc}")
        return 1
    except InvalidTargetError as exc:
        print(f"[ALERT] {exc}")
        return 2

    payload = {
        "pass_id": plan.pass_id,
        "target": plan.target_id,
        "entry_stage": plan.entry_stage.value,
        "stages": [stage.value for stage in plan.stages],
        "virtual_duration": plan.virtual_duration,
        "threads_by_op": plan.threads_by_op(),
        "jobs": [job.to_dict() for job in plan.jobs],
    }
    if args.out:
        _write_json(args.out, payload)
        print(f"[OK] plan written, jobs={len(plan.jobs)}, out={args.out}")
    else:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    if args.passes < 1:
        print("[ERROR] --passes must be >= 1")
        return 1
    try:
        world = SimWorld.from_file(args.world)
        store = _simulation_store(args)
        bus = EventBus(event_id_mode=args.event_id_mode, event_id_seed=args.event_id_seed)
        orchestrator, metrics = _build_orchestrator(world, store, bus)
    except (ConfigError, ValueError) as exc:
        print(f"[ERROR] {exc}")
        return 1

    events: list[AttackEvent] = []
    orchestrator.event_bus.subscribe(events.append)
    try:
        summary = orchestrator.run(max_passes=args.passes)
    except ValueError as exc:
        print(f"[ERROR] invalid scheduler: {exc}")
        return 1

    events_out = args.events_out or "artifacts/events.jsonl"
    metrics_out = args.metrics_out or "artifacts/metrics.json"
    _write_jsonl(events_out, events)
    report = metrics.report()
    report["passes_report"] = [item.to_dict() for item in summary.reports]
    _write_json(metrics_out, report)

    if summary.stop_reason == AttackOrchestrator.STOP_INVALID_TARGET:
        return 2
    print(
        f"[OK] simulation completed, passes={summary.passes}, events={len(events)}, "
        f"now={world.now:.1f}, metrics={metrics_out}"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hwgw", description="Batch attack scheduler CLI")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="root logger level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser("config", help="inspect or change the attack config")
    config_parser.add_argument("-f", "--file", default=DEFAULT_CONFIG_PATH, help="config JSON/YAML path")
    config_parser.add_argument("--start", action="store_true", help="start the attack loop")
    config_parser.add_argument("--stop", action="store_true", help="stop the attack loop")
    config_parser.add_argument("--target", default=None, help='target server id, or "auto"')
    config_parser.add_argument("--bound-sec", type=float, default=None, help="security boundary (0.5..99)")
    config_parser.add_argument("--bound-money", type=float, default=None, help="money boundary (0..1)")
    config_parser.add_argument("--lock-budget", default=None, help="money kept out of reinvestment, e.g. 250m")
    config_parser.add_argument("--lock-ram", type=float, default=None, help="capacity withheld on home")
    config_parser.add_argument(
        "--auto-grow",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="buy and upgrade worker servers with money above the locked budget",
    )
    config_parser.add_argument("--scheduler", default=None, help="scheduler preset name")
    config_parser.add_argument("--info", action="store_true", help="print the resulting config")
    config_parser.set_defaults(func=cmd_config)

    validate_parser = subparsers.add_parser("validate", help="validate world (and config) files")
    validate_parser.add_argument("-w", "--world", required=True, help="path to world YAML/JSON")
    validate_parser.add_argument("-c", "--config", default=None, help="path to attack config")
    validate_parser.set_defaults(func=cmd_validate)

    plan_parser = subparsers.add_parser("plan", help="dry-run one pass and print its jobs")
    plan_parser.add_argument("-w", "--world", required=True, help="path to world YAML/JSON")
    plan_parser.add_argument("-c", "--config", default=None, help="path to attack config")
    plan_parser.add_argument("--target", default=None, help='target server id, or "auto"')
    plan_parser.add_argument("--scheduler", default=None, help="scheduler preset name")
    plan_parser.add_argument("--out", default=None, help="write plan JSON here instead of stdout")
    plan_parser.set_defaults(func=cmd_plan)

    simulate_parser = subparsers.add_parser("simulate", help="run the attack loop in a simulated world")
    simulate_parser.add_argument("-w", "--world", required=True, help="path to world YAML/JSON")
    simulate_parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="attack config file; read every pass and updated on target changes",
    )
    simulate_parser.add_argument("--start", action="store_true", help="set started=true in the config first")
    simulate_parser.add_argument("--target", default=None, help='target server id, or "auto"')
    simulate_parser.add_argument("--scheduler", default=None, help="scheduler preset name")
    simulate_parser.add_argument("--passes", type=int, default=10, help="number of passes to run")
    simulate_parser.add_argument(
        "--event-id-mode",
        default="deterministic",
        choices=sorted(EventBus.VALID_EVENT_ID_MODES),
        help="how event ids are generated",
    )
    simulate_parser.add_argument("--event-id-seed", type=int, default=None, help="seed for seeded_random ids")
    simulate_parser.add_argument("--events-out", default=None, help="path to write JSONL events")
    simulate_parser.add_argument("--metrics-out", default=None, help="path to write metric JSON")
    simulate_parser.set_defaults(func=cmd_simulate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

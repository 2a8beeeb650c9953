from __future__ import annotations

import json
from pathlib import Path
import shutil

import pytest

from hwgw.cli.main import main, parse_lock_budget


EXAMPLES = Path(__file__).resolve().parents[1] / "examples"


def test_cli_validate_ok() -> None:
    code = main(["validate", "-w", str(EXAMPLES / "small_world.yaml"), "-c", str(EXAMPLES / "attack_config.yaml")])
    assert code == 0


def test_cli_validate_reports_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    world = tmp_path / "world.yaml"
    world.write_text("version: '0.1'\nservers: []\n", encoding="utf-8")
    assert main(["validate", "-w", str(world)]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_cli_config_updates_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "config.json"
    code = main(
        [
            "config",
            "-f",
            str(path),
            "--start",
            "--target",
            "n00dles",
            "--bound-sec",
            "0.1",
            "--lock-budget",
            "250m",
            "--lock-ram",
            "32",
            "--info",
        ]
    )
    assert code == 0
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["started"] is True
    assert saved["target"] == "n00dles"
    assert saved["auto_target"] is False
    assert saved["bound_sec"] == 0.5
    assert saved["locked_budget"] == 250_000_000
    assert saved["locked_ram"] == 32
    assert '"target": "n00dles"' in capsys.readouterr().out

    assert main(["config", "-f", str(path), "--target", "auto", "--stop"]) == 0
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["auto_target"] is True
    assert saved["target"] == ""
    assert saved["started"] is False


def test_cli_config_rejects_bad_budget(tmp_path: Path) -> None:
    assert main(["config", "-f", str(tmp_path / "c.json"), "--lock-budget", "lots"]) == 1


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("20k", 20_000), ("250m", 250_000_000), ("1b", 1_000_000_000), ("1.5b", 1_500_000_000), ("42", 42)],
)
def test_parse_lock_budget(raw: str, expected: float) -> None:
    assert parse_lock_budget(raw) == expected


def test_cli_plan_writes_jobs(tmp_path: Path) -> None:
    out = tmp_path / "plan.json"
    code = main(["plan", "-w", str(EXAMPLES / "small_world.yaml"), "--out", str(out)])
    assert code == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["target"] == "sigma-cosmetics"
    assert payload["entry_stage"] == "weaken"
    assert payload["jobs"]
    assert all(job["threads"] >= 1 for job in payload["jobs"])


def test_cli_plan_unknown_target(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["plan", "-w", str(EXAMPLES / "small_world.yaml"), "--target", "nowhere"])
    assert code == 2
    assert "[ALERT]" in capsys.readouterr().out


def test_cli_plan_unknown_scheduler(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["plan", "-w", str(EXAMPLES / "small_world.yaml"), "--scheduler", "nope"])
    assert code == 1
    assert "unknown scheduler" in capsys.readouterr().out


def test_cli_simulate_outputs(tmp_path: Path) -> None:
    config_path = tmp_path / "attack_config.yaml"
    shutil.copyfile(EXAMPLES / "attack_config.yaml", config_path)
    events_out = tmp_path / "events.jsonl"
    metrics_out = tmp_path / "metrics.json"
    code = main(
        [
            "simulate",
            "-w",
            str(EXAMPLES / "small_world.yaml"),
            "-c",
            str(config_path),
            "--passes",
            "3",
            "--events-out",
            str(events_out),
            "--metrics-out",
            str(metrics_out),
        ]
    )
    assert code == 0
    lines = events_out.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["type"] == "TargetChanged"
    metrics = json.loads(metrics_out.read_text(encoding="utf-8"))
    assert metrics["passes"] == 3
    assert len(metrics["passes_report"]) == 3
    assert metrics["jobs_issued"] > 0


def test_cli_simulate_rejects_zero_passes(tmp_path: Path) -> None:
    code = main(["simulate", "-w", str(EXAMPLES / "small_world.yaml"), "--passes", "0"])
    assert code == 1


def test_cli_simulate_persists_target_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"started": True, "auto_target": True}), encoding="utf-8")
    code = main(
        [
            "simulate",
            "-w",
            str(EXAMPLES / "small_world.yaml"),
            "-c",
            str(config_path),
            "--passes",
            "2",
            "--events-out",
            str(tmp_path / "events.jsonl"),
            "--metrics-out",
            str(tmp_path / "metrics.json"),
        ]
    )
    assert code == 0
    saved = json.loads(config_path.read_text(encoding="utf-8"))
    assert saved["target"] == "sigma-cosmetics"
    assert saved["started"] is True


def test_cli_simulate_honours_stopped_config(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"started": False}), encoding="utf-8")
    metrics_out = tmp_path / "metrics.json"
    args = [
        "simulate",
        "-w",
        str(EXAMPLES / "small_world.yaml"),
        "-c",
        str(config_path),
        "--passes",
        "2",
        "--events-out",
        str(tmp_path / "events.jsonl"),
        "--metrics-out",
        str(metrics_out),
    ]
    assert main(args) == 0
    assert json.loads(metrics_out.read_text(encoding="utf-8"))["passes"] == 0

    assert main(args + ["--start"]) == 0
    assert json.loads(metrics_out.read_text(encoding="utf-8"))["passes"] == 2
    assert json.loads(config_path.read_text(encoding="utf-8"))["started"] is True


def test_cli_simulate_seeded_event_ids(tmp_path: Path) -> None:
    events_out = tmp_path / "events.jsonl"
    args = [
        "simulate",
        "-w",
        str(EXAMPLES / "small_world.yaml"),
        "--passes",
        "1",
        "--event-id-mode",
        "seeded_random",
        "--event-id-seed",
        "11",
        "--events-out",
        str(events_out),
        "--metrics-out",
        str(tmp_path / "metrics.json"),
    ]
    assert main(args) == 0
    first = [json.loads(line)["event_id"] for line in events_out.read_text(encoding="utf-8").splitlines()]
    assert main(args) == 0
    second = [json.loads(line)["event_id"] for line in events_out.read_text(encoding="utf-8").splitlines()]
    assert first == second
    assert all(len(event_id) == 32 for event_id in first)


def test_cli_config_toggles_auto_grow(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    assert main(["config", "-f", str(path), "--auto-grow", "--lock-budget", "20k"]) == 0
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["auto_grow"] is True
    assert saved["locked_budget"] == 20_000

    assert main(["config", "-f", str(path), "--no-auto-grow"]) == 0
    assert json.loads(path.read_text(encoding="utf-8"))["auto_grow"] is False

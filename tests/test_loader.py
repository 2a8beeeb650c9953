from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml

from hwgw.errors import ConfigError
from hwgw.io import ConfigStore, WorldLoader
from hwgw.model import AttackConfig


EXAMPLES = Path(__file__).resolve().parents[1] / "examples"


def _world_payload() -> dict[str, Any]:
    return {
        "version": "0.1",
        "servers": [
            {"id": "home", "ram": 8, "admin": True, "connections": ["a"]},
            {"id": "a", "money_max": 100, "security_min": 2},
        ],
    }


def test_missing_config_file_yields_defaults(tmp_path: Path) -> None:
    config = ConfigStore(tmp_path / "missing.json").load()
    assert config == AttackConfig()
    assert config.bound_sec == 4.0
    assert config.bound_money == 0.6
    assert config.scheduler == "hwgw"


def test_config_roundtrip_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    store = ConfigStore(path)
    store.save(AttackConfig(started=True, target="n00dles", auto_target=False, locked_ram=16))

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert raw["target"] == "n00dles"
    loaded = store.load()
    assert loaded.started is True
    assert loaded.locked_ram == 16


def test_config_update_merges_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = ConfigStore(path)
    store.update(started=True)
    store.update(bound_sec=200)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["started"] is True
    assert raw["bound_sec"] == 99.0


def test_config_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"started": True, "autoPick": True}), encoding="utf-8")
    with pytest.raises(ConfigError, match="schema validation failed"):
        ConfigStore(path).load()


def test_config_rejects_fixed_mode_without_target(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"auto_target": False}), encoding="utf-8")
    with pytest.raises(ConfigError, match="requires a non-empty target"):
        ConfigStore(path).load()


def test_config_rejects_bad_scheduler_params(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"scheduler_params": {"batch_sizing": "greedy"}}), encoding="utf-8")
    with pytest.raises(ConfigError):
        ConfigStore(path).load()


def test_config_invalid_syntax(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("started: [", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid syntax"):
        ConfigStore(path).load()


def test_config_root_must_be_object(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError, match="root must be object"):
        ConfigStore(path).load()


def test_in_memory_store_keeps_copies() -> None:
    store = ConfigStore(initial=AttackConfig(started=True))
    config = store.load()
    store.save(config.model_copy(update={"target": "a"}))
    assert store.load().target == "a"
    assert store.path is None


def test_world_loader_reads_example() -> None:
    spec = WorldLoader().load(EXAMPLES / "small_world.yaml")
    assert spec.home == "home"
    assert {server.id for server in spec.servers} >= {"home", "n00dles", "zer0"}


def test_world_defaults_fill_initial_state() -> None:
    spec = WorldLoader().load_data(_world_payload())
    target = spec.servers[1]
    assert target.money == 100
    assert target.security == 2


def test_world_rejects_unknown_link() -> None:
    payload = _world_payload()
    payload["servers"][0]["connections"] = ["b"]
    with pytest.raises(ConfigError, match="unknown server 'b'"):
        WorldLoader().load_data(payload)


def test_world_rejects_duplicate_ids() -> None:
    payload = _world_payload()
    payload["servers"].append({"id": "a"})
    with pytest.raises(ConfigError, match="duplicate"):
        WorldLoader().load_data(payload)


def test_world_rejects_unknown_version() -> None:
    payload = _world_payload()
    payload["version"] = "9.9"
    with pytest.raises(ConfigError, match="unsupported world version"):
        WorldLoader().load_data(payload)


def test_world_schema_errors_are_reported() -> None:
    payload = _world_payload()
    payload["servers"][1]["growth"] = 0.5
    with pytest.raises(ConfigError, match="schema validation failed"):
        WorldLoader().load_data(payload)


def test_world_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="file not found"):
        WorldLoader().load(tmp_path / "nope.yaml")

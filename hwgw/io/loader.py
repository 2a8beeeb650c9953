"""Attack config persistence and world file loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import jsonschema
import yaml
from pydantic import ValidationError

from hwgw.errors import ConfigError
from hwgw.model import AttackConfig, WorldSpec

from .schema import ATTACK_CONFIG_SCHEMA, WORLD_SCHEMA


logger = logging.getLogger(__name__)


def _read(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"invalid syntax in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: root must be object")
    return data


def _write(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    else:
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _validate_schema(schema: dict, payload: dict[str, Any]) -> None:
    validator = jsonschema.Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda err: list(err.path))
    if not errors:
        return
    formatted = []
    for error in errors[:8]:
        path = ".".join(str(x) for x in error.path)
        formatted.append(f"{path or '<root>'}: {error.message}")
    raise ConfigError("schema validation failed: " + " | ".join(formatted))


class ConfigStore:
    """Persist ``AttackConfig`` as JSON or YAML.

    With no path the store keeps the config in memory, which is what
    tests and one-shot simulations want. A missing file yields defaults.
    """

    def __init__(self, path: str | Path | None = None, *, initial: Optional[AttackConfig] = None) -> None:
        self._path = Path(path) if path is not None else None
        self._memory = initial.model_copy() if initial is not None else AttackConfig()

    @property
    def path(self) -> Path | None:
        return self._path

    def load(self) -> AttackConfig:
        if self._path is None:
            return self._memory.model_copy()
        if not self._path.exists():
            logger.debug("config %s missing, using defaults", self._path)
            return AttackConfig()
        return self.load_data(_read(self._path))

    @staticmethod
    def load_data(payload: dict[str, Any]) -> AttackConfig:
        _validate_schema(ATTACK_CONFIG_SCHEMA, payload)
        try:
            return AttackConfig.model_validate(payload)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    def save(self, config: AttackConfig) -> None:
        if self._path is None:
            self._memory = config.model_copy()
            return
        _write(self._path, config.model_dump(mode="json"))

    def update(self, **changes: Any) -> AttackConfig:
        """Apply ``changes`` on top of the stored config, validate, persist."""
        current = self.load().model_dump(mode="json")
        current.update(changes)
        config = self.load_data(current)
        self.save(config)
        return config


class WorldLoader:
    """Load and validate simulated world files."""

    SUPPORTED_VERSION = "0.1"

    def load(self, path: str | Path) -> WorldSpec:
        return self.load_data(_read(Path(path)))

    def load_data(self, payload: dict[str, Any]) -> WorldSpec:
        version = str(payload.get("version", self.SUPPORTED_VERSION))
        if version != self.SUPPORTED_VERSION:
            raise ConfigError(f"unsupported world version '{version}'")
        normalized = dict(payload)
        normalized["version"] = version
        _validate_schema(WORLD_SCHEMA, normalized)
        try:
            return WorldSpec.model_validate(normalized)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    def save(self, spec: WorldSpec, path: str | Path) -> None:
        _write(Path(path), spec.model_dump(mode="json", exclude_none=True))

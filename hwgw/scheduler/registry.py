"""Scheduler registry and factory.

Every preset is the same cascade scheduler with different tunables; the
preset values are overridden key by key by the caller's params.
"""

from __future__ import annotations

from collections.abc import Callable

from .base import IScheduler
from .batch import BatchScheduler


SchedulerFactory = Callable[..., IScheduler]


PRESETS: dict[str, dict] = {
    "hwgw": {},
    "attk": {
        "batch_sizing": "ratio",
        "hack_ratio": 5,
        "grow_ratio": 3,
        "grow_weaken_ratio": 5.0,
        "batch_offset": 60.0,
    },
    "daemon": {
        "steal_fraction": 0.5,
        "batch_offset": 120.0,
        "max_batches_per_node": 20,
    },
    "lib": {
        "batch_sizing": "ratio",
        "hack_ratio": 25,
        "grow_ratio": 20,
        "grow_weaken_ratio": 12.5,
        "tick": 15.0,
        "batch_offset": 50.0,
    },
}


def _preset_factory(name: str) -> SchedulerFactory:
    def factory(params: dict | None = None) -> IScheduler:
        merged = {**PRESETS[name], **(params or {})}
        return BatchScheduler(merged, name=name)

    return factory


_REGISTRY: dict[str, SchedulerFactory] = {name: _preset_factory(name) for name in PRESETS}
_REGISTRY["batch"] = _REGISTRY["hwgw"]


def register_scheduler(name: str, factory: SchedulerFactory) -> None:
    _REGISTRY[name.lower()] = factory


def available_schedulers() -> list[str]:
    return sorted(_REGISTRY)


def create_scheduler(name: str, params: dict | None = None) -> IScheduler:
    key = name.lower()
    if key not in _REGISTRY:
        raise ValueError(f"unknown scheduler {name}")
    return _REGISTRY[key](params or {})

"""Schedulers package exports."""

from .base import IScheduler, PassContext, PassEnv, PassPlan, PassResult
from .batch import BatchScheduler
from .phases import BatchShape, grow_phase, hack_phase, split_grow, weaken_phase
from .registry import PRESETS, available_schedulers, create_scheduler, register_scheduler

__all__ = [
    "BatchScheduler",
    "BatchShape",
    "IScheduler",
    "PRESETS",
    "PassContext",
    "PassEnv",
    "PassPlan",
    "PassResult",
    "available_schedulers",
    "create_scheduler",
    "grow_phase",
    "hack_phase",
    "register_scheduler",
    "split_grow",
    "weaken_phase",
]

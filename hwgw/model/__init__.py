"""Model package exports."""

from .runtime import (
    CAPACITY_EPSILON,
    BatchPlan,
    Job,
    OpType,
    ResourceNode,
    Stage,
    TargetState,
)
from .spec import (
    AttackConfig,
    BatchSizing,
    MarketSpec,
    PlayerSpec,
    SchedulerParams,
    ServerSpec,
    WorldSpec,
)

__all__ = [
    "CAPACITY_EPSILON",
    "AttackConfig",
    "BatchPlan",
    "BatchSizing",
    "Job",
    "MarketSpec",
    "OpType",
    "PlayerSpec",
    "ResourceNode",
    "SchedulerParams",
    "ServerSpec",
    "Stage",
    "TargetState",
    "WorldSpec",
]

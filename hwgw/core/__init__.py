"""Core exports."""

from .interfaces import ICapacityMarket, ICapacityQuery, IJobLauncher, INetwork, ITargetQuery, ServerInfo

__all__ = [
    "ICapacityMarket",
    "ICapacityQuery",
    "IJobLauncher",
    "INetwork",
    "ITargetQuery",
    "ServerInfo",
]

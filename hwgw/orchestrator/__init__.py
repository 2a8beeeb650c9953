"""Orchestrator exports."""

from .orchestrator import AttackOrchestrator, PassReport, RunSummary, read_target_state
from .provision import Acquisition, CapacityProvisioner
from .registry import ServerRegistry

__all__ = [
    "Acquisition",
    "AttackOrchestrator",
    "CapacityProvisioner",
    "PassReport",
    "RunSummary",
    "ServerRegistry",
    "read_target_state",
]

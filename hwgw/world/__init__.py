"""Simulated world exports."""

from .engine import Completion, ServerRuntime, SimWorld

__all__ = ["Completion", "ServerRuntime", "SimWorld"]

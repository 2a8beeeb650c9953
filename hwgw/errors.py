"""Domain exceptions."""

from __future__ import annotations


class ConfigError(Exception):
    """Configuration or world file loading/validation error."""


class InvalidTargetError(Exception):
    """Target does not resolve to a known, accessible server."""

    def __init__(self, target_id: str, reason: str) -> None:
        super().__init__(f"invalid target '{target_id}': {reason}")
        self.target_id = target_id
        self.reason = reason


class InsufficientCapacityError(Exception):
    """A node cannot fit the operation it was assigned."""

    def __init__(self, node_id: str, required: float, available: float) -> None:
        super().__init__(
            f"node '{node_id}' cannot fit {required:.2f} capacity units (free {available:.2f})"
        )
        self.node_id = node_id
        self.required = required
        self.available = available


class LaunchRejectedError(Exception):
    """The job-issue call reported failure."""

    def __init__(self, node_id: str, op: str, threads: int) -> None:
        super().__init__(f"launch of {threads} {op} thread(s) on '{node_id}' was rejected")
        self.node_id = node_id
        self.op = op
        self.threads = threads

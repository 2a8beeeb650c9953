"""Default metrics implementation."""

from __future__ import annotations

from collections import defaultdict

from hwgw.events import AttackEvent, EventType

from .base import IMetric


class AttackMetrics(IMetric):
    """Aggregate pass, stage and job counters from the event stream."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._passes = 0
        self._stage_counts: dict[str, int] = defaultdict(int)
        self._jobs_by_op: dict[str, int] = defaultdict(int)
        self._threads_by_op: dict[str, int] = defaultdict(int)
        self._threads_by_node: dict[str, int] = defaultdict(int)
        self._rejected = 0
        self._insufficient = 0
        self._target_changes = 0
        self._invalid_targets = 0
        self._servers_rooted = 0
        self._capacity_acquired = 0
        self._capacity_spent = 0.0
        self._total_duration = 0.0
        self._event_count = 0
        self._max_time = 0.0

    def consume(self, event: AttackEvent) -> None:
        self._event_count += 1
        self._max_time = max(self._max_time, event.time)

        if event.type == EventType.PASS_STARTED:
            self._passes += 1

        elif event.type == EventType.STAGE_ENTERED:
            if event.stage:
                self._stage_counts[event.stage] += 1

        elif event.type == EventType.JOB_ISSUED:
            if event.op:
                self._jobs_by_op[event.op] += 1
                self._threads_by_op[event.op] += event.threads or 0
            if event.node_id:
                self._threads_by_node[event.node_id] += event.threads or 0

        elif event.type == EventType.LAUNCH_REJECTED:
            self._rejected += 1

        elif event.type == EventType.INSUFFICIENT_CAPACITY:
            self._insufficient += 1

        elif event.type == EventType.PASS_COMPLETED:
            duration = event.payload.get("duration")
            if isinstance(duration, (int, float)):
                self._total_duration += float(duration)

        elif event.type == EventType.TARGET_CHANGED:
            self._target_changes += 1

        elif event.type == EventType.INVALID_TARGET:
            self._invalid_targets += 1

        elif event.type == EventType.SERVER_ROOTED:
            self._servers_rooted += 1

        elif event.type == EventType.CAPACITY_ACQUIRED:
            self._capacity_acquired += 1
            cost = event.payload.get("cost")
            if isinstance(cost, (int, float)):
                self._capacity_spent += float(cost)

    def report(self) -> dict:
        jobs_issued = sum(self._jobs_by_op.values())
        attempted = jobs_issued + self._rejected
        return {
            "passes": self._passes,
            "stage_counts": dict(self._stage_counts),
            "jobs_issued": jobs_issued,
            "jobs_by_op": dict(self._jobs_by_op),
            "threads_by_op": dict(self._threads_by_op),
            "threads_by_node": dict(self._threads_by_node),
            "launch_rejected": self._rejected,
            "launch_reject_ratio": self._rejected / attempted if attempted else 0.0,
            "insufficient_capacity": self._insufficient,
            "target_changes": self._target_changes,
            "invalid_targets": self._invalid_targets,
            "servers_rooted": self._servers_rooted,
            "capacity_acquired": self._capacity_acquired,
            "capacity_spent": self._capacity_spent,
            "total_duration": self._total_duration,
            "event_count": self._event_count,
            "max_time": self._max_time,
        }

"""Attack loop: pick a target, plan and launch one pass, sleep, repeat."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, Optional

from hwgw.core import ICapacityQuery, IJobLauncher, ITargetQuery
from hwgw.core.effects import GrowthFn
from hwgw.errors import InvalidTargetError
from hwgw.events import EventBus, EventType
from hwgw.io import ConfigStore
from hwgw.model import AttackConfig, OpType, Stage, TargetState
from hwgw.scheduler import IScheduler, PassPlan, PassResult, create_scheduler

from .provision import CapacityProvisioner
from .registry import ServerRegistry


logger = logging.getLogger(__name__)


def read_target_state(query: ITargetQuery, target_id: str) -> TargetState:
    """Snapshot the authoritative state of ``target_id``."""
    try:
        security, security_min = query.get_security(target_id)
        money, money_max = query.get_money(target_id)
        return TargetState(
            target_id=target_id,
            security_current=security,
            security_min=security_min,
            money_current=money,
            money_max=money_max,
            hack_time=query.get_operation_time(target_id, OpType.HACK),
            grow_time=query.get_operation_time(target_id, OpType.GROW),
            weaken_time=query.get_operation_time(target_id, OpType.WEAKEN),
            hack_steal_fraction=query.get_hack_steal_fraction(target_id),
        )
    except KeyError as exc:
        raise InvalidTargetError(target_id, "target state unavailable") from exc


@dataclass(slots=True)
class PassReport:
    index: int
    pass_id: str
    target_id: str
    entry_stage: Stage
    stages: list[Stage]
    launched: int
    rejected: int
    skipped: int
    threads_by_op: dict[str, int]
    duration: float
    sleep_ms: float

    @classmethod
    def from_result(cls, index: int, result: PassResult, sleep_ms: float) -> "PassReport":
        threads = {op.value: 0 for op in OpType}
        for job in result.launched:
            threads[job.op.value] += job.threads
        return cls(
            index=index,
            pass_id=result.pass_id,
            target_id=result.plan.target_id,
            entry_stage=result.plan.entry_stage,
            stages=list(result.plan.stages),
            launched=len(result.launched),
            rejected=len(result.rejected),
            skipped=len(result.skipped),
            threads_by_op=threads,
            duration=result.duration,
            sleep_ms=sleep_ms,
        )

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "pass_id": self.pass_id,
            "target_id": self.target_id,
            "entry_stage": self.entry_stage.value,
            "stages": [stage.value for stage in self.stages],
            "launched": self.launched,
            "rejected": self.rejected,
            "skipped": self.skipped,
            "threads_by_op": dict(self.threads_by_op),
            "duration": self.duration,
            "sleep_ms": self.sleep_ms,
        }


@dataclass(slots=True)
class RunSummary:
    passes: int
    stop_reason: str
    reports: list[PassReport] = field(default_factory=list)


def _wall_sleep(ms: float) -> None:
    time.sleep(max(0.0, ms) / 1000.0)


def _wall_clock() -> float:
    return time.monotonic() * 1000.0


class AttackOrchestrator:
    """Drive repeated scheduling passes against one target at a time.

    Config is re-read at the top of every pass so ``started``, bounds and
    the target can change while the loop runs.
    """

    STOP_NOT_STARTED = "stopped"
    STOP_MAX_PASSES = "max_passes"
    STOP_INVALID_TARGET = "invalid_target"

    def __init__(
        self,
        config_store: ConfigStore,
        registry: ServerRegistry,
        target_query: ITargetQuery,
        capacity: ICapacityQuery,
        launcher: IJobLauncher,
        *,
        scheduler: IScheduler | None = None,
        event_bus: EventBus | None = None,
        sleep: Callable[[float], None] | None = None,
        clock: Callable[[], float] | None = None,
        alert: Callable[[str], None] | None = None,
        provisioner: CapacityProvisioner | None = None,
        minimum_sleep: float = 3000.0,
        sleep_buffer: float = 100.0,
    ) -> None:
        self._store = config_store
        self._registry = registry
        self._target_query = target_query
        self._capacity = capacity
        self._launcher = launcher
        self._fixed_scheduler = scheduler
        self._scheduler_key: Optional[tuple[str, str]] = None
        self._scheduler: IScheduler | None = scheduler
        self.event_bus = event_bus or EventBus()
        self._sleep = sleep or _wall_sleep
        self._clock = clock or _wall_clock
        self._alert = alert or (lambda message: logger.error("ALERT %s", message))
        self._provisioner = provisioner
        self.minimum_sleep = minimum_sleep
        self.sleep_buffer = sleep_buffer
        self._pass_count = 0

    def scheduler_for(self, config: AttackConfig) -> IScheduler:
        if self._fixed_scheduler is not None:
            return self._fixed_scheduler
        key = (config.scheduler, repr(sorted(config.scheduler_params.items())))
        if self._scheduler is None or key != self._scheduler_key:
            self._scheduler = create_scheduler(config.scheduler, config.scheduler_params)
            self._scheduler_key = key
        return self._scheduler

    def select_target(self, config: AttackConfig) -> str:
        if not config.auto_target:
            try:
                info = self._registry.get(config.target)
            except KeyError as exc:
                raise InvalidTargetError(config.target, "unknown server") from exc
            if not info.has_admin_rights:
                raise InvalidTargetError(config.target, "no admin rights")
            return config.target
        best = self._registry.high_profit(1)
        if not best:
            raise InvalidTargetError(config.target or "auto", "no accessible server with money")
        return best[0].host

    def growth_for(self, target_id: str) -> GrowthFn:
        return lambda multiplier: self._target_query.get_growth_threads(target_id, multiplier)

    def sleep_for(self, duration: float) -> float:
        return max(self.minimum_sleep, duration) + self.sleep_buffer

    def _plan(self, config: AttackConfig, target_id: str, pass_id: str) -> tuple[IScheduler, PassPlan]:
        target = read_target_state(self._target_query, target_id)
        withheld = {self._registry.home: config.locked_ram} if config.locked_ram > 0 else {}
        scheduler = self.scheduler_for(config)
        plan = scheduler.plan(
            target,
            self._registry.attackers(),
            self._capacity,
            self.growth_for(target_id),
            bound_sec=config.bound_sec,
            bound_money=config.bound_money,
            withheld=withheld,
            pass_id=pass_id,
        )
        return scheduler, plan

    def preview(self, config: AttackConfig) -> PassPlan:
        """Plan the next pass without launching, buying, rooting or touching config."""
        self._registry.initialize()
        target_id = self.select_target(config)
        return self._plan(config, target_id, f"pass-{self._pass_count:04d}")[1]

    def expand(self, config: AttackConfig, now: float) -> None:
        """Buy capacity within budget, then root whatever the player now qualifies for."""
        correlation_id = f"pass-{self._pass_count:04d}"
        if config.auto_grow and self._provisioner is not None:
            for item in self._provisioner.grow(config.locked_budget):
                self.event_bus.publish(
                    event_type=EventType.CAPACITY_ACQUIRED,
                    time=now,
                    correlation_id=correlation_id,
                    node_id=item.host,
                    payload=item.to_dict(),
                )
        for host in self._registry.refresh():
            self.event_bus.publish(
                event_type=EventType.SERVER_ROOTED,
                time=now,
                correlation_id=correlation_id,
                node_id=host,
            )

    def run_pass(self, config: AttackConfig) -> PassReport:
        now = self._clock()
        self.expand(config, now)
        target_id = self.select_target(config)

        if target_id != config.target:
            previous = config.target
            config = config.model_copy(update={"target": target_id})
            self._store.save(config)
            logger.info("target changed %s -> %s", previous or "<none>", target_id)
            self.event_bus.publish(
                event_type=EventType.TARGET_CHANGED,
                time=now,
                correlation_id=f"pass-{self._pass_count:04d}",
                target_id=target_id,
                payload={"previous": previous},
            )

        pass_id = f"pass-{self._pass_count:04d}"
        index = self._pass_count
        self._pass_count += 1
        self.event_bus.publish(
            event_type=EventType.PASS_STARTED,
            time=now,
            correlation_id=pass_id,
            target_id=target_id,
        )

        scheduler, plan = self._plan(config, target_id, pass_id)
        result = scheduler.execute(plan, self._launcher, self._capacity, bus=self.event_bus, now=now)
        return PassReport.from_result(index, result, self.sleep_for(result.duration))

    def run(self, max_passes: int | None = None) -> RunSummary:
        reports: list[PassReport] = []
        stop_reason = self.STOP_MAX_PASSES
        while max_passes is None or len(reports) < max_passes:
            config = self._store.load()
            if not config.started:
                stop_reason = self.STOP_NOT_STARTED
                break
            try:
                report = self.run_pass(config)
            except InvalidTargetError as exc:
                self._alert(str(exc))
                self.event_bus.publish(
                    event_type=EventType.INVALID_TARGET,
                    time=self._clock(),
                    correlation_id=f"pass-{self._pass_count:04d}",
                    target_id=exc.target_id,
                    payload={"reason": exc.reason},
                )
                stop_reason = self.STOP_INVALID_TARGET
                break
            reports.append(report)
            self._sleep(report.sleep_ms)

        self.event_bus.publish(
            event_type=EventType.LOOP_STOPPED,
            time=self._clock(),
            correlation_id=f"pass-{self._pass_count:04d}",
            payload={"reason": stop_reason, "passes": len(reports)},
        )
        logger.info("attack loop stopped after %d passes: %s", len(reports), stop_reason)
        return RunSummary(passes=len(reports), stop_reason=stop_reason, reports=reports)

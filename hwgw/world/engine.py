"""SimPy-backed simulated game world.

Implements every boundary the scheduler and orchestrator talk to, so a
full attack loop can run in-process against deterministic virtual time.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from pathlib import Path
from typing import Optional

import simpy

from hwgw.core import ICapacityMarket, ICapacityQuery, IJobLauncher, INetwork, ITargetQuery, ServerInfo
from hwgw.core import effects
from hwgw.core.effects import GrowthFn
from hwgw.io import WorldLoader
from hwgw.model import CAPACITY_EPSILON, OpType, ServerSpec, WorldSpec


logger = logging.getLogger(__name__)

MAX_SECURITY = 100.0


@dataclass(slots=True)
class ServerRuntime:
    spec: ServerSpec
    money: float
    security: float
    admin: bool
    ram_used: float = 0.0

    @property
    def ram_free(self) -> float:
        return max(0.0, self.spec.ram - self.ram_used)


@dataclass(slots=True)
class Completion:
    """One finished job, in completion order."""

    time: float
    handle: str
    node_id: str
    target_id: str
    op: OpType
    threads: int


class SimWorld(ITargetQuery, ICapacityQuery, IJobLauncher, INetwork, ICapacityMarket):
    """Discrete-event world using SimPy clock progression."""

    GROW_TIME_FACTOR = 3.2
    WEAKEN_TIME_FACTOR = 4.0

    def __init__(self, spec: WorldSpec, *, env: Optional[simpy.Environment] = None) -> None:
        self._spec = spec
        self._env = env or simpy.Environment()
        self._servers: dict[str, ServerRuntime] = {}
        self._links: dict[str, list[str]] = {}
        for server in spec.servers:
            self._servers[server.id] = ServerRuntime(
                spec=server,
                money=float(server.money if server.money is not None else server.money_max),
                security=float(server.security if server.security is not None else server.security_min),
                admin=server.admin,
            )
            self._links.setdefault(server.id, [])
        for server in spec.servers:
            for link in server.connections:
                if link not in self._links[server.id]:
                    self._links[server.id].append(link)
                if server.id not in self._links[link]:
                    self._links[link].append(server.id)
        self._skill = spec.player.skill
        self._port_tools = spec.player.port_tools
        self._money = spec.player.money
        self._launch_seq = 0
        self.completions: list[Completion] = []

    @classmethod
    def from_file(cls, path: str | Path) -> "SimWorld":
        return cls(WorldLoader().load(path))

    @property
    def home(self) -> str:
        return self._spec.home

    @property
    def now(self) -> float:
        return float(self._env.now)

    def clock(self) -> float:
        return self.now

    def sleep(self, ms: float) -> None:
        """Advance virtual time; jobs due in the window complete on the way."""
        self._env.run(until=self._env.now + max(0.0, ms))

    def _server(self, host: str) -> ServerRuntime:
        try:
            return self._servers[host]
        except KeyError:
            raise KeyError(f"unknown server '{host}'") from None

    def grant_admin(self, host: str) -> None:
        self._server(host).admin = True

    def set_skill(self, skill: int) -> None:
        self._skill = skill

    def set_port_tools(self, count: int) -> None:
        self._port_tools = count

    # target query

    def get_security(self, target_id: str) -> tuple[float, float]:
        runtime = self._server(target_id)
        return runtime.security, runtime.spec.security_min

    def get_money(self, target_id: str) -> tuple[float, float]:
        runtime = self._server(target_id)
        return runtime.money, runtime.spec.money_max

    def get_operation_time(self, target_id: str, op: OpType) -> float:
        runtime = self._server(target_id)
        hack_time = runtime.spec.hack_time * runtime.security / runtime.spec.security_min
        if op == OpType.GROW:
            return hack_time * self.GROW_TIME_FACTOR
        if op == OpType.WEAKEN:
            return hack_time * self.WEAKEN_TIME_FACTOR
        return hack_time

    def get_hack_steal_fraction(self, target_id: str) -> float:
        runtime = self._server(target_id)
        fraction = runtime.spec.steal_per_thread * (MAX_SECURITY - runtime.security) / MAX_SECURITY
        return min(1.0, max(0.0, fraction))

    def _growth_per_thread(self, runtime: ServerRuntime) -> float:
        return 1 + (runtime.spec.growth - 1) * runtime.spec.security_min / runtime.security

    def get_growth_threads(self, target_id: str, multiplier: float) -> float:
        if multiplier <= 1:
            return 0.0
        per_thread = self._growth_per_thread(self._server(target_id))
        return math.log(multiplier) / math.log(per_thread)

    def growth_fn(self, target_id: str) -> GrowthFn:
        return lambda multiplier: self.get_growth_threads(target_id, multiplier)

    # capacity

    def get_capacity(self, node_id: str) -> tuple[float, float]:
        runtime = self._server(node_id)
        return runtime.spec.ram, runtime.ram_free

    # launcher

    def launch(
        self,
        node_id: str,
        op: OpType,
        threads: int,
        target_id: str,
        start_delay: float,
    ) -> Optional[str]:
        if threads < 1:
            raise ValueError(f"launch needs at least one thread, got {threads}")
        node = self._server(node_id)
        self._server(target_id)
        cost = effects.op_cost(op, threads)
        if not node.admin or cost > node.ram_free + CAPACITY_EPSILON:
            logger.debug("launch of %s x%d on %s refused (free %.2f)", op.value, threads, node_id, node.ram_free)
            return None
        node.ram_used += cost
        handle = f"job-{self._launch_seq:06d}"
        self._launch_seq += 1
        self._env.process(self._run_job(handle, node, op, threads, target_id, start_delay, cost))
        return handle

    def _run_job(self, handle, node, op, threads, target_id, start_delay, cost):
        yield self._env.timeout(max(0.0, start_delay))
        # Duration is fixed by the target's security at the moment the job starts.
        duration = self.get_operation_time(target_id, op)
        yield self._env.timeout(duration)
        self._apply(self._server(target_id), op, threads)
        node.ram_used = max(0.0, node.ram_used - cost)
        self.completions.append(
            Completion(
                time=self.now,
                handle=handle,
                node_id=node.spec.id,
                target_id=target_id,
                op=op,
                threads=threads,
            )
        )

    def _apply(self, target: ServerRuntime, op: OpType, threads: int) -> None:
        if op == OpType.HACK:
            fraction = self.get_hack_steal_fraction(target.spec.id)
            stolen = math.floor(target.money * min(1.0, fraction * threads))
            target.money = max(0.0, target.money - stolen)
            self._money += stolen
        elif op == OpType.GROW:
            multiplier = self._growth_per_thread(target) ** threads
            target.money = min(target.spec.money_max, (target.money + threads) * multiplier)
        security = target.security + effects.security_delta(op, threads)
        target.security = min(MAX_SECURITY, max(target.spec.security_min, security))

    # network

    def scan(self, host: str) -> list[str]:
        self._server(host)
        return list(self._links[host])

    def get_server(self, host: str) -> ServerInfo:
        runtime = self._server(host)
        return ServerInfo(
            host=host,
            has_admin_rights=runtime.admin,
            purchased=runtime.spec.purchased,
            required_skill=runtime.spec.required_skill,
            money_max=runtime.spec.money_max,
            security_min=runtime.spec.security_min,
            capacity_total=runtime.spec.ram,
            ports_required=runtime.spec.ports_required,
        )

    def player_skill(self) -> int:
        return self._skill

    def nuke(self, host: str) -> bool:
        runtime = self._server(host)
        if runtime.admin:
            return True
        if runtime.spec.required_skill > self._skill:
            return False
        if self._port_tools >= runtime.spec.ports_required:
            runtime.admin = True
            logger.debug("rooted %s (%d ports)", host, runtime.spec.ports_required)
        return runtime.admin

    # capacity market

    def player_money(self) -> float:
        return self._money

    def purchased_servers(self) -> dict[str, float]:
        return {
            host: runtime.spec.ram
            for host, runtime in self._servers.items()
            if runtime.spec.purchased and host != self.home
        }

    def purchase_limit(self) -> int:
        return self._spec.market.server_limit

    def max_purchase_ram(self) -> float:
        return self._spec.market.max_ram

    def purchase_cost(self, ram: float) -> float:
        return ram * self._spec.market.ram_cost

    def purchase_server(self, host: str, ram: float) -> Optional[str]:
        cost = self.purchase_cost(ram)
        if (
            host in self._servers
            or len(self.purchased_servers()) >= self.purchase_limit()
            or ram > self.max_purchase_ram()
            or cost > self._money
        ):
            return None
        spec = ServerSpec(id=host, ram=ram, admin=True, purchased=True)
        self._servers[host] = ServerRuntime(spec=spec, money=0.0, security=spec.security_min, admin=True)
        self._links[host] = [self.home]
        self._links[self.home].append(host)
        self._money -= cost
        return host

    def upgrade_server(self, host: str, ram: float) -> bool:
        runtime = self._servers.get(host)
        if runtime is None or host not in self.purchased_servers():
            return False
        cost = self.purchase_cost(ram)
        if ram <= runtime.spec.ram or ram > self.max_purchase_ram() or cost > self._money:
            return False
        # Running jobs keep their reservation; the node only grows.
        runtime.spec = runtime.spec.model_copy(update={"ram": ram})
        self._money -= cost
        return True

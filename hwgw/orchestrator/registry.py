"""Discovered-server registry."""

from __future__ import annotations

from collections import deque
import logging

from hwgw.core import INetwork, ServerInfo


logger = logging.getLogger(__name__)


class ServerRegistry:
    """Breadth-first view of the network as seen from ``home``.

    Discovery order is stable across refreshes as long as the topology does
    not change, which keeps node iteration (and therefore plans) repeatable.
    """

    def __init__(self, network: INetwork, *, home: str = "home", min_attacker_capacity: float = 2.0) -> None:
        self._network = network
        self.home = home
        self.min_attacker_capacity = min_attacker_capacity
        self._order: list[str] = []
        self._parents: dict[str, str | None] = {}
        self._servers: dict[str, ServerInfo] = {}

    def initialize(self) -> "ServerRegistry":
        order = [self.home]
        parents: dict[str, str | None] = {self.home: None}
        queue = deque([self.home])
        while queue:
            host = queue.popleft()
            for link in self._network.scan(host):
                if link in parents:
                    continue
                parents[link] = host
                order.append(link)
                queue.append(link)
        self._order = order
        self._parents = parents
        self._servers = {host: self._network.get_server(host) for host in order}
        logger.debug("registry discovered %d servers from %s", len(order), self.home)
        return self

    def refresh(self) -> list[str]:
        """Rediscover the network and root every server the player now qualifies for.

        Returns the hosts that gained admin rights during this refresh.
        """
        self.initialize()
        return self.root_servers()

    def root_servers(self) -> list[str]:
        skill = self._network.player_skill()
        rooted: list[str] = []
        for host in self._order:
            info = self._servers[host]
            if info.has_admin_rights or info.required_skill > skill:
                continue
            if self._network.nuke(host):
                self._servers[host] = self._network.get_server(host)
                rooted.append(host)
                logger.info("gained admin rights on %s", host)
        return rooted

    @property
    def hosts(self) -> list[str]:
        return list(self._order)

    def get(self, host: str) -> ServerInfo:
        if host not in self._servers:
            raise KeyError(f"unknown server '{host}'")
        return self._servers[host]

    def route(self, host: str) -> list[str]:
        if host not in self._parents:
            raise KeyError(f"unknown server '{host}'")
        path = [host]
        while self._parents[path[-1]] is not None:
            path.append(self._parents[path[-1]])
        return list(reversed(path))

    def attackers(self) -> list[str]:
        return [
            host
            for host in self._order
            if self._servers[host].has_admin_rights
            and self._servers[host].capacity_total >= self.min_attacker_capacity
        ]

    def high_profit(self, count: int = 1) -> list[ServerInfo]:
        skill = self._network.player_skill()
        candidates = [
            info
            for info in (self._servers[host] for host in self._order)
            if info.has_admin_rights
            and not info.purchased
            and info.required_skill <= skill
            and info.money_max > 0
        ]
        candidates.sort(key=lambda info: -info.profit_value)
        return candidates[:count]

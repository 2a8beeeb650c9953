"""Boundary contracts between the scheduler and the game backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import math
from typing import Any, Optional

from hwgw.model import OpType


@dataclass(slots=True)
class ServerInfo:
    """Static plus slowly changing attributes of one discovered server."""

    host: str
    has_admin_rights: bool
    purchased: bool
    required_skill: int
    money_max: float
    security_min: float
    capacity_total: float
    ports_required: int = 0

    @property
    def profit_value(self) -> int:
        if self.purchased or not self.has_admin_rights or self.security_min <= 0:
            return 0
        return math.ceil(self.money_max / self.security_min)


class ITargetQuery(ABC):
    """Authoritative target state."""

    @abstractmethod
    def get_security(self, target_id: str) -> tuple[float, float]:
        """Return ``(current, minimum)`` security."""

    @abstractmethod
    def get_money(self, target_id: str) -> tuple[float, float]:
        """Return ``(current, maximum)`` money."""

    @abstractmethod
    def get_operation_time(self, target_id: str, op: OpType) -> float:
        """Duration in ms of ``op`` when started now."""

    @abstractmethod
    def get_hack_steal_fraction(self, target_id: str) -> float:
        """Fraction of current money stolen by one hack thread."""

    @abstractmethod
    def get_growth_threads(self, target_id: str, multiplier: float) -> float:
        """Grow threads needed to multiply current money by ``multiplier``."""


class ICapacityQuery(ABC):
    @abstractmethod
    def get_capacity(self, node_id: str) -> tuple[float, float]:
        """Return ``(total, free)`` capacity of a node."""


class IJobLauncher(ABC):
    @abstractmethod
    def launch(
        self,
        node_id: str,
        op: OpType,
        threads: int,
        target_id: str,
        start_delay: float,
    ) -> Optional[Any]:
        """Start ``threads`` threads of ``op``; return a handle, or None on failure."""


class INetwork(ABC):
    """Topology and player view used by the server registry."""

    @abstractmethod
    def scan(self, host: str) -> list[str]:
        """Hosts directly connected to ``host``."""

    @abstractmethod
    def get_server(self, host: str) -> ServerInfo:
        """Current attributes of ``host``; raise KeyError when unknown."""

    @abstractmethod
    def player_skill(self) -> int:
        """Current hacking skill of the player."""

    @abstractmethod
    def nuke(self, host: str) -> bool:
        """Open what ports the player can and try to gain admin rights.

        Returns whether admin rights are held afterwards.
        """


class ICapacityMarket(ABC):
    """Player money and the purchasable worker servers it can buy."""

    @abstractmethod
    def player_money(self) -> float:
        """Money currently available to the player."""

    @abstractmethod
    def purchased_servers(self) -> dict[str, float]:
        """Owned worker servers mapped to their capacity."""

    @abstractmethod
    def purchase_limit(self) -> int:
        """Maximum number of owned worker servers."""

    @abstractmethod
    def max_purchase_ram(self) -> float:
        """Largest capacity one owned server may have."""

    @abstractmethod
    def purchase_cost(self, ram: float) -> float:
        """Price of a server (or an upgrade) with ``ram`` capacity."""

    @abstractmethod
    def purchase_server(self, host: str, ram: float) -> Optional[str]:
        """Buy a server; return its host name, or None when refused."""

    @abstractmethod
    def upgrade_server(self, host: str, ram: float) -> bool:
        """Raise an owned server's capacity to ``ram``."""

"""Budgeted acquisition of worker capacity.

Each round lists every purchase or upgrade currently on offer, picks the
cheapest one the spendable budget (money above ``locked_budget``) covers,
and repeats until nothing is affordable or the market refuses.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from hwgw.core import ICapacityMarket


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Acquisition:
    action: str
    host: str
    ram: float
    cost: float

    def to_dict(self) -> dict:
        return {"action": self.action, "host": self.host, "ram": self.ram, "cost": self.cost}


class CapacityProvisioner:
    PURCHASE = "purchase"
    UPGRADE = "upgrade"

    def __init__(
        self,
        market: ICapacityMarket,
        *,
        prefix: str = "pserv",
        initial_ram: float = 4.0,
        max_rounds: int = 100,
    ) -> None:
        if initial_ram <= 0:
            raise ValueError("initial_ram must be > 0")
        self._market = market
        self.prefix = prefix
        self.initial_ram = initial_ram
        self.max_rounds = max_rounds

    def _next_name(self, owned: dict[str, float]) -> str:
        index = len(owned)
        while f"{self.prefix}-{index}" in owned:
            index += 1
        return f"{self.prefix}-{index}"

    def options(self) -> list[Acquisition]:
        owned = self._market.purchased_servers()
        offers: list[Acquisition] = []
        if len(owned) < self._market.purchase_limit():
            offers.append(
                Acquisition(
                    self.PURCHASE,
                    self._next_name(owned),
                    self.initial_ram,
                    self._market.purchase_cost(self.initial_ram),
                )
            )
        max_ram = self._market.max_purchase_ram()
        for host in sorted(owned):
            ram = 2 * owned[host]
            if 0 < ram <= max_ram:
                offers.append(Acquisition(self.UPGRADE, host, ram, self._market.purchase_cost(ram)))
        return offers

    def spendable(self, locked_budget: float) -> float:
        return self._market.player_money() - locked_budget

    def grow(self, locked_budget: float) -> list[Acquisition]:
        """Buy affordable capacity, cheapest first, never dipping into ``locked_budget``."""
        done: list[Acquisition] = []
        for _ in range(self.max_rounds):
            budget = self.spendable(locked_budget)
            affordable = [offer for offer in self.options() if offer.cost <= budget]
            if not affordable:
                break
            choice = min(affordable, key=lambda offer: (offer.cost, offer.host))
            if choice.action == self.PURCHASE:
                accepted = self._market.purchase_server(choice.host, choice.ram) is not None
            else:
                accepted = self._market.upgrade_server(choice.host, choice.ram)
            if not accepted:
                logger.warning("%s of %s (%.0f) refused", choice.action, choice.host, choice.ram)
                break
            logger.info("%s %s -> %.0f for %.0f", choice.action, choice.host, choice.ram, choice.cost)
            done.append(choice)
        return done

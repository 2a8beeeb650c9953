"""Configuration domain models and semantic validation."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


BOUND_SEC_RANGE = (0.5, 99.0)
BOUND_MONEY_RANGE = (0.0, 1.0)


class BatchSizing(str, Enum):
    """How HWGW batch thread counts are derived."""

    STEAL = "steal"
    RATIO = "ratio"


class SchedulerParams(BaseModel):
    """Tunables that distinguish one scheduler variant from another."""

    model_config = ConfigDict(extra="forbid")

    tick: float = Field(default=20.0, gt=0)
    slack: float = Field(default=20.0, ge=0)
    batch_offset: Optional[float] = Field(default=None, gt=0)
    batch_sizing: BatchSizing = BatchSizing.STEAL
    steal_fraction: float = Field(default=0.5, gt=0, lt=1)
    hack_ratio: int = Field(default=5, ge=1)
    grow_ratio: int = Field(default=3, ge=1)
    grow_weaken_ratio: float = Field(default=5.0, ge=1, le=12.5)
    max_batches_per_node: int = Field(default=20, ge=1)
    max_cycles: int = Field(default=2, ge=1)
    max_node_capacity: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def validate_offsets(self) -> "SchedulerParams":
        if self.batch_offset is None:
            self.batch_offset = 4 * self.tick
        if self.batch_offset < 3 * self.tick - 1e-9:
            raise ValueError("batch_offset must be at least 3 ticks so batch corrections never coincide")
        return self

    @property
    def offset(self) -> float:
        return float(self.batch_offset if self.batch_offset is not None else 4 * self.tick)


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return min(high, max(low, float(value)))


class AttackConfig(BaseModel):
    """Persisted orchestrator config, read at the top of every pass."""

    model_config = ConfigDict(extra="forbid")

    started: bool = False
    target: str = ""
    auto_target: bool = True
    bound_sec: float = 4.0
    bound_money: float = 0.6
    locked_ram: float = Field(default=0.0, ge=0)
    locked_budget: float = Field(default=0.0, ge=0)
    auto_grow: bool = False
    scheduler: str = "hwgw"
    scheduler_params: dict = Field(default_factory=dict)

    @field_validator("bound_sec")
    @classmethod
    def clamp_bound_sec(cls, value: float) -> float:
        return _clamp(value, BOUND_SEC_RANGE)

    @field_validator("bound_money")
    @classmethod
    def clamp_bound_money(cls, value: float) -> float:
        return _clamp(value, BOUND_MONEY_RANGE)

    @model_validator(mode="after")
    def validate_target(self) -> "AttackConfig":
        if not self.auto_target and not self.target:
            raise ValueError("fixed targeting requires a non-empty target")
        return self


MAX_PORTS = 5


class PlayerSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    skill: int = Field(default=1, ge=0)
    money: float = Field(default=0.0, ge=0)
    port_tools: int = Field(default=0, ge=0, le=MAX_PORTS)


class MarketSpec(BaseModel):
    """Prices and limits for purchasable worker servers."""

    model_config = ConfigDict(extra="forbid")

    ram_cost: float = Field(default=55_000.0, gt=0)
    server_limit: int = Field(default=25, ge=0)
    max_ram: float = Field(default=1_048_576.0, gt=0)


class ServerSpec(BaseModel):
    """Static and initial mutable attributes of one simulated server."""

    model_config = ConfigDict(extra="forbid")

    id: str
    ram: float = Field(default=0.0, ge=0)
    admin: bool = False
    purchased: bool = False
    required_skill: int = Field(default=1, ge=0)
    ports_required: int = Field(default=0, ge=0, le=MAX_PORTS)
    money_max: float = Field(default=0.0, ge=0)
    money: Optional[float] = Field(default=None, ge=0)
    security_min: float = Field(default=1.0, gt=0)
    security: Optional[float] = Field(default=None, gt=0)
    growth: float = Field(default=1.02, gt=1)
    hack_time: float = Field(default=1000.0, gt=0)
    steal_per_thread: float = Field(default=0.002, ge=0, le=1)
    connections: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def fill_initial_state(self) -> "ServerSpec":
        if self.money is None:
            self.money = self.money_max
        if self.security is None:
            self.security = self.security_min
        if self.money > self.money_max:
            raise ValueError(f"server {self.id} money exceeds money_max")
        if self.security < self.security_min:
            raise ValueError(f"server {self.id} security below security_min")
        return self


class WorldSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str
    home: str = "home"
    player: PlayerSpec = Field(default_factory=PlayerSpec)
    market: MarketSpec = Field(default_factory=MarketSpec)
    servers: list[ServerSpec] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_topology(self) -> "WorldSpec":
        server_ids = [server.id for server in self.servers]
        if len(server_ids) != len(set(server_ids)):
            raise ValueError("duplicate servers.id")
        known = set(server_ids)
        if self.home not in known:
            raise ValueError(f"home server '{self.home}' is not defined")
        for server in self.servers:
            for link in server.connections:
                if link not in known:
                    raise ValueError(f"server '{server.id}' connects to unknown server '{link}'")
                if link == server.id:
                    raise ValueError(f"server '{server.id}' connects to itself")
        return self

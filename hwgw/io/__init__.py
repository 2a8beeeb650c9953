"""I/O exports."""

from .loader import ConfigStore, WorldLoader
from .schema import ATTACK_CONFIG_SCHEMA, WORLD_SCHEMA

__all__ = [
    "ATTACK_CONFIG_SCHEMA",
    "ConfigStore",
    "WORLD_SCHEMA",
    "WorldLoader",
]

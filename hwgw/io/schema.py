"""JSON schemas for attack config and world file structure validation."""

from __future__ import annotations

ATTACK_CONFIG_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Attack Config",
    "type": "object",
    "properties": {
        "started": {"type": "boolean"},
        "target": {"type": "string"},
        "auto_target": {"type": "boolean"},
        "bound_sec": {"type": "number"},
        "bound_money": {"type": "number"},
        "locked_ram": {"type": "number", "minimum": 0},
        "locked_budget": {"type": "number", "minimum": 0},
        "auto_grow": {"type": "boolean"},
        "scheduler": {"type": "string", "minLength": 1},
        "scheduler_params": {
            "type": "object",
            "properties": {
                "tick": {"type": "number", "exclusiveMinimum": 0},
                "slack": {"type": "number", "minimum": 0},
                "batch_offset": {"type": ["number", "null"]},
                "batch_sizing": {"type": "string", "enum": ["steal", "ratio"]},
                "steal_fraction": {"type": "number"},
                "hack_ratio": {"type": "integer", "minimum": 1},
                "grow_ratio": {"type": "integer", "minimum": 1},
                "grow_weaken_ratio": {"type": "number"},
                "max_batches_per_node": {"type": "integer", "minimum": 1},
                "max_cycles": {"type": "integer", "minimum": 1},
                "max_node_capacity": {"type": ["number", "null"]},
            },
        },
    },
    "additionalProperties": False,
}


WORLD_SCHEMA: dict = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Simulated World",
    "type": "object",
    "required": ["version", "servers"],
    "properties": {
        "version": {"type": "string"},
        "home": {"type": "string"},
        "player": {
            "type": "object",
            "properties": {
                "skill": {"type": "integer", "minimum": 0},
                "money": {"type": "number", "minimum": 0},
                "port_tools": {"type": "integer", "minimum": 0, "maximum": 5},
            },
            "additionalProperties": False,
        },
        "market": {
            "type": "object",
            "properties": {
                "ram_cost": {"type": "number", "exclusiveMinimum": 0},
                "server_limit": {"type": "integer", "minimum": 0},
                "max_ram": {"type": "number", "exclusiveMinimum": 0},
            },
            "additionalProperties": False,
        },
        "servers": {
            "type": "array",
            "minItems": 1,
            "items": {"$ref": "#/$defs/Server"},
        },
    },
    "additionalProperties": False,
    "$defs": {
        "Server": {
            "type": "object",
            "required": ["id"],
            "properties": {
                "id": {"type": "string", "minLength": 1},
                "ram": {"type": "number", "minimum": 0},
                "admin": {"type": "boolean"},
                "purchased": {"type": "boolean"},
                "required_skill": {"type": "integer", "minimum": 0},
                "ports_required": {"type": "integer", "minimum": 0, "maximum": 5},
                "money_max": {"type": "number", "minimum": 0},
                "money": {"type": "number", "minimum": 0},
                "security_min": {"type": "number", "exclusiveMinimum": 0},
                "security": {"type": "number", "exclusiveMinimum": 0},
                "growth": {"type": "number", "exclusiveMinimum": 1},
                "hack_time": {"type": "number", "exclusiveMinimum": 0},
                "steal_per_thread": {"type": "number", "minimum": 0, "maximum": 1},
                "connections": {"type": "array", "items": {"type": "string"}},
            },
            "additionalProperties": False,
        }
    },
}

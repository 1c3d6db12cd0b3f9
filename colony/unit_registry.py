"""Canonical unit definitions for every purchasable unit type."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable


class UnitType(Enum):
    MINER_BASIC = "MINER_BASIC"
    MINER_DRILL = "MINER_DRILL"
    CARRIER_ROVER = "CARRIER_ROVER"
    CARRIER_DRONE = "CARRIER_DRONE"


@dataclass(frozen=True)
class UnitDefinition:
    """Immutable base stats for a unit type (before modifiers)."""

    unit_type: UnitType
    label: str
    cost: int
    speed: float
    capacity: float
    power: float
    max_energy: float
    is_tool: bool = False


_UNITS: Dict[UnitType, UnitDefinition] = {
    UnitType.MINER_BASIC: UnitDefinition(
        unit_type=UnitType.MINER_BASIC,
        label="Miner",
        cost=10,
        speed=0.8,
        capacity=5,
        power=0.5,
        max_energy=100,
    ),
    # Drills never move by themselves; a carrier hauls them to the shaft bottom.
    UnitType.MINER_DRILL: UnitDefinition(
        unit_type=UnitType.MINER_DRILL,
        label="Hvy Drill",
        cost=250,
        speed=0.0,
        capacity=0,
        power=5,
        max_energy=500,
        is_tool=True,
    ),
    UnitType.CARRIER_ROVER: UnitDefinition(
        unit_type=UnitType.CARRIER_ROVER,
        label="Speedy Bot",
        cost=50,
        speed=1.5,
        capacity=15,
        power=2,
        max_energy=150,
    ),
    UnitType.CARRIER_DRONE: UnitDefinition(
        unit_type=UnitType.CARRIER_DRONE,
        label="Flying Drone",
        cost=500,
        speed=3.0,
        capacity=40,
        power=4,
        max_energy=120,
    ),
}


def get_unit_definition(unit_type: UnitType) -> UnitDefinition:
    """Look up the base stats for ``unit_type``."""

    if unit_type not in _UNITS:
        raise KeyError(f"Unknown unit type: {unit_type}")
    return _UNITS[unit_type]


def all_unit_definitions() -> Iterable[UnitDefinition]:
    return _UNITS.values()

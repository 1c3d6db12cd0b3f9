"""Canonical building definitions and the fixed slot layout around the asteroid."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Tuple

from .constants import CRUSHER_ANGLE, LAUNCHPAD_ANGLE, SLOT_END_ANGLE, SLOT_START_ANGLE, SLOT_STEP
from .unit_registry import UnitType


class BuildingType(Enum):
    HABITAT = "HABITAT"
    WORKSHOP = "WORKSHOP"
    CRUSHER = "CRUSHER"
    REACTOR = "REACTOR"
    TRAINING = "TRAINING"
    LAUNCHPAD = "LAUNCHPAD"


@dataclass(frozen=True)
class BuildingDefinition:
    """Immutable data describing a constructible building."""

    building_type: BuildingType
    label: str
    description: str
    base_cost: int
    base_max_workers: int = 0
    base_max_population: int = 0
    unit_unlocks: Tuple[UnitType, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SlotLayout:
    """Where a building slot sits on the surface."""

    id: int
    angle: float
    is_launchpad: bool = False
    prebuilt_crusher: bool = False


_BUILDINGS: Dict[BuildingType, BuildingDefinition] = {
    BuildingType.HABITAT: BuildingDefinition(
        building_type=BuildingType.HABITAT,
        label="Habitat",
        description="Increases population cap (+5)",
        base_cost=100,
        base_max_population=5,
        unit_unlocks=(UnitType.MINER_BASIC, UnitType.CARRIER_ROVER),
    ),
    BuildingType.WORKSHOP: BuildingDefinition(
        building_type=BuildingType.WORKSHOP,
        label="Tech Lab",
        description="Allows advanced unit production",
        base_cost=500,
        unit_unlocks=(UnitType.MINER_DRILL, UnitType.CARRIER_DRONE),
    ),
    BuildingType.CRUSHER: BuildingDefinition(
        building_type=BuildingType.CRUSHER,
        label="Ore Crusher",
        description="Passive ore processing",
        base_cost=1500,
    ),
    BuildingType.TRAINING: BuildingDefinition(
        building_type=BuildingType.TRAINING,
        label="Training Center",
        description="Upgrade unit stats globally",
        base_cost=2500,
    ),
    BuildingType.REACTOR: BuildingDefinition(
        building_type=BuildingType.REACTOR,
        label="Core Reactor",
        description="Speed up all units",
        base_cost=5000,
    ),
    BuildingType.LAUNCHPAD: BuildingDefinition(
        building_type=BuildingType.LAUNCHPAD,
        label="Launchpad",
        description="Prepare for departure (Prestige)",
        base_cost=50000,
    ),
}


def get_building_definition(building_type: BuildingType) -> BuildingDefinition:
    """Look up a building definition by its type."""

    if building_type not in _BUILDINGS:
        raise KeyError(f"Unknown building type: {building_type}")
    return _BUILDINGS[building_type]


def all_building_definitions() -> Iterable[BuildingDefinition]:
    return _BUILDINGS.values()


def generate_slots() -> List[SlotLayout]:
    """Build the slot ring: the main crusher first, then the arc of free slots.

    The arc slot nearest ``LAUNCHPAD_ANGLE`` is reserved for the launchpad.
    """

    angles = list(range(SLOT_START_ANGLE, SLOT_END_ANGLE + 1, SLOT_STEP))
    launchpad_index = min(
        range(len(angles)), key=lambda idx: abs(angles[idx] - LAUNCHPAD_ANGLE)
    )
    slots = [SlotLayout(id=0, angle=CRUSHER_ANGLE, prebuilt_crusher=True)]
    for idx, angle in enumerate(angles):
        slots.append(
            SlotLayout(id=idx + 1, angle=float(angle), is_launchpad=idx == launchpad_index)
        )
    return slots

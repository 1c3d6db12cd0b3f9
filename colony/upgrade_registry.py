"""Upgrade catalog: purchasable, permanent stat modifiers per building type."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .building_registry import BuildingType
from .modifiers import Modifier, ModifierKind, ModifierScope, Stat


@dataclass(frozen=True)
class UpgradeDefinition:
    """A single catalog entry bought on a completed building slot."""

    id: str
    building_type: BuildingType
    label: str
    description: str
    cost: int
    modifiers: Tuple[Modifier, ...] = field(default_factory=tuple)


def _worker_slot(building_type: BuildingType) -> Modifier:
    return Modifier(
        scope=ModifierScope.BUILDING,
        target_key=building_type.value,
        stat=Stat.MAX_WORKERS,
        kind=ModifierKind.ADD_FLAT,
        value=1,
    )


def _population(amount: int) -> Modifier:
    return Modifier(
        scope=ModifierScope.BUILDING,
        target_key=BuildingType.HABITAT.value,
        stat=Stat.MAX_POPULATION,
        kind=ModifierKind.ADD_FLAT,
        value=amount,
    )


def _all_units(stat: Stat, amount: float) -> Modifier:
    return Modifier(
        scope=ModifierScope.UNIT,
        stat=stat,
        kind=ModifierKind.MULTIPLY_PERCENT,
        value=amount,
    )


_UPGRADES: Dict[str, UpgradeDefinition] = {}


def _register(upgrade: UpgradeDefinition) -> None:
    _UPGRADES[upgrade.id] = upgrade


# Crusher
_register(UpgradeDefinition(
    id="crush_1",
    building_type=BuildingType.CRUSHER,
    label="Manual Input",
    description="Adds a worker slot.",
    cost=1000,
    modifiers=(_worker_slot(BuildingType.CRUSHER),),
))
_register(UpgradeDefinition(
    id="crush_2",
    building_type=BuildingType.CRUSHER,
    label="Sorting Gear",
    description="Adds a 2nd worker slot.",
    cost=5000,
    modifiers=(_worker_slot(BuildingType.CRUSHER),),
))
_register(UpgradeDefinition(
    id="crush_3",
    building_type=BuildingType.CRUSHER,
    label="Hydraulics",
    description="Adds a 3rd worker slot.",
    cost=15000,
    modifiers=(_worker_slot(BuildingType.CRUSHER),),
))

# Habitat
_register(UpgradeDefinition(
    id="dorm_1",
    building_type=BuildingType.HABITAT,
    label="Expansion Module",
    description="+5 Population Cap.",
    cost=500,
    modifiers=(_population(5),),
))
_register(UpgradeDefinition(
    id="dorm_2",
    building_type=BuildingType.HABITAT,
    label="High-Density Bunks",
    description="+5 Population Cap.",
    cost=2000,
    modifiers=(_population(5),),
))

# Training center (colony-wide unit buffs)
_register(UpgradeDefinition(
    id="train_spd_1",
    building_type=BuildingType.TRAINING,
    label="Fitness Training",
    description="+20% Speed (All Units).",
    cost=2000,
    modifiers=(_all_units(Stat.SPEED, 0.2),),
))
_register(UpgradeDefinition(
    id="train_cap_1",
    building_type=BuildingType.TRAINING,
    label="Better Backpacks",
    description="+20% Capacity (All Units).",
    cost=3000,
    modifiers=(_all_units(Stat.CAPACITY, 0.2),),
))
_register(UpgradeDefinition(
    id="train_nrg_1",
    building_type=BuildingType.TRAINING,
    label="High-V Batteries",
    description="+20% Energy (All Units).",
    cost=2500,
    modifiers=(_all_units(Stat.ENERGY, 0.2),),
))
_register(UpgradeDefinition(
    id="train_spd_2",
    building_type=BuildingType.TRAINING,
    label="Exoskeletons",
    description="+20% Speed (All Units).",
    cost=8000,
    modifiers=(_all_units(Stat.SPEED, 0.2),),
))
_register(UpgradeDefinition(
    id="train_cap_2",
    building_type=BuildingType.TRAINING,
    label="Anti-Grav Pallets",
    description="+20% Capacity (All Units).",
    cost=12000,
    modifiers=(_all_units(Stat.CAPACITY, 0.2),),
))


def get_upgrade_definition(upgrade_id: str) -> UpgradeDefinition:
    """Look up an upgrade by id."""

    if upgrade_id not in _UPGRADES:
        raise KeyError(f"Unknown upgrade: {upgrade_id}")
    return _UPGRADES[upgrade_id]


def all_upgrade_definitions() -> Iterable[UpgradeDefinition]:
    return _UPGRADES.values()


def upgrades_for(building_type: BuildingType) -> List[UpgradeDefinition]:
    """Return the catalog entries offered by ``building_type``."""

    return [u for u in _UPGRADES.values() if u.building_type == building_type]

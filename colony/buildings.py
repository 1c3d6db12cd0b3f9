"""Building slots: construction lifecycle, worker slots and crusher output."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from .building_registry import BuildingType, get_building_definition
from .constants import BUILD_SPEED_BASE, CRUSHER_PASSIVE_RATE, CRUSHER_WORKER_BONUS
from .modifiers import ModifierScope, ModifierStack, Stat

if TYPE_CHECKING:  # pragma: no cover - circular import safe guard
    from .world import ColonyWorld

logger = logging.getLogger(__name__)


class BuildingStatus(Enum):
    EMPTY = "EMPTY"
    PENDING = "PENDING"
    UNDER_CONSTRUCTION = "UNDER_CONSTRUCTION"
    COMPLETED = "COMPLETED"


@dataclass
class BuildingSlot:
    """One fixed construction site on the asteroid surface."""

    id: int
    angle: float
    is_launchpad_slot: bool = False
    type: Optional[BuildingType] = None
    status: BuildingStatus = BuildingStatus.EMPTY
    level: int = 0
    construction_progress: float = 0.0
    assigned_unit_id: Optional[str] = None
    occupants: List[str] = field(default_factory=list)
    assigned_workers: List[str] = field(default_factory=list)
    requested_workers: int = 0
    purchased_upgrades: List[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def is_completed(self) -> bool:
        return self.status == BuildingStatus.COMPLETED

    @property
    def needs_builder(self) -> bool:
        return (
            self.status in (BuildingStatus.PENDING, BuildingStatus.UNDER_CONSTRUCTION)
            and self.assigned_unit_id is None
        )

    def start_construction(self, building_type: BuildingType) -> None:
        self._reset_as(building_type)
        self.status = BuildingStatus.PENDING

    def complete_instantly(self, building_type: BuildingType) -> None:
        """Skip the construction phase (bootstrap habitat, pre-built crusher)."""

        self._reset_as(building_type)
        self.status = BuildingStatus.COMPLETED
        self.construction_progress = 1.0

    def claim(self, unit_id: str) -> None:
        """Reserve this construction job for ``unit_id``."""

        self.assigned_unit_id = unit_id
        if self.status == BuildingStatus.PENDING:
            self.status = BuildingStatus.UNDER_CONSTRUCTION

    def release_builder(self, unit_id: str) -> None:
        if self.assigned_unit_id == unit_id:
            self.assigned_unit_id = None

    def advance_construction(self, power: float, multiplier: float, dt: float) -> bool:
        """Add builder labor; returns ``True`` when the building completes."""

        if self.status != BuildingStatus.UNDER_CONSTRUCTION:
            return self.is_completed
        self.construction_progress += BUILD_SPEED_BASE * power * multiplier * dt
        if self.construction_progress < 1.0:
            return False
        self.complete_construction()
        return True

    def complete_construction(self) -> None:
        self.status = BuildingStatus.COMPLETED
        self.construction_progress = 1.0
        self.assigned_unit_id = None
        self.level = 1
        logger.info("Slot %d finished construction of %s", self.id, self.type.value)

    def _reset_as(self, building_type: BuildingType) -> None:
        self.type = building_type
        self.level = 1
        self.construction_progress = 0.0
        self.assigned_unit_id = None
        self.occupants = []
        self.assigned_workers = []
        self.requested_workers = 0
        self.purchased_upgrades = []

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------
    def max_workers(self, modifiers: ModifierStack) -> int:
        if self.type is None:
            return 0
        base = get_building_definition(self.type).base_max_workers
        return int(modifiers.resolve(base, ModifierScope.BUILDING, self.type.value, Stat.MAX_WORKERS))

    def max_population(self, modifiers: ModifierStack) -> int:
        if self.type is None:
            return 0
        base = get_building_definition(self.type).base_max_population
        return int(
            modifiers.resolve(base, ModifierScope.BUILDING, self.type.value, Stat.MAX_POPULATION)
        )

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------
    def wants_worker(self) -> bool:
        return self.is_completed and len(self.assigned_workers) < self.requested_workers

    def set_requested_workers(self, count: int, max_workers: int) -> List[str]:
        """Clamp and store the worker request; returns ids that lost their slot."""

        self.requested_workers = max(0, min(int(count), max_workers))
        revoked = self.assigned_workers[self.requested_workers:]
        del self.assigned_workers[self.requested_workers:]
        return revoked

    def add_worker(self, unit_id: str) -> None:
        if unit_id not in self.assigned_workers:
            self.assigned_workers.append(unit_id)

    def remove_worker(self, unit_id: str) -> None:
        if unit_id in self.assigned_workers:
            self.assigned_workers.remove(unit_id)

    def has_worker(self, unit_id: str) -> bool:
        return unit_id in self.assigned_workers

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------
    def update(self, dt: float, world: "ColonyWorld") -> None:
        if not self.is_completed or self.type is None:
            return
        producer = _PRODUCERS.get(self.type)
        if producer is not None:
            producer(self, dt, world)


def _crusher_tick(building: BuildingSlot, dt: float, world: "ColonyWorld") -> None:
    """Turn surface ore into credits; staffed workers add energy-scaled output."""

    if world.surface_ore <= 0.0 or dt <= 0.0:
        return
    rate = CRUSHER_PASSIVE_RATE
    for worker_id in building.assigned_workers:
        worker = world.get_unit(worker_id)
        if worker is None or not worker.is_working_at(building.id):
            continue
        rate += CRUSHER_WORKER_BONUS * worker.energy_ratio
    rate *= world.global_multiplier
    processed = min(world.surface_ore, rate * dt)
    world.surface_ore -= processed
    world.credits += processed * world.environment.ore_value


_PRODUCERS: Dict[BuildingType, Callable[[BuildingSlot, float, "ColonyWorld"], None]] = {
    BuildingType.CRUSHER: _crusher_tick,
}

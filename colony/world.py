"""World state for the asteroid colony: economy, entities and the command API."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from .building_registry import (
    BuildingType,
    all_building_definitions,
    generate_slots,
    get_building_definition,
)
from .buildings import BuildingSlot, BuildingStatus
from .constants import (
    COST_SCALING_FACTOR,
    DEFAULT_STEP,
    MAX_TICK_DT,
    ORE_VALUE,
    STARTING_CREDITS,
    SURFACE_LEVEL,
)
from .modifiers import ModifierScope, ModifierStack, Stat
from .snapshot import BuildingView, TunnelView, UnitView, WorldSnapshot
from .taxation import TaxOffice
from .terrain import MineShaft, Tunnel
from .unit_registry import UnitType, all_unit_definitions, get_unit_definition
from .units import PolarPosition, Unit, UnitState, UnitStats
from .upgrade_registry import get_upgrade_definition

logger = logging.getLogger(__name__)


@dataclass
class Environment:
    """Session-wide tuning knobs plus the meta-progression counters."""

    ore_value: float = ORE_VALUE
    starting_credits: float = STARTING_CREDITS
    mining_permits: int = 0
    prestige_count: int = 0


@dataclass
class ColonyWorld:
    """Owns every unit and building slot and advances them each frame.

    Renderers read attributes (or :meth:`snapshot`) between ticks and only
    change the simulation through the command methods. Commands never raise
    for gameplay reasons; they return ``False``/``None`` when rejected.
    """

    seed: Optional[int] = None
    environment: Environment = field(default_factory=Environment)
    global_multiplier: float = 1.0
    time: float = field(default=0.0, init=False)
    credits: float = field(default=0.0, init=False)
    surface_ore: float = field(default=0.0, init=False)
    loose_ore_in_mine: float = field(default=0.0, init=False)
    shaft: MineShaft = field(default_factory=MineShaft, init=False)
    units: List[Unit] = field(default_factory=list, init=False)
    buildings: List[BuildingSlot] = field(default_factory=list, init=False)
    modifiers: ModifierStack = field(default_factory=ModifierStack, init=False)
    taxes: TaxOffice = field(default_factory=TaxOffice, init=False)
    rng: np.random.Generator = field(init=False, repr=False)
    _unit_serial: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self.rng = np.random.default_rng(self.seed)
        self._reset_colony()

    def _reset_colony(self) -> None:
        self.credits = float(self.environment.starting_credits)
        self.surface_ore = 0.0
        self.loose_ore_in_mine = 0.0
        self.shaft = MineShaft()
        self.units = []
        self.modifiers = ModifierStack()
        self.taxes = TaxOffice()
        self.buildings = []
        for layout in generate_slots():
            slot = BuildingSlot(id=layout.id, angle=layout.angle, is_launchpad_slot=layout.is_launchpad)
            if layout.prebuilt_crusher:
                slot.complete_instantly(BuildingType.CRUSHER)
            self.buildings.append(slot)

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------
    @property
    def total_mined(self) -> float:
        return self.shaft.total_mined

    @property
    def mine_depth(self) -> int:
        return self.shaft.mine_depth

    @property
    def tunnels(self) -> List[Tunnel]:
        return self.shaft.tunnels

    @property
    def tax_due(self) -> bool:
        return self.taxes.due

    @property
    def tax_amount(self) -> int:
        return self.taxes.amount

    @property
    def tax_timer(self) -> float:
        return self.taxes.next_due

    @property
    def tax_started(self) -> bool:
        return self.taxes.started

    @property
    def last_tax_paid(self) -> Optional[float]:
        return self.taxes.last_paid

    @property
    def mining_permits(self) -> int:
        return self.environment.mining_permits

    @property
    def prestige_count(self) -> int:
        return self.environment.prestige_count

    def snapshot(self) -> WorldSnapshot:
        """Capture an immutable view of the current frame."""

        units = []
        for unit in self.units:
            x, y = unit.position.to_cartesian()
            units.append(
                UnitView(
                    id=unit.id,
                    type=unit.type.value,
                    state=unit.state.value,
                    angle=unit.position.angle,
                    radius=unit.position.radius,
                    x=x,
                    y=y,
                    energy=unit.energy,
                    max_energy=unit.max_energy,
                    inventory=unit.inventory,
                    carrying_id=unit.carrying_id,
                    carried_by=unit.carried_by,
                )
            )
        buildings = [
            BuildingView(
                id=b.id,
                angle=b.angle,
                type=b.type.value if b.type is not None else None,
                status=b.status.value,
                level=b.level,
                construction_progress=b.construction_progress,
                occupants=len(b.occupants),
                assigned_workers=len(b.assigned_workers),
                requested_workers=b.requested_workers,
                max_workers=b.max_workers(self.modifiers),
                is_launchpad_slot=b.is_launchpad_slot,
            )
            for b in self.buildings
        ]
        tunnels = [
            TunnelView(
                id=t.id,
                depth=t.depth_threshold,
                direction=t.direction,
                current_length=t.current_length,
                max_length=t.max_length,
            )
            for t in self.tunnels
        ]
        return WorldSnapshot(
            time=self.time,
            credits=self.credits,
            surface_ore=self.surface_ore,
            loose_ore_in_mine=self.loose_ore_in_mine,
            total_mined=self.total_mined,
            mine_depth=self.mine_depth,
            tunnels=tuple(tunnels),
            units=tuple(units),
            buildings=tuple(buildings),
            tax_due=self.tax_due,
            tax_amount=self.tax_amount,
            tax_timer=self.tax_timer,
            tax_started=self.tax_started,
            mining_permits=self.mining_permits,
            prestige_count=self.prestige_count,
            global_multiplier=self.global_multiplier,
        )

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------
    def tick(self, dt: float) -> None:
        """Advance the colony by ``dt`` seconds (clamped to ``MAX_TICK_DT``).

        Order is fixed: taxation, then every building, then every unit in
        purchase order. Earlier units win races for shared jobs and ore.
        """

        dt = max(0.0, min(float(dt), MAX_TICK_DT))
        self.time += dt

        paid = self.taxes.update(self.time, self.credits)
        if paid > 0.0:
            self.credits -= paid
            self.environment.mining_permits += 1

        for building in self.buildings:
            building.update(dt, self)
        for unit in list(self.units):
            unit.update(dt, self)

    def run_for(self, seconds: float, step: float = DEFAULT_STEP) -> None:
        """Tick repeatedly until ``seconds`` of simulated time have passed."""

        remaining = float(seconds)
        step = max(1e-6, min(step, MAX_TICK_DT))
        while remaining > 1e-9:
            dt = min(step, remaining)
            self.tick(dt)
            remaining -= dt

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def buy_unit(self, unit_type: UnitType) -> Optional[Unit]:
        """Purchase a unit and house it; returns ``None`` when rejected."""

        if self.tax_due:
            logger.debug("buy_unit(%s) rejected: tax due", unit_type)
            return None
        try:
            definition = get_unit_definition(unit_type)
        except KeyError:
            return None
        if not self.is_unlocked(unit_type):
            logger.debug("buy_unit(%s) rejected: no completed building unlocks it", unit_type.value)
            return None
        cost = self.unit_cost(unit_type)
        if self.credits < cost:
            logger.debug("buy_unit(%s) rejected: need %d credits", unit_type.value, cost)
            return None

        home = self._home_for(definition.is_tool)
        if home is None:
            logger.debug("buy_unit(%s) rejected: no home available", unit_type.value)
            return None

        self.credits -= cost
        self._unit_serial += 1
        stats = self.unit_stats(unit_type)
        unit = Unit(
            id=f"u{self._unit_serial}",
            type=unit_type,
            position=PolarPosition(angle=home.angle, radius=SURFACE_LEVEL),
            max_energy=float(stats.max_energy),
            serial=self._unit_serial,
            home_building_id=home.id,
        )
        self.units.append(unit)
        if home.type == BuildingType.HABITAT:
            home.occupants.append(unit.id)
        logger.info("Bought %s %s for %d credits", definition.label, unit.id, cost)
        return unit

    def construct_building(self, slot_id: int, building_type: BuildingType) -> bool:
        """Order ``building_type`` on an empty slot.

        The colony's very first habitat is free and finished on the spot; it
        also starts the tax clock.
        """

        if self.tax_due:
            logger.debug("construct_building rejected: tax due")
            return False
        slot = self.building(slot_id)
        if slot is None or slot.status != BuildingStatus.EMPTY:
            return False
        try:
            definition = get_building_definition(building_type)
        except KeyError:
            return False
        if (building_type == BuildingType.LAUNCHPAD) != slot.is_launchpad_slot:
            logger.debug("construct_building rejected: launchpad placement on slot %d", slot_id)
            return False

        first_habitat = building_type == BuildingType.HABITAT and not any(
            b.type == BuildingType.HABITAT for b in self.buildings
        )
        cost = 0 if first_habitat else definition.base_cost
        if self.credits < cost:
            logger.debug("construct_building rejected: need %d credits", cost)
            return False

        self.credits -= cost
        if first_habitat:
            slot.complete_instantly(building_type)
            self.taxes.start(self.time)
            logger.info("First habitat established on slot %d", slot.id)
        else:
            slot.start_construction(building_type)
            logger.info("Ordered %s on slot %d for %d credits", definition.label, slot.id, cost)
        return True

    def buy_upgrade(self, slot_id: int, upgrade_id: str) -> bool:
        """Buy a catalog upgrade for a finished building; modifiers apply colony-wide."""

        if self.tax_due:
            logger.debug("buy_upgrade rejected: tax due")
            return False
        slot = self.building(slot_id)
        if slot is None or not slot.is_completed:
            return False
        try:
            upgrade = get_upgrade_definition(upgrade_id)
        except KeyError:
            return False
        if upgrade.building_type != slot.type or upgrade.id in slot.purchased_upgrades:
            return False
        if self.credits < upgrade.cost:
            logger.debug("buy_upgrade(%s) rejected: need %d credits", upgrade_id, upgrade.cost)
            return False

        self.credits -= upgrade.cost
        slot.purchased_upgrades.append(upgrade.id)
        self.modifiers.extend(upgrade.modifiers)
        slot.level += 1
        self._refresh_unit_stats()
        logger.info("Installed %s on slot %d (level %d)", upgrade.label, slot.id, slot.level)
        return True

    def set_worker_request(self, slot_id: int, count: int) -> bool:
        slot = self.building(slot_id)
        if slot is None:
            return False
        slot.set_requested_workers(count, slot.max_workers(self.modifiers))
        return True

    def prestige(self) -> None:
        """Launch: wipe the colony but keep permits earned from paid taxes.

        The reset is unconditional. A completed launchpad is the player-facing
        way to reach this command, but gating on it is left to the caller.
        """

        permits = self.environment.mining_permits
        self.environment.prestige_count += 1
        self._reset_colony()
        self.environment.mining_permits = permits
        logger.info(
            "Prestige #%d: colony reset with %d mining permits",
            self.environment.prestige_count,
            permits,
        )

    def set_global_multiplier(self, multiplier: float) -> bool:
        """Debug: scale every rate in the simulation."""

        if multiplier <= 0.0 or not math.isfinite(multiplier):
            return False
        self.global_multiplier = float(multiplier)
        return True

    def add_credits(self, amount: float) -> None:
        """Debug: inject credits."""

        self.credits += amount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def building(self, slot_id: Optional[int]) -> Optional[BuildingSlot]:
        for building in self.buildings:
            if building.id == slot_id:
                return building
        return None

    def get_unit(self, unit_id: Optional[str]) -> Optional[Unit]:
        for unit in self.units:
            if unit.id == unit_id:
                return unit
        return None

    def unit_cost(self, unit_type: UnitType) -> int:
        owned = sum(1 for unit in self.units if unit.type == unit_type)
        base = get_unit_definition(unit_type).cost
        return int(math.floor(base * COST_SCALING_FACTOR ** owned))

    def unit_stats(self, unit_type: UnitType) -> UnitStats:
        base = get_unit_definition(unit_type)
        key = unit_type.value

        def resolved(value: float, stat: Stat) -> float:
            return self.modifiers.resolve(value, ModifierScope.UNIT, key, stat)

        return UnitStats(
            speed=resolved(base.speed, Stat.SPEED),
            capacity=int(math.floor(resolved(base.capacity, Stat.CAPACITY))),
            power=resolved(base.power, Stat.POWER),
            max_energy=int(math.floor(resolved(base.max_energy, Stat.ENERGY))),
        )

    def max_population(self) -> int:
        return sum(
            b.max_population(self.modifiers)
            for b in self.buildings
            if b.type == BuildingType.HABITAT and b.is_completed
        )

    def population(self) -> int:
        return sum(1 for unit in self.units if not unit.is_tool)

    def is_unlocked(self, unit_type: UnitType) -> bool:
        """Whether some completed building lists ``unit_type`` among its unlocks."""

        completed = {b.type for b in self.buildings if b.is_completed}
        return any(
            definition.building_type in completed and unit_type in definition.unit_unlocks
            for definition in all_building_definitions()
        )

    def recruitable_units(self) -> List[UnitType]:
        return [d.unit_type for d in all_unit_definitions() if self.is_unlocked(d.unit_type)]

    def available_drill(self, requester_id: Optional[str] = None) -> Optional[Unit]:
        """First idle, uncarried drill not reserved by another unit.

        A drill already reserved by ``requester_id`` is preferred so a carrier
        keeps walking to the same drill.
        """

        reservations = {
            unit.drill_target_id: unit.id
            for unit in self.units
            if unit.drill_target_id is not None
        }
        candidates = [
            unit
            for unit in self.units
            if unit.is_tool and unit.state == UnitState.IDLE and unit.carried_by is None
        ]
        for drill in candidates:
            if requester_id is not None and reservations.get(drill.id) == requester_id:
                return drill
        for drill in candidates:
            if drill.id not in reservations:
                return drill
        return None

    def drop_carried_drill(self, carrier: Unit) -> None:
        """Set down whatever ``carrier`` holds on the surface above it."""

        if carrier.carrying_id is None:
            return
        drill = self.get_unit(carrier.carrying_id)
        carrier.carrying_id = None
        if drill is None:
            return
        drill.carried_by = None
        drill.set_state(UnitState.IDLE)
        drill.position = PolarPosition(angle=carrier.position.angle, radius=SURFACE_LEVEL)

    def check_invariants(self) -> List[str]:
        """Return every consistency violation found (empty when healthy)."""

        problems: List[str] = []
        for unit in self.units:
            stats = self.unit_stats(unit.type)
            if not 0.0 <= unit.energy <= unit.max_energy:
                problems.append(f"{unit.id}: energy {unit.energy} outside [0, {unit.max_energy}]")
            if not 0.0 <= unit.inventory <= stats.capacity:
                problems.append(f"{unit.id}: inventory {unit.inventory} outside [0, {stats.capacity}]")
            if unit.carrying_id is not None:
                drill = self.get_unit(unit.carrying_id)
                if drill is None or drill.carried_by != unit.id:
                    problems.append(f"{unit.id}: carries {unit.carrying_id} without back-reference")
            if unit.carried_by is not None:
                carrier = self.get_unit(unit.carried_by)
                if carrier is None or carrier.carrying_id != unit.id:
                    problems.append(f"{unit.id}: carried by {unit.carried_by} without back-reference")
        holders = [u.carrying_id for u in self.units if u.carrying_id is not None]
        if len(holders) != len(set(holders)):
            problems.append("a drill is held by more than one carrier")

        for building in self.buildings:
            max_workers = building.max_workers(self.modifiers)
            if not len(building.assigned_workers) <= building.requested_workers <= max_workers:
                problems.append(
                    f"slot {building.id}: workers {len(building.assigned_workers)}/"
                    f"{building.requested_workers}/{max_workers}"
                )
            if building.type == BuildingType.HABITAT:
                if len(building.occupants) > building.max_population(self.modifiers):
                    problems.append(f"slot {building.id}: over population cap")
        for tunnel in self.tunnels:
            if tunnel.current_length > tunnel.max_length:
                problems.append(f"tunnel {tunnel.id}: longer than its cap")
        return problems

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _home_for(self, is_tool: bool) -> Optional[BuildingSlot]:
        if is_tool:
            for building in self.buildings:
                if building.type == BuildingType.WORKSHOP and building.is_completed:
                    return building
            return None
        if self.population() >= self.max_population():
            return None
        for building in self.buildings:
            if (
                building.type == BuildingType.HABITAT
                and building.is_completed
                and len(building.occupants) < building.max_population(self.modifiers)
            ):
                return building
        return None

    def _refresh_unit_stats(self) -> None:
        """Push modifier changes onto units that already exist."""

        for unit in self.units:
            unit.apply_stats(self.unit_stats(unit.type))


def create_initial_world(seed: Optional[int] = None) -> ColonyWorld:
    """Create a fresh colony: the main crusher online and every other slot empty."""

    return ColonyWorld(seed=seed)

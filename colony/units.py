"""Units and their behavior state machines.

Two behavior shapes exist: autonomous workers (miners and carriers) that pick
their own jobs, and tools (drills) that only move while a carrier hauls them.
``Unit.type`` selects the behavior; there is no subclass per unit type.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from .constants import (
    ANGLE_EPSILON,
    CARRY_DRAIN_FACTOR,
    DEPOSIT_RATE,
    DRILL_PRODUCTION_RATE,
    DRILL_WEIGHT_SPEED_PENALTY,
    ENERGY_DRAIN_RATE,
    ENERGY_RECHARGE_RATE,
    EXIT_TURN_RATE,
    LOOSE_ORE_GRAB_THRESHOLD,
    LOOSE_ORE_PICKUP_THRESHOLD,
    MINE_ANGLE,
    MINING_TURN_RATE,
    PILE_ANGLE,
    RADIAL_RATE,
    RADIUS_EPSILON,
    SHAFT_ALIGN_TOLERANCE,
    SHAFT_SPREAD,
    SURFACE_LEVEL,
    TUNNEL_CHANCE,
    TURN_RATE,
    UNDERGROUND_MARGIN,
)
from .unit_registry import UnitType, get_unit_definition

if TYPE_CHECKING:  # pragma: no cover - circular import safe guard
    from .world import ColonyWorld

logger = logging.getLogger(__name__)

Vec2 = Tuple[float, float]


class UnitState(Enum):
    IDLE = "IDLE"
    MOVING_TO_MINE = "MOVING_TO_MINE"
    ENTERING_MINE = "ENTERING_MINE"
    MINING = "MINING"
    EXITING_MINE = "EXITING_MINE"
    MOVING_TO_PILE = "MOVING_TO_PILE"
    DEPOSITING = "DEPOSITING"
    MOVING_TO_HOME = "MOVING_TO_HOME"
    CHARGING = "CHARGING"
    MOVING_TO_BUILD = "MOVING_TO_BUILD"
    BUILDING = "BUILDING"
    MOVING_TO_DRILL = "MOVING_TO_DRILL"
    CARRYING_DRILL_TO_MINE = "CARRYING_DRILL_TO_MINE"
    OPERATING_DRILL = "OPERATING_DRILL"
    PICKUP_LOOSE_ORE = "PICKUP_LOOSE_ORE"
    MOVING_TO_WORK = "MOVING_TO_WORK"
    WORKING_IN_BUILDING = "WORKING_IN_BUILDING"


# States in which a unit does not spend energy.
_RESTING_STATES = frozenset(
    {UnitState.IDLE, UnitState.CHARGING, UnitState.MOVING_TO_HOME}
)


def normalize_angle(angle: float) -> float:
    """Wrap ``angle`` into (-180, 180]."""

    normalized = (angle + 180.0) % 360.0 - 180.0
    if normalized == -180.0:
        return 180.0
    return normalized


@dataclass
class PolarPosition:
    angle: float
    radius: float

    def copy(self) -> "PolarPosition":
        return PolarPosition(angle=self.angle, radius=self.radius)

    def to_cartesian(self) -> Vec2:
        """Asteroid-centred x/y with 0 degrees pointing straight up."""

        rad = math.radians(self.angle)
        return (math.sin(rad) * self.radius, -math.cos(rad) * self.radius)


@dataclass(frozen=True)
class UnitStats:
    """Effective unit stats after modifiers."""

    speed: float
    capacity: int
    power: float
    max_energy: int


@dataclass
class Unit:
    """A colonist robot or tool; every reference to other entities is an id."""

    id: str
    type: UnitType
    position: PolarPosition
    max_energy: float
    serial: int = 0
    home_building_id: Optional[int] = None
    state: UnitState = UnitState.IDLE
    energy: float = field(init=False)
    inventory: float = 0.0
    carrying_id: Optional[str] = None
    carried_by: Optional[str] = None
    drill_target_id: Optional[str] = None
    working_at_building_id: Optional[int] = None
    target_tunnel_idx: Optional[int] = None
    pickup_intent: bool = False
    progress: float = 0.0

    def __post_init__(self) -> None:
        self.energy = float(self.max_energy)
        self.position.angle = normalize_angle(self.position.angle)

    @property
    def is_tool(self) -> bool:
        return get_unit_definition(self.type).is_tool

    @property
    def energy_ratio(self) -> float:
        if self.max_energy <= 0.0:
            return 0.0
        return self.energy / self.max_energy

    @property
    def underground(self) -> bool:
        return self.position.radius < SURFACE_LEVEL - UNDERGROUND_MARGIN

    @property
    def depleted(self) -> bool:
        return self.energy <= 0.0

    def is_working_at(self, building_id: int) -> bool:
        return (
            self.state == UnitState.WORKING_IN_BUILDING
            and self.working_at_building_id == building_id
        )

    def set_state(self, state: UnitState) -> None:
        if state != self.state:
            logger.debug("Unit %s: %s -> %s", self.id, self.state.value, state.value)
        self.state = state

    def apply_stats(self, stats: UnitStats) -> None:
        """Adopt new effective stats, keeping the current energy ratio."""

        new_max = float(stats.max_energy)
        if self.max_energy > 0.0:
            self.energy = min(new_max, self.energy / self.max_energy * new_max)
        else:
            self.energy = new_max
        self.max_energy = new_max
        self.inventory = min(self.inventory, float(stats.capacity))

    # ------------------------------------------------------------------
    # Movement primitives
    # ------------------------------------------------------------------
    def rotate_towards(self, target_angle: float, dt: float, speed: float) -> bool:
        """Turn along the shortest arc; returns ``True`` once on target."""

        diff = normalize_angle(target_angle - self.position.angle)
        if abs(diff) < ANGLE_EPSILON:
            self.position.angle = normalize_angle(target_angle)
            return True
        step = min(abs(diff), max(0.0, speed) * dt)
        self.position.angle = normalize_angle(self.position.angle + math.copysign(step, diff))
        return False

    def move_radially(self, target_radius: float, dt: float, speed: float) -> bool:
        diff = target_radius - self.position.radius
        if abs(diff) < RADIUS_EPSILON:
            self.position.radius = target_radius
            return True
        step = min(abs(diff), max(0.0, speed) * dt)
        self.position.radius += math.copysign(step, diff)
        return False

    def move_towards(
        self, target_angle: float, target_radius: float, dt: float, speed: float
    ) -> bool:
        """Advance on both axes at once; ``speed`` is the effective unit speed."""

        arrived_angle = self.rotate_towards(target_angle, dt, speed * TURN_RATE)
        arrived_radius = self.move_radially(target_radius, dt, speed * RADIAL_RATE)
        return arrived_angle and arrived_radius

    def drain_energy(self, dt: float) -> None:
        drain = ENERGY_DRAIN_RATE
        if self.carrying_id is not None:
            drain *= CARRY_DRAIN_FACTOR
        self.energy = max(0.0, self.energy - drain * dt)

    def update(self, dt: float, world: "ColonyWorld") -> None:
        behavior_for(self.type).update(self, dt, world)


class WorkerBehavior:
    """Job-seeking state machine shared by miners and carriers."""

    def __init__(self) -> None:
        self._handlers: Dict[UnitState, Callable[[Unit, float, "ColonyWorld", UnitStats], None]] = {
            UnitState.IDLE: self._find_job,
            UnitState.MOVING_TO_BUILD: self._moving_to_build,
            UnitState.BUILDING: self._building,
            UnitState.MOVING_TO_WORK: self._moving_to_work,
            UnitState.WORKING_IN_BUILDING: self._working,
            UnitState.MOVING_TO_MINE: self._moving_to_mine,
            UnitState.PICKUP_LOOSE_ORE: self._moving_to_mine,
            UnitState.ENTERING_MINE: self._entering_mine,
            UnitState.MINING: self._mining,
            UnitState.EXITING_MINE: self._exiting_mine,
            UnitState.MOVING_TO_PILE: self._moving_to_pile,
            UnitState.DEPOSITING: self._depositing,
            UnitState.MOVING_TO_HOME: self._moving_to_home,
            UnitState.CHARGING: self._charging,
            UnitState.MOVING_TO_DRILL: self._moving_to_drill,
            UnitState.CARRYING_DRILL_TO_MINE: self._carrying_drill,
            UnitState.OPERATING_DRILL: self._operating_drill,
        }

    def update(self, unit: Unit, dt: float, world: "ColonyWorld") -> None:
        if dt <= 0.0:
            return
        stats = world.unit_stats(unit.type)
        if unit.state not in _RESTING_STATES:
            unit.drain_energy(dt)
            if unit.depleted:
                self._abandon_task(unit, world)
        self._handlers[unit.state](unit, dt, world, stats)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _speed(unit: Unit, world: "ColonyWorld", stats: UnitStats) -> float:
        penalty = DRILL_WEIGHT_SPEED_PENALTY if unit.carrying_id is not None else 1.0
        return stats.speed * world.global_multiplier * penalty

    @staticmethod
    def _release_assignments(unit: Unit, world: "ColonyWorld") -> None:
        for building in world.buildings:
            building.release_builder(unit.id)
        if unit.working_at_building_id is not None:
            building = world.building(unit.working_at_building_id)
            if building is not None:
                building.remove_worker(unit.id)
            unit.working_at_building_id = None
        unit.drill_target_id = None

    def _abandon_task(self, unit: Unit, world: "ColonyWorld") -> None:
        """Out of energy: let go of claims and head home, surfacing first."""

        self._release_assignments(unit, world)
        if unit.underground:
            unit.set_state(UnitState.EXITING_MINE)
            return
        world.drop_carried_drill(unit)
        unit.set_state(UnitState.MOVING_TO_HOME)

    def _ascend(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> bool:
        """Line up with the shaft axis, then climb; ``True`` at the surface."""

        speed = self._speed(unit, world, stats)
        aligned = unit.rotate_towards(MINE_ANGLE, dt, stats.speed * world.global_multiplier * EXIT_TURN_RATE)
        offset = abs(normalize_angle(unit.position.angle - MINE_ANGLE))
        if not aligned and offset >= SHAFT_ALIGN_TOLERANCE:
            return False
        return unit.move_towards(MINE_ANGLE, SURFACE_LEVEL, dt, speed)

    @staticmethod
    def _claimed_build(unit: Unit, world: "ColonyWorld"):
        for building in world.buildings:
            if building.assigned_unit_id == unit.id:
                return building
        return None

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------
    def _find_job(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        for building in world.buildings:
            if building.needs_builder:
                building.claim(unit.id)
                unit.set_state(UnitState.MOVING_TO_BUILD)
                return

        for building in world.buildings:
            if building.wants_worker():
                building.add_worker(unit.id)
                unit.working_at_building_id = building.id
                unit.set_state(UnitState.MOVING_TO_WORK)
                return

        drill = world.available_drill(unit.id)
        if drill is not None:
            unit.drill_target_id = drill.id
            unit.set_state(UnitState.MOVING_TO_DRILL)
            return

        if world.loose_ore_in_mine > LOOSE_ORE_PICKUP_THRESHOLD:
            unit.set_state(UnitState.PICKUP_LOOSE_ORE)
            return

        unit.set_state(UnitState.MOVING_TO_MINE)

    def _moving_to_build(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        building = self._claimed_build(unit, world)
        if building is None or building.is_completed:
            unit.set_state(UnitState.IDLE)
            return
        if unit.move_towards(building.angle, SURFACE_LEVEL, dt, self._speed(unit, world, stats)):
            unit.set_state(UnitState.BUILDING)

    def _building(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        building = self._claimed_build(unit, world)
        if building is None:
            unit.set_state(UnitState.IDLE)
            return
        if building.advance_construction(stats.power, world.global_multiplier, dt):
            unit.set_state(UnitState.IDLE)

    def _work_revoked(self, unit: Unit, world: "ColonyWorld") -> bool:
        building = None
        if unit.working_at_building_id is not None:
            building = world.building(unit.working_at_building_id)
        if building is None or building.requested_workers == 0 or not building.has_worker(unit.id):
            if building is not None:
                building.remove_worker(unit.id)
            unit.working_at_building_id = None
            unit.set_state(UnitState.IDLE)
            return True
        return False

    def _moving_to_work(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        if self._work_revoked(unit, world):
            return
        building = world.building(unit.working_at_building_id)
        if unit.move_towards(building.angle, SURFACE_LEVEL, dt, self._speed(unit, world, stats)):
            unit.set_state(UnitState.WORKING_IN_BUILDING)

    def _working(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        # Output is applied by the host building's own tick.
        self._work_revoked(unit, world)

    def _moving_to_mine(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        if not unit.move_towards(MINE_ANGLE, SURFACE_LEVEL, dt, self._speed(unit, world, stats)):
            return
        unit.pickup_intent = unit.state == UnitState.PICKUP_LOOSE_ORE
        unit.target_tunnel_idx = None
        if not unit.pickup_intent:
            eligible = world.shaft.eligible_tunnels()
            if eligible and world.rng.random() < TUNNEL_CHANCE:
                choice = eligible[int(world.rng.integers(0, len(eligible)))]
                unit.target_tunnel_idx = world.shaft.tunnels.index(choice)
        unit.set_state(UnitState.ENTERING_MINE)

    def _entering_mine(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        target_radius = world.shaft.target_radius(unit.target_tunnel_idx)
        if not unit.move_radially(target_radius, dt, self._speed(unit, world, stats) * RADIAL_RATE):
            return

        pickup = unit.pickup_intent
        unit.pickup_intent = False
        if unit.carrying_id is not None:
            unit.set_state(UnitState.OPERATING_DRILL)
            drill = world.get_unit(unit.carrying_id)
            if drill is not None:
                drill.set_state(UnitState.OPERATING_DRILL)
            return

        in_shaft = unit.target_tunnel_idx is None
        grab = (pickup and world.loose_ore_in_mine > 0.0) or (
            not pickup and in_shaft and world.loose_ore_in_mine > LOOSE_ORE_GRAB_THRESHOLD
        )
        if grab:
            room = max(0.0, stats.capacity - unit.inventory)
            taken = min(room, world.loose_ore_in_mine)
            unit.inventory += taken
            world.loose_ore_in_mine -= taken
            unit.set_state(UnitState.EXITING_MINE)
            return

        unit.progress = 0.0
        unit.set_state(UnitState.MINING)

    def mining_angle(self, unit: Unit, world: "ColonyWorld") -> float:
        """Where ``unit`` has to face before its pick makes progress."""

        tunnel = world.shaft.tunnel(unit.target_tunnel_idx)
        if tunnel is not None:
            return tunnel.face_angle(unit.position.radius)
        return MINE_ANGLE + math.sin(unit.serial) * SHAFT_SPREAD

    def _mining(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        turn_speed = stats.speed * world.global_multiplier * MINING_TURN_RATE
        if not unit.rotate_towards(self.mining_angle(unit, world), dt, turn_speed):
            return
        power = stats.power * world.global_multiplier
        unit.progress += power / world.shaft.toughness * dt
        if unit.progress < 1.0:
            return
        unit.progress = 0.0
        unit.inventory = float(stats.capacity)
        world.shaft.dig(unit.target_tunnel_idx)
        unit.set_state(UnitState.EXITING_MINE)

    def _exiting_mine(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        if not self._ascend(unit, dt, world, stats):
            return
        unit.target_tunnel_idx = None
        if unit.depleted:
            world.drop_carried_drill(unit)
            unit.set_state(UnitState.MOVING_TO_HOME)
        else:
            unit.set_state(UnitState.MOVING_TO_PILE)

    def _moving_to_pile(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        if unit.move_towards(PILE_ANGLE, SURFACE_LEVEL, dt, self._speed(unit, world, stats)):
            unit.progress = 0.0
            unit.set_state(UnitState.DEPOSITING)

    def _depositing(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        unit.progress = min(1.0, unit.progress + DEPOSIT_RATE * world.global_multiplier * dt)
        if unit.progress < 1.0:
            return
        world.surface_ore += unit.inventory
        unit.inventory = 0.0
        unit.progress = 0.0
        unit.set_state(UnitState.IDLE)

    def _moving_to_home(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        if unit.underground:
            self._ascend(unit, dt, world, stats)
            return
        unit.position.radius = SURFACE_LEVEL
        home = world.building(unit.home_building_id) if unit.home_building_id is not None else None
        home_angle = home.angle if home is not None else MINE_ANGLE
        if unit.move_towards(home_angle, SURFACE_LEVEL, dt, self._speed(unit, world, stats)):
            self._release_assignments(unit, world)
            world.drop_carried_drill(unit)
            unit.set_state(UnitState.CHARGING)

    def _charging(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        unit.energy = min(unit.max_energy, unit.energy + ENERGY_RECHARGE_RATE * dt)
        if unit.energy >= unit.max_energy:
            unit.set_state(UnitState.IDLE)

    def _moving_to_drill(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        drill = world.available_drill(unit.id)
        if drill is None:
            unit.drill_target_id = None
            unit.set_state(UnitState.IDLE)
            return
        unit.drill_target_id = drill.id
        speed = self._speed(unit, world, stats)
        if unit.move_towards(drill.position.angle, drill.position.radius, dt, speed):
            unit.drill_target_id = None
            unit.carrying_id = drill.id
            drill.carried_by = unit.id
            drill.position = unit.position.copy()
            unit.set_state(UnitState.CARRYING_DRILL_TO_MINE)

    def _carrying_drill(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        if unit.carrying_id is None or world.get_unit(unit.carrying_id) is None:
            unit.carrying_id = None
            unit.set_state(UnitState.IDLE)
            return
        if unit.move_towards(MINE_ANGLE, SURFACE_LEVEL, dt, self._speed(unit, world, stats)):
            # Drills always run at the bottom of the main shaft.
            unit.target_tunnel_idx = None
            unit.pickup_intent = False
            unit.set_state(UnitState.ENTERING_MINE)

    def _operating_drill(self, unit: Unit, dt: float, world: "ColonyWorld", stats: UnitStats) -> None:
        if unit.carrying_id is None or world.get_unit(unit.carrying_id) is None:
            unit.carrying_id = None
            unit.set_state(UnitState.EXITING_MINE)


class ToolBehavior:
    """Drills ride along with their carrier and dig while it operates them."""

    def update(self, unit: Unit, dt: float, world: "ColonyWorld") -> None:
        if unit.carried_by is None:
            return
        carrier = world.get_unit(unit.carried_by)
        if carrier is None or carrier.carrying_id != unit.id:
            unit.carried_by = None
            unit.set_state(UnitState.IDLE)
            return
        unit.position = carrier.position.copy()
        if carrier.state != UnitState.OPERATING_DRILL:
            unit.set_state(UnitState.IDLE)
            return
        unit.set_state(UnitState.OPERATING_DRILL)
        if dt <= 0.0:
            return
        produced = DRILL_PRODUCTION_RATE * world.global_multiplier * dt
        world.loose_ore_in_mine += produced
        world.shaft.add_mined(produced)


_WORKER_BEHAVIOR = WorkerBehavior()
_TOOL_BEHAVIOR = ToolBehavior()


def behavior_for(unit_type: UnitType):
    """Return the behavior object that drives units of ``unit_type``."""

    if get_unit_definition(unit_type).is_tool:
        return _TOOL_BEHAVIOR
    return _WORKER_BEHAVIOR

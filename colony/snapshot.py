"""Frozen per-frame read model handed to renderers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class TunnelView:
    id: int
    depth: float
    direction: int
    current_length: float
    max_length: float


@dataclass(frozen=True)
class UnitView:
    id: str
    type: str
    state: str
    angle: float
    radius: float
    x: float
    y: float
    energy: float
    max_energy: float
    inventory: float
    carrying_id: Optional[str]
    carried_by: Optional[str]


@dataclass(frozen=True)
class BuildingView:
    id: int
    angle: float
    type: Optional[str]
    status: str
    level: int
    construction_progress: float
    occupants: int
    assigned_workers: int
    requested_workers: int
    max_workers: int
    is_launchpad_slot: bool


@dataclass(frozen=True)
class WorldSnapshot:
    """Everything a renderer needs to draw one frame."""

    time: float
    credits: float
    surface_ore: float
    loose_ore_in_mine: float
    total_mined: float
    mine_depth: int
    tunnels: Tuple[TunnelView, ...]
    units: Tuple[UnitView, ...]
    buildings: Tuple[BuildingView, ...]
    tax_due: bool
    tax_amount: int
    tax_timer: float
    tax_started: bool
    mining_permits: int
    prestige_count: int
    global_multiplier: float

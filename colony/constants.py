"""Simulation constants for the asteroid colony.

Geometry is expressed in polar coordinates around the asteroid centre: angles
in degrees, radii in the same arbitrary units a renderer uses for the surface.
"""
from __future__ import annotations

from typing import Tuple

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------
ASTEROID_RADIUS = 400.0
SURFACE_LEVEL = ASTEROID_RADIUS
MINE_ANGLE = 0.0
PILE_ANGLE = 12.0
CRUSHER_ANGLE = 25.0
LAUNCHPAD_ANGLE = 180.0

SLOT_START_ANGLE = 50
SLOT_END_ANGLE = 340
SLOT_STEP = 30

SHAFT_COLLAR = 20.0         # shaft entrance sits this far below the surface
MAX_VISUAL_DEPTH = 300.0
DEPTH_VISUAL_SCALE = 1.5    # visual units per depth level
ORE_PER_DEPTH_LEVEL = 100
UNDERGROUND_MARGIN = 5.0    # radius below SURFACE_LEVEL - margin counts as underground

# ---------------------------------------------------------------------------
# Movement
# ---------------------------------------------------------------------------
TURN_RATE = 15.0            # degrees/s per unit of speed
RADIAL_RATE = 30.0          # radius/s per unit of speed
MINING_TURN_RATE = 10.0
EXIT_TURN_RATE = 20.0
ANGLE_EPSILON = 0.5
RADIUS_EPSILON = 2.0
SHAFT_ALIGN_TOLERANCE = 2.0
SHAFT_SPREAD = 8.0          # max angular offset of a main-shaft dig point

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------
MAX_TICK_DT = 0.1           # seconds, guards against large steps after stalls
DEFAULT_STEP = 1.0 / 60.0

# ---------------------------------------------------------------------------
# Economy & balance
# ---------------------------------------------------------------------------
STARTING_CREDITS = 10.0
ORE_VALUE = 1.0
COST_SCALING_FACTOR = 1.15

ENERGY_DRAIN_RATE = 3.0
CARRY_DRAIN_FACTOR = 1.5
ENERGY_RECHARGE_RATE = 25.0

BUILD_SPEED_BASE = 0.2
DEPOSIT_RATE = 5.0
DRILL_WEIGHT_SPEED_PENALTY = 0.4
DRILL_PRODUCTION_RATE = 20.0
DEPTH_TOUGHNESS = 0.05

CRUSHER_PASSIVE_RATE = 15.0
CRUSHER_WORKER_BONUS = 20.0

LOOSE_ORE_PICKUP_THRESHOLD = 10.0   # idle units go fetch loose ore above this
LOOSE_ORE_GRAB_THRESHOLD = 5.0      # miners at the shaft bottom grab it above this
TUNNEL_CHANCE = 0.6

# ---------------------------------------------------------------------------
# Taxation
# ---------------------------------------------------------------------------
TAX_INTERVAL = 120.0        # seconds
TAX_INITIAL_AMOUNT = 200
TAX_SCALE = 1.5

# ---------------------------------------------------------------------------
# Tunnels: (depth threshold, direction, max length)
# ---------------------------------------------------------------------------
TUNNEL_START_LENGTH = 10.0
BASE_TUNNELS: Tuple[Tuple[float, int, float], ...] = (
    (60.0, -1, 120.0),
    (120.0, 1, 160.0),
    (180.0, -1, 140.0),
    (240.0, 1, 120.0),
    (280.0, -1, 100.0),
)

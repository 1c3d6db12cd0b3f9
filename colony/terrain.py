"""Mine shaft depth and lateral tunnel bookkeeping."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional

from .constants import (
    BASE_TUNNELS,
    DEPTH_TOUGHNESS,
    DEPTH_VISUAL_SCALE,
    MAX_VISUAL_DEPTH,
    MINE_ANGLE,
    ORE_PER_DEPTH_LEVEL,
    SHAFT_COLLAR,
    SURFACE_LEVEL,
    TUNNEL_START_LENGTH,
)


@dataclass
class Tunnel:
    """A lateral branch off the main shaft.

    ``current_length`` only grows and is capped at ``max_length``.
    """

    id: int
    depth_threshold: float
    direction: int
    max_length: float
    current_length: float = TUNNEL_START_LENGTH

    @property
    def fully_excavated(self) -> bool:
        return self.current_length >= self.max_length

    @property
    def radius(self) -> float:
        """Radius of the tunnel floor measured from the asteroid centre."""

        return SURFACE_LEVEL - SHAFT_COLLAR - self.depth_threshold

    def reachable(self, visual_depth: float) -> bool:
        return self.depth_threshold < visual_depth

    def extend(self, amount: float = 1.0) -> bool:
        """Dig ``amount`` further; returns ``False`` once the tunnel is maxed."""

        if self.fully_excavated or amount <= 0.0:
            return False
        self.current_length = min(self.max_length, self.current_length + amount)
        return True

    def face_angle(self, radius: float) -> float:
        """Angle of the digging face for a unit standing at ``radius``."""

        if radius <= 0.0:
            return MINE_ANGLE
        return MINE_ANGLE + math.degrees(self.current_length / radius) * self.direction


def create_base_tunnels() -> List[Tunnel]:
    return [
        Tunnel(id=idx, depth_threshold=depth, direction=direction, max_length=max_length)
        for idx, (depth, direction, max_length) in enumerate(BASE_TUNNELS)
    ]


@dataclass
class MineShaft:
    """Cumulative excavation state: the main shaft plus its tunnels."""

    total_mined: float = 0.0
    tunnels: List[Tunnel] = field(default_factory=create_base_tunnels)

    @property
    def mine_depth(self) -> int:
        return int(math.floor(self.total_mined / ORE_PER_DEPTH_LEVEL))

    @property
    def visual_depth(self) -> float:
        """Depth figure used to decide which tunnels have been uncovered."""

        return min(MAX_VISUAL_DEPTH, SHAFT_COLLAR + self.mine_depth * DEPTH_VISUAL_SCALE)

    @property
    def bottom_radius(self) -> float:
        """Radius of the main shaft floor."""

        depth = min(self.mine_depth * DEPTH_VISUAL_SCALE, MAX_VISUAL_DEPTH)
        return SURFACE_LEVEL - SHAFT_COLLAR - depth

    @property
    def toughness(self) -> float:
        return 1.0 + self.mine_depth * DEPTH_TOUGHNESS

    def add_mined(self, amount: float) -> None:
        if amount > 0.0:
            self.total_mined += amount

    def tunnel(self, index: Optional[int]) -> Optional[Tunnel]:
        if index is None or index < 0 or index >= len(self.tunnels):
            return None
        return self.tunnels[index]

    def eligible_tunnels(self) -> List[Tunnel]:
        """Tunnels that are uncovered and still have rock left to dig."""

        depth = self.visual_depth
        return [t for t in self.tunnels if t.reachable(depth) and not t.fully_excavated]

    def target_radius(self, tunnel_index: Optional[int]) -> float:
        tunnel = self.tunnel(tunnel_index)
        if tunnel is not None:
            return tunnel.radius
        return self.bottom_radius

    def dig(self, tunnel_index: Optional[int], amount: float = 1.0) -> None:
        """Credit one completed mining cycle to a tunnel or to the shaft.

        A maxed tunnel no longer grows, so further work there deepens the shaft.
        """

        tunnel = self.tunnel(tunnel_index)
        if tunnel is not None and tunnel.extend(amount):
            return
        self.add_mined(amount)

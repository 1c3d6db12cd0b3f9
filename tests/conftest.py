"""
Shared fixtures for colony simulation tests.

NO UI DEPENDENCIES - every test drives ColonyWorld directly.
"""
import pytest

from colony.building_registry import BuildingType
from colony.world import ColonyWorld


@pytest.fixture
def world():
    """Fresh colony: only the main crusher exists."""
    return ColonyWorld(seed=1234)


@pytest.fixture
def colony(world):
    """Colony with its bootstrap habitat on slot 1 and plenty of credits."""
    world.construct_building(1, BuildingType.HABITAT)
    world.add_credits(10_000)
    return world


@pytest.fixture
def staffed_colony(colony):
    """Colony whose crusher has bought its first worker slot."""
    colony.buy_upgrade(0, "crush_1")
    return colony


def tick_until(world, condition, dt=0.1, max_ticks=1000):
    """Tick until ``condition()`` holds; returns the number of ticks used."""
    for count in range(1, max_ticks + 1):
        world.tick(dt)
        if condition():
            return count
    raise AssertionError("condition never became true")

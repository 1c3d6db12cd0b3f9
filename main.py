"""Headless entry point: runs a colony session with a simple scripted player."""
from __future__ import annotations

import argparse
import logging
from typing import Optional

from colony.building_registry import BuildingType
from colony.buildings import BuildingStatus
from colony.constants import DEFAULT_STEP
from colony.unit_registry import UnitType
from colony.world import ColonyWorld, create_initial_world

logger = logging.getLogger("colony.driver")

BUILD_ORDER = (
    BuildingType.HABITAT,
    BuildingType.HABITAT,
    BuildingType.WORKSHOP,
    BuildingType.TRAINING,
)


def _first_empty_slot(world: ColonyWorld) -> Optional[int]:
    for building in world.buildings:
        if building.status == BuildingStatus.EMPTY and not building.is_launchpad_slot:
            return building.id
    return None


def autopilot(world: ColonyWorld) -> None:
    """Spend credits the way a cautious player would."""

    if world.tax_due:
        return
    built = [b.type for b in world.buildings if b.type is not None]
    for building_type in BUILD_ORDER:
        wanted = BUILD_ORDER.count(building_type)
        if built.count(building_type) < wanted:
            slot_id = _first_empty_slot(world)
            if slot_id is not None:
                world.construct_building(slot_id, building_type)
            break

    # Keep a reserve for the next tax bill.
    reserve = world.tax_amount if world.tax_started else 0

    crusher = world.building(0)
    if crusher is not None:
        if "crush_1" not in crusher.purchased_upgrades and world.credits - 1000 >= reserve:
            world.buy_upgrade(crusher.id, "crush_1")
        max_workers = crusher.max_workers(world.modifiers)
        if crusher.requested_workers < max_workers:
            world.set_worker_request(crusher.id, max_workers)

    recruitable = world.recruitable_units()
    for unit_type in (UnitType.MINER_BASIC, UnitType.CARRIER_ROVER, UnitType.MINER_DRILL):
        if unit_type in recruitable and world.credits - world.unit_cost(unit_type) >= reserve:
            world.buy_unit(unit_type)


def run(seconds: float, seed: Optional[int], multiplier: float, report_every: float) -> ColonyWorld:
    world = create_initial_world(seed=seed)
    world.set_global_multiplier(multiplier)

    next_report = 0.0
    while world.time < seconds - 1e-6:
        autopilot(world)
        world.run_for(min(1.0, seconds - world.time), DEFAULT_STEP)
        if world.time >= next_report:
            next_report += report_every
            logger.info(
                "t=%6.1fs credits=%9.1f surface=%7.1f loose=%7.1f depth=%3d units=%2d tax=%d%s permits=%d",
                world.time,
                world.credits,
                world.surface_ore,
                world.loose_ore_in_mine,
                world.mine_depth,
                len(world.units),
                world.tax_amount,
                " (DUE)" if world.tax_due else "",
                world.mining_permits,
            )
    problems = world.check_invariants()
    for problem in problems:
        logger.warning("Invariant violated: %s", problem)
    return world


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a headless asteroid colony session.")
    parser.add_argument("--seconds", type=float, default=600.0, help="simulated seconds to run")
    parser.add_argument("--seed", type=int, default=None, help="random seed for tunnel choices")
    parser.add_argument("--multiplier", type=float, default=1.0, help="global speed multiplier")
    parser.add_argument("--report-every", type=float, default=30.0, help="status line interval")
    parser.add_argument("--log-level", default="INFO", help="logging level (DEBUG, INFO, ...)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run(args.seconds, args.seed, args.multiplier, args.report_every)


if __name__ == "__main__":
    main()

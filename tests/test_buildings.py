"""Tests for building slots, crusher output, worker requests and upgrades."""
import pytest

from colony.building_registry import BuildingType, generate_slots
from colony.buildings import BuildingSlot, BuildingStatus
from colony.modifiers import ModifierStack
from colony.unit_registry import UnitType
from colony.upgrade_registry import get_upgrade_definition
from colony.units import UnitState


class TestSlotLayout:
    def test_crusher_slot_and_launchpad_slot(self):
        slots = generate_slots()
        assert len(slots) == 11
        assert slots[0].prebuilt_crusher and slots[0].angle == 25
        launchpads = [s for s in slots if s.is_launchpad]
        assert len(launchpads) == 1
        assert launchpads[0].id == 5
        assert launchpads[0].angle == 170.0

    def test_fresh_world_has_only_the_crusher(self, world):
        crusher = world.building(0)
        assert crusher.type == BuildingType.CRUSHER
        assert crusher.status == BuildingStatus.COMPLETED
        assert all(b.status == BuildingStatus.EMPTY for b in world.buildings[1:])


class TestConstructionLifecycle:
    def test_pending_claim_and_completion(self):
        slot = BuildingSlot(id=3, angle=110.0)
        slot.start_construction(BuildingType.WORKSHOP)
        assert slot.status == BuildingStatus.PENDING
        assert slot.needs_builder

        slot.claim("u1")
        assert slot.status == BuildingStatus.UNDER_CONSTRUCTION
        assert not slot.needs_builder

        # power 5 at base speed 0.2 is exactly one full build per second
        assert not slot.advance_construction(5.0, 1.0, 0.5)
        assert slot.construction_progress == pytest.approx(0.5)
        assert slot.advance_construction(5.0, 1.0, 0.5)
        assert slot.status == BuildingStatus.COMPLETED
        assert slot.assigned_unit_id is None
        assert slot.level == 1

    def test_released_builder_reopens_job(self):
        slot = BuildingSlot(id=3, angle=110.0)
        slot.start_construction(BuildingType.WORKSHOP)
        slot.claim("u1")
        slot.advance_construction(1.0, 1.0, 1.0)
        slot.release_builder("u2")
        assert slot.assigned_unit_id == "u1"
        slot.release_builder("u1")
        assert slot.needs_builder
        assert slot.status == BuildingStatus.UNDER_CONSTRUCTION
        assert slot.construction_progress == pytest.approx(0.2)

    def test_pending_slot_does_not_progress(self):
        slot = BuildingSlot(id=3, angle=110.0)
        slot.start_construction(BuildingType.WORKSHOP)
        assert not slot.advance_construction(5.0, 1.0, 1.0)
        assert slot.construction_progress == 0.0


class TestWorkerRequests:
    def test_request_is_clamped(self):
        slot = BuildingSlot(id=0, angle=25.0)
        slot.complete_instantly(BuildingType.CRUSHER)
        modifiers = ModifierStack()
        assert slot.max_workers(modifiers) == 0
        modifiers.extend(get_upgrade_definition("crush_1").modifiers)
        max_workers = slot.max_workers(modifiers)
        assert max_workers == 1
        slot.set_requested_workers(5, max_workers)
        assert slot.requested_workers == 1
        slot.set_requested_workers(-3, max_workers)
        assert slot.requested_workers == 0

    def test_crusher_has_no_slots_until_upgraded(self, colony):
        crusher = colony.building(0)
        assert colony.set_worker_request(0, 5)
        assert crusher.requested_workers == 0
        assert colony.buy_upgrade(0, "crush_1")
        assert colony.set_worker_request(0, 5)
        assert crusher.requested_workers == 1
        assert colony.buy_upgrade(0, "crush_2")
        assert colony.set_worker_request(0, 5)
        assert crusher.requested_workers == 2

    def test_lowering_request_revokes_latest_workers(self):
        slot = BuildingSlot(id=0, angle=25.0)
        slot.complete_instantly(BuildingType.CRUSHER)
        slot.set_requested_workers(2, 2)
        slot.add_worker("u1")
        slot.add_worker("u2")
        assert not slot.wants_worker()
        revoked = slot.set_requested_workers(1, 2)
        assert revoked == ["u2"]
        assert slot.assigned_workers == ["u1"]

    def test_world_request_is_idempotent(self, staffed_colony):
        assert staffed_colony.set_worker_request(0, 1)
        first = staffed_colony.snapshot()
        assert staffed_colony.set_worker_request(0, 1)
        assert staffed_colony.snapshot() == first
        assert first.buildings[0].requested_workers == 1

    def test_unknown_slot_rejected(self, world):
        assert not world.set_worker_request(42, 1)


class TestCrusher:
    def test_passive_processing(self, world):
        world.surface_ore = 100.0
        world.tick(0.1)
        assert world.surface_ore == pytest.approx(98.5)
        assert world.credits == pytest.approx(11.5)

    def test_output_capped_by_surface_ore(self, world):
        world.surface_ore = 0.5
        world.tick(0.1)
        assert world.surface_ore == 0.0
        assert world.credits == pytest.approx(10.5)

    def test_worker_bonus_scales_with_energy(self, staffed_colony):
        colony = staffed_colony
        unit = colony.buy_unit(UnitType.MINER_BASIC)
        crusher = colony.building(0)
        colony.set_worker_request(0, 1)
        crusher.add_worker(unit.id)
        unit.working_at_building_id = crusher.id
        unit.state = UnitState.WORKING_IN_BUILDING
        unit.energy = unit.max_energy / 2

        colony.surface_ore = 100.0
        credits = colony.credits
        crusher.update(0.1, colony)
        # 15 passive + 20 * 0.5 energy ratio
        assert colony.surface_ore == pytest.approx(97.5)
        assert colony.credits == pytest.approx(credits + 2.5)

    def test_worker_still_walking_adds_nothing(self, staffed_colony):
        colony = staffed_colony
        unit = colony.buy_unit(UnitType.MINER_BASIC)
        crusher = colony.building(0)
        colony.set_worker_request(0, 1)
        crusher.add_worker(unit.id)
        unit.working_at_building_id = crusher.id
        unit.state = UnitState.MOVING_TO_WORK

        colony.surface_ore = 100.0
        crusher.update(0.1, colony)
        assert colony.surface_ore == pytest.approx(98.5)


class TestPlacementRules:
    def test_launchpad_only_on_its_slot(self, colony):
        launchpad_slot = next(b for b in colony.buildings if b.is_launchpad_slot)
        assert not colony.construct_building(2, BuildingType.LAUNCHPAD)
        assert not colony.construct_building(launchpad_slot.id, BuildingType.HABITAT)
        colony.add_credits(50_000)
        assert colony.construct_building(launchpad_slot.id, BuildingType.LAUNCHPAD)
        assert launchpad_slot.status == BuildingStatus.PENDING

    def test_occupied_slot_rejected(self, colony):
        credits = colony.credits
        assert not colony.construct_building(1, BuildingType.WORKSHOP)
        assert not colony.construct_building(0, BuildingType.WORKSHOP)
        assert colony.credits == credits

    def test_unknown_slot_rejected(self, colony):
        assert not colony.construct_building(99, BuildingType.HABITAT)


class TestUpgrades:
    def test_crusher_upgrade_adds_worker_slot(self, colony):
        credits = colony.credits
        assert colony.buy_upgrade(0, "crush_1")
        crusher = colony.building(0)
        assert crusher.level == 2
        assert crusher.max_workers(colony.modifiers) == 1
        assert colony.credits == credits - 1000
        assert colony.set_worker_request(0, 2)
        assert crusher.requested_workers == 1

    def test_upgrade_bought_once_per_slot(self, colony):
        assert colony.buy_upgrade(0, "crush_1")
        credits = colony.credits
        assert not colony.buy_upgrade(0, "crush_1")
        assert colony.credits == credits

    def test_upgrade_needs_matching_building(self, colony):
        assert not colony.buy_upgrade(0, "dorm_1")
        assert not colony.buy_upgrade(1, "crush_1")
        assert not colony.buy_upgrade(0, "no_such_upgrade")
        assert not colony.buy_upgrade(4, "crush_1")

    def test_upgrade_needs_completed_building(self, colony):
        colony.construct_building(2, BuildingType.TRAINING)
        assert not colony.buy_upgrade(2, "train_spd_1")

    def test_upgrade_needs_credits(self, world):
        assert not world.buy_upgrade(0, "crush_1")
        assert world.building(0).level == 1

    def test_habitat_upgrade_raises_population(self, colony):
        assert colony.max_population() == 5
        assert colony.buy_upgrade(1, "dorm_1")
        assert colony.max_population() == 10

    def test_training_upgrades_refresh_existing_units(self, colony):
        unit = colony.buy_unit(UnitType.MINER_BASIC)
        unit.energy = 50.0
        colony.building(3).complete_instantly(BuildingType.TRAINING)

        assert colony.buy_upgrade(3, "train_nrg_1")
        assert unit.max_energy == 120.0
        assert unit.energy == pytest.approx(60.0)

        assert colony.buy_upgrade(3, "train_cap_1")
        assert colony.unit_stats(UnitType.MINER_BASIC).capacity == 6

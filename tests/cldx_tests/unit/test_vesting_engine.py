"""
Unit tests for vesting schedules, grant decomposition and the release engine.
"""

from __future__ import annotations

import pytest

from cldx.core.constants import ONE_TOKEN, SECONDS_PER_MONTH
from cldx.core.contracts.erc20 import ERC20Factory
from cldx.core.contracts.token_interface import ERC20TokenAdapter
from cldx.core.exceptions import (
    IndexOutOfRange,
    InvalidAmount,
    InvalidDuration,
    NothingToRelease,
    Paused,
    TransferFailed,
    Unauthorized,
)
from cldx.vesting import (
    ScheduleStatus,
    ScheduleStore,
    VestingReleaseEngine,
    VestingSchedule,
    compute_releasable_amount,
    decompose_grant,
)

from conftest import ALICE, BOB, MALLORY, OWNER, START_TIME

HOLDER = "0x" + "99" * 20


def make_schedule(**overrides) -> VestingSchedule:
    params = {
        "beneficiary": ALICE,
        "total_allocation": 1_000,
        "start_time": START_TIME,
        "cliff_duration": 100,
        "vesting_duration": 1_000,
    }
    params.update(overrides)
    return VestingSchedule(**params)


class TestVestingSchedule:
    def test_rejects_zero_duration(self):
        with pytest.raises(InvalidDuration, match="greater than zero"):
            make_schedule(vesting_duration=0, cliff_duration=0)

    def test_cliff_longer_than_duration_releases_everything_at_cliff(self):
        schedule = make_schedule(cliff_duration=1_500)
        assert schedule.end_time == START_TIME + 1_500
        assert compute_releasable_amount(schedule, START_TIME + 1_000) == 0
        assert compute_releasable_amount(schedule, START_TIME + 1_499) == 0
        assert compute_releasable_amount(schedule, START_TIME + 1_500) == 1_000

    def test_rejects_zero_allocation(self):
        with pytest.raises(InvalidAmount):
            make_schedule(total_allocation=0)

    def test_rejects_over_release(self):
        with pytest.raises(InvalidAmount):
            make_schedule(released=1_001)

    def test_derived_times(self):
        schedule = make_schedule()
        assert schedule.cliff_end == START_TIME + 100
        assert schedule.end_time == START_TIME + 1_000
        assert schedule.unreleased == 1_000

    def test_status(self):
        schedule = make_schedule()
        assert schedule.status(START_TIME) is ScheduleStatus.CREATED
        assert schedule.status(START_TIME + 100) is ScheduleStatus.VESTING
        schedule.released = schedule.total_allocation
        assert schedule.status(START_TIME + 2_000) is ScheduleStatus.EXHAUSTED

    def test_dict_roundtrip_keeps_big_amounts(self):
        schedule = make_schedule(total_allocation=10**30, released=10**29)
        data = schedule.to_dict()
        assert data["total_allocation"] == str(10**30)
        assert VestingSchedule.from_dict(data) == schedule


class TestScheduleStore:
    def test_append_returns_index(self):
        store = ScheduleStore()
        assert store.append(make_schedule()) == 0
        assert store.append(make_schedule(beneficiary=BOB)) == 1
        assert len(store) == 2
        assert [s.beneficiary for s in store.for_beneficiary(BOB)] == [BOB]

    def test_get_out_of_range(self):
        store = ScheduleStore()
        store.append(make_schedule())
        with pytest.raises(IndexOutOfRange):
            store.get(1)
        with pytest.raises(IndexOutOfRange):
            store.get(-1)

    def test_copy_is_detached(self):
        store = ScheduleStore()
        store.append(make_schedule())
        copy = store.copy_of(0)
        copy.released = 500
        assert store.get(0).released == 0

    def test_total_unreleased(self):
        store = ScheduleStore()
        store.append(make_schedule(released=400))
        store.append(make_schedule(total_allocation=50))
        assert store.total_unreleased() == 650

    def test_snapshot_restore(self):
        store = ScheduleStore()
        store.append(make_schedule())
        state = store.snapshot()
        store.get(0).released = 999
        store.append(make_schedule())
        store.restore(state)
        assert len(store) == 1
        assert store.get(0).released == 0


class TestComputeReleasableAmount:
    def test_zero_before_cliff(self):
        schedule = make_schedule()
        assert compute_releasable_amount(schedule, START_TIME) == 0
        assert compute_releasable_amount(schedule, START_TIME + 99) == 0

    def test_linear_from_start_after_cliff(self):
        schedule = make_schedule()
        # Cliff gates the release; vesting accrues from start_time
        assert compute_releasable_amount(schedule, START_TIME + 100) == 100
        assert compute_releasable_amount(schedule, START_TIME + 500) == 500

    def test_full_at_end_and_after(self):
        schedule = make_schedule()
        assert compute_releasable_amount(schedule, START_TIME + 1_000) == 1_000
        assert compute_releasable_amount(schedule, START_TIME + 10**9) == 1_000

    def test_subtracts_released(self):
        schedule = make_schedule(released=300)
        assert compute_releasable_amount(schedule, START_TIME + 500) == 200
        assert compute_releasable_amount(schedule, START_TIME + 200) == 0

    def test_floor_division(self):
        schedule = make_schedule(total_allocation=10, cliff_duration=0, vesting_duration=3)
        assert compute_releasable_amount(schedule, START_TIME + 1) == 3
        assert compute_releasable_amount(schedule, START_TIME + 2) == 6
        assert compute_releasable_amount(schedule, START_TIME + 3) == 10

    def test_revoked_releases_nothing(self):
        schedule = make_schedule(revoked=True)
        assert compute_releasable_amount(schedule, START_TIME + 1_000) == 0


class TestDecomposeGrant:
    def test_twelve_months_gives_84_units(self):
        schedules = decompose_grant(ALICE, 12, 100 * ONE_TOKEN, START_TIME, 7, SECONDS_PER_MONTH)
        assert len(schedules) == 84
        assert sum(s.total_allocation for s in schedules) == 100 * ONE_TOKEN

    def test_remainder_goes_to_last_unit(self):
        schedules = decompose_grant(ALICE, 12, 100 * ONE_TOKEN, START_TIME, 7, SECONDS_PER_MONTH)
        share = 100 * ONE_TOKEN // 84
        assert all(s.total_allocation == share for s in schedules[:-1])
        assert schedules[-1].total_allocation == share + 100 * ONE_TOKEN % 84

    def test_windows_tile_the_period(self):
        schedules = decompose_grant(ALICE, 3, 10**20, START_TIME, 7, SECONDS_PER_MONTH, cliff_duration=500)
        assert schedules[0].start_time == START_TIME + 500
        for previous, current in zip(schedules, schedules[1:]):
            assert current.start_time == previous.end_time
        assert schedules[-1].end_time == START_TIME + 500 + 3 * SECONDS_PER_MONTH
        assert all(s.cliff_duration == 0 and s.beneficiary == ALICE for s in schedules)

    @pytest.mark.parametrize("months", [0, -1])
    def test_rejects_non_positive_months(self, months):
        with pytest.raises(InvalidDuration):
            decompose_grant(ALICE, months, ONE_TOKEN, START_TIME, 7, SECONDS_PER_MONTH)

    def test_rejects_negative_cliff(self):
        with pytest.raises(InvalidDuration):
            decompose_grant(ALICE, 1, ONE_TOKEN, START_TIME, 7, SECONDS_PER_MONTH, cliff_duration=-1)

    def test_rejects_allocation_smaller_than_units(self):
        with pytest.raises(InvalidAmount, match="too small"):
            decompose_grant(ALICE, 12, 83, START_TIME, 7, SECONDS_PER_MONTH)


class TestVestingReleaseEngine:
    @pytest.fixture
    def setup(self, clock):
        factory = ERC20Factory()
        token = factory.create_token(OWNER, "Vest", "VST", initial_supply=10_000)
        token.transfer(OWNER, HOLDER, 5_000)
        store = ScheduleStore()
        engine = VestingReleaseEngine(
            store, ERC20TokenAdapter(token, HOLDER), owner_provider=lambda: OWNER, time_provider=clock
        )
        return engine, store, token

    def test_release_pays_all_schedules_once(self, setup, clock):
        engine, store, token = setup
        store.append(make_schedule(cliff_duration=0))
        store.append(make_schedule(total_allocation=2_000, cliff_duration=0))
        store.append(make_schedule(beneficiary=BOB, cliff_duration=0))

        clock.advance(500)
        assert engine.releasable_amount(ALICE) == 1_500
        assert engine.release(ALICE) == 1_500
        assert token.balance_of(ALICE) == 1_500
        assert token.balance_of(BOB) == 0
        assert store.get(0).released == 500
        assert store.get(1).released == 1_000

    def test_second_release_raises(self, setup, clock):
        engine, store, _ = setup
        store.append(make_schedule())
        clock.advance(1_000)
        engine.release(ALICE)
        with pytest.raises(NothingToRelease):
            engine.release(ALICE)

    def test_release_before_cliff(self, setup):
        engine, store, _ = setup
        store.append(make_schedule())
        with pytest.raises(NothingToRelease, match="No tokens available"):
            engine.release(ALICE)

    def test_vested_amount_includes_released(self, setup, clock):
        engine, store, _ = setup
        store.append(make_schedule(cliff_duration=0))
        clock.advance(400)
        engine.release(ALICE)
        clock.advance(100)
        assert engine.vested_amount(ALICE) == 500
        assert engine.releasable_amount(ALICE) == 100

    def test_pause_blocks_release(self, setup, clock):
        engine, store, _ = setup
        store.append(make_schedule())
        clock.advance(1_000)
        engine.pause(OWNER)
        with pytest.raises(Paused):
            engine.release(ALICE)
        engine.unpause(OWNER)
        assert engine.release(ALICE) == 1_000

    def test_pause_is_owner_only(self, setup):
        engine, _, _ = setup
        with pytest.raises(Unauthorized):
            engine.pause(MALLORY)
        with pytest.raises(Unauthorized):
            engine.unpause(MALLORY)

    def test_failed_transfer_raises(self, setup, clock):
        engine, store, _ = setup
        store.append(make_schedule(total_allocation=9_000))
        clock.advance(1_000)
        with pytest.raises(TransferFailed):
            engine.release(ALICE)

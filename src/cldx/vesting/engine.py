"""
Vesting release engine.

Vested amount of a schedule at time ``now``::

    elapsed = now - start_time
    vested  = 0                                            if elapsed < cliff
            = total * min(elapsed, duration) // duration   otherwise
    releasable = min(total, vested) - released

Integer arithmetic only; floor division never over-releases, and the last
second of the schedule always reaches the full allocation.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from ..core import ledger_metrics
from ..core.access import require_owner
from ..core.clock import TimeProvider, resolve_time, system_time
from ..core.contracts.token_interface import TokenService
from ..core.exceptions import (
    InvalidAmount,
    InvalidDuration,
    NothingToRelease,
    Paused,
    TransferFailed,
)
from .schedule import ScheduleStore, VestingSchedule

logger = logging.getLogger(__name__)


def compute_releasable_amount(schedule: VestingSchedule, now: int) -> int:
    if schedule.revoked:
        return 0
    elapsed = now - schedule.start_time
    if elapsed < schedule.cliff_duration:
        return 0
    duration = schedule.vesting_duration
    vested = schedule.total_allocation * min(elapsed, duration) // duration
    return max(0, min(schedule.total_allocation, vested) - schedule.released)


def decompose_grant(
    beneficiary: str,
    vesting_duration_months: int,
    total_allocation: int,
    start_time: int,
    units_per_month: int,
    seconds_per_month: int,
    cliff_duration: int = 0,
) -> List[VestingSchedule]:
    """
    Split a grant into ``months * units_per_month`` back-to-back release units.

    Unit ``i`` vests linearly over
    ``[base + i*T//n, base + (i+1)*T//n)`` where ``base = start + cliff``,
    ``T`` is the whole grant period and ``n`` the unit count, so the windows
    tile the period exactly. Each unit carries ``total // n``; the remainder
    is added to the last unit so allocations sum to ``total_allocation``.
    """
    if not isinstance(vesting_duration_months, int) or vesting_duration_months <= 0:
        raise InvalidDuration()
    if cliff_duration < 0:
        raise InvalidDuration("Cliff duration cannot be negative")
    units = vesting_duration_months * units_per_month
    if total_allocation < units:
        raise InvalidAmount(
            f"Allocation {total_allocation} too small for {units} release units",
            details={"units": units},
        )

    base = start_time + cliff_duration
    period = vesting_duration_months * seconds_per_month
    share, remainder = divmod(total_allocation, units)

    schedules = []
    for i in range(units):
        window_start = base + (i * period) // units
        window_end = base + ((i + 1) * period) // units
        amount = share + (remainder if i == units - 1 else 0)
        schedules.append(
            VestingSchedule(
                beneficiary=beneficiary,
                total_allocation=amount,
                start_time=window_start,
                cliff_duration=0,
                vesting_duration=window_end - window_start,
            )
        )
    return schedules


class VestingReleaseEngine:
    """
    Computes and settles releases for the schedules in a ``ScheduleStore``.

    Releases are beneficiary-scoped: every schedule of the beneficiary is
    evaluated and the aggregate is paid with a single token transfer.
    """

    def __init__(
        self,
        store: ScheduleStore,
        token: TokenService,
        owner_provider: Callable[[], str],
        time_provider: Optional[TimeProvider] = None,
    ):
        self.store = store
        self.token = token
        self.paused = False
        self._owner_provider = owner_provider
        self._time_provider = time_provider or system_time

    def current_time(self) -> int:
        return resolve_time(self._time_provider)

    def pause(self, caller: str) -> None:
        require_owner(self._owner_provider(), caller)
        self.paused = True
        logger.warning("Vesting releases paused", extra={"event": "vesting.paused"})

    def unpause(self, caller: str) -> None:
        require_owner(self._owner_provider(), caller)
        self.paused = False
        logger.info("Vesting releases resumed", extra={"event": "vesting.unpaused"})

    def releasable_amount(self, beneficiary: str, now: Optional[int] = None) -> int:
        now = self.current_time() if now is None else now
        return sum(
            compute_releasable_amount(s, now) for s in self.store.for_beneficiary(beneficiary)
        )

    def vested_amount(self, beneficiary: str, now: Optional[int] = None) -> int:
        """Released plus currently releasable, across all of the beneficiary's schedules."""
        now = self.current_time() if now is None else now
        return sum(
            s.released + compute_releasable_amount(s, now)
            for s in self.store.for_beneficiary(beneficiary)
        )

    def release(self, beneficiary: str) -> int:
        """
        Release everything vested for ``beneficiary``.

        Mutates schedule state before calling the token; callers run this
        inside an ``atomic`` block so a failed transfer rolls it back.

        Raises:
            Paused: Releases are paused
            NothingToRelease: Nothing has vested since the last release
            TransferFailed: The token rejected the payout
        """
        if self.paused:
            raise Paused()

        now = self.current_time()
        payouts: Dict[int, int] = {}
        for index, schedule in enumerate(self.store):
            if schedule.beneficiary != beneficiary:
                continue
            amount = compute_releasable_amount(schedule, now)
            if amount > 0:
                payouts[index] = amount

        total = sum(payouts.values())
        if total == 0:
            raise NothingToRelease(details={"beneficiary": beneficiary, "time": now})

        for index, amount in payouts.items():
            self.store.get(index).released += amount

        if not self.token.transfer(beneficiary, total):
            raise TransferFailed(details={"to": beneficiary, "amount": total})

        ledger_metrics.record_release(total)
        logger.info(
            "Released %d base units to %s from %d schedules",
            total,
            beneficiary[:10],
            len(payouts),
            extra={"event": "vesting.release", "beneficiary": beneficiary[:10], "amount": total},
        )
        return total

"""
Vesting schedules and the release engine.
"""

from .engine import VestingReleaseEngine, compute_releasable_amount, decompose_grant
from .schedule import ScheduleStatus, ScheduleStore, VestingSchedule

__all__ = [
    "VestingReleaseEngine",
    "compute_releasable_amount",
    "decompose_grant",
    "ScheduleStatus",
    "ScheduleStore",
    "VestingSchedule",
]

"""
Vesting schedule records and the ordered schedule store.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterator, List

from ..core.exceptions import IndexOutOfRange, InvalidAmount, InvalidDuration

logger = logging.getLogger(__name__)


class ScheduleStatus(Enum):
    CREATED = "created"
    VESTING = "vesting"
    EXHAUSTED = "exhausted"
    REVOKED = "revoked"


@dataclass
class VestingSchedule:
    """One grant (or one release unit of a decomposed grant)."""

    beneficiary: str
    total_allocation: int
    start_time: int
    cliff_duration: int
    vesting_duration: int
    released: int = 0
    revoked: bool = False

    def __post_init__(self) -> None:
        if self.vesting_duration <= 0:
            raise InvalidDuration()
        if self.cliff_duration < 0:
            raise InvalidDuration("Cliff duration cannot be negative")
        if self.total_allocation <= 0:
            raise InvalidAmount("Vesting allocation must be greater than zero")
        if not 0 <= self.released <= self.total_allocation:
            raise InvalidAmount("Released amount out of range")

    @property
    def unreleased(self) -> int:
        return self.total_allocation - self.released

    @property
    def cliff_end(self) -> int:
        return self.start_time + self.cliff_duration

    @property
    def end_time(self) -> int:
        """First second at which the whole allocation is releasable."""
        return self.start_time + max(self.vesting_duration, self.cliff_duration)

    def status(self, now: int) -> ScheduleStatus:
        if self.revoked:
            return ScheduleStatus.REVOKED
        if self.released == self.total_allocation:
            return ScheduleStatus.EXHAUSTED
        if now < self.cliff_end:
            return ScheduleStatus.CREATED
        return ScheduleStatus.VESTING

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_allocation"] = str(self.total_allocation)
        data["released"] = str(self.released)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VestingSchedule":
        return cls(
            beneficiary=data["beneficiary"],
            total_allocation=int(data["total_allocation"]),
            start_time=int(data["start_time"]),
            cliff_duration=int(data["cliff_duration"]),
            vesting_duration=int(data["vesting_duration"]),
            released=int(data.get("released", 0)),
            revoked=bool(data.get("revoked", False)),
        )


class ScheduleStore:
    """
    Insertion-ordered schedules. Entries are never removed; exhausted
    schedules stay addressable by index.
    """

    def __init__(self) -> None:
        self._schedules: List[VestingSchedule] = []

    def __len__(self) -> int:
        return len(self._schedules)

    def __iter__(self) -> Iterator[VestingSchedule]:
        return iter(self._schedules)

    def append(self, schedule: VestingSchedule) -> int:
        self._schedules.append(schedule)
        return len(self._schedules) - 1

    def get(self, index: int) -> VestingSchedule:
        if not isinstance(index, int) or index < 0 or index >= len(self._schedules):
            raise IndexOutOfRange(
                f"Index out of range: {index} (count {len(self._schedules)})",
                details={"index": index, "count": len(self._schedules)},
            )
        return self._schedules[index]

    def copy_of(self, index: int) -> VestingSchedule:
        return replace(self.get(index))

    def for_beneficiary(self, beneficiary: str) -> List[VestingSchedule]:
        return [s for s in self._schedules if s.beneficiary == beneficiary]

    def total_unreleased(self) -> int:
        return sum(s.unreleased for s in self._schedules if not s.revoked)

    def snapshot(self) -> Dict[str, Any]:
        return {"schedules": [replace(s) for s in self._schedules]}

    def restore(self, snapshot: Dict[str, Any]) -> None:
        self._schedules = [replace(s) for s in snapshot["schedules"]]

    def to_list(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self._schedules]

    @classmethod
    def from_list(cls, items: List[Dict[str, Any]]) -> "ScheduleStore":
        store = cls()
        for item in items:
            store.append(VestingSchedule.from_dict(item))
        return store

"""
Time providers for the ledger.

Contracts take a ``time_provider`` callable returning unix seconds, so tests
can substitute a deterministic clock.
"""

from __future__ import annotations

import time
from typing import Callable

TimeProvider = Callable[[], int]


def system_time() -> int:
    """Wall-clock seconds since the epoch."""
    return int(time.time())


class ManualClock:
    """Controllable clock for tests and simulations."""

    def __init__(self, start_time: int):
        self.current_time = int(start_time)

    def now(self) -> int:
        return self.current_time

    def __call__(self) -> int:
        return self.current_time

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.current_time += int(seconds)
        return self.current_time

    def set(self, timestamp: int) -> None:
        self.current_time = int(timestamp)


def resolve_time(time_provider: TimeProvider) -> int:
    timestamp = time_provider()
    try:
        return int(timestamp)
    except (TypeError, ValueError) as exc:
        raise ValueError("time_provider must return an integer timestamp") from exc

"""Time sources for the ledger."""

import time
from typing import Protocol


class Clock(Protocol):
    """Monotonically non-decreasing integer time source."""

    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock time in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """Clock driven explicitly by the caller (simulations and tests)."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"Clock cannot start before 0, got {start}")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> int:
        """Jump to `timestamp`; moving backwards is refused."""
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self._now}")
        self._now = timestamp
        return self._now

    def advance(self, dt: int) -> int:
        """Move forward by `dt` units and return the new time."""
        return self.set(self._now + dt)

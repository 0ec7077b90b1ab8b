"""Time sources for token refill."""

import time
from typing import Protocol


class Clock(Protocol):
    """Source of monotonic timestamps in fractional seconds."""

    def now(self) -> float: ...


class MonotonicClock:
    """Clock backed by time.monotonic(), immune to system clock adjustments."""

    def now(self) -> float:
        return time.monotonic()

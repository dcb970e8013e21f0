"""Monotonic time source for benchmark measurements.

Every duration the engine records is the difference between two readings
of the same Clock.  The runner receives its clock as a constructor
argument, which lets tests drive it with a deterministic fake.
"""

from __future__ import annotations

import time


class Clock:
    """High-resolution monotonic clock, in seconds."""

    def now(self) -> float:
        return time.perf_counter()

    def elapsed_since(self, start: float) -> float:
        """Seconds passed since *start*, a previous ``now()`` reading."""
        return self.now() - start


DEFAULT_CLOCK = Clock()

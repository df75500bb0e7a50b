"""
Time sources for block timestamps.

A clock is any zero-argument callable returning whole seconds since the
Unix epoch. The ledger only feeds the value into the digest input, so a
fixed clock makes whole chains reproducible.
"""

import time
from typing import Callable


Clock = Callable[[], int]

GENESIS_TIMESTAMP = 0  # Genesis is not stamped with wall-clock time


def system_clock() -> int:
    """Current wall-clock time in whole seconds."""
    return int(time.time())


class FixedClock:
    """
    Deterministic clock for tests and reproducible demos.

    Returns ``start`` on the first call and advances by ``step`` on every
    following call (``step=0`` freezes time). ``start`` may precede the
    epoch; time never runs backwards.
    """

    def __init__(self, start: int = 0, step: int = 0):
        if step < 0:
            raise ValueError("Clock step must be non-negative")
        self._next = start
        self._step = step

    def __call__(self) -> int:
        now = self._next
        self._next += self._step
        return now

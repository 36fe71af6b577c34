"""Fixed-point timestamps — whole seconds plus microseconds.

The microsecond part is always kept in [0, 1_000_000); negative durations
carry their sign in the seconds field, so Timestamp(-1, 700_000) is -0.3 s.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

USEC_PER_SEC = 1_000_000


@dataclass
class Timestamp:
    sec: int = 0
    usec: int = 0

    def __post_init__(self) -> None:
        self._normalize()

    def _normalize(self) -> None:
        carry, self.usec = divmod(self.usec, USEC_PER_SEC)
        self.sec += carry

    # ---- conversion ----

    @classmethod
    def from_float(cls, value: float) -> Timestamp:
        sec = int(value // 1)
        return cls(sec, int(round((value - sec) * USEC_PER_SEC)))

    def to_float(self) -> float:
        return self.sec + self.usec / USEC_PER_SEC

    @classmethod
    def now(cls) -> Timestamp:
        ns = time.time_ns()
        return cls(ns // 1_000_000_000, (ns // 1000) % USEC_PER_SEC)

    def update(self) -> None:
        """Set this timestamp to the current wall-clock time."""
        now = Timestamp.now()
        self.sec, self.usec = now.sec, now.usec

    def copy(self) -> Timestamp:
        return Timestamp(self.sec, self.usec)

    def is_set(self) -> bool:
        return self.sec != 0 or self.usec != 0

    # ---- arithmetic ----

    def __add__(self, other: Timestamp) -> Timestamp:
        return Timestamp(self.sec + other.sec, self.usec + other.usec)

    def __sub__(self, other: Timestamp) -> Timestamp:
        return Timestamp(self.sec - other.sec, self.usec - other.usec)

    def __le__(self, other: Timestamp) -> bool:
        return (self.sec, self.usec) <= (other.sec, other.usec)

    def __lt__(self, other: Timestamp) -> bool:
        return (self.sec, self.usec) < (other.sec, other.usec)


def time_diff(t1: Timestamp, t2: Timestamp) -> float:
    """Seconds elapsed from t1 to t2 (negative if t2 is earlier)."""
    return (t2 - t1).to_float()


def diff_now(t1: Timestamp) -> float:
    """Seconds elapsed from t1 until now."""
    return time_diff(t1, Timestamp.now())

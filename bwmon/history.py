"""History engine — fixed-size rings of past rates at several resolutions.

Each History holds five HistoryElements (read interval, second, minute,
hour, day); every element keeps an rx and a tx ring of HISTORY_SIZE
slots and commits a new slot once its resolution's width has elapsed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

from bwmon.rate import OVERFLOW_LIMIT, U64_MASK, Rate
from bwmon.timestamp import Timestamp, time_diff

log = logging.getLogger("bwmon.history")

HISTORY_SIZE = 60

SECOND = 1.0
MINUTE = 60.0
HOUR = 3600.0
DAY = 86400.0


@dataclass
class HistoryData:
    data: list[float] = field(default_factory=lambda: [0.0] * HISTORY_SIZE)
    prev_total: int = 0
    overflows: int = 0

    def real_total(self, r: Rate) -> int:
        """Counter delta since the last commit, corrected for wraparounds.

        Each ring tracks its own overflows: a ring may commit before the
        rate engine's minimum interval has passed and seen the wrap.
        """
        delta = (r.total - self.prev_total) & U64_MASK
        if r.is64bit:
            if r.total < self.prev_total:
                log.debug("64-bit counter went backwards (%d -> %d), history reseeded",
                          self.prev_total, r.total)
                return 0
            return delta
        if delta >= OVERFLOW_LIMIT:
            wrapped = OVERFLOW_LIMIT - (self.prev_total - r.total)
            if wrapped < 0:
                log.debug("counter reset (%d -> %d), history reseeded",
                          self.prev_total, r.total)
                return 0
            self.overflows += 1
            return wrapped
        return delta

    def commit(self, r: Rate, index: int, diff: float) -> None:
        self.data[index] = self.real_total(r) / diff
        self.prev_total = r.total


@dataclass
class HistoryElement:
    rx: HistoryData = field(default_factory=HistoryData)
    tx: HistoryData = field(default_factory=HistoryData)
    index: int = 0
    last_update: Timestamp = field(default_factory=Timestamp)

    def update(self, rx: Rate, tx: Rate, ts: Timestamp, unit: float,
               read_interval: float) -> bool:
        """Commit one slot if due. Returns True when a slot was written."""
        if not self.last_update.is_set():
            self.rx.prev_total = rx.total
            self.tx.prev_total = tx.total
            self.last_update = ts.copy()
            return False

        diff = time_diff(self.last_update, ts)
        # The scheduler may shorten an interval to make up for a long one,
        # so a resolution equal to the read interval is always committed.
        if not (diff >= unit or read_interval == unit):
            return False
        if diff <= 0:
            return False

        self.rx.commit(rx, self.index, diff)
        self.tx.commit(tx, self.index, diff)
        self.index = 0 if self.index >= HISTORY_SIZE - 1 else self.index + 1
        self.last_update = ts.copy()
        return True

    def recent(self, direction: str = "rx") -> Iterator[float]:
        """Yield all slots newest first, wrapping around the ring."""
        data = self.rx.data if direction == "rx" else self.tx.data
        for n in range(HISTORY_SIZE):
            yield data[(self.index - 1 - n) % HISTORY_SIZE]


@dataclass
class History:
    read: HistoryElement = field(default_factory=HistoryElement)
    sec: HistoryElement = field(default_factory=HistoryElement)
    min: HistoryElement = field(default_factory=HistoryElement)
    hour: HistoryElement = field(default_factory=HistoryElement)
    day: HistoryElement = field(default_factory=HistoryElement)

    def update(self, rx: Rate, tx: Rate, ts: Timestamp, read_interval: float) -> None:
        if read_interval != SECOND:
            self.read.update(rx, tx, ts, read_interval, read_interval)
        self.sec.update(rx, tx, ts, SECOND, read_interval)
        self.min.update(rx, tx, ts, MINUTE, read_interval)
        self.hour.update(rx, tx, ts, HOUR, read_interval)
        self.day.update(rx, tx, ts, DAY, read_interval)

    def element(self, x_unit: str, read_interval: float) -> HistoryElement:
        """Pick the element for an x unit; 'read' at 1.0 s is the second ring."""
        if x_unit == "read":
            return self.read if read_interval != SECOND else self.sec
        return {"sec": self.sec, "min": self.min,
                "hour": self.hour, "day": self.day}[x_unit]

"""Rate engine — cumulative counters to per-second throughput.

Counters from most sources are 32 bits wide and wrap around. As long as
no more than one wrap happens per sampling interval (i.e. less than
4 GiB/s sustained) the wrap can be corrected for, which is done here for
every rate not flagged as 64-bit.

A previous total of zero means "never sampled": a counter that is
legitimately zero on its first read is re-seeded until it moves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from bwmon.timestamp import Timestamp, time_diff

log = logging.getLogger("bwmon.rate")

OVERFLOW_LIMIT = 2**32
U64_MASK = 2**64 - 1

# Minimum seconds between two accepted samples.
MIN_SAMPLE_INTERVAL = 1.0


@dataclass
class Rate:
    total: int = 0
    prev_total: int = 0
    tps: float = 0.0
    overflows: int = 0
    is64bit: bool = False
    last_update: Timestamp = field(default_factory=Timestamp)


def calc_rate(rate: Rate, ts: Timestamp) -> None:
    """Fold the current total into rate.tps using the poll timestamp ts."""
    if rate.prev_total == 0:
        rate.prev_total = rate.total
        rate.last_update = ts.copy()
        return

    diff = time_diff(rate.last_update, ts)
    if diff < MIN_SAMPLE_INTERVAL:
        return

    if rate.total:
        delta = (rate.total - rate.prev_total) & U64_MASK
        if rate.is64bit:
            if rate.total < rate.prev_total:
                log.debug("64-bit counter went backwards (%d -> %d), reseeding",
                          rate.prev_total, rate.total)
                delta = 0
            tps = delta
        elif delta >= OVERFLOW_LIMIT:
            tps = OVERFLOW_LIMIT - (rate.prev_total - rate.total)
            if tps < 0:
                # Dropped by more than one wrap: a reset, not an overflow.
                log.debug("counter reset (%d -> %d)", rate.prev_total, rate.total)
                tps = 0
            else:
                rate.overflows += 1
                log.debug("counter overflow #%d corrected (%d -> %d)",
                          rate.overflows, rate.prev_total, rate.total)
        else:
            tps = delta

        rate.tps = tps / diff
        rate.prev_total = rate.total

    rate.last_update = ts.copy()

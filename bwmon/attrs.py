"""Per-interface attribute store — secondary counters such as errors and drops.

Attributes live in a fixed number of hash buckets (type % ATTR_HASH_MAX),
each a chain with the most recently created entry first. An entry is
created on its first update and only goes away with its interface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Iterator

from bwmon.timestamp import Timestamp

ATTR_HASH_MAX = 32


class AttrType(IntEnum):
    BYTES = 0
    PACKETS = 1
    ERRORS = 2
    DROP = 3
    FIFO = 4
    FRAME = 5
    COMPRESSED = 6
    MULTICAST = 7
    BROADCAST = 8
    LENGTH_ERRORS = 9
    OVER_ERRORS = 10
    CRC_ERRORS = 11
    MISSED_ERRORS = 12
    ABORTED_ERRORS = 13
    CARRIER_ERRORS = 14
    HEARTBEAT_ERRORS = 15
    WINDOW_ERRORS = 16
    COLLISIONS = 17
    OVERLIMITS = 18
    BPS = 19
    PPS = 20
    QLEN = 21
    BACKLOG = 22
    REQUEUES = 23


class Provided(IntFlag):
    NONE = 0
    RX = 1
    TX = 2
    BOTH = RX | TX


_NAMES = {
    AttrType.BYTES: "Bytes",
    AttrType.PACKETS: "Packets",
    AttrType.ERRORS: "Errors",
    AttrType.DROP: "Dropped",
    AttrType.FIFO: "FIFO Err",
    AttrType.FRAME: "Frame Err",
    AttrType.COMPRESSED: "Compressed",
    AttrType.MULTICAST: "Multicast",
    AttrType.BROADCAST: "Broadcast",
    AttrType.LENGTH_ERRORS: "Length Err",
    AttrType.OVER_ERRORS: "Over Err",
    AttrType.CRC_ERRORS: "CRC Err",
    AttrType.MISSED_ERRORS: "Missed Err",
    AttrType.ABORTED_ERRORS: "Aborted Err",
    AttrType.CARRIER_ERRORS: "Carrier Err",
    AttrType.HEARTBEAT_ERRORS: "HBeat Err",
    AttrType.WINDOW_ERRORS: "Window Err",
    AttrType.COLLISIONS: "Collisions",
    AttrType.OVERLIMITS: "Overlimits",
    AttrType.BPS: "Bits/s",
    AttrType.PPS: "Packets/s",
    AttrType.QLEN: "Queue Len",
    AttrType.BACKLOG: "Backlog",
    AttrType.REQUEUES: "Requeues",
}


def type2name(type_: int) -> str:
    try:
        return _NAMES[AttrType(type_)]
    except ValueError:
        return f"unknown ({type_})"


@dataclass
class Attribute:
    type: int
    rx: int = 0
    tx: int = 0
    rx_enabled: bool = False
    tx_enabled: bool = False
    updated: Timestamp = field(default_factory=Timestamp)

    @property
    def name(self) -> str:
        return type2name(self.type)


class AttributeStore:
    """Hashed attribute collection owned by a single interface."""

    def __init__(self) -> None:
        self._buckets: list[list[Attribute]] = [[] for _ in range(ATTR_HASH_MAX)]
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __iter__(self) -> Iterator[Attribute]:
        for chain in self._buckets:
            yield from chain

    @staticmethod
    def _hash(type_: int) -> int:
        return (type_ & 0xFF) % ATTR_HASH_MAX

    def get(self, type_: int) -> Attribute | None:
        for a in self._buckets[self._hash(type_)]:
            if a.type == type_:
                return a
        return None

    def update(self, type_: int, rx: int, tx: int, flags: Provided,
               ts: Timestamp | None = None) -> Attribute:
        """Store rx/tx for every direction flagged as provided."""
        a = self.get(type_)
        if a is None:
            a = Attribute(type=type_)
            self._buckets[self._hash(type_)].insert(0, a)
            self._count += 1

        if flags & Provided.RX:
            if a.rx != rx:
                a.updated = ts.copy() if ts else Timestamp.now()
            a.rx = rx
            a.rx_enabled = True

        if flags & Provided.TX:
            if a.tx != tx:
                a.updated = ts.copy() if ts else Timestamp.now()
            a.tx = tx
            a.tx_enabled = True

        return a

"""Interface records and the per-node interface table.

A node's interfaces live in a flat list of slots. A slot whose name is
empty is a tombstone and is reused by the next new interface; live slots
never move, so parent/child links are plain slot indices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterator

from bwmon.attrs import AttributeStore, Provided
from bwmon.history import History
from bwmon.rate import Rate, calc_rate
from bwmon.timestamp import Timestamp

if TYPE_CHECKING:
    from bwmon.context import Context
    from bwmon.node import Node

log = logging.getLogger("bwmon.intf")

DEFAULT_LIFETIME = 10
INTF_TABLE_STEP = 32


@dataclass
class Interface:
    name: str = ""
    handle: int = 0
    index: int = 0
    parent: int = 0
    level: int = 0
    link: int = 0
    is_child: bool = False
    folded: bool = False
    rx_enabled: bool = True
    tx_enabled: bool = True
    updated: bool = False
    lifetime: int = 0
    rx_bytes: Rate = field(default_factory=Rate)
    tx_bytes: Rate = field(default_factory=Rate)
    bytes_hist: History = field(default_factory=History)
    rx_packets: Rate = field(default_factory=Rate)
    tx_packets: Rate = field(default_factory=Rate)
    packets_hist: History = field(default_factory=History)
    attrs: AttributeStore = field(default_factory=AttributeStore, repr=False)

    @property
    def live(self) -> bool:
        return bool(self.name)

    def update_attr(self, type_: int, rx: int, tx: int, flags: Provided,
                    ts: Timestamp | None = None) -> None:
        self.attrs.update(type_, rx, tx, flags, ts)

    def set_counters(self, rx_bytes: int | None = None, tx_bytes: int | None = None,
                     rx_packets: int | None = None, tx_packets: int | None = None,
                     is64bit: bool = False) -> None:
        """Store the cumulative counters a provider read for this interface."""
        for rate, value in ((self.rx_bytes, rx_bytes), (self.tx_bytes, tx_bytes),
                            (self.rx_packets, rx_packets), (self.tx_packets, tx_packets)):
            if value is not None:
                rate.total = value
                rate.is64bit = is64bit

    def notify_update(self, ctx: Context) -> None:
        """Mark as refreshed and run the rate and history engines."""
        self.updated = True
        ts = ctx.timing.last_read
        interval = ctx.settings.read_interval

        for rate in (self.rx_bytes, self.tx_bytes, self.rx_packets, self.tx_packets):
            calc_rate(rate, ts)

        self.bytes_hist.update(self.rx_bytes, self.tx_bytes, ts, interval)
        self.packets_hist.update(self.rx_packets, self.tx_packets, ts, interval)

    def increase_lifetime(self, n: int) -> None:
        self.lifetime += n


def lookup_intf(ctx: Context, node: Node | None, name: str, handle: int = 0,
                parent: int = 0) -> Interface | None:
    """Find or create the live interface (name, handle, parent) on node.

    Returns None for an interface already resolved this cycle and for a
    new device rejected by the acceptance policy. A hit marks the
    interface as touched for the current cycle.
    """
    if node is None:
        raise ValueError(f"lookup of interface {name!r} against a null node")

    if node.intfs is None:
        node.intfs = [Interface() for _ in range(INTF_TABLE_STEP)]

    for i in node.intfs:
        if i.live and i.name == name and i.handle == handle and i.parent == parent:
            if i.updated:
                log.debug("%s: duplicate lookup of %s (handle %x) ignored",
                          node.name, name, handle)
                return None
            i.updated = True
            return i

    if not handle and not ctx.policy.allowed_name(name):
        return None

    slot = next((n for n, i in enumerate(node.intfs) if not i.live), None)
    if slot is None:
        slot = len(node.intfs)
        node.intfs.extend(Interface() for _ in range(INTF_TABLE_STEP))

    intf = Interface(name=name, handle=handle, parent=parent, index=slot,
                     lifetime=ctx.settings.lifetime, updated=True)
    node.intfs[slot] = intf
    log.debug("%s: new interface %s (handle %x, parent %d) in slot %d",
              node.name, name, handle, parent, slot)
    return intf


def get_intf(node: Node, index: int) -> Interface | None:
    if node.intfs is None or not 0 <= index < len(node.intfs):
        return None
    i = node.intfs[index]
    return i if i.live else None


def children(node: Node, parent: Interface) -> Iterator[Interface]:
    """Direct children of parent, in slot order."""
    for i in node.intfs or ():
        if i.live and i.is_child and i.parent == parent.index:
            yield i


def foreach_child(node: Node, parent: Interface,
                  cb: Callable[[Interface], None]) -> None:
    for i in list(children(node, parent)):
        cb(i)


def reset_intf(i: Interface) -> None:
    i.updated = False


def remove_unused_intf(node: Node, i: Interface) -> None:
    """Age an untouched interface and tombstone it once its lifetime is spent."""
    if i.updated:
        return
    i.lifetime -= 1
    if i.lifetime <= 0:
        log.debug("%s: removing stale interface %s", node.name, i.name)
        node.intfs[i.index] = Interface()

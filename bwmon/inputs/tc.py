"""Traffic-control statistics — qdiscs and classes as child interfaces.

Runs `tc -s -j qdisc|class show dev <if>` and walks the hierarchy from
the root (and ingress) qdiscs down through classes and leaf qdiscs.
Each element becomes an interface keyed by its handle and the slot index
of its parent, with `link` pointing at the owning device.
"""

from __future__ import annotations

import json
import logging
import subprocess
from typing import TYPE_CHECKING

from bwmon.attrs import AttrType, Provided
from bwmon.intf import Interface, lookup_intf

if TYPE_CHECKING:
    from bwmon.context import Context
    from bwmon.node import Node

log = logging.getLogger("bwmon.inputs.tc")

TC_H_ROOT = 0xFFFFFFFF
TC_H_INGRESS = 0xFFFFFFF1
INGRESS_HANDLE = 0xFFFF0000

TC_TIMEOUT = 1.0

_QUEUE_ATTRS = [
    (AttrType.DROP, "drops"),
    (AttrType.OVERLIMITS, "overlimits"),
    (AttrType.QLEN, "qlen"),
    (AttrType.BACKLOG, "backlog"),
    (AttrType.REQUEUES, "requeues"),
]

def parse_handle(text: str | None) -> int:
    """'1:10' → 0x00010010, 'ffff:' → 0xffff0000, ':1' → 0x1."""
    if not text:
        return 0
    if text == "root":
        return TC_H_ROOT
    major, _, minor = text.partition(":")
    try:
        return (int(major or "0", 16) << 16) | int(minor or "0", 16)
    except ValueError:
        return 0


def run_tc(ctx: Context, kind: str, dev: str) -> list[dict] | None:
    """JSON output of `tc -s -j <kind> show dev <dev>`, or None on failure.

    A missing tc binary disables further calls for this context.
    """
    if ctx.tc_missing:
        return None
    try:
        result = subprocess.run(
            ["tc", "-s", "-j", kind, "show", "dev", dev],
            capture_output=True,
            text=True,
            timeout=TC_TIMEOUT,
            check=False,
        )
    except FileNotFoundError:
        log.info("tc not found, traffic control statistics disabled")
        ctx.tc_missing = True
        return None
    except subprocess.TimeoutExpired:
        log.warning("tc %s show dev %s timed out", kind, dev)
        return None

    if result.returncode != 0:
        log.debug("tc %s show dev %s failed: %s", kind, dev, result.stderr.strip())
        return None
    try:
        data = json.loads(result.stdout or "[]")
    except json.JSONDecodeError as exc:
        log.debug("unparsable tc output for %s: %s", dev, exc)
        return None
    return data if isinstance(data, list) else None


def _stat(obj: dict, key: str) -> int:
    for src in (obj, obj.get("stats") or {}, obj.get("stats2") or {}):
        if key in src:
            try:
                return int(src[key])
            except (TypeError, ValueError):
                return 0
    return 0


def _rate_est(obj: dict, key: str) -> int:
    est = obj.get("rate_est") or {}
    try:
        return int(est.get(key, 0))
    except (TypeError, ValueError):
        return 0


class TcWalker:
    """Walks one device's qdisc/class tree into child interfaces."""

    def __init__(self, ctx: Context, node: Node, dev: Interface,
                 qdiscs: list[dict], classes: list[dict]):
        self.ctx = ctx
        self.node = node
        self.dev = dev
        self.qdiscs = qdiscs
        self.classes = classes

    def walk(self) -> None:
        for q in self.qdiscs:
            if q.get("root") or parse_handle(q.get("parent")) == TC_H_INGRESS:
                self._qdisc(q, self.dev.index, 0)

    def _child(self, name: str, handle: int, parent: int, level: int) -> Interface | None:
        intf = lookup_intf(self.ctx, self.node, name, handle, parent)
        if intf is None:
            return None
        intf.link = self.dev.index
        intf.is_child = True
        intf.level = level
        return intf

    def _push(self, intf: Interface, obj: dict, rx: bool) -> None:
        ts = self.ctx.timing.last_read
        flags = Provided.RX if rx else Provided.TX
        bytes_, packets = _stat(obj, "bytes"), _stat(obj, "packets")
        if rx:
            intf.set_counters(rx_bytes=bytes_, rx_packets=packets, is64bit=True)
            intf.tx_enabled = False
        else:
            intf.set_counters(tx_bytes=bytes_, tx_packets=packets, is64bit=True)
            intf.rx_enabled = False

        for type_, key in _QUEUE_ATTRS:
            v = _stat(obj, key)
            intf.update_attr(type_, v if rx else 0, 0 if rx else v, flags, ts)
        for type_, key in ((AttrType.BPS, "bps"), (AttrType.PPS, "pps")):
            v = _rate_est(obj, key)
            intf.update_attr(type_, v if rx else 0, 0 if rx else v, flags, ts)

        intf.notify_update(self.ctx)

    def _qdisc(self, q: dict, parent: int, level: int) -> None:
        handle_str = q.get("handle", "0:")
        handle = parse_handle(handle_str)
        # Several unnamed (0:) qdiscs may share a device; key them by parent.
        key = handle or parse_handle(q.get("parent")) or TC_H_ROOT
        name = f"q:{q.get('kind', '?')} {handle_str}"
        if not handle and q.get("parent"):
            name += f" ({q['parent']})"

        intf = self._child(name, key, parent, level)
        if intf is None:
            return
        self._push(intf, q, rx=handle == INGRESS_HANDLE)

        if handle:
            for c in self.classes:
                if self._class_parent(c) == handle:
                    self._class(c, intf.index, level + 1)

    @staticmethod
    def _class_parent(c: dict) -> int:
        if c.get("root"):
            return parse_handle(c.get("handle")) & 0xFFFF0000
        return parse_handle(c.get("parent"))

    def _class(self, c: dict, parent: int, level: int) -> None:
        handle_str = c.get("handle", "0:")
        handle = parse_handle(handle_str)
        intf = self._child(f"c:{c.get('class', '?')} {handle_str}", handle, parent, level)
        if intf is None:
            return
        self._push(intf, c, rx=False)

        for q in self.qdiscs:
            if parse_handle(q.get("parent")) == handle:
                self._qdisc(q, intf.index, level + 1)
        for sub in self.classes:
            if not sub.get("root") and parse_handle(sub.get("parent")) == handle:
                self._class(sub, intf.index, level + 1)


def handle_tc(ctx: Context, node: Node, dev: Interface) -> None:
    """Collect traffic-control children of an already refreshed device."""
    qdiscs = run_tc(ctx, "qdisc", dev.name)
    if qdiscs is None:
        return
    classes = run_tc(ctx, "class", dev.name) or []
    TcWalker(ctx, node, dev, qdiscs, classes).walk()

"""Node registry — hosts owning interface tables, with navigation cursors.

The node table only grows. The registry also holds the "current node"
cursor and each node its "selected interface" cursor; the navigation
methods return a NavResult so callers can tell an empty list from
running off either end.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Iterator

from bwmon.intf import Interface, get_intf, remove_unused_intf, reset_intf

log = logging.getLogger("bwmon.node")

NODE_TABLE_STEP = 32


class NavResult(IntEnum):
    OK = 0
    EMPTY_LIST = 1
    END_OF_LIST = 2


@dataclass
class Node:
    name: str | None = None
    index: int = 0
    origin: str | None = None           # None for the local host
    intfs: list[Interface] | None = None
    selected: int = 0

    def live_intfs(self) -> Iterator[Interface]:
        for i in self.intfs or ():
            if i.live:
                yield i

    def hidden(self, i: Interface) -> bool:
        if not i.is_child:
            return False
        owner = get_intf(self, i.link)
        return owner is not None and owner.folded

    def visible_intfs(self) -> Iterator[Interface]:
        """Live interfaces minus children of folded devices, in slot order."""
        for i in self.live_intfs():
            if not self.hidden(i):
                yield i


def local_node_name() -> str:
    return os.uname().nodename


class NodeRegistry:
    def __init__(self) -> None:
        self.nodes: list[Node] = []
        self.nnodes = 0
        self.current: Node | None = None
        self._local: Node | None = None
        self.local_name = local_node_name()

    def __len__(self) -> int:
        return self.nnodes

    def lookup_node(self, name: str, create: bool = False,
                    origin: str | None = None) -> Node | None:
        if not self.nodes:
            self.nodes = [Node() for _ in range(NODE_TABLE_STEP)]

        for n in self.nodes:
            if n.name is not None and n.name == name:
                return n

        if not create:
            return None

        slot = next((k for k, n in enumerate(self.nodes) if n.name is None), None)
        if slot is None:
            slot = len(self.nodes)
            self.nodes.extend(Node() for _ in range(NODE_TABLE_STEP))

        node = Node(name=name, index=slot, origin=origin)
        self.nodes[slot] = node
        self.nnodes += 1
        log.debug("new node %s in slot %d", name, slot)
        return node

    def get_local_node(self) -> Node:
        if self._local is None:
            self._local = self.lookup_node(self.local_name, create=True)
        return self._local

    # ---- iteration ----

    def foreach_node(self, cb: Callable[[Node], None]) -> None:
        for n in self.nodes[:self.nnodes]:
            cb(n)

    def iter_nodes(self) -> Iterator[Node]:
        for n in self.nodes[:self.nnodes]:
            if n.name is not None:
                yield n

    @staticmethod
    def foreach_intf(node: Node, cb: Callable[[Interface], None]) -> None:
        for i in list(node.live_intfs()):
            cb(i)

    def foreach_node_intf(self, cb: Callable[[Node, Interface], None]) -> None:
        for n in self.iter_nodes():
            for i in list(n.live_intfs()):
                cb(n, i)

    # ---- sweeps ----

    def reset(self) -> None:
        """Start a cycle: mark every live interface untouched."""
        self.foreach_node_intf(lambda n, i: reset_intf(i))

    def remove_unused(self) -> None:
        """End a cycle: age untouched interfaces, drop expired ones."""
        self.foreach_node_intf(remove_unused_intf)

    # ---- node cursor ----

    def get_current_node(self) -> Node | None:
        return self.current

    def first_node(self) -> NavResult:
        for n in self.nodes[:self.nnodes]:
            if n.name is not None:
                self.current = n
                return NavResult.OK
        return NavResult.EMPTY_LIST

    def last_node(self) -> NavResult:
        for n in reversed(self.nodes[:self.nnodes]):
            if n.name is not None:
                self.current = n
                return NavResult.OK
        return NavResult.EMPTY_LIST

    def next_node(self) -> NavResult:
        if self.nnodes <= 0:
            return NavResult.EMPTY_LIST
        if self.current is None:
            return self.first_node()
        for n in self.nodes[self.current.index + 1:self.nnodes]:
            if n.name is not None:
                self.current = n
                return NavResult.OK
        return NavResult.END_OF_LIST

    def prev_node(self) -> NavResult:
        if self.nnodes <= 0:
            return NavResult.EMPTY_LIST
        if self.current is None:
            return self.first_node()
        for n in reversed(self.nodes[:self.current.index]):
            if n.name is not None:
                self.current = n
                return NavResult.OK
        return NavResult.END_OF_LIST

    # ---- interface cursor ----

    def get_current_intf(self) -> Interface | None:
        if self.current is None:
            return None
        return get_intf(self.current, self.current.selected)

    def first_intf(self) -> NavResult:
        cn = self.current
        if cn is None or not cn.intfs:
            return NavResult.EMPTY_LIST
        for i in cn.intfs:
            if i.live:
                cn.selected = i.index
                return NavResult.OK
        return NavResult.EMPTY_LIST

    def last_intf(self) -> NavResult:
        cn = self.current
        if cn is None or not cn.intfs:
            return NavResult.EMPTY_LIST
        for i in reversed(cn.intfs):
            if i.live:
                cn.selected = i.index
                return NavResult.OK
        return NavResult.EMPTY_LIST

    def next_intf(self) -> NavResult:
        cn = self.current
        if cn is None or not cn.intfs:
            return NavResult.EMPTY_LIST
        if not 0 <= cn.selected < len(cn.intfs):
            return self.last_intf()
        for i in cn.intfs[cn.selected + 1:]:
            if i.live and not cn.hidden(i):
                cn.selected = i.index
                return NavResult.OK
        return NavResult.END_OF_LIST

    def prev_intf(self) -> NavResult:
        cn = self.current
        if cn is None or not cn.intfs:
            return NavResult.EMPTY_LIST
        if not 0 <= cn.selected < len(cn.intfs):
            return self.first_intf()
        for i in reversed(cn.intfs[:cn.selected]):
            if i.live and not cn.hidden(i):
                cn.selected = i.index
                return NavResult.OK
        return NavResult.END_OF_LIST

    def fold(self) -> None:
        """Toggle folding of the selected device (or of a child's device)."""
        intf = self.get_current_intf()
        if intf is None or self.current is None:
            return
        fix = intf.is_child
        while intf is not None and intf.is_child:
            intf = get_intf(self.current, intf.parent)
        if intf is None:
            return
        intf.folded = not intf.folded
        if fix:
            self.prev_intf()

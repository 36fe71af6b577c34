"""Application context — everything a poll tick reads or mutates."""

from __future__ import annotations

from dataclasses import dataclass, field

from bwmon.config import Settings
from bwmon.intf import Interface, lookup_intf
from bwmon.node import Node, NodeRegistry
from bwmon.policy import Policy
from bwmon.timestamp import Timestamp


@dataclass
class Variance:
    error: float = 0.0
    total: float = 0.0
    min: float = 10_000_000.0
    max: float = 0.0
    count: int = 0

    def add(self, correction: Timestamp, read_interval: Timestamp) -> None:
        """Record one tick's correction as a percentage of the read interval."""
        v = correction.to_float() / read_interval.to_float() * 100.0
        self.error = v
        self.total += v
        self.count += 1
        self.max = max(self.max, v)
        self.min = min(self.min, v)


@dataclass
class ReaderTiming:
    last_read: Timestamp = field(default_factory=Timestamp)
    next_read: Timestamp = field(default_factory=Timestamp)
    variance: Variance = field(default_factory=Variance)


class Context:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.policy = Policy()
        self.policy.parse(self.settings.policy)
        self.nodes = NodeRegistry()
        self.timing = ReaderTiming()
        self.quit_requested = False
        self.tc_missing = False

    def local_node(self) -> Node:
        return self.nodes.get_local_node()

    def lookup_intf(self, name: str, handle: int = 0, parent: int = 0,
                    node: Node | None = None) -> Interface | None:
        """Resolve an interface on node (default: the local node)."""
        return lookup_intf(self, node or self.local_node(), name, handle, parent)

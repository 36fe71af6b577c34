"""Plain text output, suitable for pipes and scripts.

    bwmon -p eth0 -o ascii --header 10                        vmstat-like
    bwmon -p eth1 -o ascii --diagram graph --quit-after 10    scriptable
    bwmon -p 'eth*' -o ascii --diagram details --quit-after 1
"""

from __future__ import annotations

import logging
from argparse import ArgumentParser, Namespace

from bwmon import register_output
from bwmon.base import BaseOutput
from bwmon.graph import BG_CHAR, FG_CHAR, NOISE_CHAR, Table, create_configured_graph
from bwmon.intf import Interface, foreach_child
from bwmon.node import Node
from bwmon.units import sumup

log = logging.getLogger("bwmon.outputs.ascii")

DIAGRAMS = ["list", "details", "graph"]

LIST_HEADER = "Interface                   RX Rate        RX #    TX Rate        TX #"
GRAPH_AXIS = "         1   5   10   15   20   25   30   35   40   45   50   55   60"

# name indentation stops growing past this level
MAX_INDENT_LEVEL = 15


def _char(value: str) -> str:
    if len(value) != 1:
        raise ValueError("expected a single character")
    return value


@register_output
class AsciiOutput(BaseOutput):
    name = "ascii"
    description = "Plain text list, details or graph"

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        parser.add_argument("--diagram", choices=DIAGRAMS, default="list",
                            help="What to print each tick (default: list)")
        parser.add_argument("--header", type=int, default=None, metavar="N",
                            help="Repeat the list header every N lines (default: once)")
        parser.add_argument("--no-header", action="store_true",
                            help="Never print the list header")
        parser.add_argument("--quit-after", type=int, default=-1, metavar="N",
                            help="Stop after N outputs")
        parser.add_argument("--graph-height", type=int, default=6,
                            help="Rows per graph (default: 6)")
        parser.add_argument("--fg-char", type=_char, default=FG_CHAR)
        parser.add_argument("--bg-char", type=_char, default=BG_CHAR)
        parser.add_argument("--noise-char", type=_char, default=NOISE_CHAR)

    def setup(self, args: Namespace) -> None:
        self.diagram = getattr(args, "diagram", "list")
        self.quit_after = getattr(args, "quit_after", -1)
        self.graph_height = max(1, getattr(args, "graph_height", 6))
        self.chars = {
            "fg": getattr(args, "fg_char", FG_CHAR),
            "bg": getattr(args, "bg_char", BG_CHAR),
            "noise": getattr(args, "noise_char", NOISE_CHAR),
        }
        # None: header once, 0: never, N: every N lines
        if getattr(args, "no_header", False):
            self.header_every = 0
        else:
            self.header_every = getattr(args, "header", None)
        self._header_left = 0

    # ---- header pacing ----

    def _want_header(self) -> bool:
        if self.header_every == 0:
            return False
        if self._header_left == 0:
            self._header_left = -1 if self.header_every is None else self.header_every - 1
            return True
        if self._header_left > 0:
            self._header_left -= 1
        return False

    # ---- list ----

    def _print_intf(self, i: Interface) -> None:
        if self._want_header():
            print(LIST_HEADER)

        y_unit = self.ctx.settings.y_unit
        rx, rx_u = sumup(i.rx_bytes.tps, y_unit)
        tx, tx_u = sumup(i.tx_bytes.tps, y_unit)
        label = " " * (2 * min(i.level, MAX_INDENT_LEVEL)) + i.name

        rx_col = f"{rx:10.2f}{rx_u:<3}{i.rx_packets.tps:10.1f}" if i.rx_enabled else f"{'-':>13}{'-':>10}"
        tx_col = f"{tx:10.2f}{tx_u:<3}{i.tx_packets.tps:10.1f}" if i.tx_enabled else f"{'-':>13}{'-':>10}"
        print(f"{label:<24}{rx_col}{tx_col}")

    def _print_tree(self, node: Node, i: Interface) -> None:
        self._print_intf(i)
        foreach_child(node, i, lambda c: self._print_tree(node, c))

    # ---- details ----

    def _print_details(self, i: Interface) -> None:
        print(f" {i.name} ({i.handle})" if i.handle else f" {i.name}")
        rx, rx_u = sumup(i.rx_bytes.total, self.ctx.settings.y_unit)
        tx, tx_u = sumup(i.tx_bytes.total, self.ctx.settings.y_unit)
        print(f"  Bytes:         {rx:12.2f} {rx_u:<3} {tx:12.2f} {tx_u}")
        print(f"  Packets:       {i.rx_packets.total:12d}     {i.tx_packets.total:12d}")
        for a in i.attrs:
            print(f"  {a.name:<14} {a.rx:12d}     {a.tx:12d}")

    # ---- graph ----

    def _print_table(self, label: str, t: Table) -> None:
        print(f"{label}   {t.y_unit}")
        for scale, line in zip(reversed(t.y_scale), t.lines()):
            print(f"{scale:8.2f} {line}")
        print(f"{GRAPH_AXIS} {t.x_unit}")

    def _print_graph(self, i: Interface) -> None:
        s = self.ctx.settings
        g = create_configured_graph(i.bytes_hist, self.graph_height, s.x_unit,
                                    s.read_interval, y_unit=s.y_unit, **self.chars)
        print(i.name)
        self._print_table("RX", g.rx)
        self._print_table("TX", g.tx)

    # ---- consumer hooks ----

    def _draw_node(self, node: Node) -> None:
        if len(self.ctx.nodes) > 1:
            print(f"{node.name}:")
        self.ctx.nodes.foreach_intf(node, lambda i: self._draw_intf(node, i))

    def _draw_intf(self, node: Node, i: Interface) -> None:
        if self.diagram == "list":
            if not i.is_child:
                self._print_tree(node, i)
        elif self.diagram == "details":
            self._print_details(i)
        else:
            self._print_graph(i)

    def draw(self) -> None:
        for node in self.ctx.nodes.iter_nodes():
            self._draw_node(node)

        if self.quit_after > 0:
            self.quit_after -= 1
            if self.quit_after == 0:
                log.debug("output limit reached")
                self.done = True


if __name__ == "__main__":
    from bwmon.main import main
    raise SystemExit(main(["--output", AsciiOutput.name]))

"""Interactive full-screen view: interface list plus a plotext history chart.

Keys (read without blocking before every scheduler pass):
    Up/Down      select interface (crosses into the next/previous node)
    Left/Right   select node
    f            fold/unfold the selected device's qdisc tree
    S M H D R    x unit: seconds, minutes, hours, days, read interval
    q            quit
"""

from __future__ import annotations

import logging
import math
import os
import select
import shutil
import signal
import sys
import termios
import tty
from argparse import ArgumentParser, Namespace

import plotext as plt

from bwmon import register_output
from bwmon.base import BaseOutput
from bwmon.history import HISTORY_SIZE
from bwmon.intf import Interface
from bwmon.node import NavResult, Node
from bwmon.units import format_rate, get_divisor

log = logging.getLogger("bwmon.outputs.tui")

KEY_UP = "up"
KEY_DOWN = "down"
KEY_LEFT = "left"
KEY_RIGHT = "right"

_ESCAPES = {"\x1b[A": KEY_UP, "\x1b[B": KEY_DOWN, "\x1b[C": KEY_RIGHT, "\x1b[D": KEY_LEFT,
            "\x1bOA": KEY_UP, "\x1bOB": KEY_DOWN, "\x1bOC": KEY_RIGHT, "\x1bOD": KEY_LEFT}

X_UNIT_KEYS = {"S": "sec", "M": "min", "H": "hour", "D": "day", "R": "read"}

HELP_LINE = "↑↓ interface  ←→ node  f fold  S/M/H/D/R x-unit  q quit"

# rows reserved around the chart: node line, blank, footer x2
CHROME_ROWS = 4
MIN_CHART_ROWS = 8


def parse_keys(data: str) -> list[str]:
    """Split raw terminal input into key names and single characters."""
    keys = []
    pos = 0
    while pos < len(data):
        seq = data[pos:pos + 3]
        if seq in _ESCAPES:
            keys.append(_ESCAPES[seq])
            pos += 3
        else:
            keys.append(data[pos])
            pos += 1
    return keys


@register_output
class TuiOutput(BaseOutput):
    name = "tui"
    description = "Interactive terminal view with history chart"

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        parser.add_argument("--no-chart", action="store_true",
                            help="Only show the interface list")

    def setup(self, args: Namespace) -> None:
        self.show_chart = not getattr(args, "no_chart", False)
        self._fd: int | None = None
        self._saved_tty = None
        self._dirty = False

        if sys.stdin.isatty():
            self._fd = sys.stdin.fileno()
            self._saved_tty = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)

        if sys.stdout.isatty():
            sys.stdout.write("\033[?25l\033[2J")  # hide cursor, clear
            sys.stdout.flush()

            def on_resize(signum, frame):
                self._dirty = True

            signal.signal(signal.SIGWINCH, on_resize)

    # ---- input ----

    def _read_input(self) -> str:
        if self._fd is None:
            return ""
        ready, _, _ = select.select([self._fd], [], [], 0)
        if not ready:
            return ""
        return os.read(self._fd, 64).decode(errors="ignore")

    def handle_key(self, key: str) -> None:
        nodes = self.ctx.nodes
        if key == "q":
            self.ctx.quit_requested = True
        elif key == KEY_UP:
            if nodes.prev_intf() == NavResult.END_OF_LIST and nodes.prev_node() == NavResult.OK:
                nodes.last_intf()
        elif key == KEY_DOWN:
            if nodes.next_intf() == NavResult.END_OF_LIST and nodes.next_node() == NavResult.OK:
                nodes.first_intf()
        elif key == KEY_LEFT:
            nodes.prev_node()
        elif key == KEY_RIGHT:
            nodes.next_node()
        elif key == "f":
            nodes.fold()
        elif key in X_UNIT_KEYS:
            self.ctx.settings.x_unit = X_UNIT_KEYS[key]
        else:
            return
        self._dirty = True

    def pre(self) -> None:
        for key in parse_keys(self._read_input()):
            self.handle_key(key)
        if self._dirty and not self.ctx.quit_requested:
            self.draw()

    # ---- rendering ----

    def _ensure_cursor(self) -> None:
        nodes = self.ctx.nodes
        if nodes.get_current_node() is None:
            nodes.first_node()
        if nodes.get_current_intf() is None:
            nodes.first_intf()

    def _intf_line(self, node: Node, i: Interface) -> str:
        y_unit = self.ctx.settings.y_unit
        mark = ">" if i.index == node.selected else " "
        fold = "+" if i.folded else " "
        name = "  " * i.level + i.name
        rx = format_rate(i.rx_bytes.tps, y_unit) if i.rx_enabled else "-"
        tx = format_rate(i.tx_bytes.tps, y_unit) if i.tx_enabled else "-"
        rxp = f"{i.rx_packets.tps:.0f}" if i.rx_enabled else "-"
        txp = f"{i.tx_packets.tps:.0f}" if i.tx_enabled else "-"
        line = f"{mark}{fold}{name:<22} {rx:>13} {rxp:>8}   {tx:>13} {txp:>8}"
        return f"\033[7m{line}\033[0m" if mark == ">" else line

    def _chart(self, i: Interface, width: int, height: int) -> str:
        s = self.ctx.settings
        elem = i.bytes_hist.element(s.x_unit, s.read_interval)
        rx = list(elem.recent("rx"))
        tx = list(elem.recent("tx"))
        xs = [-n for n in range(HISTORY_SIZE)]

        peak = max(max(rx), max(tx), 1.0)
        divisor, unit = get_divisor(peak, s.y_unit)

        plt.clf()
        plt.theme("clear")
        plt.plotsize(width, height)
        plt.plot(xs, [v / divisor for v in rx], label=f"↓ RX {format_rate(i.rx_bytes.tps, s.y_unit)}",
                 color="cyan", marker="braille")
        plt.plot(xs, [v / divisor for v in tx], label=f"↑ TX {format_rate(i.tx_bytes.tps, s.y_unit)}",
                 color="magenta", marker="braille")
        y_max = math.ceil(max(peak / divisor, 0.01) * 1.15)
        plt.ylim(0, y_max)
        plt.xlim(-(HISTORY_SIZE - 1), 0)
        plt.frame(False)
        plt.xticks([])
        plt.yticks([])
        plt.grid(False, False)
        plt.text(f"{i.name}  {unit}/s  per {s.x_unit}", x=-(HISTORY_SIZE - 1) / 2, y=y_max * 0.9,
                 color="default", alignment="center")
        return plt.build().rstrip()

    def _footer(self) -> str:
        v = self.ctx.timing.variance
        ri = self.ctx.settings.read_interval
        if v.count:
            timing = (f"read {ri:.2f}s  variance {v.error:+.2f}% "
                      f"(min {v.min:+.2f}% max {v.max:+.2f}% avg {v.total / v.count:+.2f}%)")
        else:
            timing = f"read {ri:.2f}s"
        return f"{timing}\n{HELP_LINE}"

    def render(self, columns: int = 80, rows: int = 24) -> str:
        """Compose one full screen as text."""
        self._ensure_cursor()
        node = self.ctx.nodes.get_current_node()
        if node is None:
            return f"(no interfaces)\n{self._footer()}"

        lines = [f"{node.name}  [{node.index + 1}/{len(self.ctx.nodes)}]"]
        lines.extend(self._intf_line(node, i) for i in node.visible_intfs())
        lines.append("")

        selected = self.ctx.nodes.get_current_intf()
        chart_rows = rows - len(lines) - CHROME_ROWS
        if self.show_chart and selected is not None and chart_rows >= MIN_CHART_ROWS:
            lines.append(self._chart(selected, columns, chart_rows))

        lines.append(self._footer())
        return "\n".join(lines)

    def draw(self) -> None:
        self._dirty = False
        size = shutil.get_terminal_size()
        screen = self.render(size.columns, size.lines)
        sys.stdout.write("\033[H" + screen + "\033[J")
        sys.stdout.flush()

    def shutdown(self) -> None:
        if self._saved_tty is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_tty)
            self._saved_tty = None
        if sys.stdout.isatty():
            sys.stdout.write("\033[?25h\n")  # show cursor
            sys.stdout.flush()


if __name__ == "__main__":
    from bwmon.main import main
    raise SystemExit(main(["--output", TuiOutput.name]))

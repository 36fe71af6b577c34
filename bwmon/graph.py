"""Character graphs built from a history ring, newest slot on the left."""

from __future__ import annotations

from dataclasses import dataclass, field

from bwmon.history import HISTORY_SIZE, History, HistoryData, HistoryElement
from bwmon.units import get_divisor

FG_CHAR = "*"
BG_CHAR = "."
NOISE_CHAR = ":"

X_UNIT_LABELS = {"sec": "s", "min": "m", "hour": "h", "day": "d"}


@dataclass
class Table:
    rows: list[list[str]]               # rows[0] is the bottom row
    y_scale: list[float]
    y_unit: str = "B"
    x_unit: str = "s"

    def lines(self) -> list[str]:
        """Rendered rows, top row first."""
        return ["".join(r) for r in reversed(self.rows)]


@dataclass
class Graph:
    rx: Table
    tx: Table
    x_unit: str = field(default="s")


def create_table(src: HistoryData, index: int, height: int, *, y_unit: str = "dynamic",
                 fg: str = FG_CHAR, bg: str = BG_CHAR, noise: str = NOISE_CHAR) -> Table:
    rows = [[bg] * HISTORY_SIZE for _ in range(height)]
    peak = max(src.data)
    step = peak / height
    half_step = step / 2
    y_scale = [(i + 1) * step for i in range(height)]

    for col in range(HISTORY_SIZE):
        value = src.data[(index - 1 - col) % HISTORY_SIZE]
        if not value:
            continue
        rows[0][col] = noise
        for i in range(height):
            if value >= y_scale[i] - half_step:
                rows[i][col] = fg

    h = min((height // 3) * 2, height - 1)
    divisor, unit = get_divisor(y_scale[h], y_unit)
    return Table(rows=rows, y_scale=[v / divisor for v in y_scale], y_unit=unit)


def create_graph(src: HistoryElement, height: int, **kw) -> Graph:
    return Graph(rx=create_table(src.rx, src.index, height, **kw),
                 tx=create_table(src.tx, src.index, height, **kw))


def x_unit_label(x_unit: str, read_interval: float) -> str:
    if x_unit == "read":
        return f"({read_interval:.2f}s)" if read_interval != 1.0 else "s"
    return X_UNIT_LABELS[x_unit]


def create_configured_graph(hist: History, height: int, x_unit: str,
                            read_interval: float, **kw) -> Graph:
    g = create_graph(hist.element(x_unit, read_interval), height, **kw)
    g.x_unit = g.rx.x_unit = g.tx.x_unit = x_unit_label(x_unit, read_interval)
    return g

"""
Tests for unit scaling and character graph tables.
"""

import pytest

from bwmon.graph import create_configured_graph, create_table, x_unit_label
from bwmon.history import HISTORY_SIZE, History, HistoryData
from bwmon.units import format_rate, get_divisor, sumup


class TestUnits:
    @pytest.mark.parametrize("value,expected", [
        (500, (500.0, "B")),
        (2048, (2.0, "KiB")),
        (3 * 1024**2, (3.0, "MiB")),
        (2 * 1024**4, (2.0, "TiB")),
    ])
    def test_sumup_dynamic(self, value, expected):
        assert sumup(value) == expected

    def test_sumup_fixed(self):
        assert sumup(3 * 1024**2, "kilo") == (3072.0, "KiB")

    def test_divisor_tops_out_at_gib(self):
        assert get_divisor(5 * 1024**4) == (1024**3, "GiB")

    def test_divisor_fixed(self):
        assert get_divisor(1, "mega") == (1024**2, "MiB")

    def test_format_rate(self):
        assert format_rate(512) == "512 B/s"
        assert format_rate(1536) == "1.50 KiB/s"


def _data(**slots: float) -> HistoryData:
    d = HistoryData()
    for k, v in slots.items():
        d.data[int(k[1:])] = v
    return d


class TestTable:
    def test_newest_slot_is_leftmost(self):
        # index 1: the newest committed slot is data[0]
        t = create_table(_data(s0=100.0), 1, 4)
        lines = t.lines()
        assert len(lines) == 4
        assert all(len(line) == HISTORY_SIZE for line in lines)
        assert lines[0] == "*" + "." * (HISTORY_SIZE - 1)

    def test_scale(self):
        t = create_table(_data(s0=100.0), 1, 4)
        assert t.y_scale == [25.0, 50.0, 75.0, 100.0]
        assert t.y_unit == "B"

    def test_small_value_marks_noise(self):
        t = create_table(_data(s0=100.0, s59=10.0), 1, 4)
        bottom = t.lines()[-1]
        assert bottom[:2] == "*:"

    def test_partial_height(self):
        t = create_table(_data(s0=100.0, s59=50.0), 1, 4)
        column = [line[1] for line in t.lines()]
        assert column == [".", ".", "*", "*"]

    def test_custom_chars(self):
        t = create_table(_data(s0=100.0, s59=1.0), 1, 2, fg="#", bg=" ", noise="_")
        assert t.lines()[-1][:3] == "#_ "

    def test_empty_history(self):
        t = create_table(HistoryData(), 0, 3)
        assert set("".join(t.lines())) == {"."}

    def test_scale_unit_from_two_thirds_height(self):
        t = create_table(_data(s0=6 * 1024.0), 1, 6)
        assert t.y_unit == "KiB"
        assert t.y_scale[-1] == 6.0


class TestConfiguredGraph:
    def test_x_unit_labels(self):
        assert x_unit_label("sec", 1.0) == "s"
        assert x_unit_label("min", 1.0) == "m"
        assert x_unit_label("read", 1.0) == "s"
        assert x_unit_label("read", 0.5) == "(0.50s)"

    def test_picks_resolution(self):
        h = History()
        h.min.rx.data[0] = 80.0
        h.min.index = 1
        g = create_configured_graph(h, 4, "min", 1.0)
        assert g.x_unit == "m"
        assert g.rx.x_unit == "m"
        assert g.rx.lines()[0][0] == "*"
        assert set("".join(g.tx.lines())) == {"."}

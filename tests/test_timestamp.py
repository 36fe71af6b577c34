"""
Tests for fixed-point timestamps.
Run with: python -m pytest tests/ -v
"""

from bwmon.timestamp import Timestamp, time_diff


class TestTimestamp:
    def test_microseconds_normalized(self):
        ts = Timestamp(1, 2_500_000)
        assert (ts.sec, ts.usec) == (3, 500_000)

    def test_negative_duration_keeps_usec_positive(self):
        d = Timestamp(1, 0) - Timestamp(1, 300_000)
        assert (d.sec, d.usec) == (-1, 700_000)
        assert abs(d.to_float() + 0.3) < 1e-9

    def test_from_float(self):
        ts = Timestamp.from_float(2.25)
        assert (ts.sec, ts.usec) == (2, 250_000)

    def test_add_carries(self):
        ts = Timestamp(1, 800_000) + Timestamp(0, 400_000)
        assert (ts.sec, ts.usec) == (2, 200_000)

    def test_ordering(self):
        assert Timestamp(1, 5) < Timestamp(1, 6)
        assert Timestamp(1, 6) <= Timestamp(1, 6)
        assert not Timestamp(2, 0) <= Timestamp(1, 999_999)

    def test_unset(self):
        assert not Timestamp().is_set()
        assert Timestamp(0, 1).is_set()

    def test_copy_is_independent(self):
        ts = Timestamp(5, 5)
        c = ts.copy()
        c.sec = 9
        assert ts.sec == 5


class TestTimeDiff:
    def test_forward(self):
        assert time_diff(Timestamp(10, 0), Timestamp(11, 500_000)) == 1.5

    def test_backward_is_negative(self):
        assert time_diff(Timestamp(11, 0), Timestamp(10, 0)) == -1.0

    def test_now_is_set(self):
        assert Timestamp.now().is_set()

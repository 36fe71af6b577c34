"""
Tests for the input providers against fake /proc and sysfs trees, and for
the traffic-control walker against canned `tc -j` output.
"""

import json
import subprocess
from argparse import Namespace

import pytest

from bwmon.attrs import AttrType
from bwmon.base import InputError
from bwmon.config import Settings
from bwmon.context import Context
from bwmon.inputs import link_up, tc
from bwmon.inputs.proc import ProcInput, parse_net_dev
from bwmon.inputs.sysfs import SysfsInput
from bwmon.intf import children
from bwmon.timestamp import Timestamp


NET_DEV = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo: {lo_rx} 10 0 0 0 0 0 0 {lo_tx} 10 0 0 0 0 0 0
  eth0: {eth_rx} 20 1 2 3 4 5 6 {eth_tx} 30 7 8 9 10 11 12
"""


def _net_dev(lo_rx=100, lo_tx=100, eth_rx=1000, eth_tx=2000) -> str:
    return NET_DEV.format(lo_rx=lo_rx, lo_tx=lo_tx, eth_rx=eth_rx, eth_tx=eth_tx)


def _sysfs_dev(root, name: str, flags: str = "0x1003", **stats: int) -> None:
    d = root / name
    (d / "statistics").mkdir(parents=True)
    (d / "flags").write_text(flags + "\n")
    for key, value in stats.items():
        (d / "statistics" / key).write_text(f"{value}\n")


def _tick(ctx: Context, provider, t: float) -> None:
    ctx.timing.last_read = Timestamp.from_float(t)
    ctx.nodes.reset()
    provider.read()
    ctx.nodes.remove_unused()


def _names(ctx: Context) -> list[str]:
    return [i.name for i in ctx.local_node().live_intfs()]


class TestParseNetDev:
    def test_columns(self):
        parsed = parse_net_dev(_net_dev())
        rx, tx = parsed["eth0"]
        assert rx["bytes"] == 1000
        assert rx["multicast"] == 6
        assert tx["bytes"] == 2000
        assert tx["colls"] == 10
        assert tx["carrier"] == 11

    def test_headers_and_junk_skipped(self):
        parsed = parse_net_dev(_net_dev() + "bogus: 1 2 3\n")
        assert sorted(parsed) == ["eth0", "lo"]


class TestLinkUp:
    def test_flags(self, tmp_path):
        _sysfs_dev(tmp_path, "eth0", flags="0x1003")
        _sysfs_dev(tmp_path, "eth1", flags="0x1002")
        assert link_up("eth0", tmp_path)
        assert not link_up("eth1", tmp_path)

    def test_unknown_device_counts_as_up(self, tmp_path):
        assert link_up("ghost", tmp_path)


class TestProcInput:
    def _provider(self, tmp_path, ctx: Context) -> ProcInput:
        proc = tmp_path / "net_dev"
        proc.write_text(_net_dev())
        sysfs = tmp_path / "sys"
        sysfs.mkdir()
        args = Namespace(proc_path=str(proc), sysfs_path=str(sysfs), no_tc=True)
        return ProcInput(ctx, args)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError):
            ProcInput(Context(), Namespace(proc_path=str(tmp_path / "nope"), no_tc=True))

    def test_reads_all_devices(self, tmp_path):
        ctx = Context()
        p = self._provider(tmp_path, ctx)
        _tick(ctx, p, 100.0)
        assert _names(ctx) == ["lo", "eth0"]

        eth0 = ctx.lookup_intf("eth0")
        assert eth0 is None, "already resolved during this cycle"

    def test_rates_and_attributes(self, tmp_path):
        ctx = Context()
        p = self._provider(tmp_path, ctx)
        _tick(ctx, p, 100.0)
        (tmp_path / "net_dev").write_text(_net_dev(eth_rx=3000, eth_tx=2500))
        _tick(ctx, p, 101.0)

        eth0 = ctx.local_node().intfs[1]
        assert eth0.rx_bytes.tps == 2000.0
        assert eth0.tx_bytes.tps == 500.0
        assert eth0.rx_bytes.is64bit
        assert eth0.attrs.get(AttrType.ERRORS).tx == 7
        assert eth0.attrs.get(AttrType.FRAME).rx == 4
        assert not eth0.attrs.get(AttrType.FRAME).tx_enabled
        assert eth0.attrs.get(AttrType.CARRIER_ERRORS).tx == 11

    def test_policy(self, tmp_path):
        ctx = Context(Settings(policy="!lo"))
        _tick(ctx, self._provider(tmp_path, ctx), 100.0)
        assert _names(ctx) == ["eth0"]

    def test_down_links_hidden_unless_show_all(self, tmp_path):
        ctx = Context()
        p = self._provider(tmp_path, ctx)
        _sysfs_dev(tmp_path / "sys", "lo", flags="0x8")
        _tick(ctx, p, 100.0)
        assert _names(ctx) == ["eth0"]

        ctx.settings.show_only_running = False
        _tick(ctx, p, 101.0)
        assert sorted(_names(ctx)) == ["eth0", "lo"]

    def test_vanished_device_expires(self, tmp_path):
        ctx = Context(Settings(lifetime=2))
        p = self._provider(tmp_path, ctx)
        _tick(ctx, p, 100.0)
        (tmp_path / "net_dev").write_text(_net_dev().replace("  eth0:", "  eth9:"))
        _tick(ctx, p, 101.0)
        assert "eth0" in _names(ctx)
        _tick(ctx, p, 102.0)
        assert _names(ctx) == ["lo", "eth9"]


class TestSysfsInput:
    def test_reads_statistics(self, tmp_path):
        _sysfs_dev(tmp_path, "eth0", rx_bytes=4294967000, tx_bytes=10, rx_packets=1,
                   tx_packets=2, rx_errors=3, collisions=4)
        _sysfs_dev(tmp_path, "noise")
        ctx = Context()
        p = SysfsInput(ctx, Namespace(sysfs_path=str(tmp_path), no_tc=True))
        _tick(ctx, p, 100.0)

        assert _names(ctx) == ["eth0"]
        eth0 = ctx.local_node().intfs[0]
        assert not eth0.rx_bytes.is64bit
        assert eth0.attrs.get(AttrType.ERRORS).rx == 3
        assert eth0.attrs.get(AttrType.COLLISIONS).tx == 4
        assert eth0.attrs.get(AttrType.MULTICAST) is None

        (tmp_path / "eth0" / "statistics" / "rx_bytes").write_text("500\n")
        _tick(ctx, p, 101.0)
        assert eth0.rx_bytes.tps == 796.0
        assert eth0.rx_bytes.overflows == 1

    def test_missing_root(self, tmp_path):
        with pytest.raises(InputError):
            SysfsInput(Context(), Namespace(sysfs_path=str(tmp_path / "nope")))


# ─── traffic control ─────────────────────────────────────────────────────────

TC_QDISCS = [
    {"kind": "htb", "handle": "1:", "root": True, "bytes": 9000, "packets": 90,
     "drops": 2, "overlimits": 5, "requeues": 0, "backlog": 0, "qlen": 0},
    {"kind": "ingress", "handle": "ffff:", "parent": "ffff:fff1", "bytes": 500, "packets": 5},
    {"kind": "fq_codel", "handle": "10:", "parent": "1:10", "bytes": 700, "packets": 7},
]
TC_CLASSES = [
    {"class": "htb", "handle": "1:1", "root": True, "bytes": 8000, "packets": 80,
     "rate_est": {"bps": 1200, "pps": 3}},
    {"class": "htb", "handle": "1:10", "parent": "1:1", "bytes": 700, "packets": 7},
]


def _fake_tc(calls: list):
    def run(cmd, **kw):
        calls.append(cmd)
        data = TC_QDISCS if cmd[3] == "qdisc" else TC_CLASSES
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(data), stderr="")
    return run


@pytest.fixture
def tc_calls(monkeypatch):
    calls: list = []
    monkeypatch.setattr(tc.subprocess, "run", _fake_tc(calls))
    return calls


class TestTc:
    @pytest.mark.parametrize("text,value", [
        ("1:", 0x10000),
        ("1:10", 0x10010),
        ("ffff:", tc.INGRESS_HANDLE),
        ("ffff:fff1", tc.TC_H_INGRESS),
        ("root", tc.TC_H_ROOT),
        (None, 0),
        ("x:y", 0),
    ])
    def test_parse_handle(self, text, value):
        assert tc.parse_handle(text) == value

    def _walk(self, ctx: Context):
        node = ctx.local_node()
        dev = ctx.lookup_intf("eth0")
        ctx.timing.last_read = Timestamp(100, 0)
        tc.handle_tc(ctx, node, dev)
        return node, dev

    def test_hierarchy(self, tc_calls):
        ctx = Context()
        node, dev = self._walk(ctx)
        assert [c[3] for c in tc_calls] == ["qdisc", "class"]

        by_name = {i.name: i for i in node.live_intfs()}
        assert set(by_name) == {"eth0", "q:htb 1:", "c:htb 1:1", "c:htb 1:10",
                                "q:fq_codel 10:", "q:ingress ffff:"}
        assert [c.name for c in children(node, dev)] == ["q:htb 1:", "q:ingress ffff:"]

        assert by_name["q:htb 1:"].level == 0
        assert by_name["c:htb 1:1"].level == 1
        assert by_name["c:htb 1:10"].level == 2
        assert by_name["q:fq_codel 10:"].level == 3
        assert by_name["q:fq_codel 10:"].parent == by_name["c:htb 1:10"].index
        assert all(i.link == dev.index for i in by_name.values() if i.is_child)

    def test_directions_and_attrs(self, tc_calls):
        ctx = Context()
        node, _ = self._walk(ctx)
        by_name = {i.name: i for i in node.live_intfs()}

        root = by_name["q:htb 1:"]
        assert root.tx_bytes.total == 9000
        assert not root.rx_enabled
        assert root.attrs.get(AttrType.DROP).tx == 2
        assert root.attrs.get(AttrType.OVERLIMITS).tx == 5

        ingress = by_name["q:ingress ffff:"]
        assert ingress.rx_bytes.total == 500
        assert not ingress.tx_enabled

        cls = by_name["c:htb 1:1"]
        assert cls.attrs.get(AttrType.BPS).tx == 1200
        assert cls.attrs.get(AttrType.PPS).tx == 3

    def test_policy_does_not_hide_qdiscs(self, tc_calls):
        ctx = Context(Settings(policy="eth0"))
        node, _ = self._walk(ctx)
        assert len(list(node.live_intfs())) == 6

    def test_missing_tc_disables_further_calls(self, monkeypatch):
        calls = []

        def missing(cmd, **kw):
            calls.append(cmd)
            raise FileNotFoundError("tc")

        monkeypatch.setattr(tc.subprocess, "run", missing)
        ctx = Context()
        node, _ = self._walk(ctx)
        tc.handle_tc(ctx, node, node.intfs[0])
        assert len(calls) == 1
        assert ctx.tc_missing
        assert _names(ctx) == ["eth0"]

    def test_missing_tc_is_per_context(self, monkeypatch):
        calls = []

        def missing(cmd, **kw):
            calls.append(cmd)
            raise FileNotFoundError("tc")

        monkeypatch.setattr(tc.subprocess, "run", missing)
        self._walk(Context())
        fresh = Context()
        assert not fresh.tc_missing
        self._walk(fresh)
        assert len(calls) == 2

    def test_failed_command(self, monkeypatch):
        monkeypatch.setattr(tc.subprocess, "run", lambda cmd, **kw: subprocess.CompletedProcess(
            cmd, 1, stdout="", stderr="Cannot find device"))
        assert tc.run_tc(Context(), "qdisc", "eth0") is None

    def test_provider_runs_tc(self, tmp_path, tc_calls):
        proc = tmp_path / "net_dev"
        proc.write_text(_net_dev())
        ctx = Context(Settings(policy="eth0"))
        p = ProcInput(ctx, Namespace(proc_path=str(proc), sysfs_path=str(tmp_path), no_tc=False))
        _tick(ctx, p, 100.0)
        assert len(_names(ctx)) == 6
        assert all(c[-1] == "eth0" for c in tc_calls)


# ─── psutil ──────────────────────────────────────────────────────────────────

class TestPsutilInput:
    def _patch(self, monkeypatch, counters: dict, up: dict):
        from collections import namedtuple

        from bwmon.inputs import pstat

        nic = namedtuple("snetio", "bytes_sent bytes_recv packets_sent packets_recv "
                                   "errin errout dropin dropout")
        stats = namedtuple("snicstats", "isup")
        monkeypatch.setattr(pstat.psutil, "net_io_counters",
                            lambda pernic=False, nowrap=True: {k: nic(*v) for k, v in counters.items()})
        monkeypatch.setattr(pstat.psutil, "net_if_stats",
                            lambda: {k: stats(v) for k, v in up.items()})
        return pstat.PsutilInput

    def test_counters_and_down_links(self, monkeypatch):
        cls = self._patch(monkeypatch,
                          {"en0": (200, 100, 2, 1, 3, 4, 5, 6), "en1": (1, 1, 1, 1, 0, 0, 0, 0)},
                          {"en0": True, "en1": False})
        ctx = Context()
        _tick(ctx, cls(ctx), 100.0)
        assert _names(ctx) == ["en0"]
        en0 = ctx.local_node().intfs[0]
        assert en0.rx_bytes.total == 100
        assert en0.tx_bytes.total == 200
        assert en0.attrs.get(AttrType.ERRORS).rx == 3
        assert en0.attrs.get(AttrType.DROP).tx == 6

    def test_failure_is_fatal(self, monkeypatch):
        from bwmon.inputs import pstat

        def broken(**kw):
            raise OSError("no counters")

        monkeypatch.setattr(pstat.psutil, "net_io_counters", broken)
        ctx = Context()
        with pytest.raises(InputError):
            pstat.PsutilInput(ctx).read()

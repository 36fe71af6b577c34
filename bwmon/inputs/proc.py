"""Linux link statistics from /proc/net/dev."""

from __future__ import annotations

import logging
import os
from argparse import ArgumentParser, Namespace
from pathlib import Path

from bwmon import register_input
from bwmon.attrs import AttrType, Provided
from bwmon.base import BaseInput, InputError
from bwmon.inputs import SYSFS_NET, link_up
from bwmon.inputs.tc import handle_tc

log = logging.getLogger("bwmon.inputs.proc")

PROC_NET_DEV = "/proc/net/dev"

# Column positions after the "iface:" prefix.
RX_COLUMNS = ["bytes", "packets", "errs", "drop", "fifo", "frame", "compressed", "multicast"]
TX_COLUMNS = ["bytes", "packets", "errs", "drop", "fifo", "colls", "carrier", "compressed"]

_BOTH = [
    (AttrType.ERRORS, "errs"),
    (AttrType.DROP, "drop"),
    (AttrType.FIFO, "fifo"),
    (AttrType.COMPRESSED, "compressed"),
]


def parse_net_dev(text: str) -> dict[str, tuple[dict[str, int], dict[str, int]]]:
    """Parse /proc/net/dev → {iface: (rx_fields, tx_fields)}"""
    result = {}
    for line in text.splitlines():
        if ":" not in line:
            continue
        iface, data = line.split(":", 1)
        iface = iface.strip()
        parts = data.split()
        if not iface or len(parts) < 16:
            continue
        try:
            values = [int(p) for p in parts[:16]]
        except ValueError:
            log.debug("skipping malformed line for %s", iface)
            continue
        result[iface] = (dict(zip(RX_COLUMNS, values[:8])), dict(zip(TX_COLUMNS, values[8:16])))
    return result


@register_input
class ProcInput(BaseInput):
    name = "proc"
    description = "Linux /proc/net/dev link statistics"

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        parser.add_argument("--proc-path", default=PROC_NET_DEV,
                            help=f"Path of the net/dev table (default: {PROC_NET_DEV})")

    def setup(self, args: Namespace) -> None:
        self._path = Path(getattr(args, "proc_path", PROC_NET_DEV))
        self._sysfs = Path(getattr(args, "sysfs_path", SYSFS_NET))
        self._tc = not getattr(args, "no_tc", False)
        if not self._path.exists():
            raise InputError(f"{self._path} not found")

    def read(self) -> None:
        try:
            text = self._path.read_text()
        except OSError as exc:
            raise InputError(f"cannot read {self._path}: {exc}") from exc

        ctx = self.ctx
        node = ctx.local_node()
        ts = ctx.timing.last_read

        for iface, (rx, tx) in parse_net_dev(text).items():
            if ctx.settings.show_only_running and not link_up(iface, self._sysfs):
                continue

            intf = ctx.lookup_intf(iface, node=node)
            if intf is None:
                continue

            intf.set_counters(rx_bytes=rx["bytes"], tx_bytes=tx["bytes"],
                              rx_packets=rx["packets"], tx_packets=tx["packets"],
                              is64bit=True)

            for type_, col in _BOTH:
                intf.update_attr(type_, rx[col], tx[col], Provided.BOTH, ts)
            intf.update_attr(AttrType.FRAME, rx["frame"], 0, Provided.RX, ts)
            intf.update_attr(AttrType.MULTICAST, rx["multicast"], 0, Provided.RX, ts)
            intf.update_attr(AttrType.COLLISIONS, 0, tx["colls"], Provided.TX, ts)
            intf.update_attr(AttrType.CARRIER_ERRORS, 0, tx["carrier"], Provided.TX, ts)

            if self._tc:
                handle_tc(ctx, node, intf)

            intf.notify_update(ctx)

    @classmethod
    def is_available(cls) -> bool:
        return os.path.exists(PROC_NET_DEV)


if __name__ == "__main__":
    from bwmon.main import main
    raise SystemExit(main(["--input", ProcInput.name]))

"""Linux link statistics from /sys/class/net/<if>/statistics.

These counters are treated as 32 bits wide, so the rate engine applies
its wraparound correction to them.
"""

from __future__ import annotations

import logging
from argparse import ArgumentParser, Namespace
from pathlib import Path

from bwmon import register_input
from bwmon.attrs import AttrType, Provided
from bwmon.base import BaseInput, InputError
from bwmon.inputs import SYSFS_NET, link_up
from bwmon.inputs.tc import handle_tc

log = logging.getLogger("bwmon.inputs.sysfs")

# attribute → (rx file, tx file); None where the kernel has no counter
ATTR_FILES = {
    AttrType.ERRORS: ("rx_errors", "tx_errors"),
    AttrType.DROP: ("rx_dropped", "tx_dropped"),
    AttrType.FIFO: ("rx_fifo_errors", "tx_fifo_errors"),
    AttrType.COMPRESSED: ("rx_compressed", "tx_compressed"),
    AttrType.MULTICAST: ("multicast", None),
    AttrType.COLLISIONS: (None, "collisions"),
    AttrType.LENGTH_ERRORS: ("rx_length_errors", None),
    AttrType.OVER_ERRORS: ("rx_over_errors", None),
    AttrType.CRC_ERRORS: ("rx_crc_errors", None),
    AttrType.FRAME: ("rx_frame_errors", None),
    AttrType.MISSED_ERRORS: ("rx_missed_errors", None),
    AttrType.ABORTED_ERRORS: (None, "tx_aborted_errors"),
    AttrType.HEARTBEAT_ERRORS: (None, "tx_heartbeat_errors"),
    AttrType.WINDOW_ERRORS: (None, "tx_window_errors"),
    AttrType.CARRIER_ERRORS: (None, "tx_carrier_errors"),
}


def read_counter(path: Path) -> int:
    return int(path.read_text().strip())


def read_statistics(stats: Path) -> dict[str, int]:
    """All readable counters in a statistics directory → {file: value}"""
    result = {}
    for f in stats.iterdir():
        try:
            result[f.name] = read_counter(f)
        except (OSError, ValueError):
            continue
    return result


@register_input
class SysfsInput(BaseInput):
    name = "sysfs"
    description = "Linux /sys/class/net per-device statistics"

    @classmethod
    def add_args(cls, parser: ArgumentParser) -> None:
        parser.add_argument("--sysfs-path", default=str(SYSFS_NET),
                            help=f"Root of the net class tree (default: {SYSFS_NET})")

    def setup(self, args: Namespace) -> None:
        self._root = Path(getattr(args, "sysfs_path", SYSFS_NET))
        self._tc = not getattr(args, "no_tc", False)
        if not self._root.is_dir():
            raise InputError(f"{self._root} not found")

    def read(self) -> None:
        ctx = self.ctx
        node = ctx.local_node()
        ts = ctx.timing.last_read

        try:
            devices = sorted(p for p in self._root.iterdir() if (p / "statistics").is_dir())
        except OSError as exc:
            raise InputError(f"cannot list {self._root}: {exc}") from exc

        for dev in devices:
            if ctx.settings.show_only_running and not link_up(dev.name, self._root):
                continue
            try:
                st = read_statistics(dev / "statistics")
            except OSError as exc:
                log.debug("skipping %s: %s", dev.name, exc)
                continue
            if "rx_bytes" not in st or "tx_bytes" not in st:
                continue

            intf = ctx.lookup_intf(dev.name, node=node)
            if intf is None:
                continue

            intf.set_counters(rx_bytes=st["rx_bytes"], tx_bytes=st["tx_bytes"],
                              rx_packets=st.get("rx_packets"), tx_packets=st.get("tx_packets"))

            for type_, (rx_file, tx_file) in ATTR_FILES.items():
                flags = Provided.NONE
                if rx_file in st:
                    flags |= Provided.RX
                if tx_file in st:
                    flags |= Provided.TX
                if flags:
                    intf.update_attr(type_, st.get(rx_file, 0), st.get(tx_file, 0), flags, ts)

            if self._tc:
                handle_tc(ctx, node, intf)

            intf.notify_update(ctx)

    @classmethod
    def is_available(cls) -> bool:
        return SYSFS_NET.is_dir()


if __name__ == "__main__":
    from bwmon.main import main
    raise SystemExit(main(["--input", SysfsInput.name]))

"""Portable link statistics via psutil, for hosts without /proc or sysfs."""

from __future__ import annotations

import logging

import psutil

from bwmon import register_input
from bwmon.attrs import AttrType, Provided
from bwmon.base import BaseInput, InputError

log = logging.getLogger("bwmon.inputs.psutil")


@register_input
class PsutilInput(BaseInput):
    name = "psutil"
    description = "psutil per-NIC counters (any platform)"

    def read(self) -> None:
        try:
            counters = psutil.net_io_counters(pernic=True, nowrap=True)
        except (OSError, RuntimeError) as exc:
            raise InputError(f"psutil.net_io_counters failed: {exc}") from exc
        try:
            stats = psutil.net_if_stats()
        except OSError as exc:
            log.debug("net_if_stats failed: %s", exc)
            stats = {}

        ctx = self.ctx
        node = ctx.local_node()
        ts = ctx.timing.last_read

        for nic, c in counters.items():
            st = stats.get(nic)
            if ctx.settings.show_only_running and st is not None and not st.isup:
                continue

            intf = ctx.lookup_intf(nic, node=node)
            if intf is None:
                continue

            intf.set_counters(rx_bytes=c.bytes_recv, tx_bytes=c.bytes_sent,
                              rx_packets=c.packets_recv, tx_packets=c.packets_sent,
                              is64bit=True)
            intf.update_attr(AttrType.ERRORS, c.errin, c.errout, Provided.BOTH, ts)
            intf.update_attr(AttrType.DROP, c.dropin, c.dropout, Provided.BOTH, ts)
            intf.notify_update(ctx)

    @classmethod
    def is_available(cls) -> bool:
        try:
            return bool(psutil.net_io_counters(pernic=True))
        except Exception:
            return False


if __name__ == "__main__":
    from bwmon.main import main
    raise SystemExit(main(["--input", PsutilInput.name]))

"""Poll loop with drift-corrected read interval, plus shutdown hooks.

    E  := elapsed (now)         NR := next read
    LR := last read             RI := read interval
    C  := correction (NR - E, zero or negative)

Whenever NR <= E a tick runs, LR := E and NR := E + RI + C, so a late
tick shortens the following interval by the amount it overshot.
"""

from __future__ import annotations

import atexit
import logging
import signal
import sys
import time
from typing import Callable, Sequence

from bwmon.base import BaseInput, BaseOutput
from bwmon.context import Context
from bwmon.timestamp import Timestamp

log = logging.getLogger("bwmon.loop")


class Shutdown:
    """Runs registered teardown actions exactly once, however it is triggered."""

    def __init__(self) -> None:
        self._actions: list[Callable[[], None]] = []
        self.done = False

    def register(self, action: Callable[[], None]) -> None:
        self._actions.append(action)

    def __call__(self) -> None:
        if self.done:
            return
        self.done = True
        log.info("Shutting down")
        for action in self._actions:
            try:
                action()
            except Exception:
                log.exception("Teardown action %r failed", action)

    def install(self) -> None:
        """Hook into interpreter exit and SIGINT/SIGTERM."""
        atexit.register(self)

        def _on_signal(sig, frame):
            log.info("Received signal %s", signal.Signals(sig).name)
            self()
            sys.exit(0)

        signal.signal(signal.SIGINT, _on_signal)
        signal.signal(signal.SIGTERM, _on_signal)


def poll(ctx: Context, inputs: Sequence[BaseInput]) -> None:
    """One poll cycle: reset, read every provider, age out stale interfaces."""
    ctx.nodes.reset()
    for inp in inputs:
        inp.read()
    ctx.nodes.remove_unused()


def run(ctx: Context, inputs: Sequence[BaseInput], outputs: Sequence[BaseOutput], *,
        clock: Callable[[], Timestamp] = Timestamp.now,
        sleep: Callable[[float], None] = time.sleep,
        max_ticks: int | None = None) -> int:
    """Blocking main loop. Returns the number of completed ticks."""
    timing = ctx.timing
    ri = Timestamp.from_float(ctx.settings.read_interval)
    sleep_time = ctx.settings.sleep_time
    ticks = 0

    timing.next_read = clock()

    while not ctx.quit_requested:
        for out in outputs:
            out.pre()

        e = clock()
        if timing.next_read <= e:
            c = timing.next_read - e
            timing.variance.add(c, ri)
            timing.last_read = e.copy()
            timing.next_read = e + ri + c

            poll(ctx, inputs)
            for out in outputs:
                out.draw()
                out.post()

            ticks += 1
            if any(out.done for out in outputs):
                break
            if max_ticks is not None and ticks >= max_ticks:
                break

        remaining = (timing.next_read - e).to_float()
        sleep(min(sleep_time, max(0.0, remaining)))

    return ticks

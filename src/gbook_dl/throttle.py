from __future__ import annotations

import random
import time
from typing import Callable

MAX_DELAY_MS = 2000
TICK_MS = 200

TickCallback = Callable[[int, int], None]


class RequestGate:
    """Randomized politeness delay taken before each request.

    The delay is drawn uniformly from ``[0, max_delay_ms)`` milliseconds and
    slept in ticks of at most ``tick_ms`` so a progress display can follow
    along. ``on_tick`` receives ``(elapsed_ms, total_ms)`` after every tick.
    """

    def __init__(
        self,
        *,
        max_delay_ms: int = MAX_DELAY_MS,
        tick_ms: int = TICK_MS,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
        on_tick: TickCallback | None = None,
    ) -> None:
        self._max_delay_ms = max_delay_ms
        self._tick_ms = max(1, tick_ms)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self.on_tick = on_tick

    def next_delay_ms(self) -> int:
        if self._max_delay_ms <= 0:
            return 0
        return self._rng.randrange(self._max_delay_ms)

    def wait(self) -> int:
        total = self.next_delay_ms()
        elapsed = 0
        while elapsed < total:
            step = min(self._tick_ms, total - elapsed)
            self._sleep(step / 1000.0)
            elapsed += step
            if self.on_tick is not None:
                self.on_tick(elapsed, total)
        return total

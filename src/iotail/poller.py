# -*- coding: utf-8 -*-
from __future__ import annotations

import time
from typing import Callable, Optional

from .schemas import RunState

# Floor for the shrinking path, keeps the interval strictly positive.
MIN_INTERVAL = 0.001


class AdaptivePoller:
    """
    Sleep-interval state machine used when a source has no new data.

    After a productive burst of k lines the interval becomes interval / k, an
    estimate of the time per line; after a silent cycle it doubles. Either way
    it is capped at max_interval.
    """

    def __init__(
        self,
        max_interval: float,
        interval: Optional[float] = None,
        sleep: Callable[[float], object] = time.sleep,
    ):
        self.max_interval = max_interval
        self.interval = min(interval if interval is not None else max_interval, max_interval)
        self._sleep = sleep

    def next_interval(self, lines: int) -> float:
        if lines > 0:
            interval = self.interval / lines
        else:
            interval = self.interval * 2
        return min(max(interval, MIN_INTERVAL), self.max_interval)

    def wait(self, state: RunState) -> float:
        self.interval = self.next_interval(state.lines_this_interval)
        state.lines_this_interval = 0
        self._sleep(self.interval)
        state.seconds_since_last_read += self.interval
        return self.interval

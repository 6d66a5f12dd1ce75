#!/usr/bin/env python3
"""
Real-time clock shared by the decks of one engine.
Transport positions are extrapolated from readings of this clock.
"""

import time
from typing import Callable
import logging

logger = logging.getLogger(__name__)


class AudioClock:
    """
    Monotonic seconds counter.

    The zero point is the moment the clock was created, so readings stay
    small and keep full float precision over long sessions.
    """

    def __init__(self, time_source: Callable[[], float] = time.perf_counter):
        self._time_source = time_source
        self._origin = time_source()
        logger.debug(f"AudioClock initialized at origin {self._origin:.6f}")

    def now(self) -> float:
        """Seconds elapsed since the clock origin"""
        return self._time_source() - self._origin

# twin-deck/deck_engine/tap_tempo.py

import logging
from collections import deque
from typing import Optional

import config

logger = logging.getLogger(__name__)


class TapTempo:
    """Measures tempo from the spacing of manual taps (timestamps in seconds)."""

    def __init__(self, debounce: float = config.TAP_DEBOUNCE_SECONDS,
                 reset_after: float = config.TAP_RESET_SECONDS,
                 history: int = config.TAP_HISTORY):
        self.debounce = debounce
        self.reset_after = reset_after
        self._taps = deque(maxlen=history)

    def reset(self) -> None:
        self._taps.clear()

    def tap(self, timestamp: float) -> Optional[float]:
        """Register a tap; returns the measured BPM once two taps are in the series"""
        if self._taps:
            gap = timestamp - self._taps[-1]
            if gap < self.debounce:
                return None
            if gap > self.reset_after:
                logger.debug(f"Tap series restarted after {gap:.2f}s pause")
                self._taps.clear()
        self._taps.append(timestamp)

        if len(self._taps) < 2:
            return None
        average = (self._taps[-1] - self._taps[0]) / (len(self._taps) - 1)
        return 60.0 / average

# twin-deck/deck_engine/cue_points.py

import bisect
import logging
from typing import List

import config

logger = logging.getLogger(__name__)


class CuePointManager:
    """Sorted set of cue marks (seconds); marks closer than the tolerance count as one."""

    def __init__(self, tolerance: float = config.CUE_MATCH_TOLERANCE,
                 jump_epsilon: float = config.CUE_JUMP_EPSILON):
        self.tolerance = tolerance
        self.jump_epsilon = jump_epsilon
        self._points: List[float] = []

    @property
    def points(self) -> List[float]:
        return list(self._points)

    def __len__(self):
        return len(self._points)

    def clear(self) -> None:
        self._points = []

    def is_near(self, t: float) -> bool:
        return any(abs(c - t) < self.tolerance for c in self._points)

    def add(self, t: float) -> bool:
        """Insert t unless an existing mark lies within the tolerance"""
        t = float(t)
        if self.is_near(t):
            logger.debug(f"Cue at {t:.3f}s already marked")
            return False
        bisect.insort(self._points, t)
        return True

    def remove(self, t: float) -> int:
        """Remove every mark within the tolerance of t; returns how many went"""
        before = len(self._points)
        self._points = [c for c in self._points if abs(c - t) >= self.tolerance]
        return before - len(self._points)

    def next_after(self, t: float) -> float:
        """First mark past t (wrapping to the first mark), or 0 with no marks"""
        if not self._points:
            return 0.0
        idx = bisect.bisect_right(self._points, t + self.jump_epsilon)
        if idx < len(self._points):
            return self._points[idx]
        return self._points[0]

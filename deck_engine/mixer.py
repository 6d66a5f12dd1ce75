# twin-deck/deck_engine/mixer.py
# Mixing bus: crossfader gain handles and the master stage

import logging
import threading
from typing import Dict, Iterable

import config

logger = logging.getLogger(__name__)


class GainHandle:
    """A single gain value written by the bus and read by a deck's audio callback."""

    def __init__(self, value: float = 1.0):
        self.value = float(value)

    def __repr__(self):
        return f"GainHandle({self.value:.3f})"


class MixingBus:
    """
    Holds one crossfader gain handle per deck plus the master gain.

    Only the bus writes the handles; decks just multiply by them.
    """

    def __init__(self, deck_ids: Iterable[str] = config.DECK_IDS,
                 master_gain: float = config.MASTER_GAIN,
                 unity_position: float = config.VOLUME_UNITY_POSITION):
        deck_ids = tuple(deck_ids)
        if len(deck_ids) != 2:
            raise ValueError(f"The crossfader needs exactly two decks, got {deck_ids}")
        self.deck_ids = deck_ids
        self.master_gain = master_gain
        self.gain_scaler = 1.0 / unity_position
        self._handles: Dict[str, GainHandle] = {deck_id: GainHandle() for deck_id in deck_ids}
        self._lock = threading.Lock()
        self.crossfader = 0.5
        self.set_crossfader(0.5)

    def gain_handle(self, deck_id: str) -> GainHandle:
        return self._handles[deck_id]

    def set_crossfader(self, x: float) -> float:
        """0 = all first deck, 1 = all second deck"""
        x = max(0.0, min(1.0, float(x)))
        first, second = self.deck_ids
        with self._lock:
            self.crossfader = x
            self._handles[first].value = 1.0 - x
            self._handles[second].value = x
        logger.debug(f"Crossfader at {x:.2f}: {first}={1.0 - x:.2f}, {second}={x:.2f}")
        return x

    def volume_to_gain(self, control: float) -> float:
        """Volume fader position to linear gain (the rest position is unity)"""
        return max(0.0, float(control)) * self.gain_scaler

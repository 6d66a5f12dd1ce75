# twin-deck/deck_engine/engine.py

import logging
from typing import Callable, Dict, Optional

from .audio_clock import AudioClock
from .deck import Deck, DeckSnapshot
from .mixer import MixingBus
from .output import open_output_stream

logger = logging.getLogger(__name__)


class AudioEngine:
    """
    Two independent decks on a shared clock, feeding one mixing bus.

    The decks share no mutable state except the bus gain handles, which
    only the bus writes.
    """

    def __init__(self, app_config_module, clock: Optional[AudioClock] = None,
                 stream_factory: Optional[Callable] = open_output_stream, **deck_options):
        logger.debug("AudioEngine - Initializing...")
        self.app_config = app_config_module
        if self.app_config is None:
            raise ValueError("CRITICAL: AudioEngine requires a valid config module.")

        self.clock = clock if clock is not None else AudioClock()
        self.bus = MixingBus(self.app_config.DECK_IDS,
                             master_gain=self.app_config.MASTER_GAIN,
                             unity_position=self.app_config.VOLUME_UNITY_POSITION)
        self.decks: Dict[str, Deck] = {}
        for deck_id in self.app_config.DECK_IDS:
            self.decks[deck_id] = Deck(
                deck_id,
                clock=self.clock,
                gain_handle=self.bus.gain_handle(deck_id),
                master_gain=self.bus.master_gain,
                stream_factory=stream_factory,
                damping=self.app_config.SCRATCH_DAMPING,
                seconds_per_revolution=self.app_config.SECONDS_PER_REVOLUTION,
                block_size=self.app_config.OUTPUT_BLOCK_SIZE,
                **deck_options,
            )
            # Volume faders start at their rest position
            self.set_deck_volume(deck_id, self.app_config.VOLUME_UNITY_POSITION)
        logger.debug(f"AudioEngine - Initialized decks {list(self.decks)}")

    def deck(self, deck_id: str) -> Deck:
        try:
            return self.decks[deck_id]
        except KeyError:
            raise KeyError(f"No deck {deck_id!r}; available: {list(self.decks)}") from None

    def set_crossfader(self, x: float) -> float:
        return self.bus.set_crossfader(x)

    def set_deck_volume(self, deck_id: str, control: float) -> float:
        """Apply a volume fader position through the bus's unity scaler"""
        gain = self.bus.volume_to_gain(control)
        self.deck(deck_id).set_volume(gain)
        return gain

    def poll(self) -> Dict[str, DeckSnapshot]:
        """Read every deck's display state; call on the host's refresh schedule"""
        return {deck_id: deck.snapshot() for deck_id, deck in self.decks.items()}

    def shutdown(self) -> None:
        logger.info("AudioEngine - Shutting down...")
        for deck in self.decks.values():
            deck.shutdown()
        logger.info("AudioEngine - Shutdown complete.")

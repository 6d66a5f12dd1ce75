# Transport state machine for twin-deck
# Owns play/pause/seek bookkeeping and continuous position extrapolation

from enum import Enum, auto
from typing import Optional, Protocol
import logging

from .audio_clock import AudioClock

logger = logging.getLogger(__name__)


class TransportState(Enum):
    """All possible transport states"""
    STOPPED = auto()        # Stopped or paused at paused_at
    PLAYING = auto()        # Normal playback, position extrapolated from the clock
    SCRATCHING = auto()     # Scratch engine drives output; accounting suspended


class TransportOutput(Protocol):
    """What the transport needs from the audio side of the deck."""

    def start(self, offset_seconds: float, rate: float) -> None: ...

    def stop(self) -> None: ...

    def set_rate(self, rate: float) -> None: ...


class Transport:
    """
    Play/pause/seek bookkeeping for one deck.

    While playing, position = paused_at + (now - start_time_ref) * rate. Nothing
    is sampled from the audio thread; readers poll on their own schedule.
    """

    VALID_TRANSITIONS = {
        TransportState.STOPPED: [TransportState.PLAYING, TransportState.SCRATCHING],
        TransportState.PLAYING: [TransportState.STOPPED, TransportState.SCRATCHING],
        TransportState.SCRATCHING: [TransportState.STOPPED],
    }

    def __init__(self, clock: AudioClock, output: Optional[TransportOutput] = None,
                 deck_id: str = "?"):
        self.deck_id = deck_id
        self.clock = clock
        self.output = output
        self.state = TransportState.STOPPED
        self.duration = 0.0
        self.loaded = False
        self.paused_at = 0.0
        self.start_time_ref = 0.0
        self.playback_rate = 1.0

    @property
    def is_playing(self) -> bool:
        return self.state == TransportState.PLAYING

    @property
    def is_scratching(self) -> bool:
        return self.state == TransportState.SCRATCHING

    def _transition_to(self, new_state: TransportState) -> bool:
        old_state = self.state
        if new_state == old_state:
            return True
        if new_state not in self.VALID_TRANSITIONS[old_state]:
            logger.warning(f"Deck {self.deck_id} - Invalid transport transition: {old_state} -> {new_state}")
            return False
        self.state = new_state
        logger.debug(f"Deck {self.deck_id} - Transport: {old_state.name} -> {new_state.name}")
        return True

    def _clamp(self, t: float) -> float:
        return max(0.0, min(float(t), self.duration))

    def _elapsed(self) -> float:
        return (self.clock.now() - self.start_time_ref) * self.playback_rate

    def load(self, duration: float) -> None:
        """Tear down output and reset for a newly loaded buffer"""
        if self.output is not None:
            self.output.stop()
        self.state = TransportState.STOPPED
        self.duration = max(0.0, float(duration))
        self.loaded = True
        self.paused_at = 0.0
        self.start_time_ref = 0.0
        self.playback_rate = 1.0

    def play(self) -> bool:
        if not self.loaded:
            logger.debug(f"Deck {self.deck_id} - play ignored: no track loaded")
            return False
        if self.state != TransportState.STOPPED:
            return False
        if self.paused_at >= self.duration:
            self.paused_at = 0.0
        if self.output is not None:
            self.output.start(self.paused_at, self.playback_rate)
        self.start_time_ref = self.clock.now()
        self._transition_to(TransportState.PLAYING)
        logger.info(f"Deck {self.deck_id} - PLAY from {self.paused_at:.3f}s at rate {self.playback_rate:.3f}")
        return True

    def pause(self) -> bool:
        if not self.is_playing:
            return False
        self.paused_at = min(self.paused_at + self._elapsed(), self.duration)
        if self.output is not None:
            self.output.stop()
        self._transition_to(TransportState.STOPPED)
        logger.info(f"Deck {self.deck_id} - PAUSE at {self.paused_at:.3f}s")
        return True

    def seek(self, t: float) -> Optional[float]:
        """
        Jump to t (clamped). Returns the clamped time, or None when nothing
        is loaded. While scratching the caller routes the target to the
        scratch engine instead.
        """
        if not self.loaded:
            return None
        target = self._clamp(t)
        if self.is_scratching:
            return target
        self.paused_at = target
        if self.is_playing:
            if self.output is not None:
                self.output.start(target, self.playback_rate)
            self.start_time_ref = self.clock.now()
        logger.debug(f"Deck {self.deck_id} - SEEK to {target:.3f}s")
        return target

    def position(self) -> float:
        """Current playback position; auto-stops and rewinds at the end of the track"""
        if self.is_playing:
            t = self.paused_at + self._elapsed()
            if t >= self.duration:
                logger.info(f"Deck {self.deck_id} - Track ended, rewinding")
                self.pause()
                self.paused_at = 0.0
                return 0.0
            return max(0.0, t)
        return self.paused_at

    def set_playback_rate(self, rate: float) -> None:
        rate = float(rate)
        if not rate > 0.0:
            raise ValueError(f"Playback rate must be positive, got {rate}")
        if self.is_playing:
            # Commit the span played at the old rate so extrapolation stays exact
            now = self.clock.now()
            self.paused_at = min(self.paused_at + (now - self.start_time_ref) * self.playback_rate,
                                 self.duration)
            self.start_time_ref = now
            if self.output is not None:
                self.output.set_rate(rate)
        self.playback_rate = rate

    # --- scratch hand-over ---

    def begin_scratch(self) -> bool:
        """Suspend normal playback for a scratch. Returns whether it was playing."""
        was_playing = self.is_playing
        if was_playing:
            self.paused_at = min(self.paused_at + self._elapsed(), self.duration)
            if self.output is not None:
                self.output.stop()
        self._transition_to(TransportState.SCRATCHING)
        return was_playing

    def sync_scratch_position(self, t: float) -> float:
        """Keep paused_at tracking the scratch position"""
        self.paused_at = self._clamp(t)
        return self.paused_at

    def end_scratch(self, t: float, resume: bool) -> None:
        self.paused_at = self._clamp(t)
        self._transition_to(TransportState.STOPPED)
        if resume:
            self.play()

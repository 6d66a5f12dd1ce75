# Scratch engine for twin-deck
# Damped-tracking resampler that turns platter drags into continuous,
# click-free variable-speed playback

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

import config
from . import gestures
from .sample_buffer import SampleBuffer

logger = logging.getLogger(__name__)


@dataclass
class ScratchState:
    """Current state of a scratch gesture"""
    is_scratching: bool = False
    current_sample: float = 0.0   # Physically tracked playhead (frame index)
    target_sample: float = 0.0    # Where the hand wants the playhead to be
    was_playing_before_scratch: bool = False


class ScratchEngine:
    """
    Renders a buffer while the playhead chases a moving target.

    Input arrives at UI event rate and only moves target_sample. The audio
    callback moves current_sample toward it a fixed fraction per frame, so
    the playback speed follows the hand smoothly instead of snapping.

    render() runs on the audio thread: it must not allocate, block or lock.
    target_sample is a plain float written by the gesture path; last write
    wins.
    """

    def __init__(self, damping: float = config.SCRATCH_DAMPING,
                 seconds_per_revolution: float = config.SECONDS_PER_REVOLUTION):
        if not 0.0 < damping <= 1.0:
            raise ValueError(f"Damping must be in (0, 1], got {damping}")
        self.damping = damping
        self.seconds_per_revolution = seconds_per_revolution
        self._state = ScratchState()
        self._left: Optional[np.ndarray] = None
        self._right: Optional[np.ndarray] = None
        self._max_sample = -1
        self._sample_rate = 0

    @property
    def state(self) -> ScratchState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state.is_scratching

    def start(self, buffer: SampleBuffer, start_seconds: float, was_playing: bool) -> None:
        """Begin tracking from start_seconds"""
        self._left = buffer.channel(0)
        self._right = buffer.channel(1)
        self._max_sample = buffer.length - 1
        self._sample_rate = buffer.sample_rate
        start_sample = start_seconds * buffer.sample_rate
        self._state = ScratchState(
            is_scratching=True,
            current_sample=start_sample,
            target_sample=start_sample,
            was_playing_before_scratch=was_playing,
        )
        logger.debug(f"Scratch started at sample {start_sample:.1f} (was playing: {was_playing})")

    def stop(self) -> ScratchState:
        """End tracking; returns the final state for reconciliation"""
        final = self._state
        self._state = ScratchState()
        self._left = None
        self._right = None
        logger.debug(f"Scratch stopped at sample {final.current_sample:.1f}")
        return final

    def current_time(self) -> float:
        if self._sample_rate <= 0:
            return 0.0
        return self._state.current_sample / self._sample_rate

    def set_target_time(self, seconds: float) -> None:
        self._state.target_sample = seconds * self._sample_rate

    def angle_to_time_delta(self, angle_delta: float) -> float:
        """Convert platter rotation (radians) to seconds of audio"""
        return gestures.angle_to_time_delta(gestures.normalize_angle(angle_delta),
                                            self.seconds_per_revolution)

    def render(self, out: np.ndarray) -> None:
        """
        Fill a preallocated (frames, 2) float32 block.

        Positions outside [0, length - 1] render as silence.
        """
        state = self._state
        left = self._left
        right = self._right
        if not state.is_scratching or left is None:
            out.fill(0.0)
            return

        max_sample = self._max_sample
        damping = self.damping
        current = state.current_sample
        for i in range(out.shape[0]):
            current += (state.target_sample - current) * damping
            if current < 0 or current > max_sample:
                out[i, 0] = 0.0
                out[i, 1] = 0.0
                continue
            idx_floor = int(current)
            frac = current - idx_floor
            idx_ceil = idx_floor + 1 if idx_floor < max_sample else max_sample
            out[i, 0] = float(left[idx_floor]) * (1.0 - frac) + float(left[idx_ceil]) * frac
            out[i, 1] = float(right[idx_floor]) * (1.0 - frac) + float(right[idx_ceil]) * frac
        state.current_sample = current

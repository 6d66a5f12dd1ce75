# twin-deck/deck_engine/deck.py
# One playback channel: transport, scratch, cues, tempo and EQ behind a single
# command/query surface

import os
import time
import threading
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

import config
from . import gestures
from .audio_clock import AudioClock
from .bpm_estimator import BpmAnalysisWorker, estimate_bpm, round_half_up
from .cue_points import CuePointManager
from .mixer import GainHandle
from .output import DeckOutput, open_output_stream
from .sample_buffer import AudioLoadError, SampleBuffer, decode_audio_bytes
from .scratch import ScratchEngine
from .tap_tempo import TapTempo
from .transport import Transport

logger = logging.getLogger(__name__)


@dataclass
class DeckSnapshot:
    """Everything a display needs from a deck, read in one go"""
    deck_id: str
    file_name: Optional[str] = None
    loaded: bool = False
    is_playing: bool = False
    is_scratching: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    playback_rate: float = 1.0
    base_bpm: float = 0.0
    bpm: float = 0.0
    display_bpm: int = 0
    cue_points: List[float] = field(default_factory=list)
    tempo_fader: float = 0.5
    eq_gains_db: Dict[str, float] = field(default_factory=dict)


class Deck:
    """
    Per-deck playback and control engine.

    Commands are no-ops (returning False) while nothing is loaded. All state
    changes happen under the deck lock; the audio callback never takes it.
    """

    def __init__(self, deck_id: str, clock: Optional[AudioClock] = None,
                 gain_handle: Optional[GainHandle] = None,
                 master_gain: float = 1.0,
                 stream_factory: Optional[Callable] = open_output_stream,
                 decoder: Callable[..., SampleBuffer] = decode_audio_bytes,
                 bpm_estimator: Callable[[np.ndarray, int], int] = estimate_bpm,
                 damping: float = config.SCRATCH_DAMPING,
                 seconds_per_revolution: float = config.SECONDS_PER_REVOLUTION,
                 block_size: int = config.OUTPUT_BLOCK_SIZE):
        self.deck_id = deck_id
        logger.debug(f"Deck {self.deck_id} - Initializing...")
        self.clock = clock if clock is not None else AudioClock()
        self._decoder = decoder
        self._lock = threading.RLock()

        self.buffer: Optional[SampleBuffer] = None
        self.file_name: Optional[str] = None
        self._base_bpm = 0.0

        self.output = DeckOutput(deck_id, block_size=block_size, gain_handle=gain_handle,
                                 master_gain=master_gain, stream_factory=stream_factory)
        self.transport = Transport(self.clock, self.output, deck_id=deck_id)
        self.scratch_engine = ScratchEngine(damping=damping,
                                            seconds_per_revolution=seconds_per_revolution)
        self.cues = CuePointManager()
        self.tap_tempo = TapTempo()
        self._bpm_worker = BpmAnalysisWorker(deck_id, estimator=bpm_estimator)

    # --- loading ---

    def load_file(self, data: bytes, file_name: Optional[str] = None) -> bool:
        """Decode raw file bytes and load them. Raises AudioLoadError, leaving the deck as it was."""
        logger.debug(f"Deck {self.deck_id} - load_file requested for: {file_name}")
        buffer = self._decoder(data, file_name)
        return self.load_buffer(buffer, file_name)

    def load_path(self, path: str) -> bool:
        try:
            with open(path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise AudioLoadError(f"Could not read {path}: {e}") from e
        return self.load_file(data, os.path.basename(path))

    def load_buffer(self, buffer: SampleBuffer, file_name: Optional[str] = None) -> bool:
        """Swap in an already decoded buffer and start tempo analysis in the background"""
        with self._lock:
            if self.scratch_engine.is_active:
                self.output.detach_renderer(self.scratch_engine)
                self.scratch_engine.stop()
            self.output.prepare(buffer)
            self.transport.load(buffer.duration)
            self.buffer = buffer
            self.file_name = file_name
            self.cues.clear()
            self.tap_tempo.reset()
            self._base_bpm = 0.0
            self._bpm_worker.submit(buffer.channel(0), buffer.sample_rate, self._on_bpm_result)
        logger.info(f"Deck {self.deck_id} - Track '{file_name}' loaded: "
                    f"{buffer.duration:.2f}s, {buffer.sample_rate}Hz, {buffer.num_channels}ch")
        return True

    def _on_bpm_result(self, bpm: int, generation: int) -> None:
        with self._lock:
            if not self._bpm_worker.is_current(generation):
                logger.debug(f"Deck {self.deck_id} - Ignoring BPM {bpm} from a superseded load")
                return
            self._base_bpm = float(bpm) if bpm > 0 else 0.0
        if bpm > 0:
            logger.info(f"Deck {self.deck_id} - Detected BPM: {bpm}")
        else:
            logger.warning(f"Deck {self.deck_id} - BPM could not be detected")

    def wait_for_analysis(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the current BPM analysis completes"""
        return self._bpm_worker.wait(timeout)

    # --- transport ---

    def play(self) -> bool:
        with self._lock:
            if self.buffer is None:
                return False
            return self.transport.play()

    def pause(self) -> bool:
        with self._lock:
            return self.transport.pause()

    def seek(self, t: float) -> bool:
        with self._lock:
            target = self.transport.seek(t)
            if target is None:
                return False
            if self.scratch_engine.is_active:
                # The damped tracker glides there; no hard jump
                self.scratch_engine.set_target_time(target)
            return True

    def nudge(self, time_delta: float) -> bool:
        """Relative seek, as produced by dragging the waveform"""
        with self._lock:
            return self.seek(self.current_time + time_delta)

    @property
    def current_time(self) -> float:
        with self._lock:
            if self.buffer is None:
                return 0.0
            if self.scratch_engine.is_active:
                return self.transport.sync_scratch_position(self.scratch_engine.current_time())
            return self.transport.position()

    @property
    def is_playing(self) -> bool:
        return self.transport.is_playing

    @property
    def is_scratching(self) -> bool:
        return self.scratch_engine.is_active

    @property
    def duration(self) -> float:
        return self.buffer.duration if self.buffer is not None else 0.0

    @property
    def playback_rate(self) -> float:
        return self.transport.playback_rate

    def set_playback_rate(self, rate: float) -> None:
        with self._lock:
            self.transport.set_playback_rate(rate)
        logger.debug(f"Deck {self.deck_id} - Playback rate set to {rate:.4f}")

    def set_tempo_fader(self, position: float) -> float:
        """Tempo fader position (0 = top/fastest, 1 = bottom/slowest); returns the rate applied"""
        rate = gestures.rate_from_slider(position)
        self.set_playback_rate(rate)
        return rate

    # --- waveform ---

    def waveform_window(self, zoom_level: int) -> Tuple[float, float]:
        """(start, end) seconds a waveform display shows at this zoom level"""
        with self._lock:
            return gestures.visible_window(self.current_time, self.duration,
                                           gestures.zoom_window_size(zoom_level))

    def drag_waveform(self, delta_x: float, width: float, zoom_level: int) -> bool:
        with self._lock:
            if self.buffer is None:
                return False
            time_delta = gestures.drag_to_time_delta(delta_x, width,
                                                     gestures.zoom_window_size(zoom_level),
                                                     self.duration)
            return self.nudge(time_delta)

    # --- scratch ---

    def start_scratch(self) -> bool:
        with self._lock:
            if self.buffer is None or self.scratch_engine.is_active:
                return False
            was_playing = self.transport.begin_scratch()
            self.scratch_engine.start(self.buffer, self.transport.paused_at, was_playing)
            self.output.attach_renderer(self.scratch_engine)
        logger.debug(f"Deck {self.deck_id} - Scratch begin at {self.transport.paused_at:.3f}s")
        return True

    def scratch(self, angle_delta: float) -> bool:
        """Platter moved by angle_delta radians; move the target relative to the displayed position"""
        with self._lock:
            if not self.scratch_engine.is_active:
                return False
            time_delta = self.scratch_engine.angle_to_time_delta(angle_delta)
            return self.seek(self.current_time + time_delta)

    def scratch_platter(self, previous_angle: float, current_angle: float) -> bool:
        """Platter pointer moved between two absolute angles (radians)"""
        return self.scratch(gestures.unwrap_angle_delta(previous_angle, current_angle))

    def stop_scratch(self) -> bool:
        with self._lock:
            if not self.scratch_engine.is_active:
                return False
            self.output.detach_renderer(self.scratch_engine)
            final = self.scratch_engine.stop()
            position = final.current_sample / self.buffer.sample_rate
            self.transport.end_scratch(position, resume=final.was_playing_before_scratch)
        logger.debug(f"Deck {self.deck_id} - Scratch end at {self.transport.paused_at:.3f}s "
                     f"(resume: {final.was_playing_before_scratch})")
        return True

    # --- cue points ---

    @property
    def cue_points(self) -> List[float]:
        with self._lock:
            return self.cues.points

    def add_cue_point(self, t: Optional[float] = None) -> bool:
        with self._lock:
            if self.buffer is None:
                return False
            at = self.current_time if t is None else t
            added = self.cues.add(at)
        if added:
            logger.info(f"Deck {self.deck_id} - Cue set at {at:.3f}s")
        return added

    def remove_cue_point(self, t: Optional[float] = None) -> bool:
        with self._lock:
            if self.buffer is None:
                return False
            at = self.current_time if t is None else t
            removed = self.cues.remove(at)
        if removed:
            logger.info(f"Deck {self.deck_id} - Removed {removed} cue(s) near {at:.3f}s")
        return removed > 0

    def jump_to_next_cue(self) -> bool:
        with self._lock:
            if self.buffer is None:
                return False
            target = self.cues.next_after(self.current_time)
            if self.scratch_engine.is_active:
                self.stop_scratch()
            logger.debug(f"Deck {self.deck_id} - Jump to cue at {target:.3f}s")
            return self.seek(target)

    def hold_cue(self) -> Optional[str]:
        """Long press on the cue button: delete the cue under a paused playhead, otherwise set one"""
        with self._lock:
            if self.buffer is None:
                return None
            now = self.current_time
            if not self.is_playing and self.cues.is_near(now):
                self.remove_cue_point(now)
                return "removed"
            self.add_cue_point(now)
            return "added"

    # --- tempo ---

    @property
    def base_bpm(self) -> float:
        return self._base_bpm

    @property
    def bpm(self) -> float:
        """Tempo as heard: detected tempo scaled by the playback rate"""
        return self._base_bpm * self.transport.playback_rate

    @property
    def display_bpm(self) -> int:
        if self._base_bpm <= 0:
            return 0
        return int(round_half_up(self.bpm))

    def set_bpm(self, value: float) -> None:
        """Manual override of the base tempo"""
        value = float(value)
        if value < 0:
            raise ValueError(f"BPM cannot be negative: {value}")
        with self._lock:
            self._base_bpm = value
        logger.info(f"Deck {self.deck_id} - Base BPM set to {value:.2f}")

    def set_tapped_bpm(self, measured_bpm: float) -> None:
        """Store a tempo measured against the current playback rate as a rate-independent base"""
        with self._lock:
            self.set_bpm(measured_bpm / self.transport.playback_rate)

    def tap(self, timestamp: Optional[float] = None) -> Optional[float]:
        """Tap-tempo button; returns the measured (heard) BPM once known"""
        when = time.monotonic() if timestamp is None else timestamp
        with self._lock:
            measured = self.tap_tempo.tap(when)
            if measured is not None:
                self.set_tapped_bpm(measured)
        return measured

    # --- EQ / gain ---

    def set_eq(self, band: str, value: float) -> float:
        with self._lock:
            db = self.output.set_eq(band, value)
        logger.debug(f"Deck {self.deck_id} - EQ {band} = {value:.2f} ({db:+.1f} dB)")
        return db

    def set_volume(self, gain: float) -> None:
        with self._lock:
            self.output.set_volume(gain)
        logger.debug(f"Deck {self.deck_id} - Volume gain {gain:.3f}")

    # --- queries ---

    def snapshot(self) -> DeckSnapshot:
        with self._lock:
            current = self.current_time
            return DeckSnapshot(
                deck_id=self.deck_id,
                file_name=self.file_name,
                loaded=self.buffer is not None,
                is_playing=self.is_playing,
                is_scratching=self.is_scratching,
                current_time=current,
                duration=self.duration,
                playback_rate=self.playback_rate,
                base_bpm=self._base_bpm,
                bpm=self.bpm,
                display_bpm=self.display_bpm,
                cue_points=self.cues.points,
                tempo_fader=gestures.slider_from_rate(self.playback_rate),
                eq_gains_db=self.output.equalizer.gains_db(),
            )

    def shutdown(self) -> None:
        logger.debug(f"Deck {self.deck_id} - Shutdown requested.")
        with self._lock:
            if self.scratch_engine.is_active:
                self.output.detach_renderer(self.scratch_engine)
                self.scratch_engine.stop()
            self.transport.pause()
            self.output.close()
        self._bpm_worker.shutdown()
        logger.debug(f"Deck {self.deck_id} - Shutdown complete.")

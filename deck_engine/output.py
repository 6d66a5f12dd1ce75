# twin-deck/deck_engine/output.py
# Per-deck audio output: sounddevice stream, normal-rate source, EQ and gain stages

import threading
import logging
from typing import Callable, Dict, Optional, Protocol

import numpy as np

import config
from .equalizer import DeckEqualizer, EQ_BANDS
from .mixer import GainHandle
from .sample_buffer import SampleBuffer

logger = logging.getLogger(__name__)


class BlockRenderer(Protocol):
    """Anything that can fill a (frames, 2) float32 block in place."""

    def render(self, out: np.ndarray) -> None: ...


def open_output_stream(sample_rate: int, block_size: int, callback: Callable):
    """Default stream factory: a stereo sounddevice output on the default device"""
    import sounddevice as sd
    return sd.OutputStream(
        samplerate=sample_rate, channels=config.OUTPUT_CHANNELS,
        dtype='float32', blocksize=block_size,
        callback=callback, device=None,
    )


class BufferSource:
    """
    Normal (non-scratch) playback of a buffer at a variable rate.

    Turntable style: the rate changes speed and pitch together. Reading
    positions are linearly interpolated; anything past the end is silence.
    """

    def __init__(self, buffer: SampleBuffer):
        self.buffer = buffer
        self._left = buffer.channel(0)
        self._right = buffer.channel(1)
        self._last = buffer.length - 1
        self.position = 0.0  # frame index
        self.rate = 1.0

    def start(self, offset_seconds: float, rate: float) -> None:
        self.position = offset_seconds * self.buffer.sample_rate
        self.rate = rate

    def render(self, out: np.ndarray) -> None:
        frames = out.shape[0]
        idx = self.position + self.rate * np.arange(frames, dtype=np.float64)
        self.position += self.rate * frames

        valid = idx <= self._last
        if not valid.any():
            out.fill(0.0)
            return
        pos = idx[valid]
        idx_floor = pos.astype(np.int64)
        frac = (pos - idx_floor).astype(np.float32)
        idx_ceil = np.minimum(idx_floor + 1, self._last)
        n = len(pos)
        out[:n, 0] = self._left[idx_floor] * (1.0 - frac) + self._left[idx_ceil] * frac
        out[:n, 1] = self._right[idx_floor] * (1.0 - frac) + self._right[idx_ceil] * frac
        out[n:] = 0.0


class DeckOutput:
    """
    Audio side of one deck.

    Exactly one renderer (the normal-rate BufferSource or the scratch engine)
    feeds the stream at a time. Every block then goes through the EQ, the
    deck volume, the bus gain handle and the master gain.
    """

    def __init__(self, deck_id: str, block_size: int = config.OUTPUT_BLOCK_SIZE,
                 gain_handle: Optional[GainHandle] = None, master_gain: float = 1.0,
                 stream_factory: Optional[Callable] = open_output_stream):
        self.deck_id = deck_id
        self.block_size = block_size
        self.gain_handle = gain_handle if gain_handle is not None else GainHandle()
        self.master_gain = master_gain
        self.volume = 1.0
        self._stream_factory = stream_factory
        self._stream = None
        self._stream_running = False
        self._lock = threading.Lock()
        self.sample_rate = config.DEFAULT_SAMPLE_RATE
        self._eq_knobs: Dict[str, float] = {band: 0.5 for band in EQ_BANDS}
        self.equalizer = DeckEqualizer(self.sample_rate)
        self.source: Optional[BufferSource] = None
        self._renderer: Optional[BlockRenderer] = None
        self._block = np.zeros((block_size, 2), dtype=np.float32)
        self._had_underflow = False

    # --- setup ---

    def prepare(self, buffer: SampleBuffer) -> None:
        """Get ready to play a newly loaded buffer (stops anything playing)"""
        self.stop()
        if buffer.sample_rate != self.sample_rate:
            self._close_stream()
            self.sample_rate = buffer.sample_rate
            self.equalizer = DeckEqualizer(self.sample_rate)
            for band, value in self._eq_knobs.items():
                self.equalizer.set_band(band, value)
        else:
            self.equalizer.reset()
        self.source = BufferSource(buffer)

    def set_eq(self, band: str, value: float) -> float:
        db = self.equalizer.set_band(band, value)
        self._eq_knobs[band] = max(0.0, min(1.0, float(value)))
        return db

    def set_volume(self, gain: float) -> None:
        self.volume = max(0.0, float(gain))

    # --- TransportOutput ---

    def start(self, offset_seconds: float, rate: float) -> None:
        if self.source is None:
            return
        with self._lock:
            self._renderer = None
            self.source.start(offset_seconds, rate)
            self._renderer = self.source
        self._start_stream()

    def stop(self) -> None:
        with self._lock:
            self._renderer = None
        self._stop_stream()

    def set_rate(self, rate: float) -> None:
        if self.source is not None:
            self.source.rate = rate

    # --- scratch hand-over ---

    def attach_renderer(self, renderer: BlockRenderer) -> None:
        with self._lock:
            self._renderer = renderer
        self._start_stream()

    def detach_renderer(self, renderer: BlockRenderer) -> None:
        with self._lock:
            if self._renderer is not renderer:
                return
            self._renderer = None
        self._stop_stream()

    # --- rendering ---

    def render_block(self, frames: int) -> np.ndarray:
        """Produce the next stereo block from whatever renderer is active"""
        out = self._block if frames == len(self._block) else np.zeros((frames, 2), dtype=np.float32)
        renderer = self._renderer
        if renderer is None:
            out.fill(0.0)
            return out
        renderer.render(out)
        processed = self.equalizer.process_block(out)
        gain = self.volume * self.gain_handle.value * self.master_gain
        if processed is out:
            out *= gain
            return out
        return processed * gain

    def _sd_callback(self, outdata, frames, time_info, status_obj):
        if status_obj and status_obj.output_underflow and not self._had_underflow:
            self._had_underflow = True
            logger.warning(f"Deck {self.deck_id} - Audio underflow")
        try:
            block = self.render_block(frames)
            outdata[:frames, 0] = block[:, 0]
            outdata[:frames, 1] = block[:, 1]
        except Exception as e:
            # Emergency: output silence on any error
            logger.error(f"Deck {self.deck_id} - Audio callback error: {e}")
            outdata[:] = 0.0

    # --- stream lifecycle ---

    def _start_stream(self) -> None:
        if self._stream_factory is None:
            return
        if self._stream is None:
            try:
                self._stream = self._stream_factory(self.sample_rate, self.block_size, self._sd_callback)
                logger.debug(f"Deck {self.deck_id} - Opened output stream at {self.sample_rate}Hz")
            except Exception as e:
                logger.error(f"Deck {self.deck_id} - Could not open audio output, running headless: {e}")
                self._stream_factory = None
                return
        if not self._stream_running:
            self._stream.start()
            self._stream_running = True

    def _stop_stream(self) -> None:
        if self._stream is not None and self._stream_running:
            self._stream.stop()
            self._stream_running = False

    def _close_stream(self) -> None:
        if self._stream is not None:
            self._stop_stream()
            self._stream.close()
            self._stream = None

    def close(self) -> None:
        with self._lock:
            self._renderer = None
        self._close_stream()

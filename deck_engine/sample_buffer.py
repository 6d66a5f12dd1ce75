# twin-deck/deck_engine/sample_buffer.py

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import librosa

logger = logging.getLogger(__name__)


class AudioLoadError(Exception):
    """Raised when raw file bytes cannot be turned into a SampleBuffer."""


@dataclass(frozen=True)
class SampleBuffer:
    """
    Immutable decoded PCM audio.

    channel_data holds one float32 array per channel, all the same length.
    Shared read-only between the transport, scratch engine and BPM analysis.
    """
    channel_data: Tuple[np.ndarray, ...]
    sample_rate: int
    duration: float

    def __post_init__(self):
        if not self.channel_data:
            raise ValueError("SampleBuffer needs at least one channel")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        lengths = {len(ch) for ch in self.channel_data}
        if len(lengths) != 1:
            raise ValueError(f"Channels differ in length: {sorted(lengths)}")
        for ch in self.channel_data:
            ch.setflags(write=False)

    @classmethod
    def from_array(cls, samples: np.ndarray, sample_rate: int) -> "SampleBuffer":
        """Build from a (frames,) mono or (channels, frames) array."""
        data = np.asarray(samples, dtype=np.float32)
        if data.ndim == 1:
            data = data.reshape(1, -1)
        elif data.ndim != 2:
            raise ValueError(f"Unsupported audio shape: {data.shape}")
        channels = tuple(np.ascontiguousarray(ch) for ch in data)
        frames = data.shape[1]
        return cls(channels, int(sample_rate), frames / float(sample_rate))

    @property
    def length(self) -> int:
        return len(self.channel_data[0])

    @property
    def num_channels(self) -> int:
        return len(self.channel_data)

    def channel(self, index: int) -> np.ndarray:
        """Channel by index; mono sources answer every index with channel 0."""
        if index >= self.num_channels:
            return self.channel_data[0]
        return self.channel_data[index]


def decode_audio_bytes(data: bytes, file_name: Optional[str] = None) -> SampleBuffer:
    """Decode raw file bytes at their native sample rate, keeping all channels."""
    label = file_name or "<bytes>"
    if not data:
        raise AudioLoadError(f"No data to decode for {label}")
    try:
        samples, sample_rate = librosa.load(io.BytesIO(data), sr=None, mono=False)
    except Exception as e:
        logger.error(f"Error decoding audio {label}: {e}")
        raise AudioLoadError(f"Could not decode {label}: {e}") from e

    if samples.size == 0:
        raise AudioLoadError(f"Decoded audio is empty for {label}")

    buffer = SampleBuffer.from_array(samples, sample_rate)
    logger.debug(f"Decoded {label}: SR {buffer.sample_rate}, "
                 f"{buffer.num_channels} ch, {buffer.duration:.2f}s")
    return buffer

"""
Pytest configuration and fixtures for twin-deck tests.
"""
import sys
import pathlib

import numpy as np
import pytest

# Ensure repository root is on path
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))

from deck_engine.audio_clock import AudioClock
from deck_engine.deck import Deck
from deck_engine.sample_buffer import SampleBuffer


class FakeTime:
    """Time source the tests move by hand."""

    def __init__(self, start=1000.0):
        self.t = start

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds


class FakeStream:
    """Stands in for a sounddevice OutputStream; records lifecycle calls."""

    def __init__(self, sample_rate, block_size, callback):
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.callback = callback
        self.active = False
        self.closed = False
        self.starts = 0

    def start(self):
        self.active = True
        self.starts += 1

    def stop(self):
        self.active = False

    def close(self):
        self.closed = True


class FakeStreamFactory:
    def __init__(self):
        self.streams = []

    def __call__(self, sample_rate, block_size, callback):
        stream = FakeStream(sample_rate, block_size, callback)
        self.streams.append(stream)
        return stream

    @property
    def current(self):
        return self.streams[-1] if self.streams else None


def ramp_buffer(duration=60.0, sample_rate=1000, channels=1):
    """Buffer whose sample value equals its frame index (right channel negated)."""
    frames = int(duration * sample_rate)
    ramp = np.arange(frames, dtype=np.float32)
    data = np.vstack([ramp, -ramp][:channels])
    return SampleBuffer.from_array(data, sample_rate)


def no_bpm(samples, sample_rate):
    return 0


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def clock(fake_time) -> AudioClock:
    return AudioClock(time_source=fake_time)


@pytest.fixture
def stream_factory() -> FakeStreamFactory:
    return FakeStreamFactory()


@pytest.fixture
def deck(clock, stream_factory):
    d = Deck("A", clock=clock, stream_factory=stream_factory, bpm_estimator=no_bpm)
    yield d
    d.shutdown()


@pytest.fixture
def loaded_deck(deck):
    deck.load_buffer(ramp_buffer(), "ramp.wav")
    deck.wait_for_analysis(timeout=5)
    return deck

# twin-deck/deck_engine/__init__.py

from .engine import AudioEngine
from .deck import Deck, DeckSnapshot
from .sample_buffer import AudioLoadError, SampleBuffer, decode_audio_bytes
from .bpm_estimator import estimate_bpm

__all__ = ['AudioEngine', 'Deck', 'DeckSnapshot', 'AudioLoadError',
           'SampleBuffer', 'decode_audio_bytes', 'estimate_bpm']

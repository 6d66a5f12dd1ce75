#!/usr/bin/env python3
"""
Offline tempo estimation by autocorrelation.

Pipeline:
  1. pick the loudest 10 s window (coarse energy scan)
  2. band-pass 40-150 Hz to keep kick/bass transients
  3. rectify and decimate to a ~6 kHz amplitude envelope
  4. autocorrelate over the lags of a 70-160 BPM window
  5. convert the best lag to BPM and fold octave errors into 70-160

Every failure degrades to 0 ("unknown"); analysis never raises.
"""

import math
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Tuple

import numpy as np
import scipy.signal as sps

import config
from . import biquad

logger = logging.getLogger(__name__)


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def find_loudest_segment(samples: np.ndarray, sample_rate: int,
                         segment_seconds: float = config.BPM_SEGMENT_SECONDS,
                         scan_step_seconds: float = config.BPM_SCAN_STEP_SECONDS,
                         stride: int = config.BPM_ENERGY_SAMPLE_STRIDE) -> int:
    """Offset (in samples) of the window with the most energy"""
    window_size = int(sample_rate * segment_seconds)
    scan_step = max(1, int(sample_rate * scan_step_seconds))
    max_energy = 0.0
    best_offset = 0
    for offset in range(0, len(samples) - window_size, scan_step):
        probe = samples[offset:offset + window_size:stride]
        energy = float(np.dot(probe, probe))
        if energy > max_energy:
            max_energy = energy
            best_offset = offset
    return best_offset


def bandpass_kick(segment: np.ndarray, sample_rate: int) -> np.ndarray:
    """Highpass 40 Hz into lowpass 150 Hz"""
    sos = np.vstack([
        biquad.highpass(config.BPM_HIGHPASS_HZ, config.BPM_FILTER_Q, sample_rate),
        biquad.lowpass(config.BPM_LOWPASS_HZ, config.BPM_FILTER_Q, sample_rate),
    ])
    return sps.sosfilt(sos, segment.astype(np.float64, copy=False))


def amplitude_envelope(filtered: np.ndarray, sample_rate: int,
                       target_rate: int = config.BPM_ENVELOPE_RATE) -> Tuple[np.ndarray, float]:
    """Rectified, decimated signal and its effective sample rate"""
    step = max(1, sample_rate // target_rate)
    envelope = np.abs(filtered[::step])
    return envelope, sample_rate / step


def best_autocorrelation_lag(envelope: np.ndarray, effective_rate: float,
                             min_bpm: float = config.BPM_MIN,
                             max_bpm: float = config.BPM_MAX) -> int:
    """Lag with the strongest positive autocorrelation, or 0 if none"""
    min_lag = int(math.floor(effective_rate * (60.0 / max_bpm)))
    max_lag = int(math.floor(effective_rate * (60.0 / min_bpm)))
    n = len(envelope)
    max_correlation = 0.0
    best_lag = 0
    for lag in range(max(1, min_lag), min(max_lag, n - 1) + 1):
        correlation = float(np.dot(envelope[:n - lag], envelope[lag:]))
        if correlation > max_correlation:
            max_correlation = correlation
            best_lag = lag
    return best_lag


def fold_bpm(bpm: float, min_bpm: float = config.BPM_MIN,
             max_bpm: float = config.BPM_MAX) -> float:
    """Double or halve into [min_bpm, max_bpm] (autocorrelation octave ambiguity)"""
    if bpm <= 0 or not math.isfinite(bpm):
        return 0.0
    while bpm < min_bpm:
        bpm *= 2
    while bpm > max_bpm:
        bpm /= 2
    return bpm


def estimate_bpm(samples: np.ndarray, sample_rate: int) -> int:
    """Estimate the tempo of a track from its first channel; 0 when undetectable"""
    try:
        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim != 1:
            raise ValueError(f"Expected a single channel, got shape {samples.shape}")
        sample_rate = int(sample_rate)
        duration = len(samples) / sample_rate
        if duration < config.BPM_SEGMENT_SECONDS:
            logger.debug(f"BPM analysis skipped: track too short ({duration:.2f}s)")
            return 0

        window_size = int(sample_rate * config.BPM_SEGMENT_SECONDS)
        offset = find_loudest_segment(samples, sample_rate)
        segment = samples[offset:offset + window_size]
        logger.debug(f"BPM analysis: loudest segment at {offset / sample_rate:.1f}s")

        filtered = bandpass_kick(segment, sample_rate)
        envelope, effective_rate = amplitude_envelope(filtered, sample_rate)

        best_lag = best_autocorrelation_lag(envelope, effective_rate)
        if best_lag == 0:
            logger.info("BPM analysis: no periodicity found")
            return 0

        bpm = round_half_up(60.0 * effective_rate / best_lag, 1)
        bpm = fold_bpm(bpm)
        result = int(round_half_up(bpm))
        logger.info(f"BPM analysis: lag {best_lag} @ {effective_rate:.1f}Hz -> {result} BPM")
        return result
    except Exception as e:
        logger.warning(f"BPM analysis failed: {e}")
        return 0


class BpmAnalysisWorker:
    """
    Runs estimate_bpm off the calling thread, one job at a time per deck.

    Each submit() starts a new generation. A result that finishes after a
    newer submit() is stale and is dropped instead of being delivered.
    on_result(bpm, generation) is called without the worker lock held, so
    the receiver must confirm is_current(generation) under its own lock
    before applying the value.
    """

    def __init__(self, deck_id: str,
                 estimator: Callable[[np.ndarray, int], int] = estimate_bpm):
        self.deck_id = deck_id
        self._estimator = estimator
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"Deck{deck_id}Bpm")
        self._lock = threading.Lock()
        self._generation = 0
        self._future: Optional[Future] = None

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def invalidate(self) -> None:
        """Drop whatever is in flight without starting anything new"""
        with self._lock:
            self._generation += 1

    def submit(self, samples: np.ndarray, sample_rate: int,
               on_result: Callable[[int, int], None]) -> Future:
        with self._lock:
            self._generation += 1
            generation = self._generation
            future = self._executor.submit(self._run, generation, samples, sample_rate, on_result)
            self._future = future
        return future

    def _run(self, generation: int, samples: np.ndarray, sample_rate: int,
             on_result: Callable[[int, int], None]) -> Optional[int]:
        bpm = self._estimator(samples, sample_rate)
        if not self.is_current(generation):
            logger.debug(f"Deck {self.deck_id} - Discarding stale BPM result {bpm} "
                         f"(generation {generation})")
            return None
        on_result(bpm, generation)
        return bpm

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Block until the latest analysis finishes; returns its result (None if stale)"""
        with self._lock:
            future = self._future
        if future is None:
            return None
        return future.result(timeout=timeout)

    def shutdown(self) -> None:
        self.invalidate()
        self._executor.shutdown(wait=True)

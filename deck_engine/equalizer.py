#!/usr/bin/env python3
"""
Three-band deck EQ: the parameter surface behind the low/mid/high knobs.

Knob values in [0, 1] map linearly to +/-15 dB. Processing is serial:
low shelf -> mid peaking -> high shelf, stereo, stateful across blocks,
with coefficient changes crossfaded to avoid zipper noise.
"""

from typing import Dict

import numpy as np
import scipy.signal as sps
import logging

import config
from . import biquad

logger = logging.getLogger(__name__)

EQ_BANDS = ("low", "mid", "high")


def knob_to_db(value: float) -> float:
    """Map a normalized knob position to a gain in dB (0.5 is flat)."""
    value = max(0.0, min(1.0, float(value)))
    return (value - 0.5) * config.EQ_RANGE_DB


class DeckEqualizer:
    """
    Serial 3-band tone EQ for one deck.
    - Stateful across blocks (per-stage zi for each channel)
    - Smooth parameter updates via short crossfade (EQ_SMOOTHING_MS)
    - Bypassed entirely while every band is flat
    """

    def __init__(self, sample_rate: int, xfade_ms: float = config.EQ_SMOOTHING_MS,
                 f_low: float = config.EQ_LOW_FREQ, f_mid: float = config.EQ_MID_FREQ,
                 q_mid: float = config.EQ_MID_Q, f_high: float = config.EQ_HIGH_FREQ):
        self.sr = int(sample_rate)
        # Low-rate sources: keep every corner below Nyquist
        limit = 0.45 * self.sr
        self.f_low = min(f_low, limit)
        self.f_mid = min(f_mid, limit)
        self.q_mid = q_mid
        self.f_high = min(f_high, limit)
        self._xfade = int(max(1, xfade_ms * 1e-3 * self.sr))
        self._left = 0
        self._gains_db = {band: 0.0 for band in EQ_BANDS}
        self._cur = self._design(self._gains_db)
        self._pend = None

    def set_band(self, band: str, value: float) -> float:
        """Set one band from a knob position in [0, 1]; returns the gain in dB"""
        if band not in EQ_BANDS:
            raise ValueError(f"Unknown EQ band: {band!r} (expected one of {EQ_BANDS})")
        db = knob_to_db(value)
        if abs(db - self._gains_db[band]) < 1e-9:
            return db
        self._gains_db[band] = db
        self._pend = self._design(dict(self._gains_db))
        self._left = self._xfade
        logger.debug(f"EQ {band} set to {db:+.2f} dB")
        return db

    def gains_db(self) -> Dict[str, float]:
        return dict(self._gains_db)

    def process_block(self, x: np.ndarray) -> np.ndarray:
        """
        Process a stereo block.

        Args:
            x: Audio data, shape (frames, 2)

        Returns:
            Processed audio, shape (frames, 2), float32
        """
        if self._pend is None and self._is_flat(self._cur):
            return x

        xin = x.astype(np.float64, copy=False)
        if self._pend is not None and self._left > 0:
            n = len(xin)
            nxf = min(self._left, n)
            y0 = self._run(xin, self._cur)
            y1 = self._run(xin, self._pend)
            w = np.linspace(0.0, 1.0, nxf, dtype=np.float64).reshape(-1, 1)
            y = y1.copy()
            y[:nxf] = (1.0 - w) * y0[:nxf] + w * y1[:nxf]
            self._left -= nxf
            if self._left <= 0:
                self._cur = self._pend
                self._pend = None
        else:
            y = self._run(xin, self._cur)
        return y.astype(np.float32)

    def reset(self):
        """Reset all filter states"""
        for cfg in (self._cur, self._pend):
            if cfg is not None:
                cfg["zi"] = [np.zeros_like(zi) for zi in cfg["zi"]]

    # ---- internals ----
    @staticmethod
    def _is_flat(cfg: dict) -> bool:
        return all(abs(db) < 0.01 for db in cfg["gains"])

    def _design(self, gains: Dict[str, float]) -> dict:
        sos_low = biquad.low_shelf(gains["low"], self.f_low, self.sr)
        sos_mid = biquad.peaking(gains["mid"], self.f_mid, self.q_mid, self.sr)
        sos_high = biquad.high_shelf(gains["high"], self.f_high, self.sr)
        stages = [sos_low, sos_mid, sos_high]
        return {
            "sos": stages,
            # zi per stage: (n_sections, 2, channels)
            "zi": [np.zeros((sos.shape[0], 2, 2)) for sos in stages],
            "gains": [gains[band] for band in EQ_BANDS],
        }

    def _run(self, xin: np.ndarray, cfg: dict) -> np.ndarray:
        y = xin
        for i, sos in enumerate(cfg["sos"]):
            y, cfg["zi"][i] = sps.sosfilt(sos, y, axis=0, zi=cfg["zi"][i])
        return y

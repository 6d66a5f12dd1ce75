# twin-deck/deck_engine/biquad.py
# RBJ "Audio EQ Cookbook" biquad designs, returned as second-order sections.

import numpy as np
import scipy.signal as sps


def _normalized_sos(b0, b1, b2, a0, a1, a2) -> np.ndarray:
    return sps.tf2sos([b0 / a0, b1 / a0, b2 / a0], [1.0, a1 / a0, a2 / a0])


def _check_frequency(fc: float, sample_rate: int) -> None:
    if not 0.0 < fc < sample_rate / 2.0:
        raise ValueError(f"Corner frequency {fc}Hz outside (0, {sample_rate / 2.0})Hz")


def highpass(fc: float, q: float, sample_rate: int) -> np.ndarray:
    _check_frequency(fc, sample_rate)
    w0 = 2 * np.pi * fc / sample_rate
    cosw = np.cos(w0)
    alpha = np.sin(w0) / (2 * q)
    b0 = (1 + cosw) / 2
    b1 = -(1 + cosw)
    b2 = (1 + cosw) / 2
    return _normalized_sos(b0, b1, b2, 1 + alpha, -2 * cosw, 1 - alpha)


def lowpass(fc: float, q: float, sample_rate: int) -> np.ndarray:
    _check_frequency(fc, sample_rate)
    w0 = 2 * np.pi * fc / sample_rate
    cosw = np.cos(w0)
    alpha = np.sin(w0) / (2 * q)
    b0 = (1 - cosw) / 2
    b1 = 1 - cosw
    b2 = (1 - cosw) / 2
    return _normalized_sos(b0, b1, b2, 1 + alpha, -2 * cosw, 1 - alpha)


def low_shelf(db: float, fc: float, sample_rate: int) -> np.ndarray:
    _check_frequency(fc, sample_rate)
    A = 10 ** (db / 40.0)
    w0 = 2 * np.pi * fc / sample_rate
    cosw = np.cos(w0)
    # shelf slope S = 1
    alpha = np.sin(w0) / 2 * np.sqrt(2.0)
    sqA = 2 * np.sqrt(A) * alpha
    b0 = A * ((A + 1) - (A - 1) * cosw + sqA)
    b1 = 2 * A * ((A - 1) - (A + 1) * cosw)
    b2 = A * ((A + 1) - (A - 1) * cosw - sqA)
    a0 = (A + 1) + (A - 1) * cosw + sqA
    a1 = -2 * ((A - 1) + (A + 1) * cosw)
    a2 = (A + 1) + (A - 1) * cosw - sqA
    return _normalized_sos(b0, b1, b2, a0, a1, a2)


def peaking(db: float, fc: float, q: float, sample_rate: int) -> np.ndarray:
    _check_frequency(fc, sample_rate)
    A = 10 ** (db / 40.0)
    w0 = 2 * np.pi * fc / sample_rate
    alpha = np.sin(w0) / (2 * q)
    cosw = np.cos(w0)
    return _normalized_sos(1 + alpha * A, -2 * cosw, 1 - alpha * A,
                           1 + alpha / A, -2 * cosw, 1 - alpha / A)


def high_shelf(db: float, fc: float, sample_rate: int) -> np.ndarray:
    _check_frequency(fc, sample_rate)
    A = 10 ** (db / 40.0)
    w0 = 2 * np.pi * fc / sample_rate
    cosw = np.cos(w0)
    alpha = np.sin(w0) / 2 * np.sqrt(2.0)
    sqA = 2 * np.sqrt(A) * alpha
    b0 = A * ((A + 1) + (A - 1) * cosw + sqA)
    b1 = -2 * A * ((A - 1) + (A + 1) * cosw)
    b2 = A * ((A + 1) + (A - 1) * cosw - sqA)
    a0 = (A + 1) - (A - 1) * cosw + sqA
    a1 = 2 * ((A - 1) - (A + 1) * cosw)
    a2 = (A + 1) - (A - 1) * cosw - sqA
    return _normalized_sos(b0, b1, b2, a0, a1, a2)

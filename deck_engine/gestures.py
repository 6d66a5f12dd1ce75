# twin-deck/deck_engine/gestures.py
# Coordinate math shared by the input layers that drive a deck:
# platter rotation, waveform dragging and the tempo fader.

import math
from typing import Optional, Tuple

import config


def unwrap_angle_delta(previous: float, current: float) -> float:
    """Rotation from previous to current angle, taking the short way round the +/-pi seam"""
    delta = current - previous
    return normalize_angle(delta)


def normalize_angle(delta: float) -> float:
    while delta > math.pi:
        delta -= 2 * math.pi
    while delta < -math.pi:
        delta += 2 * math.pi
    return delta


def angle_to_time_delta(angle_delta: float,
                        seconds_per_revolution: float = config.SECONDS_PER_REVOLUTION) -> float:
    return (angle_delta / (2 * math.pi)) * seconds_per_revolution


def zoom_window_size(level: int, levels=config.ZOOM_LEVELS) -> Optional[float]:
    """Seconds visible at a zoom level index (clamped to the available levels); None is the whole track"""
    level = max(0, min(len(levels) - 1, int(level)))
    return levels[level]


def visible_window(current_time: float, duration: float,
                   window_size: Optional[float]) -> Tuple[float, float]:
    """(start, end) seconds shown by a waveform centred on current_time; None shows the whole track"""
    if window_size is None:
        return 0.0, duration
    half = window_size / 2
    start = current_time - half
    end = current_time + half
    if start < 0:
        start, end = 0.0, window_size
    if end > duration:
        end = duration
        start = max(0.0, duration - window_size)
    return start, end


def drag_to_time_delta(delta_x: float, width: float, window_size: Optional[float],
                       duration: float) -> float:
    """
    Seconds moved by dragging the waveform delta_x pixels.

    Dragging right pulls earlier audio under the playhead, so a positive
    delta_x (pointer moved right) gives a negative time delta.
    """
    if width <= 0:
        return 0.0
    span = duration if window_size is None else window_size
    return (-delta_x / width) * span


def rate_from_slider(position: float, pitch_range: float = config.PITCH_RANGE) -> float:
    """Tempo fader position (0 = top/fastest, 1 = bottom/slowest) to playback rate"""
    position = max(0.0, min(1.0, position))
    return (1 + pitch_range) - position * (pitch_range * 2)


def slider_from_rate(rate: float, pitch_range: float = config.PITCH_RANGE) -> float:
    return ((1 + pitch_range) - rate) / (pitch_range * 2)

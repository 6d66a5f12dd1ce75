import pytest

from deck_engine.tap_tempo import TapTempo


@pytest.fixture
def taps():
    return TapTempo(debounce=0.1, reset_after=2.0, history=5)


def test_needs_two_taps(taps):
    assert taps.tap(10.0) is None
    assert taps.tap(10.5) == pytest.approx(120.0)


def test_averages_over_the_series(taps):
    for t in (0.0, 0.5, 1.0):
        result = taps.tap(t)
    assert taps.tap(1.6) == pytest.approx(60.0 / (1.6 / 3))
    assert result == pytest.approx(120.0)


def test_keeps_only_recent_taps(taps):
    # a slow start followed by five quick taps
    for t in (0.0, 1.0, 1.4, 1.8, 2.2, 2.6):
        result = taps.tap(t)
    assert result == pytest.approx(150.0)


def test_bounce_is_ignored(taps):
    taps.tap(0.0)
    assert taps.tap(0.05) is None
    assert taps.tap(0.5) == pytest.approx(120.0)


def test_long_pause_starts_a_new_series(taps):
    taps.tap(0.0)
    taps.tap(0.5)
    assert taps.tap(3.0) is None
    assert taps.tap(3.4) == pytest.approx(150.0)

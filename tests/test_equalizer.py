import numpy as np
import pytest

from deck_engine.equalizer import DeckEqualizer, knob_to_db

SR = 44100


def sine_block(freq, frames=SR // 2, sample_rate=SR):
    t = np.arange(frames) / sample_rate
    mono = (0.25 * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    return np.column_stack([mono, mono])


def rms(x):
    return float(np.sqrt(np.mean(np.square(x))))


@pytest.mark.parametrize("knob,db", [(0.0, -15.0), (0.5, 0.0), (1.0, 15.0),
                                     (0.75, 7.5), (-1.0, -15.0), (2.0, 15.0)])
def test_knob_to_db(knob, db):
    assert knob_to_db(knob) == pytest.approx(db)


def test_flat_eq_passes_blocks_through_untouched():
    eq = DeckEqualizer(SR)
    x = sine_block(440, frames=1024)
    assert eq.process_block(x) is x


def test_low_boost_raises_bass_level():
    eq = DeckEqualizer(SR)
    assert eq.set_band("low", 1.0) == pytest.approx(15.0)
    x = sine_block(60)
    y = eq.process_block(x)
    # compare after the crossfade and filter settle
    tail = slice(SR // 4, None)
    assert rms(y[tail]) > 3.0 * rms(x[tail])


def test_mid_cut_lowers_mid_level():
    eq = DeckEqualizer(SR)
    eq.set_band("mid", 0.0)
    x = sine_block(1000)
    y = eq.process_block(x)
    tail = slice(SR // 4, None)
    assert rms(y[tail]) < 0.3 * rms(x[tail])


def test_high_cut_leaves_bass_alone():
    eq = DeckEqualizer(SR)
    eq.set_band("high", 0.0)
    x = sine_block(60)
    y = eq.process_block(x)
    tail = slice(SR // 4, None)
    assert rms(y[tail]) == pytest.approx(rms(x[tail]), rel=0.05)


def test_state_carries_across_blocks():
    whole = DeckEqualizer(SR)
    split = DeckEqualizer(SR)
    for eq in (whole, split):
        eq.set_band("low", 0.9)
        # finish the coefficient crossfade
        eq.process_block(np.zeros((2048, 2), dtype=np.float32))
    x = sine_block(100, frames=4096)
    y_whole = whole.process_block(x)
    y_split = np.concatenate([split.process_block(x[:1000]), split.process_block(x[1000:])])
    assert np.allclose(y_whole, y_split, atol=1e-5)


def test_unknown_band_is_rejected():
    eq = DeckEqualizer(SR)
    with pytest.raises(ValueError):
        eq.set_band("treble", 0.7)
    assert eq.gains_db() == {"low": 0.0, "mid": 0.0, "high": 0.0}


def test_low_sample_rate_sources_are_supported():
    eq = DeckEqualizer(1000)
    eq.set_band("high", 1.0)
    y = eq.process_block(sine_block(50, frames=512, sample_rate=1000))
    assert y.shape == (512, 2)
    assert np.all(np.isfinite(y))

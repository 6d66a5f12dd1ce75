import numpy as np
import pytest

import config
from deck_engine import AudioEngine
from deck_engine.mixer import MixingBus
from conftest import no_bpm, ramp_buffer


@pytest.fixture
def engine(clock, stream_factory):
    e = AudioEngine(config, clock=clock, stream_factory=stream_factory, bpm_estimator=no_bpm)
    yield e
    e.shutdown()


def test_engine_needs_config():
    with pytest.raises(ValueError):
        AudioEngine(None)


def test_two_independent_decks(engine, fake_time):
    a = engine.deck("A")
    b = engine.deck("B")
    a.load_buffer(ramp_buffer(), "a.wav")
    b.load_buffer(ramp_buffer(duration=30.0), "b.wav")
    a.play()
    b.seek(10.0)
    b.set_playback_rate(1.08)
    fake_time.advance(2.0)
    assert a.current_time == pytest.approx(2.0)
    assert b.current_time == pytest.approx(10.0)
    assert a.playback_rate == 1.0


def test_unknown_deck(engine):
    with pytest.raises(KeyError):
        engine.deck("C")


@pytest.mark.parametrize("x,gain_a,gain_b", [(0.0, 1.0, 0.0), (0.25, 0.75, 0.25),
                                             (1.0, 0.0, 1.0), (-3.0, 1.0, 0.0)])
def test_crossfader_gains(engine, x, gain_a, gain_b):
    engine.set_crossfader(x)
    assert engine.bus.gain_handle("A").value == pytest.approx(gain_a)
    assert engine.bus.gain_handle("B").value == pytest.approx(gain_b)


def test_volume_rest_position_is_unity(engine):
    assert engine.deck("A").output.volume == pytest.approx(1.0)
    assert engine.set_deck_volume("B", 1.0) == pytest.approx(4.0 / 3.0)
    assert engine.set_deck_volume("B", -0.2) == 0.0


def test_output_gain_chain(engine):
    deck = engine.deck("A")
    deck.load_buffer(ramp_buffer(), "a.wav")
    engine.set_crossfader(0.25)
    deck.seek(1.0)
    deck.play()
    block = deck.output.render_block(4)
    expected = np.arange(1000, 1004) * 1.0 * 0.75 * config.MASTER_GAIN
    assert np.allclose(block[:, 0], expected)


def test_poll_reports_every_deck(engine):
    engine.deck("B").load_buffer(ramp_buffer(), "b.wav")
    engine.deck("B").set_bpm(124)
    snaps = engine.poll()
    assert set(snaps) == {"A", "B"}
    assert snaps["A"].loaded is False
    assert snaps["B"].display_bpm == 124


def test_bus_needs_two_decks():
    with pytest.raises(ValueError):
        MixingBus(("A", "B", "C"))

import pytest

from deck_engine.transport import Transport, TransportState


class RecordingOutput:
    def __init__(self):
        self.calls = []

    def start(self, offset_seconds, rate):
        self.calls.append(("start", offset_seconds, rate))

    def stop(self):
        self.calls.append(("stop",))

    def set_rate(self, rate):
        self.calls.append(("set_rate", rate))


@pytest.fixture
def output():
    return RecordingOutput()


@pytest.fixture
def transport(clock, output):
    t = Transport(clock, output, deck_id="T")
    t.load(60.0)
    output.calls.clear()
    return t


def test_play_requires_a_loaded_track(clock, output):
    t = Transport(clock, output)
    assert t.play() is False
    assert t.state == TransportState.STOPPED
    assert t.seek(5.0) is None
    assert output.calls == []


def test_load_resets_everything(transport, fake_time):
    transport.seek(12.0)
    transport.set_playback_rate(1.05)
    transport.play()
    transport.load(30.0)
    assert transport.state == TransportState.STOPPED
    assert transport.paused_at == 0.0
    assert transport.playback_rate == 1.0
    assert transport.duration == 30.0


@pytest.mark.parametrize("target,expected", [(-5.0, 0.0), (0.0, 0.0), (12.5, 12.5),
                                             (60.0, 60.0), (100.0, 60.0)])
def test_seek_clamps_while_paused(transport, target, expected):
    assert transport.seek(target) == expected
    assert transport.position() == expected


def test_position_advances_with_clock_and_rate(transport, fake_time):
    transport.set_playback_rate(1.05)
    transport.play()
    fake_time.advance(2.0)
    assert transport.position() == pytest.approx(2.1)
    transport.pause()
    fake_time.advance(5.0)
    assert transport.position() == pytest.approx(2.1)
    assert transport.paused_at == pytest.approx(2.1)


def test_play_while_playing_is_a_noop(transport, output):
    assert transport.play() is True
    assert transport.play() is False
    assert [c[0] for c in output.calls] == ["start"]


def test_pause_clamps_to_duration(transport, fake_time):
    transport.seek(59.0)
    transport.play()
    fake_time.advance(3.0)
    transport.pause()
    assert transport.paused_at == 60.0


def test_reaching_the_end_stops_and_rewinds(transport, fake_time, output):
    transport.seek(58.0)
    transport.play()
    fake_time.advance(2.5)
    assert transport.position() == 0.0
    assert not transport.is_playing
    assert transport.paused_at == 0.0
    assert output.calls[-1] == ("stop",)


def test_play_from_end_restarts_at_zero(transport, output):
    transport.seek(60.0)
    transport.play()
    assert output.calls[-1] == ("start", 0.0, 1.0)
    assert transport.position() == 0.0


def test_seek_while_playing_restarts_output(transport, fake_time, output):
    transport.play()
    fake_time.advance(3.0)
    transport.seek(10.0)
    fake_time.advance(1.0)
    assert transport.position() == pytest.approx(11.0)
    assert output.calls == [("start", 0.0, 1.0), ("start", 10.0, 1.0)]


def test_rate_change_while_playing_commits_elapsed_time(transport, fake_time, output):
    transport.play()
    fake_time.advance(2.0)
    transport.set_playback_rate(1.5)
    fake_time.advance(2.0)
    assert transport.position() == pytest.approx(5.0)
    assert ("set_rate", 1.5) in output.calls
    assert [c[0] for c in output.calls].count("start") == 1


@pytest.mark.parametrize("rate", [0.0, -1.0])
def test_non_positive_rate_is_rejected(transport, rate):
    with pytest.raises(ValueError):
        transport.set_playback_rate(rate)
    assert transport.playback_rate == 1.0


class TestScratchHandOver:
    def test_begin_scratch_commits_playing_position(self, transport, fake_time, output):
        transport.play()
        fake_time.advance(4.0)
        assert transport.begin_scratch() is True
        assert transport.is_scratching
        assert transport.paused_at == pytest.approx(4.0)
        assert output.calls[-1] == ("stop",)

    def test_begin_scratch_from_pause(self, transport):
        transport.seek(7.0)
        assert transport.begin_scratch() is False
        assert transport.paused_at == 7.0

    def test_play_and_pause_ignored_while_scratching(self, transport):
        transport.begin_scratch()
        assert transport.play() is False
        assert transport.pause() is False
        assert transport.is_scratching

    def test_seek_while_scratching_only_reports_target(self, transport, output):
        transport.seek(3.0)
        transport.begin_scratch()
        assert transport.seek(80.0) == 60.0
        assert transport.paused_at == 3.0
        assert output.calls == []

    def test_end_scratch_resumes_when_asked(self, transport, output):
        transport.begin_scratch()
        transport.end_scratch(9.5, resume=True)
        assert transport.is_playing
        assert output.calls[-1] == ("start", 9.5, 1.0)

    def test_end_scratch_stays_paused(self, transport):
        transport.begin_scratch()
        transport.sync_scratch_position(-2.0)
        assert transport.paused_at == 0.0
        transport.end_scratch(70.0, resume=False)
        assert transport.state == TransportState.STOPPED
        assert transport.paused_at == 60.0

import pytest

import main


@pytest.mark.parametrize("rate", ["0", "-1.2", "fast"])
def test_play_rejects_bad_rates(rate, capsys):
    with pytest.raises(SystemExit) as exc:
        main.build_parser().parse_args(["play", "a.wav", "--rate", rate])
    assert exc.value.code == 2
    assert "--rate" in capsys.readouterr().err


def test_play_accepts_tempo_fader():
    args = main.build_parser().parse_args(["play", "a.wav", "b.wav", "--tempo-fader", "0.25"])
    assert args.tempo_fader == 0.25
    assert args.deck_b == "b.wav"


@pytest.mark.parametrize("position", ["1.5", "-0.1"])
def test_tempo_fader_must_be_in_range(position):
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["play", "a.wav", "--tempo-fader", position])


def test_rate_and_tempo_fader_are_exclusive():
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["play", "a.wav", "--rate", "1.02", "--tempo-fader", "0.5"])


def test_missing_file_exits_with_error(tmp_path):
    assert main.run_twin_deck(["-q", "bpm", str(tmp_path / "missing.wav")]) == 1

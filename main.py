# twin-deck/main.py

import argparse
import time
import sys
import os
import logging

PROJECT_ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT_DIR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_DIR)


def setup_logging(log_level_str='INFO'):
    """Set up logging with specified level"""
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Suppress verbose logging from third-party libraries
    if log_level_str.upper() == 'DEBUG':
        # Keep numba at INFO level to avoid bytecode dumps
        logging.getLogger('numba').setLevel(logging.INFO)
        logging.getLogger('librosa').setLevel(logging.WARNING)

    return logging.getLogger(__name__)


def positive_float(value):
    rate = float(value)
    if rate <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return rate


def unit_float(value):
    position = float(value)
    if not 0.0 <= position <= 1.0:
        raise argparse.ArgumentTypeError(f"must be between 0 and 1, got {value}")
    return position


def build_parser():
    parser = argparse.ArgumentParser(description="Twin Deck - two-deck playback engine")
    parser.add_argument("--log-level",
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO',
                        help='Set logging level (default: INFO)')
    parser.add_argument("--verbose", "-v", action='store_true',
                        help='Enable verbose debug logging (same as --log-level DEBUG)')
    parser.add_argument("--quiet", "-q", action='store_true',
                        help='Only show errors and warnings (same as --log-level WARNING)')
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Load tracks onto decks A/B and play them")
    play.add_argument("deck_a", help="Audio file for deck A")
    play.add_argument("deck_b", nargs="?", help="Audio file for deck B (optional)")
    play.add_argument("--crossfader", type=float, default=0.5,
                      help="Crossfader position, 0 = deck A, 1 = deck B (default: 0.5)")
    tempo = play.add_mutually_exclusive_group()
    tempo.add_argument("--rate", type=positive_float, default=1.0,
                       help="Playback rate applied to every loaded deck (default: 1.0)")
    tempo.add_argument("--tempo-fader", type=unit_float,
                       help="Tempo fader position for every loaded deck, 0 = +8%%, 1 = -8%%")
    play.add_argument("--seconds", type=float, default=30.0,
                      help="How long to play before exiting (default: 30)")
    play.add_argument("--poll-interval", type=float, default=1.0,
                      help="Seconds between position reports (default: 1.0)")

    bpm = sub.add_parser("bpm", help="Estimate the tempo of audio files")
    bpm.add_argument("files", nargs="+", help="Audio files to analyze")
    return parser


def run_play(args, logger):
    import config as app_config
    from deck_engine import AudioEngine, AudioLoadError

    engine = AudioEngine(app_config)
    try:
        engine.set_crossfader(args.crossfader)
        loaded = []
        for deck_id, path in zip(app_config.DECK_IDS, (args.deck_a, args.deck_b)):
            if not path:
                continue
            deck = engine.deck(deck_id)
            try:
                deck.load_path(path)
            except AudioLoadError as e:
                logger.error(f"Deck {deck_id} - {e}")
                return 1
            if args.tempo_fader is not None:
                deck.set_tempo_fader(args.tempo_fader)
            else:
                deck.set_playback_rate(args.rate)
            loaded.append(deck)

        for deck in loaded:
            deck.wait_for_analysis(timeout=60)
            deck.play()

        deadline = time.monotonic() + args.seconds
        while time.monotonic() < deadline:
            for snap in engine.poll().values():
                if not snap.loaded:
                    continue
                bpm_label = snap.display_bpm if snap.display_bpm > 0 else '--'
                logger.info(f"Deck {snap.deck_id} [{snap.file_name}] "
                            f"{snap.current_time:7.2f}/{snap.duration:.2f}s "
                            f"BPM {bpm_label} {'PLAYING' if snap.is_playing else 'PAUSED'}")
            if not any(deck.is_playing for deck in loaded):
                logger.info("All decks stopped.")
                break
            time.sleep(args.poll_interval)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    finally:
        engine.shutdown()
    return 0


def run_bpm(args, logger):
    from deck_engine import AudioLoadError, decode_audio_bytes, estimate_bpm

    status = 0
    for path in args.files:
        try:
            with open(path, 'rb') as f:
                buffer = decode_audio_bytes(f.read(), os.path.basename(path))
        except (OSError, AudioLoadError) as e:
            logger.error(f"Could not load {path}: {e}")
            status = 1
            continue
        bpm = estimate_bpm(buffer.channel(0), buffer.sample_rate)
        label = f"{bpm}" if bpm > 0 else "unknown"
        logger.info(f"{os.path.basename(path)}: {label} BPM ({buffer.duration:.1f}s)")
    return status


def run_twin_deck(argv=None):
    args = build_parser().parse_args(argv)

    # Determine log level based on arguments
    if args.quiet:
        log_level = 'WARNING'
    elif args.verbose:
        log_level = 'DEBUG'
    else:
        log_level = args.log_level

    logger = setup_logging(log_level)
    logger.debug(f"Twin Deck starting with log level: {log_level}")

    if args.command == "play":
        return run_play(args, logger)
    return run_bpm(args, logger)


if __name__ == "__main__":
    sys.exit(run_twin_deck())

#!/usr/bin/env python3
# twin-deck/utilities/bpm_checker.py

import os
import sys
import logging
logger = logging.getLogger(__name__)

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import config as app_config
from deck_engine.sample_buffer import AudioLoadError, decode_audio_bytes
from deck_engine import bpm_estimator


def print_bpm(audio_file_path):
    """Print the BPM of an audio file along with the analysis details"""

    if not os.path.exists(audio_file_path):
        logger.error(f"File not found: {audio_file_path}")
        return False

    logger.info(f"Analyzing: {os.path.basename(audio_file_path)}")
    try:
        with open(audio_file_path, 'rb') as f:
            buffer = decode_audio_bytes(f.read(), os.path.basename(audio_file_path))
    except AudioLoadError as e:
        logger.error(f"Could not decode the audio file: {e}")
        return False

    samples = buffer.channel(0)
    logger.info(f"Duration: {buffer.duration:.1f} seconds @ {buffer.sample_rate}Hz")
    if buffer.duration >= app_config.BPM_SEGMENT_SECONDS:
        offset = bpm_estimator.find_loudest_segment(samples, buffer.sample_rate)
        logger.info(f"Loudest {app_config.BPM_SEGMENT_SECONDS:.0f}s segment starts at "
                    f"{offset / buffer.sample_rate:.1f}s")

    bpm = bpm_estimator.estimate_bpm(samples, buffer.sample_rate)
    if bpm > 0:
        logger.info(f"BPM: {bpm}")
        return True
    logger.error("Could not detect a tempo")
    return False


def main():
    logging.basicConfig(level=logging.INFO, format='%(message)s')
    if len(sys.argv) != 2:
        logger.info("Usage: python bpm_checker.py <audio_file_path>")
        logger.info("Example: python bpm_checker.py audio_tracks/starships.wav")
        sys.exit(1)

    audio_file_path = sys.argv[1]

    # If it's a relative path, try to resolve it from the audio_tracks directory
    if not os.path.isabs(audio_file_path) and not os.path.exists(audio_file_path):
        audio_tracks_path = os.path.join(app_config.AUDIO_TRACKS_DIR, audio_file_path)
        if os.path.exists(audio_tracks_path):
            audio_file_path = audio_tracks_path
        else:
            logger.error(f"File not found: {audio_file_path}")
            logger.error(f"Tried: {audio_tracks_path}")
            sys.exit(1)

    success = print_bpm(audio_file_path)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

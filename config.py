# twin-deck/config.py

import os
import logging
logger = logging.getLogger(__name__)

# --- Project Root Directory ---
# This assumes config.py is in the project's root directory (e.g., twin-deck/)
PROJECT_ROOT_DIR = os.path.dirname(os.path.abspath(__file__))

AUDIO_TRACKS_DIR_NAME = "audio_tracks"
AUDIO_TRACKS_DIR = os.path.join(PROJECT_ROOT_DIR, AUDIO_TRACKS_DIR_NAME)

# --- Audio Output ---
DEFAULT_SAMPLE_RATE = 44100
OUTPUT_BLOCK_SIZE = 1024  # frames per audio callback (~23ms at 44.1kHz)
OUTPUT_CHANNELS = 2

# --- Deck Identifiers ---
DECK_IDS = ("A", "B")

# --- Scratch Engine ---
# Fraction of the remaining distance to the target covered per output frame.
# 0.25 feels rubber-banded, 1.0 is a hard cut.
SCRATCH_DAMPING = 0.5
# Seconds of audio covered by one full turn of the platter.
SECONDS_PER_REVOLUTION = 1.8

# --- Cue Points ---
CUE_MATCH_TOLERANCE = 0.1  # seconds; two marks closer than this are the same cue
CUE_JUMP_EPSILON = 0.05    # seconds; skip a cue sitting right under the playhead

# --- BPM Analysis ---
BPM_SEGMENT_SECONDS = 10.0
BPM_SCAN_STEP_SECONDS = 2.0
BPM_ENERGY_SAMPLE_STRIDE = 100
BPM_HIGHPASS_HZ = 40.0
BPM_LOWPASS_HZ = 150.0
BPM_FILTER_Q = 1.0
BPM_ENVELOPE_RATE = 6000
BPM_MIN = 70
BPM_MAX = 160

# --- Tap Tempo ---
TAP_DEBOUNCE_SECONDS = 0.1
TAP_RESET_SECONDS = 2.0
TAP_HISTORY = 5

# --- EQ ---
EQ_RANGE_DB = 30.0  # full knob travel, i.e. +/-15 dB
EQ_LOW_FREQ = 250.0
EQ_MID_FREQ = 1000.0
EQ_MID_Q = 1.0
EQ_HIGH_FREQ = 2500.0

# Global setting for EQ smoothing duration (in milliseconds).
# Coefficient changes are crossfaded over this window to prevent clicks/pops.
EQ_SMOOTHING_MS = 10.0

# --- Tempo Fader ---
PITCH_RANGE = 0.08

# --- Mixing Bus ---
# Volume faders rest at 0.75, which must map to unity gain.
VOLUME_UNITY_POSITION = 0.75
MASTER_GAIN = 0.9

# --- Waveform Zoom Levels (seconds visible; None = whole track) ---
ZOOM_LEVELS = (5.0, 10.0, 30.0, 60.0, None)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    logger.info(f"Project Root Directory: {PROJECT_ROOT_DIR}")
    logger.info(f"Audio Tracks Directory: {AUDIO_TRACKS_DIR}")
    logger.info(f"Scratch: damping={SCRATCH_DAMPING}, seconds/rev={SECONDS_PER_REVOLUTION}")
    logger.info(f"BPM window: {BPM_MIN}-{BPM_MAX}")

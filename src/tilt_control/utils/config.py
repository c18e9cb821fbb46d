"""
Centralized configuration for the tilt control system.

This module provides all configuration constants for:
- Direction classification (dead zone, movement and max thresholds)
- Smoothing (exponential moving average factor)
- Calibration (window length, buffer sizes, stability wait)
- Feedback (audio cue and haptic pattern tables)
- Shake detection

The Config class contains all constants as class attributes, making them
accessible throughout the application without instantiation. Typed views
over these values live in ``utils.config_sections``.

Usage:
    from tilt_control.utils.config import Config

    threshold = Config.MOVEMENT_THRESHOLD
    if Config.MAX_THRESHOLD_ENABLED:
        # Extreme deflection reported as "over_threshold"
"""


class Config:
    """System configuration constants for the tilt control system."""

    # ==========================================================================
    # DIRECTION CLASSIFICATION
    # ==========================================================================

    MOVEMENT_THRESHOLD = 20.0  # degrees, delta needed to declare a direction
    DEAD_ZONE = 5.0  # degrees, both deltas below this → idle
    MAX_THRESHOLD = 60.0  # degrees, "excessive motion" guard
    # Opt-in: when off, extreme tilt still classifies as a plain direction
    MAX_THRESHOLD_ENABLED = False

    # ==========================================================================
    # SMOOTHING
    # ==========================================================================

    SMOOTHING_FACTOR = 0.3  # weight of newest sample, (0, 1]

    # ==========================================================================
    # CALIBRATION
    # ==========================================================================

    CALIBRATION_TIME_MS = 1000
    AUTO_CALIBRATE = False
    CALIBRATION_FRAME_INTERVAL = 1.0 / 60.0  # seconds, one animation frame

    HISTORY_SIZE = 50  # raw samples kept for the stability heuristic
    CALIBRATION_BUFFER_SIZE = 100  # samples beyond this are dropped

    STABILITY_WINDOW = 5  # most recent samples inspected per tick
    STABILITY_TOLERANCE = 2.0  # degrees from window mean
    STABILITY_REQUIRED_TICKS = 10  # consecutive stable ticks
    STABILITY_POLL_INTERVAL_MS = 100
    STABILITY_TIMEOUT_MS = 5000

    # ==========================================================================
    # FEEDBACK
    # ==========================================================================

    ENABLE_AUDIO = True
    ENABLE_VIBRATION = True
    AUDIO_SAMPLE_RATE = 44100

    # direction -> (frequency Hz, waveform, gain, pan, duration s)
    AUDIO_CUES = {
        "up": (800.0, "sine", 0.3, 0.0, 0.1),
        "down": (400.0, "sine", 0.3, 0.0, 0.1),
        "left": (600.0, "sine", 0.3, -1.0, 0.1),
        "right": (600.0, "sine", 0.3, 1.0, 0.1),
        "idle": (200.0, "sine", 0.15, 0.0, 0.05),
        "over_threshold": (150.0, "square", 0.2, 0.0, 0.2),
    }

    # direction -> on/off pulse durations in milliseconds
    HAPTIC_PATTERNS = {
        "up": (50,),
        "down": (50,),
        "left": (30, 30, 30),
        "right": (30, 30, 30),
        "idle": (20,),
        "over_threshold": (100, 50, 100),
    }

    # ==========================================================================
    # SHAKE DETECTION
    # ==========================================================================

    SHAKE_THRESHOLD = 15.0  # m/s² linear acceleration magnitude
    SHAKE_HISTORY_SIZE = 50

    # ==========================================================================
    # PLATFORM PROFILES
    # ==========================================================================

    # platform -> (movement threshold rule, dead zone floor)
    PLATFORM_PROFILES = {
        "ios": {"movement_threshold_max": 15.0, "dead_zone_min": 3.0},
        "android": {"movement_threshold_min": 25.0, "dead_zone_min": 8.0},
    }

    # ==========================================================================
    # LOGGING
    # ==========================================================================

    DEBUG_MODE = False
    LOG_SESSION_DIR = None  # directory for per-channel log files, None = console only
    MALFORMED_SAMPLE_LOG_EVERY = 100  # log every Nth dropped sample after the first

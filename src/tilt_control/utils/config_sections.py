"""
Typed configuration sections for the tilt control system.

This module provides strongly-typed configuration sections over the raw
``Config`` constants, with proper type hints and defaults.

Benefits:
- Type safety: IDE autocomplete and type checking
- Discoverability: All config options visible in one place
- Validation: configure() rejects unknown keys and out-of-range values
- Better testing: Can build entire config sections by hand
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Dict, Mapping, Optional, Tuple

from tilt_control.core.errors import ConfigurationError

log = logging.getLogger(__name__)


# Host-facing option names (camelCase, as sent by the web layer) → field names
OPTION_ALIASES: Dict[str, str] = {
    "movementThreshold": "movement_threshold",
    "deadZone": "dead_zone",
    "maxThreshold": "max_threshold",
    "maxThresholdEnabled": "max_threshold_enabled",
    "smoothingFactor": "smoothing_factor",
    "calibrationTimeMs": "calibration_time_ms",
    "calibrationTime": "calibration_time_ms",
    "autoCalibrate": "auto_calibrate",
    "enableAudio": "enable_audio",
    "enableVibration": "enable_vibration",
    "debugMode": "debug_mode",
}


@dataclass(frozen=True)
class MotionControllerConfig:
    """Options merged by ``MotionController.configure``."""

    # Classification
    movement_threshold: float = 20.0  # degrees
    dead_zone: float = 5.0  # degrees
    max_threshold: float = 60.0  # degrees
    max_threshold_enabled: bool = False  # report extreme deflection as over_threshold

    # Smoothing
    smoothing_factor: float = 0.3

    # Calibration
    calibration_time_ms: float = 1000
    auto_calibrate: bool = False

    # Feedback
    enable_audio: bool = True
    enable_vibration: bool = True

    # Logging
    debug_mode: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if f.type in (bool, "bool"):
                if not isinstance(value, bool):
                    raise ConfigurationError(f"{f.name} must be a bool, got {value!r}")
            elif isinstance(value, bool) or not isinstance(value, Real):
                raise ConfigurationError(f"{f.name} must be a number, got {value!r}")

        if self.movement_threshold < 0:
            raise ConfigurationError("movement_threshold must be >= 0")
        if self.dead_zone < 0:
            raise ConfigurationError("dead_zone must be >= 0")
        if self.max_threshold <= 0:
            raise ConfigurationError("max_threshold must be > 0")
        if not 0.0 < self.smoothing_factor <= 1.0:
            raise ConfigurationError("smoothing_factor must be in (0, 1]")
        if self.calibration_time_ms < 0:
            raise ConfigurationError("calibration_time_ms must be >= 0")

    @property
    def calibration_time(self) -> float:
        """Calibration window in seconds."""
        return self.calibration_time_ms / 1000.0

    def merged(self, overrides: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "MotionControllerConfig":
        """Return a copy with partial options merged in (camelCase or snake_case keys)."""
        options = dict(overrides or {})
        options.update(kwargs)

        known = {f.name for f in dataclasses.fields(self)}
        changes: Dict[str, Any] = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"unknown option: {key}")
            changes[name] = value

        updated = dataclasses.replace(self, **changes)
        if updated.dead_zone > updated.movement_threshold:
            log.warning(
                "dead_zone (%.1f) exceeds movement_threshold (%.1f); deltas between them classify as idle",
                updated.dead_zone,
                updated.movement_threshold,
            )
        return updated

    def as_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class StabilityConfig:
    """Configuration for the pre-calibration stability wait and sample buffers."""

    # Buffers
    history_size: int = 50
    calibration_buffer_size: int = 100

    # Stability heuristic
    window: int = 5
    tolerance: float = 2.0  # degrees from window mean
    required_ticks: int = 10
    poll_interval_ms: float = 100
    timeout_ms: float = 5000

    # Timed window polling (one animation frame)
    frame_interval: float = 1.0 / 60.0


@dataclass(frozen=True)
class AudioCue:
    """Parameters of a single feedback tone."""

    frequency: float  # Hz
    waveform: str  # sine, square, sawtooth, triangle
    gain: float  # 0.0 to 1.0
    pan: float  # -1.0 (left) to 1.0 (right)
    duration: float  # seconds


@dataclass(frozen=True)
class FeedbackTablesConfig:
    """Per-direction audio cues and haptic patterns."""

    audio_cues: Dict[str, AudioCue] = field(default_factory=dict)
    haptic_patterns: Dict[str, Tuple[int, ...]] = field(default_factory=dict)
    sample_rate: int = 44100


@dataclass(frozen=True)
class ShakeConfig:
    """Configuration for shake detection from linear acceleration."""

    threshold: float = 15.0  # m/s²
    history_size: int = 50


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for the motion session logger."""

    session_dir: Optional[str] = None
    malformed_log_every: int = 100


def apply_platform_profile(config: MotionControllerConfig, platform: Optional[str]) -> MotionControllerConfig:
    """
    Tune thresholds for a host platform.

    iOS devices report smaller tilts for the same gesture (lower threshold),
    Android sensors are noisier (higher threshold, wider dead zone). Unknown
    platforms keep the configuration unchanged.

    Args:
        config: Current controller configuration
        platform: Platform name reported by the host ("iOS", "Android", ...)

    Returns:
        New MotionControllerConfig with the profile applied
    """
    from tilt_control.utils.config import Config

    profiles = getattr(Config, "PLATFORM_PROFILES", {})
    profile = profiles.get((platform or "").lower())
    if not profile:
        return config

    movement_threshold = config.movement_threshold
    dead_zone = config.dead_zone
    if "movement_threshold_max" in profile:
        movement_threshold = min(movement_threshold, profile["movement_threshold_max"])
    if "movement_threshold_min" in profile:
        movement_threshold = max(movement_threshold, profile["movement_threshold_min"])
    if "dead_zone_min" in profile:
        dead_zone = max(dead_zone, profile["dead_zone_min"])

    log.info("Applied %s platform profile (threshold=%.1f, dead_zone=%.1f)", platform, movement_threshold, dead_zone)
    return config.merged(movement_threshold=movement_threshold, dead_zone=dead_zone)


def load_motion_controller_config() -> MotionControllerConfig:
    """
    Load controller configuration from Config with fallback defaults.

    Returns:
        MotionControllerConfig with values from Config or defaults
    """
    from tilt_control.utils.config import Config

    return MotionControllerConfig(
        movement_threshold=getattr(Config, "MOVEMENT_THRESHOLD", 20.0),
        dead_zone=getattr(Config, "DEAD_ZONE", 5.0),
        max_threshold=getattr(Config, "MAX_THRESHOLD", 60.0),
        max_threshold_enabled=getattr(Config, "MAX_THRESHOLD_ENABLED", False),
        smoothing_factor=getattr(Config, "SMOOTHING_FACTOR", 0.3),
        calibration_time_ms=getattr(Config, "CALIBRATION_TIME_MS", 1000),
        auto_calibrate=getattr(Config, "AUTO_CALIBRATE", False),
        enable_audio=getattr(Config, "ENABLE_AUDIO", True),
        enable_vibration=getattr(Config, "ENABLE_VIBRATION", True),
        debug_mode=getattr(Config, "DEBUG_MODE", False),
    )


def load_stability_config() -> StabilityConfig:
    """
    Load stability/buffer configuration from Config with fallback defaults.

    Returns:
        StabilityConfig with values from Config or defaults
    """
    from tilt_control.utils.config import Config

    return StabilityConfig(
        history_size=getattr(Config, "HISTORY_SIZE", 50),
        calibration_buffer_size=getattr(Config, "CALIBRATION_BUFFER_SIZE", 100),
        window=getattr(Config, "STABILITY_WINDOW", 5),
        tolerance=getattr(Config, "STABILITY_TOLERANCE", 2.0),
        required_ticks=getattr(Config, "STABILITY_REQUIRED_TICKS", 10),
        poll_interval_ms=getattr(Config, "STABILITY_POLL_INTERVAL_MS", 100),
        timeout_ms=getattr(Config, "STABILITY_TIMEOUT_MS", 5000),
        frame_interval=getattr(Config, "CALIBRATION_FRAME_INTERVAL", 1.0 / 60.0),
    )


def load_feedback_tables_config() -> FeedbackTablesConfig:
    """
    Load audio cue and haptic pattern tables from Config.

    Returns:
        FeedbackTablesConfig with one entry per direction label
    """
    from tilt_control.utils.config import Config

    raw_cues = getattr(Config, "AUDIO_CUES", {})
    raw_patterns = getattr(Config, "HAPTIC_PATTERNS", {})

    return FeedbackTablesConfig(
        audio_cues={label: AudioCue(*values) for label, values in raw_cues.items()},
        haptic_patterns={label: tuple(pattern) for label, pattern in raw_patterns.items()},
        sample_rate=getattr(Config, "AUDIO_SAMPLE_RATE", 44100),
    )


def load_shake_config() -> ShakeConfig:
    """
    Load shake detection configuration from Config with fallback defaults.

    Returns:
        ShakeConfig with values from Config or defaults
    """
    from tilt_control.utils.config import Config

    return ShakeConfig(
        threshold=getattr(Config, "SHAKE_THRESHOLD", 15.0),
        history_size=getattr(Config, "SHAKE_HISTORY_SIZE", 50),
    )


def load_logging_config() -> LoggingConfig:
    """
    Load logging configuration from Config with fallback defaults.

    Returns:
        LoggingConfig with values from Config or defaults
    """
    from tilt_control.utils.config import Config

    return LoggingConfig(
        session_dir=getattr(Config, "LOG_SESSION_DIR", None),
        malformed_log_every=getattr(Config, "MALFORMED_SAMPLE_LOG_EVERY", 100),
    )

"""
Tone renderer for direction feedback cues.

Each cue is a short oscillator burst: the waveform starts at ``gain`` and
ramps linearly to silence over ``duration``, then goes through an
equal-power stereo panner (-1 left, 0 center, 1 right) and plays
non-blocking through sounddevice.

Failures (no sounddevice/PortAudio, device errors) surface as
FeedbackSinkUnavailable so the dispatcher can skip the cue and keep going.
"""

import logging
from typing import Optional

import numpy as np

from tilt_control.core.errors import FeedbackSinkUnavailable
from tilt_control.core.telemetry.loggers.motion_logger import get_motion_logger
from tilt_control.utils.config_sections import AudioCue

log = logging.getLogger(__name__)

# PortAudio missing raises OSError at import time, not ImportError
try:
    import sounddevice as sd
except (ImportError, OSError) as exc:
    sd = None
    log.warning("sounddevice unavailable (%s), audio cues disabled", exc)

WAVEFORMS = ("sine", "square", "sawtooth", "triangle")


def render_waveform(waveform: str, frequency: float, t: np.ndarray) -> np.ndarray:
    phase = frequency * t
    if waveform == "sine":
        return np.sin(2 * np.pi * phase)
    if waveform == "square":
        return np.where(np.sin(2 * np.pi * phase) >= 0, 1.0, -1.0)
    if waveform == "sawtooth":
        return 2.0 * (phase - np.floor(0.5 + phase))
    if waveform == "triangle":
        return 2.0 * np.abs(2.0 * (phase - np.floor(0.5 + phase))) - 1.0
    raise ValueError(f"unknown waveform '{waveform}', expected one of {WAVEFORMS}")


def render_cue(cue: AudioCue, sample_rate: int = 44100) -> np.ndarray:
    """Render a cue to a (frames, 2) float32 stereo buffer."""
    frames = max(1, int(sample_rate * cue.duration))
    t = np.arange(frames) / sample_rate

    tone = render_waveform(cue.waveform, cue.frequency, t)
    envelope = np.linspace(cue.gain, 0.0, frames)
    tone = tone * envelope

    # Equal-power panning, same law as a Web Audio StereoPannerNode on mono input
    pan = min(1.0, max(-1.0, cue.pan))
    x = (pan + 1.0) / 2.0
    left = tone * np.cos(x * np.pi / 2)
    right = tone * np.sin(x * np.pi / 2)

    return np.column_stack((left, right)).astype(np.float32)


class AudioSystem:
    """Plays direction cues on the default output device."""

    def __init__(self, sample_rate: int = 44100) -> None:
        self.sample_rate = sample_rate
        self.logger = get_motion_logger().feedback
        self.last_cue: Optional[AudioCue] = None

        self.cue_stats = {
            'played': 0,
            'failed': 0,
            'last_frequency': 0.0,
        }

    @property
    def available(self) -> bool:
        return sd is not None

    def play_cue(self, cue: AudioCue) -> None:
        if sd is None:
            self.cue_stats['failed'] += 1
            raise FeedbackSinkUnavailable("sounddevice is not available")

        audio_data = render_cue(cue, self.sample_rate)
        try:
            sd.play(audio_data, samplerate=self.sample_rate, blocking=False)
        except Exception as e:
            self.cue_stats['failed'] += 1
            raise FeedbackSinkUnavailable(f"audio playback failed: {e}") from e

        self.last_cue = cue
        self.cue_stats['played'] += 1
        self.cue_stats['last_frequency'] = cue.frequency
        self.logger.debug(
            "Cue %.0fHz %s gain=%.2f pan=%.1f %.2fs",
            cue.frequency, cue.waveform, cue.gain, cue.pan, cue.duration,
        )

    def get_cue_stats(self) -> dict:
        return dict(self.cue_stats)

    def close(self) -> None:
        if sd is not None:
            try:
                sd.stop()
            except Exception as e:
                self.logger.warning("Failed to stop audio stream: %s", e)
        self.logger.info("AudioSystem closed.")

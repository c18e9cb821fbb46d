"""
Edge-triggered feedback for direction transitions.

The dispatcher holds the current and previous direction. A new label that
differs from the current one is a transition: the labels shift, then the
transition callback, the audio cue and the haptic pattern fire once. The
same label again dispatches nothing, however many samples repeat it.

Sink failures (FeedbackSinkUnavailable or any other error from a sink) are
logged and reported through ``on_error``; the transition itself is already
committed and stays committed.

Architecture:
    Direction → FeedbackDispatcher.dispatch()
                    ├── on_transition(new, old)
                    ├── AudioSink.play_cue(cue table[new])
                    └── HapticSink.vibrate(pattern table[new])

Unknown labels use the idle entry of each table.
"""

from typing import Any, Callable, Optional, Protocol, Sequence, Tuple

from tilt_control.core.errors import FeedbackSinkUnavailable
from tilt_control.core.imu.direction_classifier import Direction
from tilt_control.core.telemetry.loggers.motion_logger import get_motion_logger
from tilt_control.utils.config_sections import (
    AudioCue,
    FeedbackTablesConfig,
    MotionControllerConfig,
    load_feedback_tables_config,
)

IDLE_KEY = Direction.IDLE.value
DEFAULT_IDLE_CUE = AudioCue(200.0, "sine", 0.15, 0.0, 0.05)
DEFAULT_IDLE_PATTERN: Tuple[int, ...] = (20,)


class AudioSink(Protocol):
    def play_cue(self, cue: AudioCue) -> None:
        ...


class HapticSink(Protocol):
    def vibrate(self, pattern: Sequence[int]) -> None:
        ...


TransitionCallback = Callable[[Any, Any], None]
ErrorCallback = Callable[[str, BaseException], None]


def _label_key(label: Any) -> str:
    return getattr(label, "value", label)


class FeedbackDispatcher:
    """Detects direction changes and emits sound/vibration once per change."""

    def __init__(
        self,
        audio_sink: Optional[AudioSink] = None,
        haptic_sink: Optional[HapticSink] = None,
        config: Optional[MotionControllerConfig] = None,
        tables: Optional[FeedbackTablesConfig] = None,
        on_transition: Optional[TransitionCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.audio_sink = audio_sink
        self.haptic_sink = haptic_sink
        self.config = config if config else MotionControllerConfig()
        self.tables = tables if tables else load_feedback_tables_config()
        self.on_transition = on_transition
        self.on_error = on_error
        self.logger = get_motion_logger().feedback

        self.current: Any = Direction.IDLE
        self.previous: Any = Direction.IDLE
        self.transitions = 0
        self.sink_failures = 0

    def cue_for(self, label: Any) -> AudioCue:
        cues = self.tables.audio_cues
        return cues.get(_label_key(label)) or cues.get(IDLE_KEY) or DEFAULT_IDLE_CUE

    def pattern_for(self, label: Any) -> Tuple[int, ...]:
        patterns = self.tables.haptic_patterns
        return tuple(patterns.get(_label_key(label)) or patterns.get(IDLE_KEY) or DEFAULT_IDLE_PATTERN)

    def dispatch(self, label: Any) -> bool:
        """
        Feed the latest classification.

        Returns:
            True if the label changed and feedback was dispatched
        """
        if label == self.current:
            return False

        self.previous = self.current
        self.current = label
        self.transitions += 1

        if self.on_transition is not None:
            self.on_transition(self.current, self.previous)

        if self.config.enable_audio and self.audio_sink is not None:
            self._run_sink("audio", self.audio_sink.play_cue, self.cue_for(label))

        if self.config.enable_vibration and self.haptic_sink is not None:
            self._run_sink("haptic", self.haptic_sink.vibrate, self.pattern_for(label))

        return True

    def _run_sink(self, kind: str, action: Callable[[Any], None], payload: Any) -> None:
        try:
            action(payload)
        except FeedbackSinkUnavailable as e:
            self._sink_failed(kind, e)
        except Exception as e:
            self._sink_failed(kind, FeedbackSinkUnavailable(f"{kind} sink error: {e}"))

    def _sink_failed(self, kind: str, error: FeedbackSinkUnavailable) -> None:
        self.sink_failures += 1
        self.logger.warning("%s feedback skipped: %s", kind.capitalize(), error)
        if self.on_error is not None:
            self.on_error(f"{kind} feedback unavailable", error)

    def reset(self) -> None:
        self.current = Direction.IDLE
        self.previous = Direction.IDLE

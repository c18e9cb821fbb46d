"""
Haptic output for direction feedback.

Patterns follow the web Vibration API: a tuple of millisecond durations,
alternating vibrate / pause, starting with vibrate.

Desktop Python has no standard actuator API, so the default device only
logs and records the requested patterns. Hosts with real hardware (a phone
bridge, a game-pad rumble motor) pass their own object with a ``vibrate``
method to the controller.

Usage:
    device = LoggingHapticDevice()
    device.vibrate((30, 30, 30))
    device.patterns  # [(30, 30, 30)]
"""

from typing import List, Sequence, Tuple

from tilt_control.core.errors import FeedbackSinkUnavailable
from tilt_control.core.telemetry.loggers.motion_logger import get_motion_logger


def validate_pattern(pattern: Sequence[int]) -> Tuple[int, ...]:
    if not pattern:
        raise FeedbackSinkUnavailable("empty vibration pattern")
    durations = tuple(int(p) for p in pattern)
    if any(d < 0 for d in durations):
        raise FeedbackSinkUnavailable(f"negative duration in vibration pattern {durations}")
    return durations


class LoggingHapticDevice:
    """Records vibration requests instead of driving an actuator."""

    def __init__(self) -> None:
        self.logger = get_motion_logger().feedback
        self.patterns: List[Tuple[int, ...]] = []

    def vibrate(self, pattern: Sequence[int]) -> None:
        durations = validate_pattern(pattern)
        self.patterns.append(durations)
        self.logger.debug("Vibrate %s (%d ms total on)", list(durations), sum(durations[::2]))

"""
Shake detection from linear acceleration samples.

This module flags vigorous shaking of the device from the magnitude of its
linear acceleration (gravity excluded). It is independent of orientation
classification and never touches the direction state.

Features:
- Magnitude history (~50 samples) for diagnostics
- Single threshold on the instantaneous magnitude (15 m/s² default)
- Type-safe motion state literals

Motion States:
- 'still': magnitude at or below the threshold
- 'shaking': magnitude above the threshold

Usage:
    detector = ShakeDetector()
    intensity = detector.update(Acceleration(0.5, 18.0, 1.2))
    if intensity is not None:
        # Fire the shake callback
"""

from collections import deque
from typing import Literal, Optional

from tilt_control.core.imu.orientation import Acceleration
from tilt_control.utils.config_sections import ShakeConfig, load_shake_config

MotionState = Literal["still", "shaking"]


class ShakeDetector:
    """Detect shake gestures from acceleration magnitude."""

    def __init__(self, config: Optional[ShakeConfig] = None) -> None:
        self.config = config if config else load_shake_config()
        self.magnitude_history = deque(maxlen=self.config.history_size)
        self.last_motion_state: MotionState = "still"
        self.last_magnitude = 0.0
        self.shake_count = 0

    def update(self, acceleration: Acceleration) -> Optional[float]:
        """Record a sample; return its intensity if it counts as a shake."""
        magnitude = acceleration.magnitude
        self.last_magnitude = magnitude
        self.magnitude_history.append(magnitude)

        if magnitude > self.config.threshold:
            self.last_motion_state = "shaking"
            self.shake_count += 1
            return magnitude

        self.last_motion_state = "still"
        return None

    def peak_magnitude(self) -> float:
        return max(self.magnitude_history, default=0.0)

    def reset(self) -> None:
        self.magnitude_history.clear()
        self.last_motion_state = "still"
        self.last_magnitude = 0.0
        self.shake_count = 0

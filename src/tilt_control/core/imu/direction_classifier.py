"""
Discrete direction classification from calibration-relative tilt.

Rules, applied to the smoothed orientation minus the baseline:
1. deltaAlpha is normalized into (-180, 180]; deltaBeta is a plain difference
2. both |deltas| below the dead zone → idle
3. (optional) either |delta| above max_threshold → over_threshold
4. beta dominant (|dβ| > |dα|): dβ > threshold → up, dβ < -threshold → down
5. otherwise: dα < -threshold → right, dα > threshold → left
6. anything else → idle

Negative alpha maps to "right": device alpha grows counter-clockwise, so a
clockwise turn (to the user's right) decreases it.
"""

from enum import Enum
from typing import Optional, Tuple

from tilt_control.core.imu.angle_math import angle_delta
from tilt_control.core.imu.orientation import CalibrationBaseline, Orientation
from tilt_control.utils.config_sections import MotionControllerConfig


class Direction(str, Enum):
    IDLE = "idle"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    OVER_THRESHOLD = "over_threshold"


def relative_movement(smoothed: Orientation, baseline: CalibrationBaseline) -> Tuple[float, float]:
    """Return (deltaAlpha, deltaBeta) of ``smoothed`` against the baseline."""
    delta_alpha = angle_delta(smoothed.alpha, baseline.alpha)
    delta_beta = smoothed.beta - baseline.beta
    return delta_alpha, delta_beta


class DirectionClassifier:
    """Maps calibration-relative deltas to a Direction."""

    def __init__(self, config: Optional[MotionControllerConfig] = None) -> None:
        self.config = config if config else MotionControllerConfig()

    def classify_deltas(self, delta_alpha: float, delta_beta: float) -> Direction:
        cfg = self.config
        abs_alpha = abs(delta_alpha)
        abs_beta = abs(delta_beta)

        if abs_alpha < cfg.dead_zone and abs_beta < cfg.dead_zone:
            return Direction.IDLE

        if cfg.max_threshold_enabled and (abs_alpha > cfg.max_threshold or abs_beta > cfg.max_threshold):
            return Direction.OVER_THRESHOLD

        if abs_beta > abs_alpha:
            if delta_beta > cfg.movement_threshold:
                return Direction.UP
            if delta_beta < -cfg.movement_threshold:
                return Direction.DOWN
        else:
            if delta_alpha < -cfg.movement_threshold:
                return Direction.RIGHT
            if delta_alpha > cfg.movement_threshold:
                return Direction.LEFT

        return Direction.IDLE

    def classify(self, smoothed: Orientation, baseline: CalibrationBaseline) -> Direction:
        if not baseline.established:
            raise ValueError("cannot classify before a calibration baseline is established")
        return self.classify_deltas(*relative_movement(smoothed, baseline))

"""
Exponential moving average over the three orientation channels.

    smoothed' = smoothed * (1 - f) + raw * f

The first accepted sample bootstraps the state (smoothed := raw) so the
average does not start biased towards a zero orientation. No wrap correction
is applied here: alpha deltas are normalized later, against the calibration
baseline, by the direction classifier.
"""

from typing import Optional

from tilt_control.core.imu.orientation import Orientation


class SmoothingFilter:
    """EMA filter holding the current smoothed orientation."""

    def __init__(self, factor: float = 0.3) -> None:
        self.factor = factor
        self._smoothed: Optional[Orientation] = None

    @property
    def factor(self) -> float:
        return self._factor

    @factor.setter
    def factor(self, value: float) -> None:
        if not 0.0 < value <= 1.0:
            raise ValueError(f"smoothing factor must be in (0, 1], got {value}")
        self._factor = float(value)

    @property
    def smoothed(self) -> Optional[Orientation]:
        """Current smoothed orientation, None until the first sample."""
        return self._smoothed

    def update(self, raw: Orientation) -> Orientation:
        if self._smoothed is None:
            self._smoothed = raw
            return raw

        f = self._factor
        prev = self._smoothed
        self._smoothed = Orientation(
            alpha=prev.alpha * (1 - f) + raw.alpha * f,
            beta=prev.beta * (1 - f) + raw.beta * f,
            gamma=prev.gamma * (1 - f) + raw.gamma * f,
        )
        return self._smoothed

    def reset(self) -> None:
        self._smoothed = None

"""
Value types for device orientation samples.

Orientation angles follow the device-orientation convention:
- alpha: rotation around the z axis, circular, wraps at ±180°
- beta: front/back tilt, treated as linear
- gamma: left/right tilt, treated as linear

Samples arrive from the host as mappings (``{"alpha": .., "beta": .., "gamma": ..}``),
attribute objects (anything with ``.alpha``/``.beta``/``.gamma``), 3-item sequences
or ready-made :class:`Orientation` instances. :func:`parse_sample` normalizes all of
them and raises :class:`MalformedSample` for anything it cannot read.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Iterable, Mapping

from tilt_control.core.errors import MalformedSample

CHANNELS = ("alpha", "beta", "gamma")
ACCEL_CHANNELS = ("x", "y", "z")


def _as_finite_float(name: str, value: Any) -> float:
    # bool is a Real subclass; a True/False channel is a host bug, not an angle
    if value is None or isinstance(value, bool) or not isinstance(value, Real):
        raise MalformedSample(f"channel '{name}' is not numeric: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise MalformedSample(f"channel '{name}' is not finite: {value!r}")
    return number


def _read_channels(sample: Any, names: Iterable[str]) -> list:
    names = tuple(names)
    if isinstance(sample, Mapping):
        missing = [n for n in names if n not in sample]
        if missing:
            raise MalformedSample(f"missing channel(s): {', '.join(missing)}")
        return [_as_finite_float(n, sample[n]) for n in names]

    if isinstance(sample, (list, tuple)):
        if len(sample) != len(names):
            raise MalformedSample(f"expected {len(names)} values, got {len(sample)}")
        return [_as_finite_float(n, v) for n, v in zip(names, sample)]

    if all(hasattr(sample, n) for n in names):
        return [_as_finite_float(n, getattr(sample, n)) for n in names]

    raise MalformedSample(f"unsupported sample type: {type(sample).__name__}")


@dataclass(frozen=True)
class Orientation:
    """Three rotation angles in degrees. Immutable, one instance per sample."""

    alpha: float
    beta: float
    gamma: float

    @classmethod
    def zero(cls) -> "Orientation":
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_mapping(cls, sample: Any) -> "Orientation":
        """Build an Orientation from any supported sample shape."""
        alpha, beta, gamma = _read_channels(sample, CHANNELS)
        return cls(alpha, beta, gamma)

    def as_dict(self) -> dict:
        return {"alpha": self.alpha, "beta": self.beta, "gamma": self.gamma}

    def as_tuple(self) -> tuple:
        return (self.alpha, self.beta, self.gamma)


@dataclass(frozen=True)
class CalibrationBaseline:
    """Zero reference subtracted from live readings."""

    orientation: Orientation
    established: bool = False
    sample_count: int = 0

    @classmethod
    def empty(cls) -> "CalibrationBaseline":
        return cls(orientation=Orientation.zero(), established=False, sample_count=0)

    @property
    def alpha(self) -> float:
        return self.orientation.alpha

    @property
    def beta(self) -> float:
        return self.orientation.beta

    @property
    def gamma(self) -> float:
        return self.orientation.gamma


@dataclass(frozen=True)
class Acceleration:
    """Linear acceleration in m/s² (gravity excluded)."""

    x: float
    y: float
    z: float

    @classmethod
    def from_mapping(cls, sample: Any) -> "Acceleration":
        x, y, z = _read_channels(sample, ACCEL_CHANNELS)
        return cls(x, y, z)

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)


def parse_sample(sample: Any) -> Orientation:
    # ready-made instances get the same finiteness check
    validated = Orientation.from_mapping(sample)
    return sample if isinstance(sample, Orientation) else validated


def parse_motion(sample: Any) -> Acceleration:
    validated = Acceleration.from_mapping(sample)
    return sample if isinstance(sample, Acceleration) else validated

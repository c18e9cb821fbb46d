"""Circular angle helpers (degrees)."""

import math


def normalize_angle(angle: float) -> float:
    """
    Fold any finite angle into (-180, 180].

    A move from 179° to -179° therefore reads as a 2° delta instead of 358°.
    """
    if not math.isfinite(angle):
        raise ValueError(f"cannot normalize non-finite angle: {angle!r}")

    wrapped = math.fmod(angle, 360.0)
    if wrapped > 180.0:
        wrapped -= 360.0
    elif wrapped <= -180.0:
        wrapped += 360.0
    return wrapped


def angle_delta(current: float, reference: float) -> float:
    """Shortest signed rotation from ``reference`` to ``current``."""
    return normalize_angle(current - reference)

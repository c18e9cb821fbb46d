"""
Orientation sample sources for development and replay without a device.

The real host (a browser bridge, a phone app) calls
``MotionController.accept_sample`` from its own event loop. These sources
play the same role for local runs:

Operating modes:
- ReplaySampleSource: replays a recorded CSV (``alpha,beta,gamma`` columns,
  optional ``t`` column in seconds) at its original pace
- SyntheticTiltSource: scripted tilt gestures with seeded sensor noise

Both push samples through the injected Clock, so tests and the CLI can run
them faster than real time.

Usage:
    source = SyntheticTiltSource(rate_hz=60)
    await source.run(controller)
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from tilt_control.core.clock import AsyncioClock, Clock
from tilt_control.core.imu.orientation import Orientation

log = logging.getLogger("SampleSource")


class SampleSink(Protocol):
    def accept_sample(self, sample) -> None:
        ...


class SampleSource(Protocol):
    async def run(self, sink: SampleSink) -> int:
        """Deliver every sample to ``sink``; returns the number delivered."""
        ...


def load_csv_samples(path: Union[str, Path]) -> List[Tuple[Optional[float], dict]]:
    """
    Read recorded samples.

    Rows keep their raw channel strings converted to float where possible;
    unreadable values become None so the controller drops them as malformed,
    just as it would for a live glitch.
    """
    rows: List[Tuple[Optional[float], dict]] = []
    with open(path, newline="") as handle:
        reader = csv.DictReader(handle)
        missing = {"alpha", "beta", "gamma"} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"{path}: missing column(s) {', '.join(sorted(missing))}")

        for record in reader:
            sample = {key: _to_float(record.get(key)) for key in ("alpha", "beta", "gamma")}
            rows.append((_to_float(record.get("t")), sample))
    return rows


def _to_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip() == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ReplaySampleSource:
    """Replays recorded samples, honoring their timestamps when present."""

    def __init__(
        self,
        samples: Sequence[Tuple[Optional[float], dict]],
        clock: Optional[Clock] = None,
        default_interval: float = 1.0 / 60.0,
        speed: float = 1.0,
    ) -> None:
        self.samples = list(samples)
        self.clock = clock if clock else AsyncioClock()
        self.default_interval = default_interval
        self.speed = speed

    @classmethod
    def from_csv(cls, path: Union[str, Path], **kwargs) -> "ReplaySampleSource":
        samples = load_csv_samples(path)
        log.info(f"Loaded {len(samples)} samples from {path}")
        return cls(samples, **kwargs)

    async def run(self, sink: SampleSink) -> int:
        delivered = 0
        last_t: Optional[float] = None
        for t, sample in self.samples:
            if delivered:
                if t is not None and last_t is not None:
                    interval = max(0.0, t - last_t)
                else:
                    interval = self.default_interval
                await self.clock.sleep(interval / self.speed)
            sink.accept_sample(sample)
            delivered += 1
            if t is not None:
                last_t = t
        return delivered


@dataclass(frozen=True)
class TiltSegment:
    """Move linearly to ``target`` over ``ramp`` seconds, then hold for ``hold`` seconds."""

    target: Orientation
    ramp: float = 0.3
    hold: float = 1.0


DEFAULT_SCRIPT = (
    TiltSegment(Orientation(0.0, 0.0, 0.0), ramp=0.0, hold=2.5),
    TiltSegment(Orientation(0.0, 35.0, 0.0)),
    TiltSegment(Orientation(0.0, 0.0, 0.0)),
    TiltSegment(Orientation(35.0, 0.0, 0.0)),
    TiltSegment(Orientation(0.0, 0.0, 0.0)),
    TiltSegment(Orientation(-35.0, 0.0, 0.0)),
    TiltSegment(Orientation(0.0, 0.0, 0.0)),
    TiltSegment(Orientation(0.0, -35.0, 0.0)),
    TiltSegment(Orientation(0.0, 0.0, 0.0)),
)


class SyntheticTiltSource:
    """
    Generates a scripted tilt sequence around a resting orientation.

    The script is relative to ``rest``; alpha wraps at ±180°
    like a real compass-style sensor would report it.
    """

    def __init__(
        self,
        script: Sequence[TiltSegment] = DEFAULT_SCRIPT,
        rest: Orientation = Orientation(120.0, 10.0, 0.0),
        rate_hz: float = 60.0,
        noise_std: float = 0.3,
        seed: Optional[int] = 0,
        clock: Optional[Clock] = None,
    ) -> None:
        self.script = list(script)
        self.rest = rest
        self.rate_hz = rate_hz
        self.noise_std = noise_std
        self.rng = np.random.default_rng(seed)
        self.clock = clock if clock else AsyncioClock()

    def generate(self) -> Iterator[Orientation]:
        dt = 1.0 / self.rate_hz
        position = np.array(self.script[0].target.as_tuple() if self.script else (0.0, 0.0, 0.0))
        base = np.array(self.rest.as_tuple())

        for segment in self.script:
            target = np.array(segment.target.as_tuple())
            ramp_steps = int(round(segment.ramp / dt))
            hold_steps = max(1, int(round(segment.hold / dt)))

            for step in range(1, ramp_steps + 1):
                yield self._emit(base + position + (target - position) * step / ramp_steps)
            position = target
            for _ in range(hold_steps):
                yield self._emit(base + position)

    def _emit(self, values: np.ndarray) -> Orientation:
        noisy = values + self.rng.normal(0.0, self.noise_std, size=3)
        alpha = (noisy[0] + 180.0) % 360.0 - 180.0
        return Orientation(float(alpha), float(noisy[1]), float(noisy[2]))

    async def run(self, sink: SampleSink) -> int:
        delivered = 0
        dt = 1.0 / self.rate_hz
        for sample in self.generate():
            if delivered:
                await self.clock.sleep(dt)
            sink.accept_sample(sample)
            delivered += 1
        return delivered

"""Shared stubs for controller-level tests."""

from __future__ import annotations

import asyncio
from typing import List, Sequence, Tuple

import pytest

from tilt_control.core.clock import SimulatedClock
from tilt_control.core.motion_controller import MotionController
from tilt_control.utils.config_sections import AudioCue, MotionControllerConfig


class RecordingAudio:
    def __init__(self) -> None:
        self.cues: List[AudioCue] = []
        self.closed = False

    def play_cue(self, cue: AudioCue) -> None:
        self.cues.append(cue)

    def close(self) -> None:
        self.closed = True


class RecordingHaptics:
    def __init__(self) -> None:
        self.patterns: List[Tuple[int, ...]] = []

    def vibrate(self, pattern: Sequence[int]) -> None:
        self.patterns.append(tuple(pattern))


class Rig:
    """A controller wired to recording sinks and a simulated clock."""

    def __init__(self, **config) -> None:
        self.clock = SimulatedClock()
        self.audio = RecordingAudio()
        self.haptics = RecordingHaptics()
        self.controller = MotionController(
            MotionControllerConfig(**config),
            audio_sink=self.audio,
            haptic_sink=self.haptics,
            clock=self.clock,
        )
        self.transitions: list = []
        self.errors: list = []
        self.baselines: list = []
        self.controller.on_direction_change(lambda new, old: self.transitions.append((new, old)))
        self.controller.on_error(lambda message, error: self.errors.append((message, error)))
        self.controller.on_calibration_complete(lambda b: self.baselines.append((self.clock.monotonic(), b)))

    async def feed(self, sample, seconds: float, rate: float = 60.0) -> None:
        """Deliver ``sample`` at ``rate`` Hz for ``seconds`` of simulated time."""
        for _ in range(int(round(seconds * rate))):
            self.controller.accept_sample(sample)
            await self.clock.sleep(1.0 / rate)

    async def calibrate_at(self, sample, mode: str = "timed"):
        baseline, _ = await asyncio.gather(
            self.controller.start_calibration(mode),
            self.feed(sample, 1.2),
        )
        return baseline


@pytest.fixture()
def rig() -> Rig:
    return Rig()


@pytest.fixture()
def rig_factory():
    return Rig

"""
Calibration baseline computation.

The engine keeps two sample stores:
- SampleHistory: the 50 most recent raw samples (FIFO), used only by the
  stability heuristic
- CalibrationBuffer: raw samples collected while no baseline is established
  or a calibration window is open, capped at 100 (extra samples are dropped,
  not evicted)

A timed calibration opens the window, waits ``calibration_time`` on the
injected clock (polling once per frame), then sets the baseline to the
per-channel arithmetic mean of the buffer. Re-calibration replaces the
baseline wholesale.

Auto-calibration first waits for the sensor to settle: every poll tick the
last 5 history entries must sit within 2° of their own alpha/beta means, and
10 consecutive stable ticks end the wait. A timeout ends it too; stability is
advisory.

Usage:
    engine = CalibrationEngine()
    engine.record(sample)              # for every accepted raw sample
    baseline = await engine.run_timed(clock, 1.0)
"""

from collections import deque
from typing import List, Optional

import numpy as np

from tilt_control.core.clock import Clock
from tilt_control.core.errors import CalibrationEmpty
from tilt_control.core.imu.orientation import CalibrationBaseline, Orientation
from tilt_control.core.telemetry.loggers.motion_logger import get_motion_logger
from tilt_control.utils.config_sections import StabilityConfig, load_stability_config


class CalibrationEngine:
    """Collects raw samples and computes the zero-reference baseline."""

    def __init__(self, config: Optional[StabilityConfig] = None) -> None:
        self.config = config if config else load_stability_config()
        self.history: deque = deque(maxlen=self.config.history_size)
        self.buffer: List[Orientation] = []
        self.baseline = CalibrationBaseline.empty()
        self.calibrating = False
        self.window_id = 0
        self.logger = get_motion_logger().calibration

    @property
    def is_established(self) -> bool:
        return self.baseline.established

    @property
    def is_collecting(self) -> bool:
        return self.calibrating or not self.baseline.established

    def record(self, sample: Orientation) -> None:
        """Store an accepted raw sample in the history and, if collecting, the buffer."""
        self.history.append(sample)
        if self.is_collecting and len(self.buffer) < self.config.calibration_buffer_size:
            self.buffer.append(sample)

    def begin(self) -> int:
        """Open a calibration window with an empty buffer; returns the window id."""
        self.buffer.clear()
        self.calibrating = True
        self.window_id += 1
        self.logger.info("Calibration started, keep the device still...")
        return self.window_id

    def complete(self) -> CalibrationBaseline:
        """
        Close the window and compute the new baseline.

        Raises:
            CalibrationEmpty: no samples were collected; the previous baseline is kept
        """
        self.calibrating = False
        if not self.buffer:
            self.logger.warning("Calibration window closed with no samples, baseline unchanged")
            raise CalibrationEmpty("no samples collected during calibration window")

        samples = np.asarray([s.as_tuple() for s in self.buffer], dtype=float)
        alpha, beta, gamma = samples.mean(axis=0)
        self.baseline = CalibrationBaseline(
            orientation=Orientation(float(alpha), float(beta), float(gamma)),
            established=True,
            sample_count=len(self.buffer),
        )
        self.buffer.clear()
        self.logger.info(
            "Calibration complete from %d samples: alpha=%.2f beta=%.2f gamma=%.2f",
            self.baseline.sample_count,
            alpha,
            beta,
            gamma,
        )
        return self.baseline

    def cancel(self) -> None:
        if self.calibrating:
            self.logger.info("Calibration cancelled")
        self.calibrating = False
        self.window_id += 1
        self.buffer.clear()

    def reset(self) -> None:
        self.cancel()
        self.history.clear()
        self.baseline = CalibrationBaseline.empty()

    def is_stable(self) -> bool:
        """True when the most recent window of raw samples is within tolerance of its mean."""
        window = self.config.window
        if len(self.history) < window:
            return False

        recent = np.asarray([(s.alpha, s.beta) for s in list(self.history)[-window:]], dtype=float)
        deviation = np.abs(recent - recent.mean(axis=0))
        return bool(np.all(deviation < self.config.tolerance))

    async def wait_for_stable(self, clock: Clock, timeout_ms: Optional[float] = None) -> bool:
        """
        Poll until the sensor has been stable for enough consecutive ticks.

        Returns:
            True if stability was reached, False if the timeout elapsed first
        """
        timeout = (timeout_ms if timeout_ms is not None else self.config.timeout_ms) / 1000.0
        interval = self.config.poll_interval_ms / 1000.0
        start = clock.monotonic()
        stable_ticks = 0

        while True:
            if clock.monotonic() - start > timeout:
                self.logger.info("Stability wait timed out after %.1fs, calibrating anyway", timeout)
                return False

            if self.is_stable():
                stable_ticks += 1
                if stable_ticks >= self.config.required_ticks:
                    self.logger.debug("Sensor stable for %d ticks", stable_ticks)
                    return True
            else:
                stable_ticks = 0

            await clock.sleep(interval)

    async def run_timed(self, clock: Clock, duration: float) -> CalibrationBaseline:
        """
        Collect samples for ``duration`` seconds, then compute the baseline.

        Raises:
            CalibrationEmpty: nothing arrived during the window
        """
        window = self.begin()
        start = clock.monotonic()
        try:
            while clock.monotonic() - start <= duration:
                await clock.sleep(self.config.frame_interval)
        except BaseException:
            # a newer window may already be open; leave it alone
            if self.window_id == window:
                self.cancel()
            raise
        return self.complete()

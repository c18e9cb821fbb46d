"""
Motion controller: the single owner of all tilt-control state.

This module wires the processing components together and exposes the
host-facing API (sample intake, calibration, subscriptions, lifecycle).

Pipeline (per accepted orientation sample, synchronous):
    raw → CalibrationEngine.record (history + calibration buffer)
        → SmoothingFilter.update
        → DirectionClassifier.classify      (READY phase only)
        → FeedbackDispatcher.dispatch       (edge-triggered sound/vibration)
        → sensor_data event

Phases:
- UNCALIBRATED: no baseline yet, samples fill the calibration buffer
- CALIBRATING: a calibration (stability wait and/or timed window) is running
- READY: baseline established, directions are classified

Calibration runs as a coroutine on the host's asyncio loop, waiting on the
injected Clock between ticks. Samples keep arriving and are processed
immediately while it waits.

Usage:
    controller = MotionController(audio_sink=AudioSystem())
    controller.on("direction_change", lambda new, old: print(old, "->", new))
    controller.accept_sample({"alpha": 10.0, "beta": 2.0, "gamma": 0.5})
    baseline = await controller.start_calibration("auto")
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from tilt_control.core.audio.audio_system import AudioSystem
from tilt_control.core.audio.feedback_dispatcher import AudioSink, FeedbackDispatcher, HapticSink
from tilt_control.core.clock import AsyncioClock, Clock
from tilt_control.core.errors import CalibrationEmpty, ControllerDisposed, MalformedSample
from tilt_control.core.hardware.haptic_device import LoggingHapticDevice
from tilt_control.core.imu.calibration import CalibrationEngine
from tilt_control.core.imu.direction_classifier import Direction, DirectionClassifier
from tilt_control.core.imu.motion_detector import ShakeDetector
from tilt_control.core.imu.orientation import CalibrationBaseline, Orientation, parse_motion, parse_sample
from tilt_control.core.imu.smoothing_filter import SmoothingFilter
from tilt_control.core.telemetry.loggers.motion_logger import get_motion_logger
from tilt_control.utils.config_sections import (
    FeedbackTablesConfig,
    MotionControllerConfig,
    ShakeConfig,
    StabilityConfig,
    apply_platform_profile,
    load_logging_config,
    load_motion_controller_config,
)

log = logging.getLogger(__name__)


class ControllerPhase(str, Enum):
    UNCALIBRATED = "uncalibrated"
    CALIBRATING = "calibrating"
    READY = "ready"


class CalibrationMode(str, Enum):
    TIMED = "timed"
    AUTO = "auto"


class EventKind(str, Enum):
    DIRECTION_CHANGE = "direction_change"
    CALIBRATION_COMPLETE = "calibration_complete"
    SENSOR_DATA = "sensor_data"
    ERROR = "error"
    SHAKE = "shake"


# Event names used by the web host
EVENT_ALIASES = {
    "directionChange": EventKind.DIRECTION_CHANGE,
    "calibrationComplete": EventKind.CALIBRATION_COMPLETE,
    "sensorData": EventKind.SENSOR_DATA,
    "shakeDetected": EventKind.SHAKE,
}


@dataclass(frozen=True)
class SensorUpdate:
    """Payload of the sensor_data event."""

    raw: Orientation
    smoothed: Orientation
    calibration: Optional[Orientation]
    direction: Direction


@dataclass(frozen=True)
class ControllerState:
    """Read-only snapshot returned by ``MotionController.get_state``."""

    phase: ControllerPhase
    active: bool
    disposed: bool
    current_direction: Direction
    previous_direction: Direction
    calibration: Optional[Orientation]
    raw: Optional[Orientation]
    smoothed: Optional[Orientation]
    history_length: int
    calibration_buffer_length: int
    accepted_samples: int
    dropped_samples: int


@dataclass
class Subscription:
    """Handle returned by ``MotionController.on``; cancel() unsubscribes."""

    controller: "MotionController"
    kind: EventKind
    handler: Callable[..., Any]

    def cancel(self) -> None:
        self.controller._unsubscribe(self.kind, self.handler)

    @property
    def active(self) -> bool:
        return self.controller._handlers.get(self.kind) is self.handler


def _event_kind(event: Union[EventKind, str]) -> EventKind:
    if isinstance(event, EventKind):
        return event
    if event in EVENT_ALIASES:
        return EVENT_ALIASES[event]
    try:
        return EventKind(event)
    except ValueError:
        raise ValueError(f"unknown event '{event}'") from None


class MotionController:
    """Turns a stream of orientation samples into direction events and feedback."""

    def __init__(
        self,
        config: Optional[MotionControllerConfig] = None,
        *,
        audio_sink: Optional[AudioSink] = None,
        haptic_sink: Optional[HapticSink] = None,
        clock: Optional[Clock] = None,
        stability_config: Optional[StabilityConfig] = None,
        feedback_tables: Optional[FeedbackTablesConfig] = None,
        shake_config: Optional[ShakeConfig] = None,
        platform: Optional[str] = None,
    ) -> None:
        self.config = config if config else load_motion_controller_config()
        if platform:
            self.config = apply_platform_profile(self.config, platform)
        self.platform = platform

        self._logging_config = load_logging_config()
        self.motion_logger = get_motion_logger(
            session_dir=self._logging_config.session_dir, debug=self.config.debug_mode
        )
        self.motion_logger.set_debug(self.config.debug_mode)
        self.logger = self.motion_logger.sensor

        self.clock: Clock = clock if clock else AsyncioClock()
        self._owns_audio = audio_sink is None
        self.audio_sink = audio_sink if audio_sink is not None else AudioSystem()
        self.haptic_sink = haptic_sink if haptic_sink is not None else LoggingHapticDevice()

        self.calibration = CalibrationEngine(stability_config)
        self.smoothing = SmoothingFilter(self.config.smoothing_factor)
        self.classifier = DirectionClassifier(self.config)
        self.shake_detector = ShakeDetector(shake_config)
        self.dispatcher = FeedbackDispatcher(
            audio_sink=self.audio_sink,
            haptic_sink=self.haptic_sink,
            config=self.config,
            tables=feedback_tables,
            on_transition=self._on_transition,
            on_error=self._report_error,
        )

        self._handlers: Dict[EventKind, Callable[..., Any]] = {}
        self._active = True
        self._disposed = False
        self._calibration_task: Optional[asyncio.Future] = None
        self._calibration_generation = 0
        self._calibration_running = False

        self.last_raw: Optional[Orientation] = None
        self.samples_accepted = 0
        self.samples_dropped = 0

        self.logger.debug("MotionController initialized (platform=%s)", platform or "unknown")

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def phase(self) -> ControllerPhase:
        if self._calibration_running:
            return ControllerPhase.CALIBRATING
        if self.calibration.is_established:
            return ControllerPhase.READY
        return ControllerPhase.UNCALIBRATED

    @property
    def is_active(self) -> bool:
        return self._active and not self._disposed

    @property
    def is_calibrated(self) -> bool:
        return self.calibration.is_established

    @property
    def current_direction(self) -> Direction:
        return self.dispatcher.current

    @property
    def previous_direction(self) -> Direction:
        return self.dispatcher.previous

    def classify_once(self) -> Direction:
        """Current direction label (no side effects)."""
        return self.dispatcher.current

    def get_calibration(self) -> Optional[Orientation]:
        baseline = self.calibration.baseline
        return baseline.orientation if baseline.established else None

    def get_config(self) -> MotionControllerConfig:
        return self.config

    def get_state(self) -> ControllerState:
        return ControllerState(
            phase=self.phase,
            active=self.is_active,
            disposed=self._disposed,
            current_direction=self.dispatcher.current,
            previous_direction=self.dispatcher.previous,
            calibration=self.get_calibration(),
            raw=self.last_raw,
            smoothed=self.smoothing.smoothed,
            history_length=len(self.calibration.history),
            calibration_buffer_length=len(self.calibration.buffer),
            accepted_samples=self.samples_accepted,
            dropped_samples=self.samples_dropped,
        )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on(self, event: Union[EventKind, str], handler: Callable[..., Any]) -> Subscription:
        """
        Register the handler for an event kind, replacing any previous one.

        Handler signatures:
            direction_change(new: Direction, old: Direction)
            calibration_complete(baseline: Orientation)
            sensor_data(update: SensorUpdate)
            error(message: str, error: BaseException)
            shake(intensity: float)
        """
        kind = _event_kind(event)
        self._handlers[kind] = handler
        return Subscription(self, kind, handler)

    def on_direction_change(self, handler: Callable[[Direction, Direction], Any]) -> Subscription:
        return self.on(EventKind.DIRECTION_CHANGE, handler)

    def on_calibration_complete(self, handler: Callable[[Orientation], Any]) -> Subscription:
        return self.on(EventKind.CALIBRATION_COMPLETE, handler)

    def on_sensor_data(self, handler: Callable[[SensorUpdate], Any]) -> Subscription:
        return self.on(EventKind.SENSOR_DATA, handler)

    def on_error(self, handler: Callable[[str, BaseException], Any]) -> Subscription:
        return self.on(EventKind.ERROR, handler)

    def on_shake(self, handler: Callable[[float], Any]) -> Subscription:
        return self.on(EventKind.SHAKE, handler)

    def _unsubscribe(self, kind: EventKind, handler: Callable[..., Any]) -> None:
        if self._handlers.get(kind) is handler:
            del self._handlers[kind]

    def _emit(self, kind: EventKind, *args: Any) -> None:
        handler = self._handlers.get(kind)
        if handler is None:
            return
        try:
            handler(*args)
        except Exception as e:
            log.exception("%s handler raised", kind.value)
            if kind is not EventKind.ERROR:
                self._report_error(f"{kind.value} handler failed", e)

    def _report_error(self, message: str, error: BaseException) -> None:
        self._emit(EventKind.ERROR, message, error)

    def _on_transition(self, new: Direction, old: Direction) -> None:
        self.motion_logger.direction.info("%s -> %s", old.value, new.value)
        self._emit(EventKind.DIRECTION_CHANGE, new, old)

    # ------------------------------------------------------------------
    # Sample intake
    # ------------------------------------------------------------------

    def accept_sample(self, sample: Any) -> None:
        """Feed one raw orientation reading. Discarded while paused or disposed."""
        if not self.is_active:
            return

        try:
            raw = parse_sample(sample)
        except MalformedSample as e:
            self._drop_sample(e)
            return

        self.last_raw = raw
        self.samples_accepted += 1
        self.calibration.record(raw)
        smoothed = self.smoothing.update(raw)

        if self.phase is ControllerPhase.READY:
            direction = self.classifier.classify(smoothed, self.calibration.baseline)
            self.dispatcher.dispatch(direction)

        self._emit(
            EventKind.SENSOR_DATA,
            SensorUpdate(
                raw=raw,
                smoothed=smoothed,
                calibration=self.get_calibration(),
                direction=self.dispatcher.current,
            ),
        )

    def accept_motion(self, sample: Any) -> None:
        """Feed one linear-acceleration reading (m/s²) for shake detection."""
        if not self.is_active:
            return
        if sample is None:
            # devices without a linear-acceleration sensor report null every event
            return

        try:
            acceleration = parse_motion(sample)
        except MalformedSample as e:
            self._drop_sample(e)
            return

        intensity = self.shake_detector.update(acceleration)
        if intensity is not None:
            self.logger.info("Shake detected (%.1f m/s²)", intensity)
            self._emit(EventKind.SHAKE, intensity)

    def _drop_sample(self, error: MalformedSample) -> None:
        self.samples_dropped += 1
        every = max(1, self._logging_config.malformed_log_every)
        if self.samples_dropped == 1 or self.samples_dropped % every == 0:
            self.logger.debug("Dropped malformed sample #%d: %s", self.samples_dropped, error)
        self._report_error("malformed sample dropped", error)

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    @property
    def calibration_task(self) -> Optional["asyncio.Future"]:
        """The calibration run in flight, if any."""
        return self._calibration_task

    async def start_calibration(
        self, mode: Union[CalibrationMode, str] = CalibrationMode.TIMED
    ) -> Optional[Orientation]:
        """
        Run a calibration and return the resulting baseline.

        ``timed`` collects for ``calibration_time_ms``; ``auto`` first waits
        for the sensor to settle. A calibration already in flight is cancelled
        and replaced; its caller gets the baseline as it stood. If the window
        collected nothing, the previous baseline (or None) is returned
        unchanged.
        """
        if self._disposed:
            raise ControllerDisposed("controller has been disposed")
        mode = CalibrationMode(mode)

        previous = self._calibration_task
        if previous is not None and not previous.done():
            self.motion_logger.calibration.info("Calibration restarted, previous run cancelled")
            previous.cancel()

        self._calibration_generation += 1
        generation = self._calibration_generation
        task = asyncio.ensure_future(self._run_calibration(mode))
        self._calibration_task = task
        self._calibration_running = True

        try:
            baseline = await task
        except asyncio.CancelledError:
            # superseded, reset or disposed: not an error for the caller
            if generation == self._calibration_generation:
                raise
            return self.get_calibration()
        except CalibrationEmpty as e:
            self._report_error("calibration collected no samples", e)
            return self.get_calibration()
        finally:
            if generation == self._calibration_generation:
                self._calibration_running = False
                self._calibration_task = None

        self._emit(EventKind.CALIBRATION_COMPLETE, baseline.orientation)
        return baseline.orientation

    async def _run_calibration(self, mode: CalibrationMode) -> CalibrationBaseline:
        if mode is CalibrationMode.AUTO:
            stable = await self.calibration.wait_for_stable(self.clock)
            self.motion_logger.calibration.debug("Stability wait finished (stable=%s)", stable)
        return await self.calibration.run_timed(self.clock, self.config.calibration_time)

    async def initialize(self) -> Optional[Orientation]:
        """Activate the controller and auto-calibrate if configured."""
        if self._disposed:
            raise ControllerDisposed("controller has been disposed")
        self._active = True
        if self.config.auto_calibrate:
            return await self.start_calibration(CalibrationMode.AUTO)
        return None

    def _cancel_calibration(self) -> None:
        task = self._calibration_task
        if task is not None and not task.done():
            task.cancel()
        self._calibration_generation += 1
        self._calibration_running = False
        self._calibration_task = None
        self.calibration.cancel()

    # ------------------------------------------------------------------
    # Configuration & lifecycle
    # ------------------------------------------------------------------

    def configure(self, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> MotionControllerConfig:
        """Merge partial options; they apply from the next sample on."""
        self.config = self.config.merged(options, **kwargs)
        self.smoothing.factor = self.config.smoothing_factor
        self.classifier.config = self.config
        self.dispatcher.config = self.config
        self.motion_logger.set_debug(self.config.debug_mode)
        return self.config

    def apply_platform_profile(self, platform: str) -> MotionControllerConfig:
        self.platform = platform
        profiled = apply_platform_profile(self.config, platform)
        return self.configure(profiled.as_dict())

    def pause(self) -> None:
        self._active = False
        self.logger.debug("Paused, incoming samples are discarded")

    def resume(self) -> None:
        if self._disposed:
            raise ControllerDisposed("controller has been disposed")
        self._active = True
        self.logger.debug("Resumed")

    def reset(self) -> None:
        """Clear baseline, history and direction state; configuration is kept."""
        self._cancel_calibration()
        self.calibration.reset()
        self.smoothing.reset()
        self.dispatcher.reset()
        self.shake_detector.reset()
        self.last_raw = None

    def dispose(self) -> None:
        """Stop accepting samples and drop pending calibration waits."""
        if self._disposed:
            return
        self._disposed = True
        self._active = False
        self._cancel_calibration()
        self._handlers.clear()
        if self._owns_audio:
            close = getattr(self.audio_sink, "close", None)
            if close is not None:
                close()
        self.logger.debug("MotionController disposed")

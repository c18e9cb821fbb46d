"""Integration tests for MotionController: pipeline, calibration and lifecycle."""

from __future__ import annotations

import asyncio
import math

import pytest

from tilt_control.core.errors import (
    CalibrationEmpty,
    ConfigurationError,
    ControllerDisposed,
    MalformedSample,
)
from tilt_control.core.imu.direction_classifier import Direction
from tilt_control.core.imu.orientation import Orientation
from tilt_control.core.motion_controller import ControllerPhase, SensorUpdate

REST = {"alpha": 10.0, "beta": 5.0, "gamma": 0.0}


def _calibrated(rig):
    asyncio.run(rig.calibrate_at(REST))
    return rig


def _tilt(alpha: float = 10.0, beta: float = 5.0) -> dict:
    return {"alpha": alpha, "beta": beta, "gamma": 0.0}


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def test_no_directions_before_calibration(rig) -> None:
    for _ in range(30):
        rig.controller.accept_sample(_tilt(beta=80.0))

    assert rig.controller.phase is ControllerPhase.UNCALIBRATED
    assert rig.controller.classify_once() is Direction.IDLE
    assert rig.transitions == []
    assert rig.audio.cues == []


def test_timed_calibration_sets_baseline_from_raw_mean(rig) -> None:
    baseline = asyncio.run(rig.calibrate_at(REST))

    assert baseline.alpha == pytest.approx(10.0)
    assert baseline.beta == pytest.approx(5.0)
    assert rig.controller.get_calibration() == baseline
    assert rig.controller.is_calibrated is True
    assert rig.controller.phase is ControllerPhase.READY
    assert len(rig.baselines) == 1
    # window closes once more than calibration_time has elapsed
    assert rig.baselines[0][0] > 1.0


def test_tilt_up_fires_feedback_once(rig_factory) -> None:
    rig = _calibrated(rig_factory())

    for _ in range(10):
        rig.controller.accept_sample(_tilt(beta=35.0))

    assert rig.controller.classify_once() is Direction.UP
    assert rig.transitions == [(Direction.UP, Direction.IDLE)]
    assert [cue.frequency for cue in rig.audio.cues] == [800.0]
    assert rig.haptics.patterns == [(50,)]


def test_smoothing_delays_the_transition(rig_factory) -> None:
    rig = _calibrated(rig_factory())
    # delta beta after n samples: 30 * (1 - 0.7**n) -> 9, 15.3, 19.7, 22.8
    for _ in range(3):
        rig.controller.accept_sample(_tilt(beta=35.0))
    assert rig.controller.classify_once() is Direction.IDLE

    rig.controller.accept_sample(_tilt(beta=35.0))
    assert rig.controller.classify_once() is Direction.UP


def test_full_gesture_sequence(rig_factory) -> None:
    rig = _calibrated(rig_factory(smoothing_factor=1.0))
    samples = [
        _tilt(beta=30.0),
        _tilt(),
        _tilt(alpha=-15.0),
        _tilt(alpha=35.0),
        _tilt(beta=-20.0),
    ]
    for sample in samples:
        rig.controller.accept_sample(sample)

    assert [new for new, _ in rig.transitions] == [
        Direction.UP,
        Direction.IDLE,
        Direction.RIGHT,
        Direction.LEFT,
        Direction.DOWN,
    ]
    assert rig.controller.previous_direction is Direction.LEFT


def test_sensor_data_payload(rig) -> None:
    updates: list = []
    rig.controller.on_sensor_data(updates.append)

    rig.controller.accept_sample(REST)

    assert len(updates) == 1
    update = updates[0]
    assert isinstance(update, SensorUpdate)
    assert update.raw == Orientation(10.0, 5.0, 0.0)
    assert update.smoothed == Orientation(10.0, 5.0, 0.0)
    assert update.calibration is None
    assert update.direction is Direction.IDLE


@pytest.mark.parametrize(
    "sample",
    [
        {"alpha": None, "beta": 1.0, "gamma": 2.0},
        {"alpha": 1.0, "beta": "x", "gamma": 2.0},
        {"alpha": 1.0, "beta": 2.0},
        {"alpha": float("nan"), "beta": 1.0, "gamma": 2.0},
        "garbage",
    ],
)
def test_malformed_sample_is_dropped(rig, sample) -> None:
    rig.controller.accept_sample(REST)
    before = rig.controller.get_state()

    rig.controller.accept_sample(sample)

    after = rig.controller.get_state()
    assert after.raw == before.raw
    assert after.smoothed == before.smoothed
    assert after.history_length == before.history_length
    assert after.dropped_samples == before.dropped_samples + 1
    assert after.accepted_samples == before.accepted_samples
    assert isinstance(rig.errors[-1][1], MalformedSample)


def test_non_finite_orientation_instance_is_dropped(rig_factory) -> None:
    rig = rig_factory()
    rig.controller.accept_sample(Orientation(float("nan"), 0.0, 0.0))
    rig.controller.accept_sample(REST)

    state = rig.controller.get_state()
    assert state.dropped_samples == 1
    assert state.smoothed == Orientation(10.0, 5.0, 0.0)

    _calibrated(rig)
    rig.controller.accept_sample(Orientation(float("nan"), 0.0, 0.0))
    rig.controller.accept_sample(_tilt(beta=60.0))

    state = rig.controller.get_state()
    assert state.dropped_samples == 2
    assert all(math.isfinite(v) for v in state.smoothed.as_tuple())
    assert isinstance(rig.errors[-1][1], MalformedSample)


def test_history_is_capped(rig) -> None:
    for i in range(80):
        rig.controller.accept_sample(_tilt(alpha=float(i)))

    state = rig.controller.get_state()
    assert state.history_length == 50
    assert state.calibration_buffer_length == 80


def test_paused_controller_discards_samples(rig) -> None:
    rig.controller.accept_sample(REST)
    rig.controller.pause()
    rig.controller.accept_sample(_tilt(beta=40.0))

    assert rig.controller.get_state().history_length == 1
    assert rig.controller.get_state().active is False

    rig.controller.resume()
    rig.controller.accept_sample(_tilt(beta=40.0))
    assert rig.controller.get_state().history_length == 2


# ---------------------------------------------------------------------------
# Calibration
# ---------------------------------------------------------------------------


def test_recalibration_replaces_baseline(rig_factory) -> None:
    rig = _calibrated(rig_factory())

    baseline = asyncio.run(rig.calibrate_at(_tilt(alpha=50.0, beta=-5.0)))

    assert baseline.alpha == pytest.approx(50.0)
    assert baseline.beta == pytest.approx(-5.0)
    assert len(rig.baselines) == 2


def test_empty_calibration_reports_error(rig) -> None:
    result = asyncio.run(rig.controller.start_calibration("timed"))

    assert result is None
    assert rig.controller.phase is ControllerPhase.UNCALIBRATED
    assert isinstance(rig.errors[-1][1], CalibrationEmpty)
    assert rig.baselines == []


def test_empty_recalibration_keeps_previous_baseline(rig_factory) -> None:
    rig = _calibrated(rig_factory())
    previous = rig.controller.get_calibration()

    result = asyncio.run(rig.controller.start_calibration("timed"))

    assert result == previous
    assert rig.controller.get_calibration() == previous
    assert rig.controller.phase is ControllerPhase.READY


def test_classification_suspended_while_calibrating(rig_factory) -> None:
    rig = _calibrated(rig_factory())

    async def scenario():
        calibration = asyncio.ensure_future(rig.controller.start_calibration("timed"))
        await asyncio.sleep(0)
        assert rig.controller.phase is ControllerPhase.CALIBRATING
        assert rig.controller.calibration_task is not None
        await rig.feed(_tilt(beta=60.0), 1.2)
        return await calibration

    asyncio.run(scenario())

    assert rig.transitions == []
    assert rig.controller.get_calibration().beta == pytest.approx(60.0)


def test_auto_calibration_waits_for_stability(rig) -> None:
    async def scenario():
        baseline, _ = await asyncio.gather(
            rig.controller.start_calibration("auto"),
            rig.feed(REST, 3.0),
        )
        return baseline

    baseline = asyncio.run(scenario())

    assert baseline.beta == pytest.approx(5.0)
    finished_at = rig.baselines[0][0]
    # ~1s of stable polling, then the 1s window
    assert 1.8 < finished_at < 2.5


def test_auto_calibration_times_out_on_unstable_sensor(rig) -> None:
    async def jitter():
        for i in range(7 * 60):
            rig.controller.accept_sample(_tilt(beta=0.0 if i % 2 else 10.0))
            await rig.clock.sleep(1.0 / 60.0)

    async def scenario():
        baseline, _ = await asyncio.gather(rig.controller.start_calibration("auto"), jitter())
        return baseline

    baseline = asyncio.run(scenario())

    assert baseline is not None
    assert baseline.beta == pytest.approx(5.0, abs=0.5)
    finished_at = rig.baselines[0][0]
    assert 6.0 < finished_at < 6.3


def test_new_calibration_cancels_in_flight_one(rig) -> None:
    async def scenario():
        first = asyncio.ensure_future(rig.controller.start_calibration("timed"))
        await rig.feed(REST, 0.5)
        second, _ = await asyncio.gather(
            rig.controller.start_calibration("timed"),
            rig.feed(_tilt(alpha=40.0, beta=0.0), 1.2),
        )
        return await first, second

    first, second = asyncio.run(scenario())

    assert first is None
    assert second.alpha == pytest.approx(40.0)
    assert second.beta == pytest.approx(0.0)
    assert len(rig.baselines) == 1


def test_initialize_runs_auto_calibration_when_configured(rig_factory) -> None:
    rig = rig_factory(auto_calibrate=True)

    async def scenario():
        baseline, _ = await asyncio.gather(rig.controller.initialize(), rig.feed(REST, 3.0))
        return baseline

    assert asyncio.run(scenario()).alpha == pytest.approx(10.0)


def test_initialize_without_auto_calibration(rig) -> None:
    assert asyncio.run(rig.controller.initialize()) is None
    assert rig.controller.phase is ControllerPhase.UNCALIBRATED


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def test_configure_applies_from_next_sample(rig_factory) -> None:
    rig = _calibrated(rig_factory())
    rig.controller.accept_sample(_tilt(beta=17.0))
    assert rig.controller.classify_once() is Direction.IDLE

    rig.controller.configure({"movementThreshold": 5, "deadZone": 1, "smoothingFactor": 1.0})
    rig.controller.accept_sample(_tilt(beta=17.0))

    assert rig.controller.classify_once() is Direction.UP
    assert rig.controller.get_config().movement_threshold == 5


def test_configure_rejects_bad_options(rig) -> None:
    before = rig.controller.get_config()

    with pytest.raises(ConfigurationError):
        rig.controller.configure(sensitivity=2)
    with pytest.raises(ConfigurationError):
        rig.controller.configure(smoothingFactor=0)

    assert rig.controller.get_config() == before


def test_disabling_audio_keeps_haptics(rig_factory) -> None:
    rig = _calibrated(rig_factory(smoothing_factor=1.0))
    rig.controller.configure(enableAudio=False)

    rig.controller.accept_sample(_tilt(alpha=-30.0))

    assert rig.audio.cues == []
    assert rig.haptics.patterns == [(30, 30, 30)]


def test_max_threshold_guard(rig_factory) -> None:
    rig = _calibrated(rig_factory(smoothing_factor=1.0, max_threshold_enabled=True))

    rig.controller.accept_sample(_tilt(beta=80.0))

    assert rig.controller.classify_once() is Direction.OVER_THRESHOLD
    assert rig.audio.cues[-1].waveform == "square"
    assert rig.haptics.patterns[-1] == (100, 50, 100)


def test_platform_profile_adjusts_thresholds(rig_factory) -> None:
    rig = rig_factory()
    config = rig.controller.apply_platform_profile("android")

    assert config.movement_threshold == 25.0
    assert config.dead_zone == 8.0
    assert rig.controller.classifier.config.movement_threshold == 25.0


def test_reset_keeps_configuration(rig_factory) -> None:
    rig = _calibrated(rig_factory())
    rig.controller.configure(movementThreshold=30)
    rig.controller.accept_sample(_tilt(beta=80.0))

    rig.controller.reset()

    state = rig.controller.get_state()
    assert state.phase is ControllerPhase.UNCALIBRATED
    assert state.calibration is None
    assert state.current_direction is Direction.IDLE
    assert state.history_length == 0
    assert state.smoothed is None
    assert rig.controller.get_config().movement_threshold == 30


# ---------------------------------------------------------------------------
# Subscriptions and errors
# ---------------------------------------------------------------------------


def test_handler_error_is_reported_and_pipeline_continues(rig_factory) -> None:
    rig = _calibrated(rig_factory(smoothing_factor=1.0))
    updates: list = []

    def broken(new, old):
        raise RuntimeError("handler bug")

    rig.controller.on_direction_change(broken)
    rig.controller.on_sensor_data(updates.append)

    rig.controller.accept_sample(_tilt(beta=40.0))

    assert rig.controller.classify_once() is Direction.UP
    assert rig.haptics.patterns == [(50,)]
    assert len(updates) == 1
    assert isinstance(rig.errors[-1][1], RuntimeError)


def test_failing_error_handler_does_not_recurse(rig) -> None:
    calls: list = []

    def broken_error_handler(message, error):
        calls.append(message)
        raise RuntimeError("also broken")

    rig.controller.on_error(broken_error_handler)
    rig.controller.accept_sample({"alpha": None, "beta": 0.0, "gamma": 0.0})

    assert calls == ["malformed sample dropped"]


def test_subscription_replace_and_cancel(rig) -> None:
    first: list = []
    second: list = []
    old = rig.controller.on("sensor_data", first.append)
    new = rig.controller.on("sensorData", second.append)

    rig.controller.accept_sample(REST)
    assert first == []
    assert len(second) == 1
    assert old.active is False
    assert new.active is True

    old.cancel()  # no longer registered: no effect
    rig.controller.accept_sample(REST)
    assert len(second) == 2

    new.cancel()
    rig.controller.accept_sample(REST)
    assert len(second) == 2


def test_unknown_event_rejected(rig) -> None:
    with pytest.raises(ValueError):
        rig.controller.on("orientationchange", print)


def test_shake_event(rig) -> None:
    shakes: list = []
    rig.controller.on("shakeDetected", shakes.append)

    rig.controller.accept_motion({"x": 0.5, "y": 1.0, "z": 0.2})
    rig.controller.accept_motion({"x": 0.0, "y": 20.0, "z": 0.0})

    assert shakes == [pytest.approx(20.0)]
    assert rig.controller.current_direction is Direction.IDLE


def test_missing_acceleration_is_skipped_quietly(rig) -> None:
    for _ in range(5):
        rig.controller.accept_motion(None)

    assert rig.errors == []
    assert rig.controller.get_state().dropped_samples == 0

    rig.controller.accept_motion({"x": None, "y": 0.0, "z": 0.0})
    assert rig.controller.get_state().dropped_samples == 1


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def test_dispose_stops_everything(rig) -> None:
    rig.controller.accept_sample(REST)
    rig.controller.dispose()

    rig.controller.accept_sample(REST)
    assert rig.controller.get_state().history_length == 1
    assert rig.controller.get_state().disposed is True

    with pytest.raises(ControllerDisposed):
        asyncio.run(rig.controller.start_calibration())
    with pytest.raises(ControllerDisposed):
        rig.controller.resume()

    rig.controller.dispose()  # idempotent


def test_dispose_does_not_close_injected_audio_sink(rig) -> None:
    rig.controller.dispose()
    assert rig.audio.closed is False


def test_dispose_cancels_pending_calibration(rig) -> None:
    async def dispose_later():
        await rig.feed(REST, 0.5)
        rig.controller.dispose()

    async def scenario():
        baseline, _ = await asyncio.gather(rig.controller.start_calibration("timed"), dispose_later())
        return baseline

    assert asyncio.run(scenario()) is None
    assert rig.controller.get_calibration() is None
    assert rig.baselines == []


def test_reset_cancels_pending_calibration(rig) -> None:
    async def reset_later():
        await rig.feed(REST, 0.5)
        rig.controller.reset()
        await rig.feed(REST, 1.0)

    async def scenario():
        baseline, _ = await asyncio.gather(rig.controller.start_calibration("timed"), reset_later())
        return baseline

    assert asyncio.run(scenario()) is None
    assert rig.controller.phase is ControllerPhase.UNCALIBRATED
    assert rig.baselines == []

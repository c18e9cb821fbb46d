"""
Error taxonomy for the motion control core.

None of these are fatal to the process. The controller catches the
sample/calibration/feedback errors where they occur, logs them, reports them
to the error subscription and keeps the direction state machine intact.
"""


class MotionControlError(Exception):
    """Base class for every error raised by tilt_control."""


class MalformedSample(MotionControlError):
    """A sample had a missing or non-numeric channel. The sample is dropped."""


class CalibrationEmpty(MotionControlError):
    """No samples were collected during the calibration window."""


class FeedbackSinkUnavailable(MotionControlError):
    """An audio or haptic sink could not render a feedback request."""


class ConfigurationError(MotionControlError, ValueError):
    """Unknown option or out-of-range value passed to configure()."""


class ControllerDisposed(MotionControlError):
    """Operation attempted on a controller after dispose()."""

"""
Tilt-based directional control from streaming device orientation.

Pipeline:
    raw sample → SmoothingFilter → DirectionClassifier (vs. calibration baseline)
               → FeedbackDispatcher → audio / haptic sinks

The entry point for hosts is :class:`tilt_control.core.motion_controller.MotionController`.
"""

__version__ = "1.0.0"

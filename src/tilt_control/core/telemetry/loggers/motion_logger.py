"""
Dedicated logger for motion control debugging.

This module provides a singleton logger that separates motion control logs
into channels, optionally written to dedicated files for easier analysis.

Features:
- Singleton pattern (one instance per session)
- Separate channels for sensor input, calibration, direction changes and feedback
- DEBUG level logging to files when a session directory is given
- WARNING level console output (DEBUG when debug mode is on)

Log Files (session directory only):
- sensor.log: dropped/malformed samples, pause/resume, shake events
- calibration.log: calibration windows, stability waits, baselines
- direction_changes.log: direction transitions
- feedback.log: audio cues, haptic patterns, sink failures

Usage:
    from tilt_control.core.telemetry.loggers.motion_logger import get_motion_logger

    motion_logger = get_motion_logger(session_dir=Path("logs/session_2024-01-15_10-30-00"))
    motion_logger.calibration.info("Calibration complete")
    motion_logger.direction.debug("idle -> up")
"""

import logging
from pathlib import Path
from typing import Optional

CHANNELS = {
    "sensor": "sensor.log",
    "calibration": "calibration.log",
    "direction": "direction_changes.log",
    "feedback": "feedback.log",
}


class MotionLogger:
    """Singleton logger for motion control debugging."""

    _instance = None
    _initialized = False

    def __new__(cls, session_dir: Optional[Path] = None, debug: bool = False):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, session_dir: Optional[Path] = None, debug: bool = False):
        if self._initialized:
            return

        self.log_dir = Path(session_dir) if session_dir is not None else None
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self.formatter = logging.Formatter(
            '%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s',
            datefmt='%H:%M:%S'
        )
        self._console_handlers = []

        for name, filename in CHANNELS.items():
            self._setup_logger(name, filename, debug)

        self._initialized = True

    def _setup_logger(self, name: str, filename: str, debug: bool):
        """Setup individual channel logger with console and optional file handler."""
        logger = logging.getLogger(f"motion.{name}")
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        # Clear existing handlers
        logger.handlers.clear()

        if self.log_dir is not None:
            fh = logging.FileHandler(self.log_dir / filename, mode='w')
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(self.formatter)
            logger.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG if debug else logging.WARNING)
        ch.setFormatter(self.formatter)
        logger.addHandler(ch)
        self._console_handlers.append(ch)

        setattr(self, name, logger)

    def set_debug(self, enabled: bool) -> None:
        """Switch console verbosity (debug mode) without touching file handlers."""
        level = logging.DEBUG if enabled else logging.WARNING
        for handler in self._console_handlers:
            handler.setLevel(level)

    def close(self):
        """Close all handlers."""
        for name in CHANNELS:
            logger = getattr(self, name, None)
            if logger:
                for handler in logger.handlers[:]:
                    handler.close()
                    logger.removeHandler(handler)
        self._console_handlers.clear()


# Global instance
_motion_logger = None


def get_motion_logger(session_dir: Optional[Path] = None, debug: bool = False) -> MotionLogger:
    """Get or create motion logger instance."""
    global _motion_logger
    if _motion_logger is None:
        _motion_logger = MotionLogger(session_dir=session_dir, debug=debug)
    return _motion_logger


def reset_motion_logger() -> None:
    """Close and drop the singleton so the next call can pick a new session directory."""
    global _motion_logger
    if _motion_logger is not None:
        _motion_logger.close()
    _motion_logger = None
    MotionLogger._instance = None
    MotionLogger._initialized = False

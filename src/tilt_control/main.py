#!/usr/bin/env python3
"""
Command-line entry point for local runs without a device.

Modes:
- demo: synthetic tilt gestures, auto-calibration, prints direction changes
- replay <csv>: replays a recorded session (alpha,beta,gamma[,t] columns)

Usage:
    python run.py demo --fast --no-audio
    python run.py replay session.csv --calibrate timed --platform android
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from tilt_control.core.clock import AsyncioClock, SimulatedClock
from tilt_control.core.errors import MotionControlError
from tilt_control.core.motion_controller import MotionController
from tilt_control.core.sample_source import ReplaySampleSource, SyntheticTiltSource
from tilt_control.utils.config_sections import load_motion_controller_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tilt-based direction control")
    sub = parser.add_subparsers(dest="mode", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--no-audio", action="store_true", help="Disable audio cues")
        p.add_argument("--no-vibration", action="store_true", help="Disable haptic feedback")
        p.add_argument("--debug", action="store_true", help="Verbose console logging")
        p.add_argument("--platform", default=None, help="Apply a platform profile (ios, android)")
        p.add_argument("--max-threshold", action="store_true", help="Report extreme tilt as over_threshold")
        p.add_argument("--fast", action="store_true", help="Run on simulated time")
        p.add_argument(
            "--calibrate",
            choices=("timed", "auto"),
            default="auto",
            help="Calibration mode at startup (default: auto)",
        )

    demo = sub.add_parser("demo", help="Synthetic tilt sequence")
    add_common(demo)
    demo.add_argument("--seed", type=int, default=0)
    demo.add_argument("--noise", type=float, default=0.3, help="Sensor noise std (degrees)")

    replay = sub.add_parser("replay", help="Replay a recorded CSV session")
    add_common(replay)
    replay.add_argument("path", help="CSV file with alpha,beta,gamma[,t] columns")
    replay.add_argument("--speed", type=float, default=1.0, help="Playback speed multiplier")

    return parser


def build_controller(args: argparse.Namespace, clock) -> MotionController:
    config = load_motion_controller_config().merged(
        enable_audio=not args.no_audio,
        enable_vibration=not args.no_vibration,
        debug_mode=args.debug,
        max_threshold_enabled=args.max_threshold,
    )
    controller = MotionController(config, clock=clock, platform=args.platform)

    controller.on_direction_change(lambda new, old: print(f"[DIRECTION] {old.value} -> {new.value}"))
    controller.on_calibration_complete(
        lambda b: print(f"[CALIBRATION] alpha={b.alpha:.1f} beta={b.beta:.1f} gamma={b.gamma:.1f}")
    )
    controller.on_error(lambda message, error: print(f"[WARN] {message}: {error}"))
    controller.on_shake(lambda intensity: print(f"[SHAKE] {intensity:.1f} m/s²"))
    return controller


async def run_session(args: argparse.Namespace) -> int:
    clock = SimulatedClock() if args.fast else AsyncioClock()

    if args.mode == "demo":
        source = SyntheticTiltSource(seed=args.seed, noise_std=args.noise, clock=clock)
    else:
        source = ReplaySampleSource.from_csv(args.path, clock=clock, speed=args.speed)

    controller = build_controller(args, clock)

    try:
        delivered, _ = await asyncio.gather(
            source.run(controller),
            controller.start_calibration(args.calibrate),
        )
        state = controller.get_state()
        print(
            f"[INFO] {delivered} samples, {state.dropped_samples} dropped, "
            f"final direction: {state.current_direction.value}"
        )
    finally:
        controller.dispose()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run_session(args))
    except (MotionControlError, OSError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted, closing cleanly...")
        return 130


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
Wrapper to run the tilt control CLI from a source checkout.
Adds src/ to the path so no install is needed.
"""
import sys
import os

# Add src to path FIRST
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

if __name__ == "__main__":
    from tilt_control.main import main

    if len(sys.argv) == 1:
        # No mode given: synthetic demo on simulated time, no sound
        sys.exit(main(["demo", "--fast", "--no-audio"]))
    sys.exit(main())

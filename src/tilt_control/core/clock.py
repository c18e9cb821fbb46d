"""
Time source for the coarse-grained waits (calibration window, stability poll).

The controller never reads wall time directly; it depends on a ``Clock`` so
tests can drive calibration with simulated time.
"""

import asyncio
import time
from typing import List, Protocol, Tuple


class Clock(Protocol):
    def monotonic(self) -> float:
        """Seconds from an arbitrary, monotonically increasing origin."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Yield control for ``seconds``."""
        ...


class AsyncioClock:
    """Real time, cooperative waits on the running asyncio loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class SimulatedClock:
    """
    Virtual time for tests and fast replays.

    Every pending sleep registers a deadline; the sleeper with the earliest
    deadline moves time forward to it once a full loop pass goes by with no
    other sleeper arriving or leaving. Coroutines sharing the clock therefore
    interleave in deadline order without real waiting.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._deadlines: List[Tuple[float, int]] = []
        self._seq = 0
        self._changes = 0

    def monotonic(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += max(0.0, seconds)

    async def sleep(self, seconds: float) -> None:
        self._seq += 1
        entry = (self._now + max(0.0, seconds), self._seq)
        self._deadlines.append(entry)
        self._changes += 1
        try:
            while self._now < entry[0]:
                if min(self._deadlines) != entry:
                    await asyncio.sleep(0)
                    continue
                seen = self._changes
                await asyncio.sleep(0)
                if seen == self._changes and min(self._deadlines) == entry:
                    self._now = max(self._now, entry[0])
        finally:
            self._deadlines.remove(entry)
            self._changes += 1
        await asyncio.sleep(0)

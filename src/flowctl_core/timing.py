"""Delay and stopwatch helpers shared by the timeout guard and retry driver."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

# Largest delay handed to a timer: a signed 32-bit millisecond count (~24.8 days).
MAX_DELAY_MS = 2**31 - 1


def clamp_delay_ms(ms: float) -> float:
    """Clamp ``ms`` into ``[0, MAX_DELAY_MS]``. NaN becomes 0."""
    if ms != ms:  # NaN
        return 0
    return max(0, min(ms, MAX_DELAY_MS))


async def sleep_ms(ms: float) -> None:
    await asyncio.sleep(clamp_delay_ms(ms) / 1000)


@dataclass
class Timer:
    started: float = field(default_factory=time.monotonic)

    def end(self) -> float:
        """Milliseconds elapsed since the timer was started."""
        return (time.monotonic() - self.started) * 1000


def start_timer() -> Timer:
    return Timer()

"""
Injectable clock for timers, backoff waits and timestamps
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import List, Optional


class Clock:
    """Wall clock plus an async delay primitive"""

    def now(self) -> datetime:
        raise NotImplementedError

    async def sleep(self, seconds: float) -> None:
        raise NotImplementedError


class SystemClock(Clock):
    """Real time, backed by asyncio"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class ManualClock(Clock):
    """
    Simulated time for tests and drills.

    ``sleep`` advances the clock instantly and records the requested delay,
    yielding once to the event loop so other tasks can make progress.
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


async def cancellable_sleep(clock: Clock, seconds: float, cancel_event: asyncio.Event) -> bool:
    """
    Wait ``seconds`` on ``clock`` unless ``cancel_event`` is set first.

    Returns:
        True if the wait was aborted by the cancel event
    """
    if cancel_event.is_set():
        return True

    sleeper = asyncio.ensure_future(clock.sleep(seconds))
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, waiter):
            if not task.done():
                task.cancel()
        await asyncio.gather(sleeper, waiter, return_exceptions=True)
    return cancel_event.is_set()

"""
Advisory countdown shown next to the session.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..config import TIMER_TICK_SECONDS

logger = logging.getLogger("session_timer")


class SessionTimer:
    """
    Counts remaining seconds down once per tick until zero.

    Nothing in the session waits on or reads this timer to make decisions;
    it only feeds the display. It runs once per session and cannot be
    paused or restarted.
    """

    def __init__(self,
                 total_seconds: int,
                 tick_seconds: float = TIMER_TICK_SECONDS,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 on_tick: Optional[Callable[[int], None]] = None):
        self.remaining_seconds = max(0, int(total_seconds))
        self.tick_seconds = tick_seconds
        self._sleep = sleep
        self._on_tick = on_tick
        self._task: Optional[asyncio.Task] = None
        self._started = False

    @classmethod
    def for_minutes(cls, minutes: int, **kwargs) -> 'SessionTimer':
        return cls(int(minutes) * 60, **kwargs)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin the countdown on the running loop. Later calls do nothing."""
        if self._started:
            return
        self._started = True
        if self.remaining_seconds <= 0:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="session-timer")

    async def _run(self) -> None:
        while self.remaining_seconds > 0:
            await self._sleep(self.tick_seconds)
            self.remaining_seconds = max(0, self.remaining_seconds - 1)
            if self._on_tick is not None:
                self._on_tick(self.remaining_seconds)
        logger.info("Session time is up")

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

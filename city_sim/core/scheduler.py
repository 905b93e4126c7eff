"""
Periodic effects.

Everything runs on one asyncio event loop: timer callbacks are plain
synchronous functions that run to completion between awaits, so they never
interleave with a placement or recompute half-way through. Each timer is a
small state machine (stopped -> running -> stopped) whose ``stop`` is
idempotent and guarantees no further callbacks.
"""

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

import structlog

logger = structlog.get_logger()

WEEKS_PER_MONTH = 4
MONTHS_PER_YEAR = 12


class TaskState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class RepeatingTask:
    """
    Calls ``callback`` every ``interval`` seconds while running.

    A callback that raises stops the task; the error is logged and handed
    to ``on_error`` instead of being left on the finished asyncio task.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Any],
        on_error: Optional[Callable[[BaseException], None]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.callback = callback
        self.on_error = on_error
        self.state = TaskState.STOPPED
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def is_running(self) -> bool:
        return self.state is TaskState.RUNNING

    def start(self) -> None:
        """
        Start ticking on the running event loop. No-op if already running.

        Raises:
            RuntimeError: if called outside a running event loop
        """
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._generation += 1
        self.state = TaskState.RUNNING
        self._task = loop.create_task(self._run(self._generation), name=self.name)
        logger.info("Repeating task started", task=self.name, interval=self.interval)

    def stop(self) -> None:
        """Stop ticking. Safe to call repeatedly or from inside the callback."""
        if not self.is_running:
            return
        self.state = TaskState.STOPPED
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()
        logger.info("Repeating task stopped", task=self.name, ticks=self.ticks)

    def _live(self, generation: int) -> bool:
        return self.is_running and generation == self._generation

    async def _run(self, generation: int) -> None:
        while self._live(generation):
            await asyncio.sleep(self.interval)
            if not self._live(generation):
                break
            self.ticks += 1
            logger.debug("Repeating task tick", task=self.name, tick=self.ticks)
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception("Repeating task callback failed", task=self.name, tick=self.ticks)
                if generation == self._generation:
                    self.state = TaskState.STOPPED
                    self._task = None
                if self.on_error is not None:
                    self.on_error(e)
                return


@dataclass
class GameDate:
    year: int = 2024
    month: int = 1
    week: int = 1


class GameClock:
    """Simulated calendar: 4 weeks to a month, 12 months to a year."""

    def __init__(self, date: Optional[GameDate] = None):
        self.date = date or GameDate()
        self._month_listeners: List[Callable[[GameDate], None]] = []

    def on_month(self, listener: Callable[[GameDate], None]) -> None:
        self._month_listeners.append(listener)

    def advance_week(self) -> bool:
        """Advance one week; returns True when a new month started."""
        self.date.week += 1
        if self.date.week <= WEEKS_PER_MONTH:
            return False

        self.date.week = 1
        self.date.month += 1
        if self.date.month > MONTHS_PER_YEAR:
            self.date.month = 1
            self.date.year += 1

        for listener in self._month_listeners:
            listener(self.date)
        return True


class EffectsScheduler:
    """
    Owns the two timers of a running city.

    The feed timer scans the city on a fixed real-time interval. The clock
    timer advances the simulated calendar one week per tick; the city
    applies its monthly effects when a tick rolls the month over. A tick that
    raises stops both timers.
    """

    def __init__(self, city, settings):
        self.city = city
        self.feed_task = RepeatingTask(
            "citizen-feed", settings.feed_interval_seconds, self._feed_tick, on_error=self._on_timer_error
        )
        self.clock_task = RepeatingTask(
            "game-clock", settings.week_seconds, self._clock_tick, on_error=self._on_timer_error
        )

    @property
    def is_running(self) -> bool:
        return self.feed_task.is_running or self.clock_task.is_running

    def start(self) -> None:
        self.feed_task.start()
        self.clock_task.start()

    def stop(self) -> None:
        self.feed_task.stop()
        self.clock_task.stop()

    def _on_timer_error(self, error: BaseException) -> None:
        logger.error("Stopping city timers after a failed tick", error=repr(error))
        self.stop()

    def _feed_tick(self) -> None:
        self.city.scan_feed()

    def _clock_tick(self) -> None:
        self.city.advance_week()


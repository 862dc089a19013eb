# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Periodic full-state refresh.

A single timer task whose interval depends on connectivity (the poll interval
while connected, the retry interval while disconnected), plus a one-shot
refresh shortly after start.
"""

from __future__ import annotations

import time
import asyncio
import logging

from ..internal_types import *
from ..constants import INITIAL_REFRESH_DELAY
from ..pkg_logging import logger as pkg_logger

from .cancellation import CancellationToken

RefreshFunc = Callable[[], Awaitable[Any]]
IntervalProvider = Callable[[], int]
"""Returns the current poll interval in milliseconds."""

class PollScheduler:
    """Runs `refresh` every `interval_provider()` milliseconds until stopped."""

    refresh: RefreshFunc
    interval_provider: IntervalProvider
    initial_delay: Optional[float]
    token: CancellationToken
    logger: logging.Logger

    poll_wakeup_queue: asyncio.Queue[None]
    poll_task: Optional[asyncio.Task[None]] = None
    initial_task: Optional[asyncio.Task[None]] = None
    current_interval_ms: int = 0
    refresh_count: int = 0

    def __init__(
            self,
            refresh: RefreshFunc,
            interval_provider: IntervalProvider,
            *,
            initial_delay: Optional[float]=INITIAL_REFRESH_DELAY,
            token: Optional[CancellationToken]=None,
            logger: Optional[logging.Logger]=None,
          ) -> None:
        """Creates a scheduler. Nothing runs until start() is called.

        Args:
            refresh: Coroutine function run on each tick.
            interval_provider: Returns the tick interval in milliseconds. Consulted
                at the start of each wait and by reevaluate().
            initial_delay: Seconds after start() before a one-shot refresh, or None
                for no initial refresh.
            token: Shared cancellation token; once set, no further refreshes start.
        """
        self.refresh = refresh
        self.interval_provider = interval_provider
        self.initial_delay = initial_delay
        self.token = CancellationToken() if token is None else token
        self.logger = pkg_logger if logger is None else logger
        self.poll_wakeup_queue = asyncio.Queue()

    @property
    def is_running(self) -> bool:
        return self.poll_task is not None and not self.poll_task.done()

    def start(self) -> None:
        """Starts the periodic timer and schedules the initial refresh. Has no effect if already running."""
        if self.is_running or self.token.is_cancelled:
            return
        loop = asyncio.get_event_loop()
        self.current_interval_ms = self.interval_provider()
        self.poll_task = loop.create_task(self._poll_func())
        if self.initial_delay is not None:
            self.initial_task = loop.create_task(self._initial_func(self.initial_delay))

    def reevaluate(self) -> None:
        """Wakes the timer so it re-reads the interval; if the interval changed, the wait restarts."""
        if self.poll_task is not None:
            self.poll_wakeup_queue.put_nowait(None)

    async def stop(self) -> None:
        """Stops the timer and waits for any in-progress refresh to observe cancellation."""
        self.token.cancel()
        self.reevaluate()
        tasks = [t for t in (self.poll_task, self.initial_task) if t is not None]
        self.poll_task = None
        self.initial_task = None
        for task in tasks:
            if not task.done():
                try:
                    await asyncio.wait_for(task, timeout=5.0)
                except asyncio.TimeoutError:
                    self.logger.warning("Timed out waiting for poll task to stop")

    async def _run_refresh(self) -> None:
        if self.token.is_cancelled:
            return
        self.refresh_count += 1
        try:
            await self.refresh()
        except Exception:
            self.logger.exception("Unexpected exception during state refresh")

    async def _initial_func(self, delay: float) -> None:
        if await self.token.sleep(delay):
            await self._run_refresh()

    async def _poll_func(self) -> None:
        next_tick_time = time.monotonic() + self.current_interval_ms / 1000.0
        while not self.token.is_cancelled:
            remaining_time = next_tick_time - time.monotonic()
            if remaining_time <= 0.0:
                await self._run_refresh()
                self.current_interval_ms = self.interval_provider()
                next_tick_time = time.monotonic() + self.current_interval_ms / 1000.0
                continue
            try:
                # expiration, reevaluate() or stop() will wake us up
                await asyncio.wait_for(self.poll_wakeup_queue.get(), timeout=remaining_time)
            except asyncio.TimeoutError:
                continue
            new_interval_ms = self.interval_provider()
            if new_interval_ms != self.current_interval_ms:
                self.logger.debug(f"Poll interval changed from {self.current_interval_ms} to {new_interval_ms} ms")
                self.current_interval_ms = new_interval_ms
                next_tick_time = time.monotonic() + new_interval_ms / 1000.0

    def __str__(self) -> str:
        return f"PollScheduler(interval_ms={self.current_interval_ms}, running={self.is_running})"

    def __repr__(self) -> str:
        return str(self)

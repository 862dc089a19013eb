# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Cooperative cancellation.

Every blocking wait in the client is decomposed into short increments, and a
CancellationToken is checked between increments, so that stopping an adapter
cuts in-flight socket waits short within one increment.
"""

from __future__ import annotations

import time
import asyncio

from ..internal_types import *
from ..exceptions import OperationCancelledError

_T = TypeVar('_T')

class CancellationToken:
    """A one-way cancellation flag shared by an adapter and its in-flight operations."""

    _cancelled: bool = False
    _waiters: List[asyncio.Future[None]]

    def __init__(self) -> None:
        self._waiters = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Sets the token. Has no effect if already set."""
        if not self._cancelled:
            self._cancelled = True
            waiters = self._waiters
            self._waiters = []
            for waiter in waiters:
                if not waiter.done():
                    waiter.set_result(None)

    def reset(self) -> None:
        """Clears the token so that it may be reused by a restarted adapter."""
        self._cancelled = False

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError()

    async def sleep(self, seconds: float) -> bool:
        """Sleeps for up to `seconds`, waking early if the token is set.

        Returns True if the full time elapsed, False if cancelled.
        """
        if self._cancelled:
            return False
        if seconds <= 0.0:
            return True
        waiter: asyncio.Future[None] = asyncio.get_event_loop().create_future()
        self._waiters.append(waiter)
        try:
            await asyncio.wait_for(asyncio.shield(waiter), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)
            if not waiter.done():
                waiter.cancel()
        return not self._cancelled

    def __str__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"

    def __repr__(self) -> str:
        return str(self)

async def polled_wait(
        aw: Awaitable[_T],
        timeout: float,
        increment: float,
        token: Optional[CancellationToken]=None,
      ) -> _T:
    """Awaits `aw` for at most `timeout` seconds, checking `token` every `increment` seconds.

    Raises:
        asyncio.TimeoutError: `aw` did not complete within `timeout`.
        OperationCancelledError: `token` was set before `aw` completed.

    In either case `aw` is cancelled before the exception is raised.
    """
    if token is not None and token.is_cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        raise OperationCancelledError()
    task: asyncio.Future[_T] = asyncio.ensure_future(aw)
    end_time = time.monotonic() + timeout
    try:
        while True:
            if token is not None and token.is_cancelled:
                raise OperationCancelledError()
            remaining = end_time - time.monotonic()
            if remaining <= 0.0:
                raise asyncio.TimeoutError()
            done, _ = await asyncio.wait({task}, timeout=min(increment, remaining))
            if task in done:
                return task.result()
    finally:
        if not task.done():
            task.cancel()
            await asyncio.wait({task})

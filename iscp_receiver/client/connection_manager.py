# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Connection bookkeeping and the connected/disconnected state machine.

The receiver is considered CONNECTED once it has sent us data, and stays so
until it has been silent for longer than the presence timeout. Individual
connect/write/read failures never flip the state; they only gate how often a
new connection attempt may be made while DISCONNECTED.
"""

from __future__ import annotations

import asyncio
import logging

from ..internal_types import *
from ..constants import (
    DEFAULT_RETRY_INTERVAL_MS,
    DEFAULT_POLL_INTERVAL_MS,
    PRESENCE_GRACE_MS,
    PRESENCE_CHECK_INTERVAL,
  )
from ..pkg_logging import logger as pkg_logger
from ..protocol import ConnectivityStatus
from ..util import monotonic_ms

from .cancellation import CancellationToken

ConnectivityListener = Callable[[ConnectivityStatus], None]
"""Called with the new status after each actual connectivity transition."""

class ConnectionManager:
    """Per-receiver connection state, backoff gating and presence tracking."""

    retry_interval_ms: int
    presence_timeout_ms: int
    state: ConnectivityStatus = ConnectivityStatus.DISCONNECTED
    last_seen_ms: Optional[int] = None
    """Clock time the receiver was last heard from; None if never."""

    last_connect_attempt_ms: Optional[int] = None
    """Clock time of the last connection attempt; None if none has been made."""

    last_connect_error: str = ''
    """Fingerprint ("<error>|<host>") of the last reported connect failure."""

    last_connect_error_ms: int = 0

    clock: Callable[[], int]
    logger: logging.Logger
    listener: Optional[ConnectivityListener] = None

    _presence_task: Optional[asyncio.Task[None]] = None
    _presence_token: Optional[CancellationToken] = None

    def __init__(
            self,
            retry_interval_ms: int=DEFAULT_RETRY_INTERVAL_MS,
            presence_timeout_ms: int=DEFAULT_POLL_INTERVAL_MS + PRESENCE_GRACE_MS,
            *,
            clock: Optional[Callable[[], int]]=None,
            logger: Optional[logging.Logger]=None,
            listener: Optional[ConnectivityListener]=None,
          ) -> None:
        self.retry_interval_ms = retry_interval_ms
        self.presence_timeout_ms = presence_timeout_ms
        self.clock = monotonic_ms if clock is None else clock
        self.logger = pkg_logger if logger is None else logger
        self.listener = listener

    def configure(self, retry_interval_ms: int, presence_timeout_ms: int) -> None:
        self.retry_interval_ms = retry_interval_ms
        self.presence_timeout_ms = presence_timeout_ms

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectivityStatus.CONNECTED

    # ---------------------------------------------------------------- attempts

    def can_attempt_connect(self) -> bool:
        """True if no attempt has been made yet or the retry interval has elapsed since the last one."""
        if self.last_connect_attempt_ms is None:
            return True
        return self.clock() - self.last_connect_attempt_ms >= self.retry_interval_ms

    def mark_connect_attempt(self) -> None:
        self.last_connect_attempt_ms = self.clock()

    def mark_connect_success(self) -> None:
        """Refreshes presence after a successful TCP connect.

        Does not change state; only data from the receiver moves it to CONNECTED.
        """
        self.last_seen_ms = self.clock()

    def log_connect_failure(self, error: str, host: str, port: Optional[int]=None) -> bool:
        """Logs a connect failure unless the same failure was logged within the last retry interval.

        Returns True if the failure was logged.
        """
        now = self.clock()
        fingerprint = f"{error}|{host}"
        if fingerprint == self.last_connect_error and now - self.last_connect_error_ms < self.retry_interval_ms:
            return False
        self.last_connect_error = fingerprint
        self.last_connect_error_ms = now
        where = host if port is None else f"{host}:{port}"
        self.logger.warning(f"Receiver connect failed: {error} (host {where})")
        return True

    # ---------------------------------------------------------------- presence

    def mark_seen(self) -> None:
        """Records that data was received from the receiver; moves to CONNECTED if needed."""
        self.last_seen_ms = self.clock()
        self.set_connected(True)

    def set_connected(self, connected: bool) -> bool:
        """Sets the connectivity state. Notifies the listener and returns True only on an actual transition."""
        new_state = ConnectivityStatus.CONNECTED if connected else ConnectivityStatus.DISCONNECTED
        if new_state == self.state:
            return False
        self.state = new_state
        self.logger.info(f"Receiver connectivity changed to {new_state.name}")
        if self.listener is not None:
            self.listener(new_state)
        return True

    def check_presence(self) -> bool:
        """Declares the receiver DISCONNECTED if it has been silent longer than the presence timeout.

        Returns True if this call caused the transition.
        """
        if not self.is_connected or self.last_seen_ms is None:
            return False
        if self.clock() - self.last_seen_ms > self.presence_timeout_ms:
            self.logger.debug(f"Receiver silent for more than {self.presence_timeout_ms} ms")
            return self.set_connected(False)
        return False

    def start_presence_timer(self, interval: float=PRESENCE_CHECK_INTERVAL) -> None:
        """Starts the repeating presence check on the running event loop. Has no effect if already running."""
        if self._presence_task is not None and not self._presence_task.done():
            return
        token = CancellationToken()
        self._presence_token = token
        self._presence_task = asyncio.get_event_loop().create_task(self._presence_func(token, interval))

    async def stop_presence_timer(self) -> None:
        task = self._presence_task
        if self._presence_token is not None:
            self._presence_token.cancel()
        self._presence_task = None
        self._presence_token = None
        if task is not None:
            await task

    async def _presence_func(self, token: CancellationToken, interval: float) -> None:
        while await token.sleep(interval):
            self.check_presence()

    def reset(self) -> None:
        """Forces DISCONNECTED and forgets attempt history (done when the adapter stops)."""
        self.set_connected(False)
        self.last_seen_ms = None
        self.last_connect_attempt_ms = None
        self.last_connect_error = ''
        self.last_connect_error_ms = 0

    def __str__(self) -> str:
        return f"ConnectionManager(state={self.state.name}, last_seen_ms={self.last_seen_ms})"

    def __repr__(self) -> str:
        return str(self)

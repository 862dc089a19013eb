# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
One emulated eISCP connection.

A real receiver accepts a TCP connection, decodes frames as they arrive and
hands each ISCP message to the emulator's request queue. Replies are written
back by the emulator's handler task via write().
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..protocol import FrameStreamDecoder, FrameCodec, split_payload

if TYPE_CHECKING:
    from .emulator_impl import ReceiverEmulator

IDLE_TIMEOUT = 30.0
"""Seconds without incoming data before the emulator drops a connection."""

class ReceiverEmulatorSession(asyncio.Protocol):
    session_id: int
    emulator: ReceiverEmulator
    decoder: FrameStreamDecoder
    transport: Optional[asyncio.Transport] = None
    peer_name: str = "<unconnected>"
    closed: bool = False
    idle_timer: Optional[asyncio.TimerHandle] = None

    def __init__(self, emulator: ReceiverEmulator):
        self.emulator = emulator
        self.decoder = FrameStreamDecoder(FrameCodec(framed=emulator.framed))
        self.session_id = emulator.alloc_session_id(self)

    @property
    def is_open(self) -> bool:
        return self.transport is not None and not self.closed

    def write(self, data: bytes) -> None:
        if not self.is_open:
            logger.debug(f"{self}: reply dropped; connection is closed")
            return
        assert self.transport is not None
        self.transport.write(data)

    def _arm_idle_timer(self) -> None:
        if self.idle_timer is not None:
            self.idle_timer.cancel()
        self.idle_timer = asyncio.get_running_loop().call_later(IDLE_TIMEOUT, self._on_idle)

    def _on_idle(self) -> None:
        self.idle_timer = None
        logger.debug(f"{self}: no data for {IDLE_TIMEOUT} seconds; dropping connection")
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.idle_timer is not None:
            self.idle_timer.cancel()
            self.idle_timer = None
        if self.transport is not None:
            self.transport.close()
        self.emulator.free_session_id(self.session_id)

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        assert isinstance(transport, asyncio.Transport)
        self.transport = transport
        self.peer_name = str(transport.get_extra_info('peername'))
        self.emulator.connection_count += 1
        logger.debug(f"{self}: accepted")
        self._arm_idle_timer()

    def data_received(self, data: bytes) -> None:
        if self.closed:
            return
        self._arm_idle_timer()
        try:
            messages = [
                message
                for payload in self.decoder.feed(data)
                for message in split_payload(payload)
              ]
        except Exception as e:
            logger.exception(f"{self}: undecodable data; closing: {e}")
            self.close()
            return
        for message in messages:
            self.emulator.on_message_received(self, message)

    def eof_received(self) -> bool:
        logger.debug(f"{self}: EOF from client")
        self.close()
        return True

    def connection_lost(self, exc: Optional[BaseException]) -> None:
        logger.debug(f"{self}: connection lost ({exc})")
        self.close()

    def __str__(self) -> str:
        return f"EmulatorSession(id={self.session_id}, peer={self.peer_name})"

    def __repr__(self) -> str:
        return str(self)

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
ISCP receiver emulator.

Provides a simple emulation of an Onkyo/Pioneer receiver on TCP/IP: power,
mute, master volume and input selector, over eISCP frames.
"""

from __future__ import annotations

import time
import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..protocol import (
    FrameCodec,
    UNIT_TYPE_PREFIX,
    END_OF_RESPONSE,
    QUERY_PARAMETER,
    POWER_CODE,
    MUTE_CODE,
    VOLUME_CODE,
    INPUT_CODE,
  )
from ..constants import DEFAULT_PORT, DEFAULT_VOLUME_MAX_RAW
from ..util import clamp

from .session import ReceiverEmulatorSession

NOT_AVAILABLE = "N/A"

class ReceiverEmulator(AsyncContextManager['ReceiverEmulator']):
    bind_addr: str
    port: int
    framed: bool
    sessions: Dict[int, ReceiverEmulatorSession]
    next_session_id: int = 0
    connection_count: int = 0
    """Number of TCP connections accepted so far."""

    requests: asyncio.Queue[Optional[Tuple[ReceiverEmulatorSession, str]]]
    server: Optional[asyncio.Server] = None
    handler_task: Optional[asyncio.Task[None]] = None
    final_result: asyncio.Future[None]

    power: bool
    muted: bool
    volume_raw: int
    volume_max_raw: int
    input_code: str

    silent: bool
    """If True, commands are applied but never answered."""

    response_delay: float
    """Seconds to wait before answering each command."""

    received_messages: List[str]
    """Every message received, in order."""

    def __init__(
            self,
            bind_addr: Optional[str] = None,
            port: int = DEFAULT_PORT,
            *,
            power: bool = False,
            muted: bool = False,
            volume_raw: int = 0x28,
            volume_max_raw: int = DEFAULT_VOLUME_MAX_RAW,
            input_code: str = "23",
            silent: bool = False,
            response_delay: float = 0.0,
            framed: bool = True,
          ):
        """Creates an emulator. Call start() (or use "async with") to begin listening.

        Args:
            bind_addr: The address to listen on. Defaults to '0.0.0.0'.
            port: The port to listen on; 0 to pick a free port (see bound_port).
        """
        self.bind_addr = '0.0.0.0' if bind_addr is None else bind_addr
        self.port = port
        self.framed = framed
        self.sessions = {}
        self.requests = asyncio.Queue()
        self.final_result = asyncio.get_event_loop().create_future()
        self.power = power
        self.muted = muted
        self.volume_max_raw = volume_max_raw
        self.volume_raw = clamp(volume_raw, 0, volume_max_raw)
        self.input_code = input_code
        self.silent = silent
        self.response_delay = response_delay
        self.received_messages = []

    @property
    def bound_port(self) -> int:
        """The port actually being listened on; differs from port when port is 0."""
        if self.server is not None and len(self.server.sockets) > 0:
            return int(self.server.sockets[0].getsockname()[1])
        return self.port

    def alloc_session_id(self, session: ReceiverEmulatorSession) -> int:
        result = self.next_session_id
        self.next_session_id += 1
        self.sessions[result] = session
        return result

    def free_session_id(self, session_id: int) -> None:
        self.sessions.pop(session_id, None)

    def on_message_received(self, session: ReceiverEmulatorSession, message: str) -> None:
        """Called when a complete ISCP message is received from a session."""
        self.received_messages.append(message)
        self.requests.put_nowait((session, message))

    async def wait_for_messages(self, count: int, timeout: float = 2.0) -> bool:
        """Waits until at least `count` messages have been received and handled. Returns False on timeout."""
        end_time = time.monotonic() + timeout
        while len(self.received_messages) < count:
            if time.monotonic() >= end_time:
                return False
            await asyncio.sleep(0.01)
        try:
            await asyncio.wait_for(self.requests.join(), timeout=max(end_time - time.monotonic(), 0.01))
        except asyncio.TimeoutError:
            return False
        return True

    def _handle_power(self, parameter: str) -> str:
        if parameter in ('01', '00'):
            self.power = parameter == '01'
        elif parameter != QUERY_PARAMETER:
            return NOT_AVAILABLE
        return '01' if self.power else '00'

    def _handle_mute(self, parameter: str) -> str:
        if parameter in ('01', '00'):
            self.muted = parameter == '01'
        elif parameter == 'TG':
            self.muted = not self.muted
        elif parameter != QUERY_PARAMETER:
            return NOT_AVAILABLE
        return '01' if self.muted else '00'

    def _handle_volume(self, parameter: str) -> str:
        if parameter == 'UP':
            self.volume_raw = clamp(self.volume_raw + 1, 0, self.volume_max_raw)
        elif parameter == 'DOWN':
            self.volume_raw = clamp(self.volume_raw - 1, 0, self.volume_max_raw)
        elif parameter != QUERY_PARAMETER:
            try:
                raw = int(parameter, 16)
            except ValueError:
                return NOT_AVAILABLE
            self.volume_raw = clamp(raw, 0, self.volume_max_raw)
        return f"{self.volume_raw:02X}"

    def _handle_input(self, parameter: str) -> str:
        if parameter != QUERY_PARAMETER:
            if len(parameter) != 2:
                return NOT_AVAILABLE
            self.input_code = parameter.upper()
        return self.input_code

    def handle_message(self, session: ReceiverEmulatorSession, message: str) -> Optional[str]:
        """Applies a single message and returns the reply message, or None for no reply."""
        code = message[:3].upper()
        parameter = message[3:]
        if code == POWER_CODE:
            reply = self._handle_power(parameter)
        elif code == MUTE_CODE:
            reply = self._handle_mute(parameter)
        elif code == VOLUME_CODE:
            reply = self._handle_volume(parameter)
        elif code == INPUT_CODE:
            reply = self._handle_input(parameter)
        else:
            reply = NOT_AVAILABLE
        logger.debug(f"{session}: {message} -> {code}{reply}")
        if self.silent:
            return None
        return f"{code}{reply}"

    def encode_reply(self, reply: str) -> bytes:
        payload = UNIT_TYPE_PREFIX + reply.encode('ascii') + END_OF_RESPONSE
        return FrameCodec(framed=self.framed).frame_payload(payload)

    async def handle_requests(self) -> None:
        """Handle requests from sessions."""
        while True:
            session_and_message = await self.requests.get()
            try:
                if session_and_message is None:
                    logger.debug("Emulator handler: Received EOF; exiting")
                    break
                session, message = session_and_message
                try:
                    reply = self.handle_message(session, message)
                    if reply is not None:
                        if self.response_delay > 0.0:
                            await asyncio.sleep(self.response_delay)
                        session.write(self.encode_reply(reply))
                except asyncio.CancelledError:
                    logger.debug(f"{session}: Handler task cancelled; exiting")
                    break
                except Exception as e:
                    logger.exception(f"{session}: Handler task: Exception while handling request; closing session: {e}")
                    session.close()
            finally:
                self.requests.task_done()

    async def run(self) -> None:
        """Runs the Emulator until it is closed."""
        async with self:
            await self.wait_closed()

    async def start(self) -> None:
        try:
            loop = asyncio.get_running_loop()
            self.handler_task = asyncio.create_task(self.handle_requests())
            self.server = await loop.create_server(
                lambda: ReceiverEmulatorSession(self),
                host=self.bind_addr,
                port=self.port)
            await self.server.start_serving()
            logger.debug(f"Emulator: Listening on {self.bind_addr}:{self.bound_port}")
        except BaseException as e:
            self.set_final_result(e)
            try:
                await self.wait_closed()
            except BaseException:
                pass
            raise

    def close(self, exc: Optional[BaseException]=None) -> None:
        """Stops the Emulator."""
        self.set_final_result(exc)

    async def wait_closed(self) -> None:
        """Waits for the emulator to be fully closed. Does not initiate shutdown."""
        try:
            await self.final_result
        finally:
            try:
                for session in list(self.sessions.values()):
                    session.close()
                if self.server is not None:
                    try:
                        self.server.close()
                    finally:
                        await self.server.wait_closed()
            finally:
                self.server = None
                if self.handler_task is not None:
                    try:
                        await self.handler_task
                    finally:
                        self.handler_task = None

    async def close_and_wait(self, exc: Optional[BaseException]=None) -> None:
        self.close(exc)
        await self.wait_closed()

    def set_final_result(self, exc: Optional[BaseException]=None) -> None:
        if not self.final_result.done():
            if exc is None:
                logger.debug(f"Emulator: Setting final result to success")
                self.final_result.set_result(None)
            else:
                logger.debug(f"Emulator: Setting final exception: {exc}")
                self.final_result.set_exception(exc)
            self.requests.put_nowait(None)
            if self.server is not None:
                self.server.close()

    async def __aenter__(self) -> ReceiverEmulator:
        await self.start()
        return self

    async def __aexit__(self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> None:
        self.set_final_result(exc)
        try:
            # ensure that final_result has been awaited
            await self.wait_closed()
        except Exception:
            pass

    def __str__(self) -> str:
        return f"ReceiverEmulator({self.bind_addr}:{self.bound_port})"

    def __repr__(self) -> str:
        return str(self)

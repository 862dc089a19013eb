# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Command dispatcher.

Sends one ISCP command per transient connection, gated by the
ConnectionManager, and routes any response through the FrameCodec and
ChannelStateTranslator to a channel-state listener.
"""

from __future__ import annotations

import asyncio
import logging

from ..internal_types import *
from ..exceptions import IscpReceiverError, ReceiverUnavailableError, OperationCancelledError
from ..constants import QUERY_RESPONSE_TIMEOUT_MS
from ..pkg_logging import logger as pkg_logger
from ..protocol import (
    FrameCodec,
    IscpCommand,
    ChannelState,
    ChannelStateTranslator,
    STATE_QUERIES,
  )

from .client_config import DeviceDescriptor
from .cancellation import CancellationToken
from .connection_manager import ConnectionManager
from .tcp_client_transport import IscpTcpTransport

ChannelStateListener = Callable[[ChannelState], None]

class CommandDispatcher:
    """Serializes command sends to a single receiver."""

    descriptor: DeviceDescriptor
    connection: ConnectionManager
    translator: ChannelStateTranslator
    codec: FrameCodec
    token: CancellationToken
    logger: logging.Logger
    state_listener: Optional[ChannelStateListener] = None
    transport_class: Type[IscpTcpTransport] = IscpTcpTransport

    _lock: asyncio.Lock

    def __init__(
            self,
            descriptor: DeviceDescriptor,
            *,
            connection: Optional[ConnectionManager]=None,
            translator: Optional[ChannelStateTranslator]=None,
            codec: Optional[FrameCodec]=None,
            token: Optional[CancellationToken]=None,
            state_listener: Optional[ChannelStateListener]=None,
            logger: Optional[logging.Logger]=None,
          ) -> None:
        self.descriptor = descriptor
        self.logger = pkg_logger if logger is None else logger
        self.connection = ConnectionManager(
            descriptor.retry_interval_ms,
            descriptor.presence_timeout_ms,
            logger=self.logger) if connection is None else connection
        self.translator = ChannelStateTranslator(
            volume_max_raw=descriptor.volume_max_raw,
            logger=self.logger) if translator is None else translator
        self.codec = FrameCodec() if codec is None else codec
        self.token = CancellationToken() if token is None else token
        self.state_listener = state_listener
        self._lock = asyncio.Lock()

    async def send(
            self,
            command: Union[IscpCommand, str],
            expect_response: bool=False,
            timeout_ms: int=0,
          ) -> bool:
        """Sends a single command over a new connection.

        If expect_response is True, waits up to timeout_ms for response data and
        routes each parsed channel state to the state listener.

        Returns True if the command was written. Returns False, without
        raising, if no address is configured, the token is set, the retry
        interval has not elapsed while disconnected, or the connect or write
        fails. A failed read after a successful write still returns True.
        """
        command = IscpCommand.parse(command)
        host = self.descriptor.control_host
        port = self.descriptor.control_port
        if host == '' or port <= 0:
            self.logger.debug(f"Not sending {command}: receiver address not configured")
            return False
        if self.token.is_cancelled:
            return False
        async with self._lock:
            if self.token.is_cancelled:
                return False
            if not self.connection.is_connected and not self.connection.can_attempt_connect():
                self.logger.debug(f"Not sending {command}: waiting for retry interval")
                return False
            self.connection.mark_connect_attempt()
            transport = self.transport_class(
                host, port, codec=self.codec, token=self.token, logger=self.logger)
            try:
                try:
                    await transport.connect()
                except ReceiverUnavailableError as e:
                    self.connection.log_connect_failure(str(e), host, port)
                    return False
                except OperationCancelledError:
                    return False
                self.connection.mark_connect_success()
                try:
                    await transport.write_command(command)
                except OperationCancelledError:
                    return False
                except IscpReceiverError as e:
                    self.logger.warning(f"Failed sending {command} to {host}:{port}: {e}")
                    return False
                self.logger.debug(f"Sent {command} to {host}:{port}")
                if expect_response and timeout_ms > 0:
                    try:
                        data = await transport.read_response(timeout_ms / 1000.0)
                    except IscpReceiverError as e:
                        self.logger.warning(f"Failed reading response to {command} from {host}:{port}: {e}")
                        data = b''
                    if len(data) > 0:
                        self.process_response(data)
                return True
            finally:
                await transport.close()

    def process_response(self, data: bytes) -> List[ChannelState]:
        """Decodes response bytes and delivers each parsed channel state.

        Each state marks the receiver as seen before it is delivered.
        """
        payloads, consumed = self.codec.decode(data)
        if consumed < len(data):
            self.logger.debug(f"Discarding {len(data) - consumed} bytes of incomplete response frame")
        result: List[ChannelState] = []
        for payload in payloads:
            for state in self.translator.parse_payload(payload):
                self.connection.mark_seen()
                result.append(state)
                if self.state_listener is not None:
                    self.state_listener(state)
        return result

    async def refresh_state(self, timeout_ms: int=QUERY_RESPONSE_TIMEOUT_MS) -> int:
        """Queries power, mute, volume and input in sequence.

        Individual failures do not stop the sequence; cancellation does.
        Returns the number of queries that were sent.
        """
        sent = 0
        for query in STATE_QUERIES:
            if self.token.is_cancelled:
                break
            if await self.send(query, expect_response=True, timeout_ms=timeout_ms):
                sent += 1
        return sent

    def __str__(self) -> str:
        return f"CommandDispatcher({self.descriptor.control_host}:{self.descriptor.control_port})"

    def __repr__(self) -> str:
        return str(self)

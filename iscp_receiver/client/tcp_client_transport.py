# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
ISCP receiver TCP/IP client transport.

Onkyo/Pioneer receivers tolerate idle control connections poorly, so each
command is sent over its own short-lived socket: connect, write one frame,
optionally collect the response, then disconnect. Every wait is polled in
short increments against a CancellationToken.
"""

from __future__ import annotations

import socket
import asyncio
import logging

from ..internal_types import *
from ..exceptions import IscpReceiverError, ReceiverUnavailableError, OperationCancelledError
from ..constants import (
    DEFAULT_PORT,
    CONNECT_TIMEOUT,
    CONNECT_POLL_INCREMENT,
    READ_POLL_INCREMENT,
    READ_MORE_TIMEOUT,
    DISCONNECT_TIMEOUT,
    DISCONNECT_POLL_INCREMENT,
    WRITE_TIMEOUT,
  )
from ..pkg_logging import logger as pkg_logger
from ..protocol import FrameCodec, IscpCommand

from .cancellation import CancellationToken, polled_wait

READ_CHUNK_SIZE = 4096

class IscpTcpTransport:
    """A single transient TCP/IP connection to a receiver."""

    host: str
    port: int
    codec: FrameCodec
    token: CancellationToken
    logger: logging.Logger
    reader: Optional[asyncio.StreamReader] = None
    writer: Optional[asyncio.StreamWriter] = None
    closed: bool = False

    def __init__(
            self,
            host: str,
            port: int=DEFAULT_PORT,
            *,
            codec: Optional[FrameCodec]=None,
            token: Optional[CancellationToken]=None,
            logger: Optional[logging.Logger]=None,
          ) -> None:
        self.host = host
        self.port = port
        self.codec = FrameCodec() if codec is None else codec
        self.token = CancellationToken() if token is None else token
        self.logger = pkg_logger if logger is None else logger

    @property
    def is_connected(self) -> bool:
        return self.writer is not None and not self.closed

    async def connect(self, timeout: float=CONNECT_TIMEOUT) -> None:
        """Opens the TCP connection.

        Raises:
            ReceiverUnavailableError: the connection timed out or was refused.
            OperationCancelledError: the token was set while connecting.
        """
        assert self.reader is None and self.writer is None
        self.logger.debug(f"Connecting to receiver at {self.host}:{self.port}")
        try:
            self.reader, self.writer = await polled_wait(
                asyncio.open_connection(self.host, self.port),
                timeout,
                CONNECT_POLL_INCREMENT,
                self.token)
        except asyncio.TimeoutError as e:
            raise ReceiverUnavailableError("Connection timed out") from e
        except OSError as e:
            msg = e.strerror if e.strerror else str(e)
            raise ReceiverUnavailableError(msg if msg else e.__class__.__name__) from e
        sock = self.writer.get_extra_info('socket')
        if sock is not None:
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            except OSError:
                self.logger.debug("Unable to enable TCP keepalive", exc_info=True)
        self.logger.debug(f"Connected to receiver at {self.host}:{self.port}")

    async def write_command(self, command: Union[IscpCommand, str]) -> None:
        """Encodes and writes a single command frame.

        Raises:
            IscpReceiverError: the write failed or timed out.
            OperationCancelledError: the token was set while flushing.
        """
        if self.writer is None or self.closed:
            raise IscpReceiverError("Transport is not connected")
        frame = self.codec.encode(command)
        self.logger.debug(f"Writing {len(frame)} bytes: {frame.hex(' ')}")
        try:
            self.writer.write(frame)
            await polled_wait(self.writer.drain(), WRITE_TIMEOUT, READ_POLL_INCREMENT, self.token)
        except asyncio.TimeoutError as e:
            raise IscpReceiverError("Timed out writing command to receiver") from e
        except OSError as e:
            raise IscpReceiverError(f"Error writing command to receiver: {e}") from e

    async def read_response(self, timeout: float) -> bytes:
        """Collects response bytes.

        Waits up to `timeout` seconds for the first data; once some arrives, keeps
        reading for as long as more follows within READ_MORE_TIMEOUT. Returns b''
        if nothing arrived. Cancellation ends the wait early and returns whatever
        was collected.

        Raises:
            IscpReceiverError: a socket error occurred while reading.
        """
        if self.reader is None or self.closed:
            raise IscpReceiverError("Transport is not connected")
        data = bytearray()
        try:
            first = await polled_wait(
                self.reader.read(READ_CHUNK_SIZE), timeout, READ_POLL_INCREMENT, self.token)
            data.extend(first)
            while len(first) > 0:
                try:
                    first = await polled_wait(
                        self.reader.read(READ_CHUNK_SIZE), READ_MORE_TIMEOUT, READ_MORE_TIMEOUT, self.token)
                except asyncio.TimeoutError:
                    break
                data.extend(first)
        except asyncio.TimeoutError:
            pass
        except OperationCancelledError:
            self.logger.debug("Response wait cancelled")
        except OSError as e:
            raise IscpReceiverError(f"Error reading from receiver: {e}") from e
        if len(data) > 0:
            self.logger.debug(f"Read {len(data)} bytes: {bytes(data).hex(' ')}")
        return bytes(data)

    async def read_chunk(self) -> bytes:
        """Waits without a timeout for the next bytes from the receiver. Returns b'' at EOF.

        For long-lived console sessions; the adapter uses read_response().
        """
        if self.reader is None or self.closed:
            return b''
        try:
            data = await self.reader.read(READ_CHUNK_SIZE)
        except OSError as e:
            raise IscpReceiverError(f"Error reading from receiver: {e}") from e
        if len(data) > 0:
            self.logger.debug(f"Read {len(data)} bytes: {data.hex(' ')}")
        return data

    async def close(self, timeout: float=DISCONNECT_TIMEOUT) -> None:
        """Closes the connection, waiting at most `timeout` seconds for it to finish.

        Never raises. Cancellation skips the wait.
        """
        if self.closed:
            return
        self.closed = True
        writer = self.writer
        if writer is None:
            return
        try:
            writer.close()
            await polled_wait(writer.wait_closed(), timeout, DISCONNECT_POLL_INCREMENT, self.token)
        except (asyncio.TimeoutError, OperationCancelledError):
            self.logger.debug(f"Graceful disconnect from {self.host}:{self.port} cut short")
        except OSError:
            self.logger.debug("Exception while closing connection", exc_info=True)

    async def __aenter__(self) -> IscpTcpTransport:
        await self.connect()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc_val: Optional[BaseException],
            exc_tb: Optional[TracebackType],
          ) -> None:
        await self.close()

    def __str__(self) -> str:
        return f"IscpTcpTransport({self.host}:{self.port})"

    def __repr__(self) -> str:
        return str(self)

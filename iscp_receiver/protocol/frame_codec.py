# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP frame encoding and decoding.

An eISCP frame wraps a single ISCP message in a fixed 16-byte binary header:

    b'ISCP' <header_length: u32 BE = 16> <payload_length: u32 BE> <version: u8 = 1> b'\\x00\\x00\\x00'

followed by payload_length bytes of payload (b'!1' + message + terminator).

Receivers may send several frames in one TCP segment, and a frame may be
split across reads, so decoding works on an arbitrary buffer and reports how
much of it was consumed.
"""

from __future__ import annotations

import struct

from ..internal_types import *
from ..pkg_logging import logger
from .constants import (
    ISCP_MAGIC,
    HEADER_LENGTH,
    ISCP_VERSION,
    RESERVED_BYTES,
    UNIT_TYPE_PREFIX,
    END_OF_MESSAGE,
    END_OF_MESSAGE_CRLF,
  )
from .command import IscpCommand

_HEADER_STRUCT = struct.Struct('>4sIIB3s')

DecodeResult = Tuple[List[bytes], int]
"""A tuple of (payloads: List[bytes], bytes_consumed: int)."""

class FrameCodec:
    """Encodes ISCP commands into eISCP frames and decodes frames back into payloads."""

    framed: bool
    """If False, messages are exchanged without the binary header (raw ISCP)."""

    use_crlf: bool
    """If True, outbound messages are terminated with CR LF rather than CR."""

    def __init__(self, framed: bool=True, use_crlf: bool=False):
        self.framed = framed
        self.use_crlf = use_crlf

    @property
    def terminator(self) -> bytes:
        return END_OF_MESSAGE_CRLF if self.use_crlf else END_OF_MESSAGE

    def encode_payload(self, command: Union[IscpCommand, str, bytes]) -> bytes:
        """Returns the ISCP payload for a command: b'!1' + command + terminator."""
        if isinstance(command, IscpCommand):
            command_bytes = command.to_bytes()
        elif isinstance(command, str):
            command_bytes = command.encode('ascii')
        else:
            command_bytes = bytes(command)
        return UNIT_TYPE_PREFIX + command_bytes + self.terminator

    def encode(self, command: Union[IscpCommand, str, bytes]) -> bytes:
        """Encodes a command into a complete frame ready to be written to the socket."""
        return self.frame_payload(self.encode_payload(command))

    def frame_payload(self, payload: bytes) -> bytes:
        """Wraps an already-encoded payload in an eISCP header (or returns it unchanged in non-framed mode)."""
        if not self.framed:
            return payload
        header = _HEADER_STRUCT.pack(
            ISCP_MAGIC, HEADER_LENGTH, len(payload), ISCP_VERSION, RESERVED_BYTES)
        return header + payload

    def decode(self, buffer: Union[bytes, bytearray, memoryview]) -> DecodeResult:
        """Decodes all complete frames in buffer.

        Returns (payloads, bytes_consumed). Any bytes after bytes_consumed belong
        to a frame that has not been completely received; the caller should retain
        them and prepend them to the next read.

        In non-framed mode the entire buffer is a single payload.
        """
        data = bytes(buffer)
        if not self.framed:
            return ([data] if len(data) > 0 else [], len(data))

        payloads: List[bytes] = []
        offset = 0
        while True:
            header_index = data.find(ISCP_MAGIC, offset)
            if header_index < 0:
                # No further frames; keep a trailing fragment that may be the start of a magic marker
                return (payloads, len(data) - _partial_magic_length(data, offset))
            if header_index + HEADER_LENGTH > len(data):
                return (payloads, header_index)
            _, header_length, payload_length, version, _ = _HEADER_STRUCT.unpack_from(data, header_index)
            if header_length < HEADER_LENGTH:
                logger.debug(f"Skipping eISCP header with invalid header length {header_length}: "
                             f"{data[header_index:header_index+HEADER_LENGTH].hex(' ')}")
                offset = header_index + len(ISCP_MAGIC)
                continue
            if version != ISCP_VERSION:
                logger.debug(f"Unexpected eISCP version {version}; decoding anyway")
            frame_length = header_length + payload_length
            if header_index + frame_length > len(data):
                return (payloads, header_index)
            payload_start = header_index + header_length
            payloads.append(data[payload_start:payload_start + payload_length])
            offset = header_index + frame_length

    def __str__(self) -> str:
        return f"FrameCodec(framed={self.framed}, use_crlf={self.use_crlf})"

    def __repr__(self) -> str:
        return str(self)

def _partial_magic_length(data: bytes, offset: int) -> int:
    """Returns the length of the longest suffix of data[offset:] that is a proper prefix of ISCP_MAGIC."""
    for n in range(min(len(ISCP_MAGIC) - 1, len(data) - offset), 0, -1):
        if data.endswith(ISCP_MAGIC[:n]):
            return n
    return 0

class FrameStreamDecoder:
    """
    Incremental decoder for a stream of bytes received from a receiver.

    Buffers incomplete trailing data between calls to feed().
    """

    codec: FrameCodec
    buffer: bytearray

    def __init__(self, codec: Optional[FrameCodec]=None):
        self.codec = FrameCodec() if codec is None else codec
        self.buffer = bytearray()

    def feed(self, data: Union[bytes, bytearray, memoryview]) -> List[bytes]:
        """Appends data to the buffer and returns all payloads completed by it."""
        self.buffer.extend(data)
        payloads, n_consumed = self.codec.decode(self.buffer)
        del self.buffer[:n_consumed]
        return payloads

    @property
    def pending(self) -> int:
        """Number of buffered bytes that do not yet form a complete frame."""
        return len(self.buffer)

    def clear(self) -> None:
        self.buffer.clear()

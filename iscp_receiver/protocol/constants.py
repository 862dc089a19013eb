# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Protocol-specific constants
"""

from __future__ import annotations

from ..internal_types import *

ISCP_MAGIC = b'ISCP'
"""The 4-byte marker at the start of every eISCP frame."""

HEADER_LENGTH = 16
"""The eISCP header length, in bytes. Sent in every header as a big-endian u32."""

ISCP_VERSION = 1
"""The eISCP protocol version byte."""

RESERVED_BYTES = b'\x00\x00\x00'
"""The 3 reserved bytes that end an eISCP header."""

UNIT_TYPE_PREFIX = b'!1'
"""The start character and unit type (1 = receiver) prefixed to every ISCP message."""

END_OF_MESSAGE = b'\r'
"""The terminator of an ISCP message."""

END_OF_MESSAGE_CRLF = b'\r\n'
"""Alternate message terminator accepted by some receivers."""

COMMAND_CODE_LENGTH = 3
"""Length of the alphabetic ISCP command code (e.g., "PWR")."""

QUERY_PARAMETER = "QSTN"
"""The parameter that turns any command code into a status query."""

END_OF_RESPONSE = b'\x1a\r\n'
"""The terminator receivers append to the messages they send (EOF, CR, LF)."""

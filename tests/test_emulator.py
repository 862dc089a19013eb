#!/usr/bin/env python3
"""test the receiver emulator"""

import pytest

from iscp_receiver import IscpCommand, IscpTcpTransport
from iscp_receiver.protocol import FrameCodec, split_payload

LOCALHOST = "127.0.0.1"


async def transact(emulator, command):
    """send one command, return the reply messages"""
    codec = FrameCodec()
    async with IscpTcpTransport(LOCALHOST, emulator.bound_port, codec=codec) as transport:
        await transport.write_command(IscpCommand.parse(command))
        data = await transport.read_response(1.0)
    payloads, _ = codec.decode(data)
    return [m for p in payloads for m in split_payload(p)]


@pytest.mark.asyncio
async def test_reply_is_framed_with_eof(emulator):
    """replies carry the receiver's EOF CR LF terminator inside an eISCP frame"""
    codec = FrameCodec()
    async with IscpTcpTransport(LOCALHOST, emulator.bound_port, codec=codec) as transport:
        await transport.write_command(IscpCommand.query("PWR"))
        data = await transport.read_response(1.0)
    payloads, consumed = codec.decode(data)
    assert consumed == len(data)
    assert payloads == [b"!1PWR00\x1a\r\n"]


@pytest.mark.asyncio
async def test_state_changes(emulator):
    """commands change the emulated state and echo it back"""
    assert await transact(emulator, "PWR01") == ["PWR01"]
    assert await transact(emulator, "AMTTG") == ["AMT01"]
    assert await transact(emulator, "MVL30") == ["MVL30"]
    assert await transact(emulator, "MVLDOWN") == ["MVL2F"]
    assert await transact(emulator, "SLI24") == ["SLI24"]
    assert emulator.power
    assert emulator.muted
    assert emulator.volume_raw == 0x2F
    assert emulator.input_code == "24"


@pytest.mark.asyncio
async def test_volume_clamped(emulator):
    """volume cannot exceed the maximum"""
    assert await transact(emulator, "MVLFF") == ["MVLA0"]


@pytest.mark.asyncio
async def test_unknown_command(emulator):
    """unsupported commands are answered with N/A"""
    assert await transact(emulator, "TUNQSTN") == ["TUNN/A"]
    assert await transact(emulator, "PWR07") == ["PWRN/A"]

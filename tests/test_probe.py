#!/usr/bin/env python3
"""test the standalone reachability probe"""

import pytest

from iscp_receiver import CmdStatus, DeviceDescriptor, probe_descriptor, probe_receiver

LOCALHOST = "127.0.0.1"


@pytest.mark.asyncio
async def test_probe_success(emulator):
    """a receiver answering PWR passes"""
    result = await probe_receiver(LOCALHOST, emulator.bound_port, cmd_id=5)
    assert result.status == CmdStatus.SUCCESS
    assert result.cmd_id == 5
    assert result.action_id == "probe"
    assert emulator.received_messages == ["PWRQSTN"]


@pytest.mark.asyncio
async def test_probe_requires_host():
    """no host is an invalid argument"""
    result = await probe_receiver("  ")
    assert result.status == CmdStatus.INVALID_ARGUMENT
    assert result.error == "Host is required"


@pytest.mark.asyncio
async def test_probe_refused(closed_port):
    """nothing listening is a connection failure"""
    result = await probe_receiver(LOCALHOST, closed_port, timeout=0.5)
    assert result.status == CmdStatus.FAILURE
    assert result.error.startswith("Connection failed")


@pytest.mark.asyncio
async def test_probe_no_response(emulator):
    """a silent receiver fails"""
    emulator.silent = True
    result = await probe_receiver(LOCALHOST, emulator.bound_port, timeout=0.3)
    assert result.status == CmdStatus.FAILURE
    assert result.error == "No response from receiver"


@pytest.mark.asyncio
async def test_probe_descriptor(emulator):
    """the descriptor's host and port are used"""
    descriptor = DeviceDescriptor(f"{LOCALHOST}:{emulator.bound_port}", use_config_file=False)
    result = await probe_descriptor(descriptor)
    assert result.ok

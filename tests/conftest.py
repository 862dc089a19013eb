#!/usr/bin/env python3
"""pytest fixtures"""

import pytest
import pytest_asyncio

from iscp_receiver import DeviceDescriptor
from iscp_receiver.emulator import ReceiverEmulator

LOCALHOST = "127.0.0.1"


class FakeClock:
    """a manually advanced millisecond clock"""

    def __init__(self, now_ms=0):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms

    def advance(self, delta_ms):
        """move the clock forward"""
        self.now_ms += delta_ms


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """keep the developer's receiver settings out of the tests"""
    for name in ("ISCP_RECEIVER_HOST", "ISCP_RECEIVER_PORT", "ISCP_RECEIVER_CONFIG_FILE",
                 "ISCP_RECEIVER_CONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_clock():
    """a clock starting at 0 ms"""
    return FakeClock()


@pytest_asyncio.fixture
async def emulator():
    """a receiver emulator listening on a free localhost port"""
    async with ReceiverEmulator(bind_addr=LOCALHOST, port=0) as emu:
        yield emu


@pytest.fixture
def emulator_descriptor(emulator):  # pylint: disable=redefined-outer-name
    """a descriptor pointing at the emulator"""
    return DeviceDescriptor(
        LOCALHOST,
        port=emulator.bound_port,
        adapter_id="test-receiver",
        name="Test Receiver",
        use_config_file=False,
    )


@pytest_asyncio.fixture
async def closed_port():
    """a localhost port with nothing listening on it"""
    async with ReceiverEmulator(bind_addr=LOCALHOST, port=0) as emu:
        port = emu.bound_port
    return port

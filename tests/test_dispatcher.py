#!/usr/bin/env python3
"""test the command dispatcher and transport against the emulator"""

import asyncio

import pytest

from iscp_receiver import (
    CancellationToken,
    CommandDispatcher,
    ConnectionManager,
    DeviceDescriptor,
    IscpTcpTransport,
    ReceiverUnavailableError,
    iscp_transact,
)

LOCALHOST = "127.0.0.1"


def make_dispatcher(descriptor, clock=None):
    """a dispatcher that records every channel state"""
    states = []
    connection = ConnectionManager(descriptor.retry_interval_ms, descriptor.presence_timeout_ms, clock=clock)
    dispatcher = CommandDispatcher(descriptor, connection=connection, state_listener=states.append)
    return dispatcher, states


@pytest.mark.asyncio
async def test_send_write_only(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """a write reaches the receiver over its own connection"""
    dispatcher, states = make_dispatcher(emulator_descriptor)
    assert await dispatcher.send("PWR01")
    assert await emulator.wait_for_messages(1)
    assert emulator.received_messages == ["PWR01"]
    assert emulator.power
    assert states == []
    # a bare connect is not enough to be considered connected
    assert not dispatcher.connection.is_connected


@pytest.mark.asyncio
async def test_send_with_response(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """a query's reply is parsed and marks the receiver connected"""
    emulator.volume_raw = 0x50
    dispatcher, states = make_dispatcher(emulator_descriptor)
    assert await dispatcher.send("MVLQSTN", expect_response=True, timeout_ms=1000)
    assert [s.channel_id for s in states] == ["volume"]
    assert states[0].value == pytest.approx(50.0)
    assert dispatcher.connection.is_connected


@pytest.mark.asyncio
async def test_each_send_uses_new_connection(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """connections are not kept open between commands"""
    dispatcher, _ = make_dispatcher(emulator_descriptor)
    for command in ("AMT01", "SLI24", "MVLUP"):
        assert await dispatcher.send(command)
    assert await emulator.wait_for_messages(3)
    assert emulator.connection_count == 3
    assert emulator.muted
    assert emulator.input_code == "24"


@pytest.mark.asyncio
async def test_refresh_state(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """a full refresh queries power, mute, volume and input in order"""
    emulator.power = True
    emulator.input_code = "2E"
    dispatcher, states = make_dispatcher(emulator_descriptor)
    assert await dispatcher.refresh_state(timeout_ms=1000) == 4
    assert emulator.received_messages == ["PWRQSTN", "AMTQSTN", "MVLQSTN", "SLIQSTN"]
    values = {s.channel_id: s.value for s in states}
    assert values["power"] is True
    assert values["mute"] is False
    assert values["input"] == "2E"


@pytest.mark.asyncio
async def test_concurrent_sends_serialized(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """concurrent sends are delivered one at a time"""
    dispatcher, _ = make_dispatcher(emulator_descriptor)
    results = await asyncio.gather(*(dispatcher.send(f"MVL{v:02X}") for v in range(10, 15)))
    assert all(results)
    assert await emulator.wait_for_messages(5)
    assert sorted(emulator.received_messages) == [f"MVL{v:02X}" for v in range(10, 15)]


@pytest.mark.asyncio
async def test_no_address_fails_fast():
    """no socket is attempted without an address"""
    dispatcher, _ = make_dispatcher(DeviceDescriptor(use_config_file=False))
    assert not await dispatcher.send("PWR01")
    assert dispatcher.connection.last_connect_attempt_ms is None


@pytest.mark.asyncio
async def test_refused_connection_gated(closed_port, fake_clock):  # pylint: disable=redefined-outer-name
    """after a failed connect, further sends wait for the retry interval"""
    descriptor = DeviceDescriptor(LOCALHOST, port=closed_port, use_config_file=False)
    dispatcher, _ = make_dispatcher(descriptor, clock=fake_clock)
    assert not await dispatcher.send("PWRQSTN", expect_response=True, timeout_ms=100)
    assert dispatcher.connection.last_connect_attempt_ms == 0
    fake_clock.advance(5000)
    assert not await dispatcher.send("PWRQSTN", expect_response=True, timeout_ms=100)
    # the gate refused without another attempt
    assert dispatcher.connection.last_connect_attempt_ms == 0
    fake_clock.advance(5001)
    assert not await dispatcher.send("PWRQSTN", expect_response=True, timeout_ms=100)
    assert dispatcher.connection.last_connect_attempt_ms == 10001
    assert not dispatcher.connection.is_connected


@pytest.mark.asyncio
async def test_cancelled_token_sends_nothing(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """a cancelled dispatcher reports failure"""
    token = CancellationToken()
    dispatcher = CommandDispatcher(emulator_descriptor, token=token)
    token.cancel()
    assert not await dispatcher.send("PWR01")
    await asyncio.sleep(0.05)
    assert emulator.received_messages == []


@pytest.mark.asyncio
async def test_cancel_cuts_response_wait(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """cancelling during a long response wait returns promptly"""
    emulator.silent = True
    token = CancellationToken()
    dispatcher = CommandDispatcher(emulator_descriptor, token=token)
    asyncio.get_running_loop().call_later(0.2, token.cancel)
    loop = asyncio.get_running_loop()
    start = loop.time()
    assert await dispatcher.send("PWRQSTN", expect_response=True, timeout_ms=10000)
    assert loop.time() - start < 2.0


@pytest.mark.asyncio
async def test_silent_receiver_times_out(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """a write succeeds even if no reply comes"""
    emulator.silent = True
    dispatcher, states = make_dispatcher(emulator_descriptor)
    assert await dispatcher.send("PWRQSTN", expect_response=True, timeout_ms=200)
    assert states == []
    assert not dispatcher.connection.is_connected


@pytest.mark.asyncio
async def test_transport_connect_refused(closed_port):  # pylint: disable=redefined-outer-name
    """refusal surfaces as ReceiverUnavailableError"""
    transport = IscpTcpTransport(LOCALHOST, closed_port)
    with pytest.raises(ReceiverUnavailableError):
        await transport.connect()
    await transport.close()


@pytest.mark.asyncio
async def test_iscp_transact(emulator, emulator_descriptor):  # pylint: disable=redefined-outer-name
    """the one-shot API returns the reply messages"""
    emulator.power = True
    messages = await iscp_transact("PWRQSTN", descriptor=emulator_descriptor, timeout_ms=1000)
    assert messages == ["PWR01"]
    messages = await iscp_transact("ZZZQSTN", descriptor=emulator_descriptor, timeout_ms=1000)
    assert messages == ["ZZZN/A"]

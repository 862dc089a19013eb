#!/usr/bin/env python3
"""test connection state, retry gating and presence tracking"""

import asyncio
import logging

import pytest

from iscp_receiver import ConnectionManager, ConnectivityStatus


def make_manager(clock, retry_interval_ms=10000, presence_timeout_ms=6000):
    """a manager that records its transitions"""
    transitions = []
    manager = ConnectionManager(
        retry_interval_ms,
        presence_timeout_ms,
        clock=clock,
        listener=transitions.append,
    )
    return manager, transitions


def test_initial_state(fake_clock):
    """starts disconnected, and the first attempt is allowed"""
    manager, transitions = make_manager(fake_clock)
    assert manager.state == ConnectivityStatus.DISCONNECTED
    assert manager.can_attempt_connect()
    assert transitions == []


def test_retry_gate(fake_clock):
    """a second attempt is refused until the retry interval has passed"""
    manager, _ = make_manager(fake_clock)
    fake_clock.now_ms = 1000
    manager.mark_connect_attempt()
    fake_clock.now_ms = 1000 + 5000
    assert not manager.can_attempt_connect()
    fake_clock.now_ms = 1000 + 10001
    assert manager.can_attempt_connect()


def test_connect_success_does_not_connect(fake_clock):
    """a socket connect alone does not declare the receiver connected"""
    manager, transitions = make_manager(fake_clock)
    manager.mark_connect_success()
    assert not manager.is_connected
    assert transitions == []


def test_presence_timeout_fires_once(fake_clock):
    """silence past the timeout disconnects exactly once"""
    manager, transitions = make_manager(fake_clock)
    fake_clock.now_ms = 5000
    manager.mark_seen()
    assert transitions == [ConnectivityStatus.CONNECTED]

    fake_clock.now_ms = 5000 + 6000
    assert not manager.check_presence()
    fake_clock.now_ms = 5000 + 6001
    assert manager.check_presence()
    assert manager.state == ConnectivityStatus.DISCONNECTED
    fake_clock.now_ms = 5000 + 7000
    assert not manager.check_presence()
    assert transitions == [ConnectivityStatus.CONNECTED, ConnectivityStatus.DISCONNECTED]


def test_presence_at_clock_zero(fake_clock):
    """data seen at t=0 still counts as seen"""
    manager, _ = make_manager(fake_clock)
    manager.mark_seen()
    fake_clock.now_ms = 6001
    assert manager.check_presence()


def test_repeated_data_no_extra_transitions(fake_clock):
    """only actual changes notify the listener"""
    manager, transitions = make_manager(fake_clock)
    for _ in range(3):
        manager.mark_seen()
        fake_clock.advance(1000)
    assert transitions == [ConnectivityStatus.CONNECTED]


def test_failed_connects_never_flip_state(fake_clock):
    """under permanent disconnection only the presence check changes state"""
    manager, transitions = make_manager(fake_clock, presence_timeout_ms=6000)
    manager.mark_seen()
    # receiver goes away: every retry fails, but state is untouched until the presence timeout
    for _ in range(5):
        fake_clock.advance(1000)
        manager.mark_connect_attempt()
        manager.log_connect_failure("Connection refused", "10.0.0.5")
        manager.check_presence()
        assert manager.is_connected
    fake_clock.advance(1001)
    manager.check_presence()
    assert not manager.is_connected
    # and stays disconnected while failures continue
    for _ in range(5):
        fake_clock.advance(10000)
        assert manager.can_attempt_connect()
        manager.mark_connect_attempt()
        manager.log_connect_failure("Connection refused", "10.0.0.5")
        manager.check_presence()
    assert transitions == [ConnectivityStatus.CONNECTED, ConnectivityStatus.DISCONNECTED]


def test_connect_failure_log_dedup(fake_clock, caplog):
    """the same failure is logged at most once per retry interval"""
    manager, _ = make_manager(fake_clock)
    caplog.set_level(logging.WARNING)
    assert manager.log_connect_failure("Connection refused", "10.0.0.5", 60128)
    fake_clock.advance(2000)
    assert not manager.log_connect_failure("Connection refused", "10.0.0.5", 60128)
    assert manager.log_connect_failure("Connection timed out", "10.0.0.5", 60128)
    assert manager.log_connect_failure("Connection timed out", "10.0.0.6", 60128)
    fake_clock.advance(10000)
    assert manager.log_connect_failure("Connection timed out", "10.0.0.6", 60128)
    messages = [r.getMessage() for r in caplog.records if "connect failed" in r.getMessage()]
    assert len(messages) == 4


def test_reset(fake_clock):
    """reset forces disconnected and forgets attempts"""
    manager, transitions = make_manager(fake_clock)
    manager.mark_seen()
    manager.mark_connect_attempt()
    manager.reset()
    assert not manager.is_connected
    assert manager.last_seen_ms is None
    assert manager.can_attempt_connect()
    assert transitions[-1] == ConnectivityStatus.DISCONNECTED


@pytest.mark.asyncio
async def test_presence_timer(fake_clock):
    """the repeating timer runs the presence check"""
    manager, transitions = make_manager(fake_clock, presence_timeout_ms=1000)
    manager.mark_seen()
    manager.start_presence_timer(0.02)
    fake_clock.advance(5000)
    for _ in range(100):
        if not manager.is_connected:
            break
        await asyncio.sleep(0.01)
    await manager.stop_presence_timer()
    assert transitions == [ConnectivityStatus.CONNECTED, ConnectivityStatus.DISCONNECTED]

#!/usr/bin/env python3
"""test the command-line tool"""

import json

import pytest

from iscp_receiver.__main__ import arun

LOCALHOST = "127.0.0.1"


@pytest.mark.asyncio
async def test_version(capsys):
    """version prints the package version"""
    assert await arun(["version"]) == 0
    assert capsys.readouterr().out.strip() != ""


@pytest.mark.asyncio
async def test_exec(emulator, capsys):
    """exec prints each command's reply messages"""
    rc = await arun(["exec", "--host", LOCALHOST, "--port", str(emulator.bound_port), "PWR01", "MVLQSTN"])
    assert rc == 0
    data = json.loads(capsys.readouterr().out)
    assert data == [
        {"command": "PWR01", "messages": ["PWR01"]},
        {"command": "MVLQSTN", "messages": ["MVL28"]},
    ]


@pytest.mark.asyncio
async def test_exec_error(closed_port, capsys):
    """an unreachable receiver is an error"""
    rc = await arun(["exec", "--host", LOCALHOST, "--port", str(closed_port), "PWRQSTN"])
    assert rc == 1
    captured = capsys.readouterr()
    assert "iscp-receiver: error:" in captured.err
    assert json.loads(captured.out)[0]["error"] == "iscp_receiver.exceptions.ReceiverUnavailableError"


@pytest.mark.asyncio
async def test_set(emulator, capsys):
    """set writes a channel"""
    rc = await arun(["set", "--host", LOCALHOST, "--port", str(emulator.bound_port), "input", "HDMI 3"])
    assert rc == 0
    assert json.loads(capsys.readouterr().out)["final_value"] == "25"
    assert await emulator.wait_for_messages(1)
    assert emulator.input_code == "25"


@pytest.mark.asyncio
async def test_set_invalid(emulator):
    """invalid values fail"""
    rc = await arun(["set", "--host", LOCALHOST, "--port", str(emulator.bound_port), "volume", "loud"])
    assert rc == 1


@pytest.mark.asyncio
async def test_probe(emulator, capsys):
    """probe reports success"""
    rc = await arun(["probe", "--host", LOCALHOST, "--port", str(emulator.bound_port)])
    assert rc == 0
    assert json.loads(capsys.readouterr().out)["status"] == "SUCCESS"


@pytest.mark.asyncio
async def test_missing_command(capsys):
    """a bare invocation fails"""
    assert await arun([]) == 1
    assert "A command is required" in capsys.readouterr().err

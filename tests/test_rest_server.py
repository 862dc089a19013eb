#!/usr/bin/env python3
"""test the REST server"""

import httpx
import pytest
import pytest_asyncio

from iscp_receiver import __version__ as pkg_version
from iscp_receiver.rest_server import create_app


@pytest_asyncio.fixture
async def client(emulator_descriptor):  # pylint: disable=redefined-outer-name
    """an http client bound to an app serving the emulator"""
    app = create_app(emulator_descriptor)
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
            yield http_client


@pytest.mark.asyncio
async def test_version(client):  # pylint: disable=redefined-outer-name
    """version endpoint"""
    response = await client.get("/api/v1/version")
    assert response.status_code == 200
    assert response.json() == {"version": pkg_version}


@pytest.mark.asyncio
async def test_device(client):  # pylint: disable=redefined-outer-name
    """device and channel descriptors"""
    data = (await client.get("/api/v1/device")).json()
    assert data["device"]["id"] == "test-receiver"
    assert [c["id"] for c in data["channels"]] == ["power", "volume", "mute", "input", "connectivity"]


@pytest.mark.asyncio
async def test_refresh_and_state(client, emulator):  # pylint: disable=redefined-outer-name
    """a refresh fills in the state"""
    emulator.power = True
    data = (await client.get("/api/v1/refresh")).json()
    assert data["queries_sent"] == 4
    assert data["values"]["power"] is True
    assert data["connected"]
    data = (await client.get("/api/v1/state")).json()
    assert data["values"]["input"] == "23"
    ping = (await client.get("/api/v1/ping")).json()
    assert ping["receiver_status"] == "OK"


@pytest.mark.asyncio
async def test_set_channel(client, emulator):  # pylint: disable=redefined-outer-name
    """channel writes go to the receiver"""
    data = (await client.post("/api/v1/channel/mute", params={"value": "on"})).json()
    assert data["status"] == "SUCCESS"
    assert data["cmd_id"] == 1
    assert await emulator.wait_for_messages(1)
    assert emulator.muted
    data = (await client.post("/api/v1/channel/volume", params={"value": "x"})).json()
    assert data["status"] == "INVALID_ARGUMENT"
    assert data["cmd_id"] == 2


@pytest.mark.asyncio
async def test_action(client, emulator):  # pylint: disable=redefined-outer-name
    """adapter actions return the proposed metadata"""
    emulator.input_code = "24"
    data = (await client.post("/api/v1/action/probeCurrentInput")).json()
    assert data["status"] == "SUCCESS"
    assert data["result_value"] == "24"
    assert data["proposed_meta"] == {"activeSliCodes": ["24"], "inputLabel_24": "SLI 24"}


@pytest.mark.asyncio
async def test_later_actions_do_not_repeat_metadata(client, emulator):  # pylint: disable=redefined-outer-name
    """only the action that proposed a metadata patch returns it"""
    emulator.input_code = "25"
    data = (await client.post("/api/v1/action/probeCurrentInput")).json()
    assert data["proposed_meta"] == {"activeSliCodes": ["25"], "inputLabel_25": "SLI 25"}
    data = (await client.post("/api/v1/action/reboot")).json()
    assert data["status"] == "NOT_SUPPORTED"
    assert "proposed_meta" not in data
    data = (await client.post("/api/v1/action/probe")).json()
    assert data["status"] == "SUCCESS"
    assert "proposed_meta" not in data


@pytest.mark.asyncio
async def test_execute(client):  # pylint: disable=redefined-outer-name
    """raw commands and their errors"""
    data = (await client.get("/api/v1/execute/PWRQSTN")).json()
    assert data["messages"] == ["PWR00"]
    data = (await client.get("/api/v1/execute/P1")).json()
    assert data["error"] == "iscp_receiver.exceptions.IscpReceiverError"

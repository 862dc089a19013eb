#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
REST API routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

import time

from .logger import logger
from ..internal_types import *
from .. import (
    __version__ as pkg_version,
    ReceiverAdapter,
    StateCacheEventSink,
    IscpCommand,
    iscp_transact,
    full_class_name,
  )
from ..adapter import build_channels

router = APIRouter(prefix="/api/v1")

def error_data(exc: BaseException) -> JsonableDict:
    error_classname = full_class_name(exc)
    error_message = str(exc)
    if error_message == "":
        error_message = error_classname
    return dict(error=error_classname, error_message=error_message)

def next_cmd_id(request: Request) -> int:
    cmd_id: int = request.app.state.next_cmd_id
    request.app.state.next_cmd_id = cmd_id + 1
    return cmd_id

@router.get("/")
async def root(request: Request):
    adapter: ReceiverAdapter = request.app.state.adapter
    return { "message": f"Hello World! Serving receiver at {adapter.descriptor}" }

@router.get("/version")
async def version():
    """Returns the iscp-receiver package version"""
    return { "version": pkg_version }

@router.get("/config")
async def config_data(request: Request) -> Dict[str, Any]:
    """Returns the receiver descriptor the adapter is running with."""
    adapter: ReceiverAdapter = request.app.state.adapter
    return dict(config=adapter.descriptor.to_jsonable())

@router.get("/device")
async def device(request: Request) -> Dict[str, Any]:
    """Returns the device identity and channel descriptors."""
    adapter: ReceiverAdapter = request.app.state.adapter
    return dict(
        device=adapter.build_device().to_jsonable(),
        channels=[ channel.to_jsonable() for channel in build_channels(adapter.input_labels) ],
      )

@router.get("/state")
async def state(request: Request) -> Dict[str, Any]:
    """Returns the latest known value of every channel."""
    state_cache: StateCacheEventSink = request.app.state.state_cache
    return state_cache.to_jsonable()

@router.get("/refresh")
async def refresh(request: Request) -> Dict[str, Any]:
    """Queries the receiver's full state, then returns the latest known values."""
    adapter: ReceiverAdapter = request.app.state.adapter
    state_cache: StateCacheEventSink = request.app.state.state_cache
    queries_sent = await adapter.refresh()
    result: Dict[str, Any] = dict(queries_sent=queries_sent)
    result.update(state_cache.to_jsonable())
    return result

@router.post("/channel/{channel_id}")
async def set_channel(
        channel_id: str,
        value: str,
        request: Request,
      ) -> Dict[str, Any]:
    """Writes a channel value, e.g. POST /api/v1/channel/volume?value=40."""
    adapter: ReceiverAdapter = request.app.state.adapter
    logger.info(f"Setting channel {channel_id} to {value!r}")
    result = await adapter.update_channel_state(
        adapter.device_id, channel_id, value, cmd_id=next_cmd_id(request))
    return result.to_jsonable()

@router.post("/action/{action_id}")
async def invoke_action(
        action_id: str,
        request: Request,
      ) -> Dict[str, Any]:
    """Runs an adapter action (probeCurrentInput or probe)."""
    adapter: ReceiverAdapter = request.app.state.adapter
    logger.info(f"Invoking adapter action {action_id}")
    result = await adapter.invoke_adapter_action(action_id, cmd_id=next_cmd_id(request))
    assert result is not None
    response_data: Dict[str, Any] = result.to_jsonable()
    if result.meta_patch is not None:
        response_data["proposed_meta"] = result.meta_patch
    return response_data

@router.get("/execute/{command}")
async def execute(
        command: str,
        request: Request,
        timeout_ms: int=800,
      ) -> Dict[str, Any]:
    """Sends a single raw ISCP command (e.g. PWRQSTN) and returns the reply messages."""
    adapter: ReceiverAdapter = request.app.state.adapter
    logger.info(f"Executing raw command {command}")
    response_data: Dict[str, Any] = dict(command=command)
    try:
        messages = await iscp_transact(
            IscpCommand.parse(command),
            descriptor=adapter.descriptor,
            timeout_ms=timeout_ms,
            logger=logger,
          )
    except Exception as exc:
        response_data.update(error_data(exc))
    else:
        response_data["messages"] = messages
    return response_data

@router.get("/ping")
async def ping(
        request: Request
      ) -> Dict[str, Any]:
    """Returns the health status of the API server and the receiver."""
    adapter: ReceiverAdapter = request.app.state.adapter
    launch_time: float = request.app.state.launch_time
    up_time = time.monotonic() - launch_time
    result: Dict[str, Any] = dict(server_status="OK", up_time=up_time)
    result["receiver_status"] = "OK" if adapter.is_connected else "DISCONNECTED"
    return result

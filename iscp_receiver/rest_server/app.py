#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls an Onkyo/Pioneer receiver.

The server runs one ReceiverAdapter for the lifetime of the app; a
StateCacheEventSink keeps the latest channel values for the GET endpoints.
"""

from __future__ import annotations

from fastapi import FastAPI

import time
import os
import json

from contextlib import asynccontextmanager

from .logger import logger
from ..internal_types import *
from .. import (
    DeviceDescriptor,
    ReceiverAdapter,
    StateCacheEventSink,
  )

from .api import router as api_router

def load_raw_config() -> JsonableDict:
    """Loads the JSON descriptor named by ISCP_RECEIVER_CONFIG, or ./iscp_receiver_config.json if present."""
    config_file = os.environ.get("ISCP_RECEIVER_CONFIG", None)
    if config_file is None:
        if os.path.exists("iscp_receiver_config.json"):
            config_file = "iscp_receiver_config.json"
    if config_file is None:
        return {}
    with open(config_file, "r") as f:
        raw_config: JsonableDict = json.load(f)
    return raw_config

def create_app(descriptor: Optional[DeviceDescriptor]=None) -> FastAPI:
    """Creates the FastAPI app.

    If descriptor is None, the receiver descriptor is loaded from the config file
    and environment at startup.
    """

    @asynccontextmanager
    async def fastapi_lifetime(app: FastAPI) -> AsyncIterator[None]:
        """
        A context manager that initializes and cleans up for FastAPI.
        """
        adapter: Optional[ReceiverAdapter] = None
        try:
            logger.info("Receiver REST server starting up--initializing...")
            if descriptor is None:
                raw_config = load_raw_config()
                receiver_descriptor = DeviceDescriptor.from_jsonable(raw_config)
            else:
                receiver_descriptor = descriptor
                raw_config = descriptor.to_jsonable()
            app.state.raw_config = raw_config
            app.state.descriptor = receiver_descriptor
            app.state.launch_time = time.monotonic()
            app.state.next_cmd_id = 1
            state_cache = StateCacheEventSink()
            app.state.state_cache = state_cache
            adapter = ReceiverAdapter(receiver_descriptor, state_cache)
            app.state.adapter = adapter
            await adapter.start()
            logger.info(f"Serving API for receiver at {receiver_descriptor}...")

            logger.info("Receiver REST server initialization done; starting server...")
            yield
        finally:
            logger.info("Receiver REST server shutting down--cleaning up...")
            if adapter is not None:
                await adapter.stop()

    app = FastAPI(lifespan=fastapi_lifetime)
    app.include_router(api_router)
    return app

proj_api = create_app()

def get_receiver_adapter() -> ReceiverAdapter:
    return proj_api.state.adapter

def get_state_cache() -> StateCacheEventSink:
    return proj_api.state.state_cache

def get_raw_config() -> JsonableDict:
    return proj_api.state.raw_config

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls an Onkyo/Pioneer receiver.
"""
from .app import proj_api, create_app, get_receiver_adapter, get_state_cache, get_raw_config

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Receiver adapter: lifecycle, channel writes, adapter actions and events.
"""

from .events import (
    CmdStatus,
    CmdResult,
    ActionResult,
    AdapterEventSink,
    NullEventSink,
    RecordingEventSink,
    StateCacheEventSink,
  )
from .device import (
    Device,
    Channel,
    build_device,
    build_channels,
    build_input_channel,
    infer_model_from_identifier,
    resolve_device_id,
  )
from .probe import probe_receiver, probe_descriptor, PROBE_ACTION
from .adapter_impl import (
    ReceiverAdapter,
    PROBE_CURRENT_INPUT_ACTION,
    input_probe_meta_patch,
  )

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Logical channels exposed for a receiver, and the channel state event.
"""

from __future__ import annotations

from aenum import Enum as AEnum

from ..internal_types import *
from ..util import epoch_ms

CHANNEL_POWER = "power"
CHANNEL_VOLUME = "volume"
CHANNEL_MUTE = "mute"
CHANNEL_INPUT = "input"
CHANNEL_CONNECTIVITY = "connectivity"

WRITABLE_CHANNELS: Tuple[str, ...] = (
    CHANNEL_POWER,
    CHANNEL_VOLUME,
    CHANNEL_MUTE,
    CHANNEL_INPUT,
  )

class ConnectivityStatus(AEnum):
    """Value of the "connectivity" channel."""

    DISCONNECTED                = 0
    """The receiver has not been heard from within the presence timeout."""

    CONNECTED                   = 1
    """The receiver has recently reported state."""

class ChannelState:
    """A channel-state-changed event. Emitted, never stored by the core."""

    device_id: str
    channel_id: str
    value: Any
    timestamp_ms: int

    def __init__(self, device_id: str, channel_id: str, value: Any, timestamp_ms: Optional[int]=None):
        self.device_id = device_id
        self.channel_id = channel_id
        self.value = value
        self.timestamp_ms = epoch_ms() if timestamp_ms is None else timestamp_ms

    def to_jsonable(self) -> JsonableDict:
        value = self.value
        if isinstance(value, ConnectivityStatus):
            value = value.name.lower()
        return dict(
            device_id=self.device_id,
            channel_id=self.channel_id,
            value=value,
            timestamp_ms=self.timestamp_ms,
          )

    def __str__(self) -> str:
        return f"ChannelState({self.device_id}/{self.channel_id}={self.value!r})"

    def __repr__(self) -> str:
        return str(self)

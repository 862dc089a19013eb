# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Adapter events.

The adapter reports everything it learns through an AdapterEventSink. The
host application implements the sink; RecordingEventSink and
StateCacheEventSink are provided for tests, the CLI and the REST server.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from aenum import Enum as AEnum

from ..internal_types import *
from ..protocol import ChannelState, ConnectivityStatus
from ..util import epoch_ms

if TYPE_CHECKING:
    from .device import Device, Channel

class CmdStatus(AEnum):
    """Outcome of a channel write or adapter action."""

    SUCCESS                     = 0
    FAILURE                     = 1
    INVALID_ARGUMENT            = 2
    NOT_SUPPORTED               = 3
    TEMPORARILY_OFFLINE         = 4

class CmdResult:
    """Result of a channel write request."""

    cmd_id: int
    status: CmdStatus
    error: str
    final_value: Any
    timestamp_ms: int

    def __init__(
            self,
            cmd_id: int,
            status: CmdStatus,
            error: str='',
            final_value: Any=None,
            timestamp_ms: Optional[int]=None,
          ):
        self.cmd_id = cmd_id
        self.status = status
        self.error = error
        self.final_value = final_value
        self.timestamp_ms = epoch_ms() if timestamp_ms is None else timestamp_ms

    @property
    def ok(self) -> bool:
        return self.status == CmdStatus.SUCCESS

    def to_jsonable(self) -> JsonableDict:
        return dict(
            cmd_id=self.cmd_id,
            status=self.status.name,
            error=self.error,
            final_value=self.final_value,
            timestamp_ms=self.timestamp_ms,
          )

    def __str__(self) -> str:
        if self.ok:
            return f"CmdResult({self.cmd_id}: {self.status.name}, final_value={self.final_value!r})"
        return f"CmdResult({self.cmd_id}: {self.status.name}, error={self.error!r})"

    def __repr__(self) -> str:
        return str(self)

class ActionResult:
    """Result of an adapter action."""

    cmd_id: int
    action_id: str
    status: CmdStatus
    error: str
    result_value: Any
    timestamp_ms: int
    meta_patch: Optional[JsonableDict]
    """The metadata patch this action proposed, if any."""

    def __init__(
            self,
            cmd_id: int,
            action_id: str,
            status: CmdStatus,
            error: str='',
            result_value: Any=None,
            timestamp_ms: Optional[int]=None,
            meta_patch: Optional[JsonableDict]=None,
          ):
        self.cmd_id = cmd_id
        self.action_id = action_id
        self.status = status
        self.error = error
        self.result_value = result_value
        self.meta_patch = meta_patch
        self.timestamp_ms = epoch_ms() if timestamp_ms is None else timestamp_ms

    @property
    def ok(self) -> bool:
        return self.status == CmdStatus.SUCCESS

    def to_jsonable(self) -> JsonableDict:
        return dict(
            cmd_id=self.cmd_id,
            action_id=self.action_id,
            status=self.status.name,
            error=self.error,
            result_value=self.result_value,
            timestamp_ms=self.timestamp_ms,
          )

    def __str__(self) -> str:
        return f"ActionResult({self.cmd_id} {self.action_id}: {self.status.name}, error={self.error!r}, result={self.result_value!r})"

    def __repr__(self) -> str:
        return str(self)

class AdapterEventSink(ABC):
    """Receives adapter events. All methods are called on the adapter's event loop."""

    @abstractmethod
    def device_updated(self, device: Device, channels: List[Channel]) -> None:
        """A full device/channel snapshot."""
        ...

    @abstractmethod
    def channel_updated(self, device_id: str, channel: Channel) -> None:
        """A single channel descriptor changed (e.g. the input choices)."""
        ...

    @abstractmethod
    def channel_state_updated(self, state: ChannelState) -> None:
        ...

    @abstractmethod
    def connection_state_changed(self, connected: bool) -> None:
        ...

    @abstractmethod
    def cmd_result(self, result: CmdResult) -> None:
        ...

    @abstractmethod
    def action_result(self, result: ActionResult) -> None:
        ...

    @abstractmethod
    def adapter_meta_updated(self, patch: JsonableDict) -> None:
        """The adapter proposes a patch to the persisted device metadata."""
        ...

    @abstractmethod
    def full_sync_completed(self) -> None:
        ...

class NullEventSink(AdapterEventSink):
    """Discards all events."""

    def device_updated(self, device: Device, channels: List[Channel]) -> None:
        pass

    def channel_updated(self, device_id: str, channel: Channel) -> None:
        pass

    def channel_state_updated(self, state: ChannelState) -> None:
        pass

    def connection_state_changed(self, connected: bool) -> None:
        pass

    def cmd_result(self, result: CmdResult) -> None:
        pass

    def action_result(self, result: ActionResult) -> None:
        pass

    def adapter_meta_updated(self, patch: JsonableDict) -> None:
        pass

    def full_sync_completed(self) -> None:
        pass

AdapterEvent = Tuple[str, Tuple[Any, ...]]
"""A recorded event: (sink method name, arguments)."""

class RecordingEventSink(AdapterEventSink):
    """Keeps every event, in order, as (method name, args) tuples."""

    events: List[AdapterEvent]

    def __init__(self) -> None:
        self.events = []

    def _record(self, name: str, *args: Any) -> None:
        self.events.append((name, args))

    def device_updated(self, device: Device, channels: List[Channel]) -> None:
        self._record('device_updated', device, channels)

    def channel_updated(self, device_id: str, channel: Channel) -> None:
        self._record('channel_updated', device_id, channel)

    def channel_state_updated(self, state: ChannelState) -> None:
        self._record('channel_state_updated', state)

    def connection_state_changed(self, connected: bool) -> None:
        self._record('connection_state_changed', connected)

    def cmd_result(self, result: CmdResult) -> None:
        self._record('cmd_result', result)

    def action_result(self, result: ActionResult) -> None:
        self._record('action_result', result)

    def adapter_meta_updated(self, patch: JsonableDict) -> None:
        self._record('adapter_meta_updated', patch)

    def full_sync_completed(self) -> None:
        self._record('full_sync_completed')

    def of_type(self, name: str) -> List[Tuple[Any, ...]]:
        """Returns the argument tuples of all recorded events with the given method name."""
        return [args for event_name, args in self.events if event_name == name]

    def channel_states(self, channel_id: Optional[str]=None) -> List[ChannelState]:
        result: List[ChannelState] = [args[0] for args in self.of_type('channel_state_updated')]
        if channel_id is not None:
            result = [s for s in result if s.channel_id == channel_id]
        return result

    def clear(self) -> None:
        self.events.clear()

class StateCacheEventSink(AdapterEventSink):
    """Keeps the latest value of each channel, the latest snapshot and the latest results.

    An optional downstream sink receives every event after the cache is updated.
    """

    device: Optional[Device] = None
    channels: Dict[str, Channel]
    values: Dict[str, Any]
    timestamps: Dict[str, int]
    connected: bool = False
    synced: bool = False
    last_cmd_result: Optional[CmdResult] = None
    last_action_result: Optional[ActionResult] = None
    meta_patch: JsonableDict
    """All proposed metadata patches, merged."""

    downstream: Optional[AdapterEventSink] = None

    def __init__(self, downstream: Optional[AdapterEventSink]=None) -> None:
        self.channels = {}
        self.values = {}
        self.timestamps = {}
        self.meta_patch = {}
        self.downstream = downstream

    def device_updated(self, device: Device, channels: List[Channel]) -> None:
        self.device = device
        self.channels = { channel.id: channel for channel in channels }
        if self.downstream is not None:
            self.downstream.device_updated(device, channels)

    def channel_updated(self, device_id: str, channel: Channel) -> None:
        self.channels[channel.id] = channel
        if self.downstream is not None:
            self.downstream.channel_updated(device_id, channel)

    def channel_state_updated(self, state: ChannelState) -> None:
        self.values[state.channel_id] = state.value
        self.timestamps[state.channel_id] = state.timestamp_ms
        if self.downstream is not None:
            self.downstream.channel_state_updated(state)

    def connection_state_changed(self, connected: bool) -> None:
        self.connected = connected
        if self.downstream is not None:
            self.downstream.connection_state_changed(connected)

    def cmd_result(self, result: CmdResult) -> None:
        self.last_cmd_result = result
        if self.downstream is not None:
            self.downstream.cmd_result(result)

    def action_result(self, result: ActionResult) -> None:
        self.last_action_result = result
        if self.downstream is not None:
            self.downstream.action_result(result)

    def adapter_meta_updated(self, patch: JsonableDict) -> None:
        self.meta_patch.update(patch)
        if self.downstream is not None:
            self.downstream.adapter_meta_updated(patch)

    def full_sync_completed(self) -> None:
        self.synced = True
        if self.downstream is not None:
            self.downstream.full_sync_completed()

    def get(self, channel_id: str, default: Any=None) -> Any:
        return self.values.get(channel_id, default)

    def to_jsonable(self) -> JsonableDict:
        values: JsonableDict = {}
        for channel_id, value in self.values.items():
            if isinstance(value, ConnectivityStatus):
                value = value.name.lower()
            values[channel_id] = value
        return dict(
            device=None if self.device is None else self.device.to_jsonable(),
            connected=self.connected,
            synced=self.synced,
            values=values,
            timestamps=dict(self.timestamps),
          )

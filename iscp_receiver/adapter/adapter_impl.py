# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
The receiver adapter.

Composes the connection manager, command dispatcher, poll scheduler and
channel translator for one receiver, and reports everything through an
AdapterEventSink.

Lifecycle:
    Stopped -> start() -> Running -> stop() -> Stopped

While running, channel writes and periodic refreshes flow through the
dispatcher; the presence timer and poll timer run as tasks on the event loop.
"""

from __future__ import annotations

import logging

from ..internal_types import *
from ..exceptions import InvalidArgumentError, NotSupportedError
from ..constants import (
    INITIAL_REFRESH_DELAY,
    PRESENCE_CHECK_INTERVAL,
    PROBE_INPUT_TIMEOUT_MS,
  )
from ..pkg_logging import logger as pkg_logger
from ..protocol import (
    ChannelState,
    ChannelStateTranslator,
    ConnectivityStatus,
    InputLabelRegistry,
    INPUT_QUERY,
    CHANNEL_CONNECTIVITY,
    ACTIVE_CODES_KEY,
    INPUT_LABEL_KEY_PREFIX,
    default_input_label,
    normalize_input_code,
    parse_active_codes,
  )
from ..client import (
    DeviceDescriptor,
    CancellationToken,
    ConnectionManager,
    CommandDispatcher,
    PollScheduler,
  )

from .events import (
    AdapterEventSink,
    NullEventSink,
    CmdResult,
    ActionResult,
    CmdStatus,
  )
from .device import (
    Device,
    build_device,
    build_channels,
    build_input_channel,
    resolve_device_id,
  )
from .probe import probe_descriptor, PROBE_ACTION

PROBE_CURRENT_INPUT_ACTION = "probeCurrentInput"

def input_probe_meta_patch(meta: Mapping[str, Any], code: str) -> JsonableDict:
    """The metadata patch that adds `code` to the active inputs.

    activeSliCodes becomes the existing codes plus `code`; if `code` has no
    label yet, inputLabel_<code> is set to "SLI <code>".
    """
    normalized = normalize_input_code(code)
    active = parse_active_codes(meta.get(ACTIVE_CODES_KEY)) or []
    if normalized not in active:
        active.append(normalized)
    patch: JsonableDict = { ACTIVE_CODES_KEY: cast(Jsonable, active) }
    label_key = f"{INPUT_LABEL_KEY_PREFIX}{normalized}"
    existing = meta.get(label_key)
    if not isinstance(existing, str) or existing.strip() == '':
        patch[label_key] = default_input_label(normalized)
    return patch

class ReceiverAdapter:
    """Adapter for a single Onkyo/Pioneer receiver."""

    descriptor: DeviceDescriptor
    sink: AdapterEventSink
    logger: logging.Logger
    token: CancellationToken
    connection: ConnectionManager
    translator: ChannelStateTranslator
    dispatcher: CommandDispatcher
    scheduler: Optional[PollScheduler] = None
    initial_refresh_delay: Optional[float]
    presence_check_interval: float

    device_id: str = ''
    synced: bool = False
    running: bool = False

    def __init__(
            self,
            descriptor: DeviceDescriptor,
            sink: Optional[AdapterEventSink]=None,
            *,
            clock: Optional[Callable[[], int]]=None,
            logger: Optional[logging.Logger]=None,
            initial_refresh_delay: Optional[float]=INITIAL_REFRESH_DELAY,
            presence_check_interval: float=PRESENCE_CHECK_INTERVAL,
          ) -> None:
        """Creates an adapter. Nothing happens on the network until start().

        Args:
            descriptor: The receiver's device descriptor.
            sink: Receives all adapter events. Defaults to a NullEventSink.
            clock: Millisecond clock for connection bookkeeping; monotonic by default.
            logger: Defaults to a child of the package logger.
            initial_refresh_delay: Seconds after start() before the first refresh, or None
                to skip the one-shot refresh.
            presence_check_interval: Seconds between presence timeout checks.
        """
        self.descriptor = descriptor
        self.sink = NullEventSink() if sink is None else sink
        self.logger = pkg_logger.getChild('adapter') if logger is None else logger
        self.initial_refresh_delay = initial_refresh_delay
        self.presence_check_interval = presence_check_interval
        self.token = CancellationToken()
        self.connection = ConnectionManager(
            descriptor.retry_interval_ms,
            descriptor.presence_timeout_ms,
            clock=clock,
            logger=self.logger,
            listener=self._on_connectivity_changed,
          )
        self.translator = ChannelStateTranslator(
            volume_max_raw=descriptor.volume_max_raw,
            logger=self.logger,
          )
        self.dispatcher = CommandDispatcher(
            descriptor,
            connection=self.connection,
            translator=self.translator,
            token=self.token,
            state_listener=self._on_channel_state,
            logger=self.logger,
          )
        self.apply_config()

    # ---------------------------------------------------------------- configuration

    @property
    def input_labels(self) -> InputLabelRegistry:
        return self.translator.input_labels

    @property
    def is_connected(self) -> bool:
        return self.connection.is_connected

    def apply_config(self) -> None:
        """Re-reads and re-clamps all settings from the current descriptor."""
        descriptor = self.descriptor
        self.connection.configure(descriptor.retry_interval_ms, descriptor.presence_timeout_ms)
        self.translator.volume_max_raw = descriptor.volume_max_raw
        self.translator.input_labels = InputLabelRegistry.from_meta(descriptor.meta)
        self.dispatcher.descriptor = descriptor
        if self.scheduler is not None:
            self.scheduler.reevaluate()

    def current_poll_interval_ms(self) -> int:
        if self.connection.is_connected:
            return self.descriptor.poll_interval_ms
        return self.descriptor.retry_interval_ms

    # ---------------------------------------------------------------- lifecycle

    async def start(self) -> None:
        """Starts presence tracking and polling, and emits the device snapshot. Has no effect if running."""
        if self.running:
            return
        self.token.reset()
        self.apply_config()
        descriptor = self.descriptor
        self.logger.info(
            f"Starting adapter for {descriptor.adapter_id!r}: "
            f"address={descriptor.control_host}:{descriptor.control_port}, "
            f"presence_timeout_ms={descriptor.presence_timeout_ms}, "
            f"poll_interval_ms={descriptor.poll_interval_ms}, "
            f"volume_max_raw={descriptor.volume_max_raw}"
          )
        if descriptor.address is None:
            self.logger.warning("Receiver address not configured; staying disconnected")
        self.running = True
        self.synced = False
        self.connection.start_presence_timer(self.presence_check_interval)
        self.emit_device_snapshot()
        self.scheduler = PollScheduler(
            self.refresh,
            self.current_poll_interval_ms,
            initial_delay=self.initial_refresh_delay,
            token=self.token,
            logger=self.logger,
          )
        self.scheduler.start()

    async def stop(self) -> None:
        """Cancels in-flight operations, stops the timers and discards the connection history."""
        if not self.running:
            return
        self.logger.info(f"Stopping adapter for {self.descriptor.adapter_id!r}")
        self.running = False
        self.synced = False
        self.token.cancel()
        scheduler = self.scheduler
        self.scheduler = None
        if scheduler is not None:
            await scheduler.stop()
        await self.connection.stop_presence_timer()
        self.connection.reset()

    async def __aenter__(self) -> ReceiverAdapter:
        await self.start()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc_val: Optional[BaseException],
            exc_tb: Optional[TracebackType],
          ) -> None:
        await self.stop()

    async def refresh(self) -> int:
        """Queries the full receiver state. Returns the number of queries sent."""
        if self.token.is_cancelled or self.descriptor.address is None:
            return 0
        return await self.dispatcher.refresh_state()

    async def request_full_sync(self) -> None:
        """Emits the snapshot and refreshes, unless a snapshot was already emitted."""
        if self.synced:
            return
        self.emit_device_snapshot()
        await self.refresh()

    async def update_config(self, descriptor: DeviceDescriptor) -> None:
        """Applies a new descriptor, re-announces the input channel (or the whole snapshot) and refreshes."""
        self.descriptor = descriptor
        self.apply_config()
        if self.synced and self.device_id != '':
            self.sink.channel_updated(self.device_id, build_input_channel(self.input_labels))
        else:
            self.emit_device_snapshot()
        await self.refresh()

    def build_device(self) -> Device:
        return build_device(self.descriptor, self.device_id)

    def emit_device_snapshot(self) -> None:
        if self.synced:
            return
        self.device_id = resolve_device_id(self.descriptor)
        self.translator.device_id = self.device_id
        self.sink.device_updated(self.build_device(), build_channels(self.input_labels))
        self.sink.full_sync_completed()
        self.synced = True

    # ---------------------------------------------------------------- events

    def _on_channel_state(self, state: ChannelState) -> None:
        self.sink.channel_state_updated(state)

    def _on_connectivity_changed(self, status: ConnectivityStatus) -> None:
        connected = status == ConnectivityStatus.CONNECTED
        if self.scheduler is not None:
            self.scheduler.reevaluate()
        self.sink.connection_state_changed(connected)
        self.sink.channel_state_updated(ChannelState(self.device_id, CHANNEL_CONNECTIVITY, status))

    # ---------------------------------------------------------------- commands

    async def update_channel_state(
            self,
            device_id: str,
            channel_id: str,
            value: Any,
            cmd_id: int=0,
          ) -> CmdResult:
        """Writes a channel value to the receiver. The result is also sent to the sink."""
        result = await self._update_channel_state(device_id, channel_id, value, cmd_id)
        self.sink.cmd_result(result)
        return result

    async def _update_channel_state(
            self,
            device_id: str,
            channel_id: str,
            value: Any,
            cmd_id: int,
          ) -> CmdResult:
        if device_id != self.device_id:
            return CmdResult(cmd_id, CmdStatus.NOT_SUPPORTED, "Unknown device")
        try:
            command, final_value = self.translator.encode_channel(channel_id, value)
        except NotSupportedError as e:
            return CmdResult(cmd_id, CmdStatus.NOT_SUPPORTED, str(e))
        except InvalidArgumentError as e:
            return CmdResult(cmd_id, CmdStatus.INVALID_ARGUMENT, str(e))
        if not await self.dispatcher.send(command):
            return CmdResult(cmd_id, CmdStatus.TEMPORARILY_OFFLINE, "Receiver unavailable")
        return CmdResult(cmd_id, CmdStatus.SUCCESS, final_value=final_value)

    async def invoke_adapter_action(
            self,
            action_id: str,
            params: Optional[JsonableDict]=None,
            cmd_id: int=0,
          ) -> Optional[ActionResult]:
        """Runs an adapter action.

        A cmd_id of 0 is fire-and-forget: nothing is done and no result is
        produced. Otherwise the result is returned and also sent to the sink.
        """
        if cmd_id == 0:
            return None
        if action_id == PROBE_CURRENT_INPUT_ACTION:
            result = await self._probe_current_input(cmd_id)
        elif action_id == PROBE_ACTION:
            result = await probe_descriptor(self.descriptor, logger=self.logger, cmd_id=cmd_id)
        else:
            result = ActionResult(cmd_id, action_id, CmdStatus.NOT_SUPPORTED, "Adapter action not supported")
        self.sink.action_result(result)
        return result

    async def _probe_current_input(self, cmd_id: int) -> ActionResult:
        before = self.translator.last_input_code
        self.translator.last_input_code = None
        ok = await self.dispatcher.send(INPUT_QUERY, expect_response=True, timeout_ms=PROBE_INPUT_TIMEOUT_MS)
        reported = self.translator.last_input_code
        if reported is None:
            self.translator.last_input_code = before
        resolved = reported if reported is not None else before
        if not ok:
            return ActionResult(cmd_id, PROBE_CURRENT_INPUT_ACTION, CmdStatus.TEMPORARILY_OFFLINE, "Receiver unavailable")
        if resolved is None or resolved == '':
            return ActionResult(cmd_id, PROBE_CURRENT_INPUT_ACTION, CmdStatus.FAILURE, "No input reported")
        patch = input_probe_meta_patch(self.descriptor.meta, resolved)
        self.sink.adapter_meta_updated(patch)
        return ActionResult(
            cmd_id, PROBE_CURRENT_INPUT_ACTION, CmdStatus.SUCCESS, result_value=resolved, meta_patch=patch)

    def __str__(self) -> str:
        return f"ReceiverAdapter({self.device_id or self.descriptor.adapter_id!r}, running={self.running})"

    def __repr__(self) -> str:
        return str(self)

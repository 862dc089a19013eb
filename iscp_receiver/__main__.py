#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Command-line tool for Onkyo/Pioneer receivers.

    iscp-receiver exec PWRQSTN MVLQSTN
    iscp-receiver set volume 35
    iscp-receiver probe [--current-input]
    iscp-receiver monitor [--duration <seconds>]
    iscp-receiver emulator [--port <port>]
"""

from __future__ import annotations

import sys
import argparse
import json
import asyncio
import dotenv
from signal import SIGINT, SIGTERM

from iscp_receiver.internal_types import *
from iscp_receiver import (
    __version__ as pkg_version,
    DEFAULT_PORT,
    DeviceDescriptor,
    ReceiverAdapter,
    AdapterEventSink,
    ChannelState,
    CmdResult,
    ActionResult,
    Device,
    Channel,
    IscpCommand,
    iscp_transact,
    probe_descriptor,
    full_class_name,
  )
from iscp_receiver.adapter import PROBE_CURRENT_INPUT_ACTION
from iscp_receiver.cli_util import CliCommandHandler, CmdExitError, run_handler, arun_handler

class PrintingEventSink(AdapterEventSink):
    """Prints each adapter event to stdout as a line of JSON."""

    def _print(self, event: str, **kwargs: Any) -> None:
        print(json.dumps(dict(event=event, **kwargs)), flush=True)

    def device_updated(self, device: Device, channels: List[Channel]) -> None:
        self._print('device_updated', device=device.to_jsonable(), channels=[c.to_jsonable() for c in channels])

    def channel_updated(self, device_id: str, channel: Channel) -> None:
        self._print('channel_updated', device_id=device_id, channel=channel.to_jsonable())

    def channel_state_updated(self, state: ChannelState) -> None:
        self._print('channel_state_updated', **state.to_jsonable())

    def connection_state_changed(self, connected: bool) -> None:
        self._print('connection_state_changed', connected=connected)

    def cmd_result(self, result: CmdResult) -> None:
        self._print('cmd_result', **result.to_jsonable())

    def action_result(self, result: ActionResult) -> None:
        self._print('action_result', **result.to_jsonable())

    def adapter_meta_updated(self, patch: JsonableDict) -> None:
        self._print('adapter_meta_updated', patch=patch)

    def full_sync_completed(self) -> None:
        self._print('full_sync_completed')

class SignalStop:
    """Sets an event on SIGINT or SIGTERM while active."""

    event: asyncio.Event
    callback: Optional[Callable[[], None]]

    def __init__(self, callback: Optional[Callable[[], None]]=None):
        self.event = asyncio.Event()
        self.callback = callback

    def _on_signal(self) -> None:
        self.event.set()
        if self.callback is not None:
            self.callback()

    def __enter__(self) -> SignalStop:
        loop = asyncio.get_running_loop()
        for signal in (SIGINT, SIGTERM):
            loop.add_signal_handler(signal, self._on_signal)
        return self

    def __exit__(self, *args: Any) -> None:
        loop = asyncio.get_running_loop()
        for signal in (SIGINT, SIGTERM):
            loop.remove_signal_handler(signal)

class CommandHandler(CliCommandHandler):
    prog_name = "iscp-receiver"
    description = "Control an Onkyo/Pioneer receiver."

    def get_descriptor(self) -> DeviceDescriptor:
        config_file: Optional[str] = self._args.config
        base_descriptor: Optional[DeviceDescriptor] = None
        if config_file is not None:
            base_descriptor = DeviceDescriptor.from_config_file(config_file)
        return DeviceDescriptor(
            self._args.host,
            port=self._args.port,
            base_descriptor=base_descriptor,
          )

    def create_adapter(self, sink: Optional[AdapterEventSink]=None) -> ReceiverAdapter:
        """An adapter for a one-shot operation: snapshot emitted, no timers running."""
        adapter = ReceiverAdapter(self.get_descriptor(), sink, initial_refresh_delay=None)
        adapter.emit_device_snapshot()
        return adapter

    async def cmd_bare(self) -> int:
        print("A command is required", file=sys.stderr)
        return 1

    async def cmd_emulator(self) -> int:
        from iscp_receiver.emulator import ReceiverEmulator
        emulator = ReceiverEmulator(
            bind_addr=self._args.bind,
            port=self._args.port,
            power=self._args.power_on,
            input_code=self._args.input_code,
          )
        with SignalStop(lambda: emulator.close(CmdExitError(1, "Emulator terminated with SIGINT or SIGTERM"))):
            await emulator.run()
        return 0

    async def cmd_exec(self) -> int:
        continue_on_error: bool = self._args.continue_on_error
        timeout_ms: int = self._args.timeout_ms
        cmd_strs: List[str] = self._args.exec_command
        if len(cmd_strs) == 0:
            raise CmdExitError(1, "No receiver commands specified")
        descriptor = self.get_descriptor()

        response_datas: List[JsonableDict] = []
        try:
            for cmd_str in cmd_strs:
                response_data: JsonableDict = dict(command=cmd_str)
                response_datas.append(response_data)
                try:
                    messages = await iscp_transact(
                        IscpCommand.parse(cmd_str),
                        descriptor=descriptor,
                        timeout_ms=timeout_ms,
                      )
                    response_data["messages"] = cast(Jsonable, messages)
                except Exception as exc:
                    error_message = str(exc) or full_class_name(exc)
                    response_data.update(error=full_class_name(exc), error_message=error_message)
                    if not continue_on_error:
                        raise
        finally:
            print(json.dumps(response_datas, indent=2))
        return 0

    async def cmd_set(self) -> int:
        adapter = self.create_adapter()
        result = await adapter.update_channel_state(adapter.device_id, self._args.channel, self._args.value, cmd_id=1)
        print(json.dumps(result.to_jsonable(), indent=2))
        if not result.ok:
            raise CmdExitError(1, result.error)
        return 0

    async def cmd_probe(self) -> int:
        if self._args.current_input:
            adapter = self.create_adapter(PrintingEventSink())
            result = await adapter.invoke_adapter_action(PROBE_CURRENT_INPUT_ACTION, cmd_id=1)
            assert result is not None
        else:
            result = await probe_descriptor(self.get_descriptor(), cmd_id=1)
            print(json.dumps(result.to_jsonable(), indent=2))
        if not result.ok:
            raise CmdExitError(1, result.error)
        return 0

    async def cmd_monitor(self) -> int:
        duration: Optional[float] = self._args.duration
        with SignalStop() as stop:
            async with ReceiverAdapter(self.get_descriptor(), PrintingEventSink()):
                try:
                    await asyncio.wait_for(stop.event.wait(), timeout=duration)
                except asyncio.TimeoutError:
                    pass
        return 0

    async def cmd_version(self) -> int:
        print(pkg_version)
        return 0

    def add_receiver_args(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument('--host', default=None,
                            help='''The receiver host address. Default: use env var ISCP_RECEIVER_HOST.''')
        parser.add_argument("--port", default=None, type=int,
            help=f"Receiver eISCP port number to connect to. Default: {DEFAULT_PORT}")
        parser.add_argument("-c", "--config", default=None,
            help="A JSON device descriptor file. Default: use env var ISCP_RECEIVER_CONFIG_FILE.")

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.set_defaults(func=self.cmd_bare)

        subparsers = parser.add_subparsers(
                            title='Commands',
                            description='Valid commands',
                            help='Additional help available with "<command-name> -h"')

        # ======================= emulator

        parser_emulator = subparsers.add_parser('emulator', description="Run a receiver emulator for testing purposes.")
        parser_emulator.add_argument("--port", default=DEFAULT_PORT, type=int,
            help=f"Port number to listen on. Default: {DEFAULT_PORT}")
        parser_emulator.add_argument('-b', '--bind', default="0.0.0.0",
                            help='''The local unicast IP address to bind to. Default: 0.0.0.0.''')
        parser_emulator.add_argument('--on', dest='power_on', action='store_true', default=False,
                            help='''Start with power on. Default: standby''')
        parser_emulator.add_argument('--input', dest='input_code', default="23",
                            help='''The initial SLI input code. Default: 23''')
        parser_emulator.set_defaults(func=self.cmd_emulator)

        # ======================= exec

        parser_exec = subparsers.add_parser('exec', description="Send one or more raw ISCP commands to the receiver.")
        self.add_receiver_args(parser_exec)
        parser_exec.add_argument('--continue', dest="continue_on_error", action='store_true', default=False,
                            help='Continue running commands on error. Default: False')
        parser_exec.add_argument('--timeout-ms', dest="timeout_ms", default=800, type=int,
                            help='Milliseconds to wait for each reply. Default: 800')
        parser_exec.add_argument('exec_command', nargs=argparse.REMAINDER,
                            help='''One or more raw commands to send; e.g., "PWRQSTN" "MVL20".''')
        parser_exec.set_defaults(func=self.cmd_exec)

        # ======================= set

        parser_set = subparsers.add_parser('set', description="Set a channel (power, mute, volume or input).")
        self.add_receiver_args(parser_set)
        parser_set.add_argument('channel', choices=['power', 'mute', 'volume', 'input'],
                            help='''The channel to set.''')
        parser_set.add_argument('value',
                            help='''The value; e.g., "on", "35" (percent), "HDMI 1" or "23".''')
        parser_set.set_defaults(func=self.cmd_set)

        # ======================= probe

        parser_probe = subparsers.add_parser('probe', description="Check that the receiver answers a power query.")
        self.add_receiver_args(parser_probe)
        parser_probe.add_argument('--current-input', dest='current_input', action='store_true', default=False,
                            help='''Instead, read the current input and print the proposed metadata patch.''')
        parser_probe.set_defaults(func=self.cmd_probe)

        # ======================= monitor

        parser_monitor = subparsers.add_parser('monitor', description="Run the adapter and print its events as JSON lines.")
        self.add_receiver_args(parser_monitor)
        parser_monitor.add_argument('--duration', default=None, type=float,
                            help='''Seconds to run. Default: until interrupted''')
        parser_monitor.set_defaults(func=self.cmd_monitor)

        # ======================= version

        parser_version = subparsers.add_parser('version',
                                description='''Display version information.''')
        parser_version.set_defaults(func=self.cmd_version)

def run(argv: Optional[Sequence[str]]=None) -> int:
    dotenv.load_dotenv()
    return run_handler(CommandHandler, argv)

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    return await arun_handler(CommandHandler, argv)

# allow running with "python3 -m", or as a standalone script
if __name__ == "__main__":
    sys.exit(run())

#!/usr/bin/env python3

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Interactive console that sends raw ISCP commands (e.g. "PWRQSTN", "MVL20")
over one eISCP connection and prints every message the receiver sends back.

Unlike the adapter, the console keeps its connection open for the whole
session so that unsolicited status reports are shown as they arrive.
"""

from __future__ import annotations

import sys
import argparse
import asyncio
import dotenv
import aioconsole
import colorama # type: ignore[import]
from colorama import Fore, Style
import traceback

from iscp_receiver.internal_types import *
from iscp_receiver.pkg_logging import logger
from iscp_receiver.cli_util import CliCommandHandler, CmdExitError, run_handler, arun_handler
from iscp_receiver.client import DeviceDescriptor, IscpTcpTransport
from iscp_receiver.constants import DEFAULT_PORT
from iscp_receiver.exceptions import IscpReceiverError
from iscp_receiver.protocol import IscpCommand, FrameStreamDecoder, split_payload

EXIT_WORDS = ("exit", "quit", "q")

PROMPT_WIDTH = 20

class RawConsoleHandler(CliCommandHandler):
    prog_name = "iscp-receiver-console"
    description = "Send raw ISCP commands to an Onkyo/Pioneer receiver."

    _transport: Optional[IscpTcpTransport] = None
    _input_task: Optional[asyncio.Task[None]] = None
    _output_task: Optional[asyncio.Task[None]] = None
    _colorize_stdout: bool = True

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument('--no-color', dest='no_color', action='store_true', default=False,
                            help='''Do not colorize output''')
        parser.add_argument('-p', '--port', default=None, type=int,
                            help=f'''The eISCP port number to connect to. Default: {DEFAULT_PORT}''')
        parser.add_argument('ip_address', default=None, nargs='?',
                            help='''The LAN hostname or IP address of the receiver. Default: ISCP_RECEIVER_HOST''')
        parser.set_defaults(func=self.cmd_console)

    def on_args_parsed(self, args: argparse.Namespace) -> None:
        self._colorize_stdout = not args.no_color and sys.stdout.isatty()
        if self._colorize_stdout:
            colorama.init()

    def colored(self, color: str, text: str) -> str:
        if not self._colorize_stdout:
            return text
        return f"{color}{text}{Style.RESET_ALL}"

    async def open_transport(self) -> IscpTcpTransport:
        address = DeviceDescriptor(self._args.ip_address, port=self._args.port).address
        if address is None:
            raise CmdExitError(1, "Receiver host is required (argument or ISCP_RECEIVER_HOST)")
        host, port = address
        transport = IscpTcpTransport(host, port)
        await transport.connect()
        print(self.colored(Fore.GREEN, f"Connected to {host}:{port}; enter commands, or 'q' to quit"))
        return transport

    def parse_line(self, line: str) -> Optional[IscpCommand]:
        try:
            return IscpCommand.parse(line)
        except IscpReceiverError as e:
            detail = f"\n{traceback.format_exc()}" if self._provide_traceback else ""
            print(self.colored(Fore.RED, f"\rInvalid command: {e}{detail}"))
            return None

    async def read_commands(self, transport: IscpTcpTransport) -> None:
        try:
            while True:
                line = (await aioconsole.ainput(">>> ")).strip()
                if line in EXIT_WORDS:
                    break
                if line == '':
                    continue
                command = self.parse_line(line)
                if command is None:
                    continue
                print(self.colored(Fore.GREEN, f"\r{str(command):<{PROMPT_WIDTH}} ->"))
                await transport.write_command(command)
                # give the reply a chance to print before the next prompt
                await asyncio.sleep(0.3)
        except EOFError:
            print()
        finally:
            logger.debug("Console input task exiting")
            if self._output_task is not None:
                self._output_task.cancel()

    async def print_messages(self, transport: IscpTcpTransport) -> None:
        decoder = FrameStreamDecoder(transport.codec)
        try:
            while True:
                data = await transport.read_chunk()
                if len(data) == 0:
                    print(self.colored(Fore.RED, "\rConnection closed by receiver"))
                    break
                for payload in decoder.feed(data):
                    for message in split_payload(payload):
                        print(f"\r{' '*PROMPT_WIDTH}    <- {self.colored(Fore.BLUE, message)}")
        finally:
            logger.debug("Console output task exiting")
            if self._input_task is not None:
                self._input_task.cancel()

    async def cmd_console(self) -> int:
        transport = await self.open_transport()
        self._transport = transport
        try:
            self._input_task = asyncio.create_task(self.read_commands(transport))
            self._output_task = asyncio.create_task(self.print_messages(transport))
            results = await asyncio.gather(self._input_task, self._output_task, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    raise result
        finally:
            await transport.close()
        return 0

def run(argv: Optional[Sequence[str]]=None) -> int:
    dotenv.load_dotenv()
    return run_handler(RawConsoleHandler, argv)

async def arun(argv: Optional[Sequence[str]]=None) -> int:
    return await arun_handler(RawConsoleHandler, argv)

if __name__ == "__main__":
    sys.exit(run())

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Shared plumbing for the package's command-line tools: argument parsing that
does not call sys.exit(), logging setup, and mapping exceptions to exit codes.
"""

from __future__ import annotations

import sys
import argparse
import asyncio
import logging

from .internal_types import *

class CmdExitError(RuntimeError):
    """Raised by a command to exit with a specific return code."""
    exit_code: int

    def __init__(self, exit_code: int, msg: Optional[str]=None):
        if msg is None:
            msg = f"Command exited with return code {exit_code}"
        super().__init__(msg)
        self.exit_code = exit_code

class ArgparseExitError(CmdExitError):
    pass

class NoExitArgumentParser(argparse.ArgumentParser):
    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, sys.stderr)
        raise ArgparseExitError(status, message)

CommandFunc = Callable[[], Awaitable[int]]

class CliCommandHandler:
    """Base class for a command-line tool.

    Subclasses set prog_name and description, add their arguments in
    add_arguments(), and bind each command coroutine with
    parser.set_defaults(func=...).
    """

    prog_name: str = "iscp-receiver"
    description: str = ""

    _argv: Optional[Sequence[str]]
    _parser: argparse.ArgumentParser
    _args: argparse.Namespace
    _provide_traceback: bool = True

    def __init__(self, argv: Optional[Sequence[str]]=None):
        self._argv = argv

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        pass

    def on_args_parsed(self, args: argparse.Namespace) -> None:
        pass

    async def arun(self) -> int:
        """Runs the tool with the arguments given to the constructor.

        Returns:
            int: The exit code that would be returned if this were run as a standalone command.
        """
        parser = NoExitArgumentParser(prog=self.prog_name, description=self.description)
        self._parser = parser
        parser.add_argument('--traceback', "--tb", action='store_true', default=False,
                            help='Display detailed exception information')
        parser.add_argument('--log-level', dest='log_level', default='warning',
                            choices=['debug', 'info', 'warning', 'error', 'critical'],
                            help='''The logging level to use. Default: warning''')
        self.add_arguments(parser)

        try:
            args = parser.parse_args(self._argv)
        except ArgparseExitError as ex:
            return ex.exit_code
        traceback: bool = args.traceback
        self._provide_traceback = traceback

        try:
            logging.basicConfig(
                level=logging.getLevelName(args.log_level.upper()),
            )
            self._args = args
            self.on_args_parsed(args)
            func: CommandFunc = args.func
            logging.debug(f"Running command {func.__name__}, tb = {traceback}")
            rc = await func()
            logging.debug(f"Command {func.__name__} returned {rc}")
        except Exception as ex:
            rc = ex.exit_code if isinstance(ex, CmdExitError) else 1
            if rc != 0 and traceback:
                raise
            ex_desc = str(ex)
            if len(ex_desc) == 0:
                ex_desc = ex.__class__.__name__
            print(f"{self.prog_name}: error: {ex_desc}", file=sys.stderr)
        except BaseException as ex:
            print(f"{self.prog_name}: Unhandled exception {ex.__class__.__name__}: {ex}", file=sys.stderr)
            raise

        return rc

    def run(self) -> int:
        return asyncio.run(self.arun())

def run_handler(handler_class: Type[CliCommandHandler], argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = handler_class(argv).run()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

async def arun_handler(handler_class: Type[CliCommandHandler], argv: Optional[Sequence[str]]=None) -> int:
    try:
        rc = await handler_class(argv).arun()
    except CmdExitError as ex:
        rc = ex.exit_code
    return rc

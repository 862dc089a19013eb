# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
ISCP command values.

An ISCP command is a 3-letter upper-case code, optionally followed by a
parameter; e.g., "PWR" + "01" (power on), or "MVL" + "QSTN" (query volume).
"""

from __future__ import annotations

from ..internal_types import *
from ..exceptions import IscpReceiverError
from .constants import COMMAND_CODE_LENGTH, QUERY_PARAMETER

class IscpCommand:
    """A single ISCP command. Immutable; constructed per call."""

    code: str
    """The 3-letter command code, e.g. "PWR"."""

    parameter: str
    """The command parameter, e.g. "01" or "QSTN". May be empty."""

    def __init__(self, code: str, parameter: str=''):
        if len(code) != COMMAND_CODE_LENGTH or not code.isascii() or not code.isalpha():
            raise IscpReceiverError(f"ISCP command code must be {COMMAND_CODE_LENGTH} ASCII letters: {code!r}")
        if not parameter.isascii():
            raise IscpReceiverError(f"ISCP command parameter must be ASCII: {parameter!r}")
        self.code = code.upper()
        self.parameter = parameter

    @classmethod
    def parse(cls, command: Union[str, bytes, IscpCommand]) -> IscpCommand:
        """Creates an IscpCommand from its string form, e.g. "SLI23".

        A leading "!1" unit prefix and trailing whitespace/terminators are tolerated.
        """
        if isinstance(command, IscpCommand):
            return command
        if isinstance(command, bytes):
            command = command.decode('ascii', errors='replace')
        command = command.strip()
        if command.startswith('!1'):
            command = command[2:]
        return cls(command[:COMMAND_CODE_LENGTH], command[COMMAND_CODE_LENGTH:])

    @classmethod
    def query(cls, code: str) -> IscpCommand:
        """Creates a status query command, e.g. query("PWR") -> "PWRQSTN"."""
        return cls(code, QUERY_PARAMETER)

    @property
    def is_query(self) -> bool:
        return self.parameter == QUERY_PARAMETER

    def to_str(self) -> str:
        return self.code + self.parameter

    def to_bytes(self) -> bytes:
        return self.to_str().encode('ascii')

    def __eq__(self, other: object) -> bool:
        if isinstance(other, IscpCommand):
            return self.code == other.code and self.parameter == other.parameter
        if isinstance(other, str):
            return self.to_str() == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_str())

    def __str__(self) -> str:
        return self.to_str()

    def __repr__(self) -> str:
        return f"IscpCommand({self.to_str()!r})"

POWER_CODE = "PWR"
MUTE_CODE = "AMT"
VOLUME_CODE = "MVL"
INPUT_CODE = "SLI"

POWER_QUERY = IscpCommand.query(POWER_CODE)
MUTE_QUERY = IscpCommand.query(MUTE_CODE)
VOLUME_QUERY = IscpCommand.query(VOLUME_CODE)
INPUT_QUERY = IscpCommand.query(INPUT_CODE)

STATE_QUERIES: List[IscpCommand] = [
    POWER_QUERY,
    MUTE_QUERY,
    VOLUME_QUERY,
    INPUT_QUERY,
  ]
"""The queries issued, in order, by a full state refresh."""

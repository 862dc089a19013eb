# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Translation between ISCP messages and logical channel values.

Inbound, a decoded payload may hold several CR-separated messages; each
recognized one becomes a ChannelState. Outbound, a requested channel value
becomes the IscpCommand that sets it.
"""

from __future__ import annotations

import logging
import re

from ..internal_types import *
from ..exceptions import InvalidArgumentError, NotSupportedError
from ..pkg_logging import logger as pkg_logger
from ..constants import DEFAULT_VOLUME_MAX_RAW
from ..util import clamp, round_half_up, to_bool
from .constants import COMMAND_CODE_LENGTH
from .command import (
    IscpCommand,
    POWER_CODE,
    MUTE_CODE,
    VOLUME_CODE,
    INPUT_CODE,
  )
from .channels import (
    ChannelState,
    CHANNEL_POWER,
    CHANNEL_VOLUME,
    CHANNEL_MUTE,
    CHANNEL_INPUT,
  )
from .input_labels import InputLabelRegistry

_HEX_RE = re.compile(r'^[0-9A-Fa-f]+$')

ChannelValue = Tuple[str, Any]
"""A tuple of (channel_id: str, value: Any)."""

def sanitize_line(line: str) -> str:
    """Trims whitespace, then any trailing control characters (e.g. the 0x1A EOF marker)."""
    line = line.strip()
    while len(line) > 0 and (ord(line[-1]) < 0x20 or ord(line[-1]) == 0x7f):
        line = line[:-1]
    return line

def split_payload(payload: Union[bytes, str]) -> List[str]:
    """Splits a payload into sanitized, non-empty messages with any "!1" prefix removed."""
    if isinstance(payload, bytes):
        payload = payload.decode('latin-1')
    result: List[str] = []
    for line in payload.split('\r'):
        line = sanitize_line(line)
        if line == '':
            continue
        if line.startswith('!1'):
            line = sanitize_line(line[2:])
        if line != '':
            result.append(line)
    return result

class ChannelStateTranslator:
    """Converts ISCP messages to and from channel values for a single receiver."""

    device_id: str
    volume_max_raw: int
    input_labels: InputLabelRegistry
    last_input_code: Optional[str] = None
    """The most recent input code reported by the receiver."""

    logger: logging.Logger

    def __init__(
            self,
            device_id: str='',
            volume_max_raw: int=DEFAULT_VOLUME_MAX_RAW,
            input_labels: Optional[InputLabelRegistry]=None,
            logger: Optional[logging.Logger]=None,
          ):
        self.device_id = device_id
        self.volume_max_raw = volume_max_raw
        self.input_labels = InputLabelRegistry() if input_labels is None else input_labels
        self.logger = pkg_logger if logger is None else logger

    # ---------------------------------------------------------------- inbound

    def parse_line(self, line: str) -> Optional[ChannelValue]:
        """Parses a single sanitized message. Returns None if it is not a recognized status."""
        code = line[:COMMAND_CODE_LENGTH]
        value = line[COMMAND_CODE_LENGTH:]
        if code == POWER_CODE:
            self.logger.debug(f"Parsed PWR: {value}")
            if value in ('01', '00'):
                return (CHANNEL_POWER, value == '01')
        elif code == MUTE_CODE:
            if value in ('01', '00'):
                return (CHANNEL_MUTE, value == '01')
        elif code == VOLUME_CODE:
            if _HEX_RE.match(value):
                raw = clamp(int(value, 16), 0, self.volume_max_raw)
                return (CHANNEL_VOLUME, raw / self.volume_max_raw * 100.0)
            self.logger.debug(f"Ignoring non-numeric volume report: {line!r}")
        elif code == INPUT_CODE:
            if value != '':
                self.last_input_code = value
                return (CHANNEL_INPUT, value)
        else:
            self.logger.debug(f"Ignoring unrecognized message: {line!r}")
        return None

    def parse_payload(self, payload: Union[bytes, str]) -> List[ChannelState]:
        """Parses every message in a payload. Unrecognized or malformed messages are skipped."""
        result: List[ChannelState] = []
        for line in split_payload(payload):
            parsed = self.parse_line(line)
            if parsed is not None:
                channel_id, value = parsed
                result.append(ChannelState(self.device_id, channel_id, value))
        return result

    # ---------------------------------------------------------------- outbound

    def encode_power(self, value: Any) -> Tuple[IscpCommand, bool]:
        on = to_bool(value)
        return (IscpCommand(POWER_CODE, '01' if on else '00'), on)

    def encode_mute(self, value: Any) -> Tuple[IscpCommand, bool]:
        muted = to_bool(value)
        return (IscpCommand(MUTE_CODE, '01' if muted else '00'), muted)

    def encode_volume(self, value: Any) -> Tuple[IscpCommand, float]:
        """Converts a volume percentage into an MVL command.

        Returns the command and the clamped percentage that was requested.
        """
        try:
            requested = float(value)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError("Volume must be numeric") from e
        if requested != requested:
            raise InvalidArgumentError("Volume must be numeric")
        percent = min(max(requested, 0.0), 100.0)
        raw = clamp(round_half_up(percent / 100.0 * self.volume_max_raw), 0, self.volume_max_raw)
        return (IscpCommand(VOLUME_CODE, f"{raw:02X}"), percent)

    def encode_input(self, value: Any) -> Tuple[IscpCommand, str]:
        """Converts an input code or label into an SLI command.

        Accepts "23", "SLI23" or a label such as "hdmi 1". Returns the command and the
        resolved code.
        """
        selected = ('' if value is None else str(value)).strip()
        if selected.startswith(INPUT_CODE):
            selected = selected[len(INPUT_CODE):]
        code = self.input_labels.resolve_label(selected)
        if code is not None:
            selected = code
        if len(selected) != 2:
            raise InvalidArgumentError("Input expects 2-digit code (e.g. 01)")
        return (IscpCommand(INPUT_CODE, selected), selected)

    def encode_channel(self, channel_id: str, value: Any) -> Tuple[IscpCommand, Any]:
        """Returns (command, final_value) that sets channel_id to value."""
        if channel_id == CHANNEL_POWER:
            return self.encode_power(value)
        if channel_id == CHANNEL_VOLUME:
            return self.encode_volume(value)
        if channel_id == CHANNEL_MUTE:
            return self.encode_mute(value)
        if channel_id == CHANNEL_INPUT:
            return self.encode_input(value)
        raise NotSupportedError("Channel not supported")

    def __str__(self) -> str:
        return f"ChannelStateTranslator(device_id={self.device_id!r}, volume_max_raw={self.volume_max_raw})"

    def __repr__(self) -> str:
        return str(self)

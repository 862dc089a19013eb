# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Low-level protocol definitions for Onkyo/Pioneer receivers.

This module defines the eISCP framing, the ISCP command values, and the mapping
between ISCP messages and logical channel values. It does not perform any
network I/O.
"""

from .constants import (
    ISCP_MAGIC,
    HEADER_LENGTH,
    ISCP_VERSION,
    END_OF_MESSAGE,
    END_OF_MESSAGE_CRLF,
    END_OF_RESPONSE,
    UNIT_TYPE_PREFIX,
    QUERY_PARAMETER,
  )

from .command import (
    IscpCommand,
    POWER_CODE,
    MUTE_CODE,
    VOLUME_CODE,
    INPUT_CODE,
    POWER_QUERY,
    MUTE_QUERY,
    VOLUME_QUERY,
    INPUT_QUERY,
    STATE_QUERIES,
  )

from .frame_codec import FrameCodec, FrameStreamDecoder

from .channels import (
    ChannelState,
    ConnectivityStatus,
    CHANNEL_POWER,
    CHANNEL_VOLUME,
    CHANNEL_MUTE,
    CHANNEL_INPUT,
    CHANNEL_CONNECTIVITY,
    WRITABLE_CHANNELS,
  )

from .input_labels import (
    InputLabelRegistry,
    DEFAULT_INPUT_LABELS,
    ACTIVE_CODES_KEY,
    INPUT_LABEL_KEY_PREFIX,
    default_input_label,
    normalize_input_code,
    parse_active_codes,
    parse_label_overrides,
  )

from .channel_translator import (
    ChannelStateTranslator,
    sanitize_line,
    split_payload,
  )

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Package iscp_receiver provides a command-line tool and API for controlling
Onkyo/Pioneer receivers via the eISCP TCP/IP protocol.
"""

from .version import __version__

from .pkg_logging import logger

from .internal_types import Jsonable, JsonableDict

from .exceptions import (
    IscpReceiverError,
    ReceiverUnavailableError,
    OperationCancelledError,
    InvalidArgumentError,
    NotSupportedError,
  )

from .constants import DEFAULT_PORT

from .protocol import (
    IscpCommand,
    FrameCodec,
    FrameStreamDecoder,
    ChannelState,
    ChannelStateTranslator,
    ConnectivityStatus,
    InputLabelRegistry,
    DEFAULT_INPUT_LABELS,
  )

from .client import (
    DeviceDescriptor,
    resolve_receiver_tcp_host,
    CancellationToken,
    IscpTcpTransport,
    ConnectionManager,
    PollScheduler,
    CommandDispatcher,
    iscp_transact,
  )

from .adapter import (
    ReceiverAdapter,
    AdapterEventSink,
    RecordingEventSink,
    StateCacheEventSink,
    CmdStatus,
    CmdResult,
    ActionResult,
    Device,
    Channel,
    probe_receiver,
    probe_descriptor,
  )

from .util import (
    full_class_name,
    full_name_of_class,
)

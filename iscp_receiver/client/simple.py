# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple one-shot command API.

Sends a single raw ISCP command to a receiver and returns the decoded reply
messages, without any of the adapter's connection bookkeeping. Used by the
CLI, the raw console and the REST server's raw command endpoint.
"""

from __future__ import annotations

import logging

from ..internal_types import *
from ..exceptions import IscpReceiverError
from ..constants import QUERY_RESPONSE_TIMEOUT_MS
from ..pkg_logging import logger as pkg_logger
from ..protocol import FrameCodec, IscpCommand, split_payload

from .client_config import DeviceDescriptor
from .cancellation import CancellationToken
from .tcp_client_transport import IscpTcpTransport

async def iscp_transact(
        command: Union[IscpCommand, str],
        host: Optional[str]=None,
        *,
        descriptor: Optional[DeviceDescriptor]=None,
        timeout_ms: int=QUERY_RESPONSE_TIMEOUT_MS,
        token: Optional[CancellationToken]=None,
        logger: Optional[logging.Logger]=None,
      ) -> List[str]:
    """Sends one command and returns the messages received in reply.

    Args:
        command: The command, e.g. "PWRQSTN" or IscpCommand("MVL", "20").
        host: The hostname or IPV4 address of the receiver, optionally
                prefixed with "tcp://" and suffixed with ":<port>".
                If None, the host will be taken from the descriptor.
        descriptor: Base descriptor (and source of the port). If None, one is
                built from the environment.
        timeout_ms: How long to wait for a reply; 0 to not wait.

    Raises:
        IscpReceiverError: no address is configured, or the receiver could not be reached.
    """
    logger = pkg_logger if logger is None else logger
    command = IscpCommand.parse(command)
    descriptor = DeviceDescriptor(host, base_descriptor=descriptor)
    address = descriptor.address
    if address is None:
        raise IscpReceiverError("Receiver host is not configured")
    resolved_host, port = address
    codec = FrameCodec()
    async with IscpTcpTransport(resolved_host, port, codec=codec, token=token, logger=logger) as transport:
        await transport.write_command(command)
        if timeout_ms <= 0:
            return []
        data = await transport.read_response(timeout_ms / 1000.0)
    payloads, _ = codec.decode(data)
    result: List[str] = []
    for payload in payloads:
        result.extend(split_payload(payload))
    return result

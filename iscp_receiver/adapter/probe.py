# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Standalone reachability check, independent of any running adapter.
"""

from __future__ import annotations

import logging

from ..internal_types import *
from ..exceptions import ReceiverUnavailableError, OperationCancelledError, IscpReceiverError
from ..constants import DEFAULT_PORT, PROBE_TIMEOUT
from ..pkg_logging import logger as pkg_logger
from ..protocol import POWER_CODE, POWER_QUERY
from ..client import IscpTcpTransport, CancellationToken, DeviceDescriptor

from .events import ActionResult, CmdStatus

PROBE_ACTION = "probe"

async def probe_receiver(
        host: Optional[str],
        port: Optional[int]=None,
        *,
        timeout: float=PROBE_TIMEOUT,
        token: Optional[CancellationToken]=None,
        logger: Optional[logging.Logger]=None,
        cmd_id: int=0,
      ) -> ActionResult:
    """Connects, sends PWRQSTN and checks that the reply mentions PWR.

    Args:
        host: Hostname or IP of the receiver. Required.
        port: eISCP port; DEFAULT_PORT if None or 0.
        timeout: Separate bounds, in seconds, on the connect and on the wait for a reply.
    """
    logger = pkg_logger if logger is None else logger
    host = '' if host is None else host.strip()
    if host == '':
        return ActionResult(cmd_id, PROBE_ACTION, CmdStatus.INVALID_ARGUMENT, "Host is required")
    if port is None or port <= 0:
        port = DEFAULT_PORT
    transport = IscpTcpTransport(host, port, token=token, logger=logger)
    try:
        try:
            await transport.connect(timeout=timeout)
        except (ReceiverUnavailableError, OperationCancelledError) as e:
            return ActionResult(cmd_id, PROBE_ACTION, CmdStatus.FAILURE, f"Connection failed: {e}")
        try:
            await transport.write_command(POWER_QUERY)
            data = await transport.read_response(timeout)
        except (IscpReceiverError, OperationCancelledError) as e:
            return ActionResult(cmd_id, PROBE_ACTION, CmdStatus.FAILURE, f"Connection failed: {e}")
    finally:
        await transport.close()
    if len(data) == 0:
        return ActionResult(cmd_id, PROBE_ACTION, CmdStatus.FAILURE, "No response from receiver")
    if POWER_CODE.encode('ascii') not in data:
        return ActionResult(cmd_id, PROBE_ACTION, CmdStatus.FAILURE, "Unexpected response from receiver")
    logger.info(f"Probe of {host}:{port} succeeded")
    return ActionResult(cmd_id, PROBE_ACTION, CmdStatus.SUCCESS)

async def probe_descriptor(
        descriptor: DeviceDescriptor,
        *,
        timeout: float=PROBE_TIMEOUT,
        logger: Optional[logging.Logger]=None,
        cmd_id: int=0,
      ) -> ActionResult:
    """Probes the receiver described by `descriptor`, preferring its host over its IP."""
    host = descriptor.host.strip() or descriptor.ip.strip()
    port: Optional[int] = descriptor.port
    if host != '':
        try:
            host, port = descriptor.address_of(host)
        except IscpReceiverError as e:
            return ActionResult(cmd_id, PROBE_ACTION, CmdStatus.INVALID_ARGUMENT, str(e))
    return await probe_receiver(host, port, timeout=timeout, logger=logger, cmd_id=cmd_id)

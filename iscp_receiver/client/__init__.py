# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
ISCP receiver client.

Connection management, polling and command dispatch for a single
Onkyo/Pioneer receiver.
"""

from .resolve_host import resolve_receiver_tcp_host
from .client_config import DeviceDescriptor
from .cancellation import CancellationToken, polled_wait
from .tcp_client_transport import IscpTcpTransport
from .connection_manager import ConnectionManager, ConnectivityListener
from .poll_scheduler import PollScheduler
from .command_dispatcher import CommandDispatcher, ChannelStateListener
from .simple import iscp_transact

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Receiver host IP/Port resolver.

Resolves the various forms a receiver address may be configured in
("192.168.1.20", "tcp://receiver.local", "receiver.local:60128") into a
hostname and port.
"""

from __future__ import annotations

from ..internal_types import *
from ..exceptions import IscpReceiverError
from ..constants import DEFAULT_PORT

def resolve_receiver_tcp_host(
        host: str,
        default_port: Optional[int]=None,
      ) -> HostAndPort:
    """Resolves a receiver host string into a TCP/IP hostname and port.

        Args:
            host: The hostname or IPV4 address of the receiver.
                    may optionally be prefixed with "tcp://".
                    May be suffixed with ":<port>" to specify a
                    non-default port, which will override the default_port argument.
            default_port: The default TCP/IP port number to use. If None or 0,
                    DEFAULT_PORT is used.

        Returns:
            A tuple of (hostname, port).
    """
    port = DEFAULT_PORT if default_port is None or default_port <= 0 else default_port
    host = host.strip()
    if host.startswith('tcp://'):
        host = host[6:]
    if '/' in host or host == '':
        raise IscpReceiverError(f"Invalid host specifier for TCP transport: '{host}'")
    if host.startswith('['):
        # bracketed IPv6 literal, e.g. "[fe80::1]:60128"
        close_index = host.find(']')
        if close_index < 0:
            raise IscpReceiverError(f"Invalid host specifier for TCP transport: '{host}'")
        port_str = host[close_index+1:]
        host = host[1:close_index]
        if port_str.startswith(':'):
            port = _parse_port(port_str[1:], host)
    elif host.count(':') == 1:
        host, port_str = host.rsplit(':', 1)
        port = _parse_port(port_str, host)
    return (host, port)

def _parse_port(port_str: str, host: str) -> int:
    try:
        port = int(port_str)
    except ValueError as e:
        raise IscpReceiverError(f"Invalid port number in host specifier '{host}:{port_str}'") from e
    if not 0 < port < 65536:
        raise IscpReceiverError(f"Port number out of range in host specifier '{host}:{port_str}'")
    return port

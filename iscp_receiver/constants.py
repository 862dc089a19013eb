# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by iscp_receiver"""

DEFAULT_PORT = 60128
"""The listen port number used by the receiver for eISCP TCP/IP control."""

DEFAULT_POLL_INTERVAL_MS = 5000
"""The default interval between full state refreshes while connected, in milliseconds."""

MIN_POLL_INTERVAL_MS = 500
MAX_POLL_INTERVAL_MS = 300000

DEFAULT_RETRY_INTERVAL_MS = 10000
"""The default interval between connection attempts while disconnected, in milliseconds."""

MIN_RETRY_INTERVAL_MS = 1000
MAX_RETRY_INTERVAL_MS = 300000

DEFAULT_VOLUME_MAX_RAW = 160
"""The default raw MVL value that corresponds to 100% volume."""

MIN_VOLUME_MAX_RAW = 1
MAX_VOLUME_MAX_RAW = 500

PRESENCE_GRACE_MS = 1000
"""Added to the poll interval to obtain the presence timeout."""

PRESENCE_CHECK_INTERVAL = 2.0
"""Seconds between presence timeout checks."""

CONNECT_TIMEOUT = 1.5
"""The timeout for connecting to the receiver over TCP/IP, in seconds."""

CONNECT_POLL_INCREMENT = 0.1
"""Granularity of the polled connect wait, in seconds."""

READ_POLL_INCREMENT = 0.1
"""Granularity of the polled wait for the first response bytes, in seconds."""

READ_MORE_TIMEOUT = 0.05
"""After response data arrives, how long to wait for more before decoding, in seconds."""

DISCONNECT_TIMEOUT = 0.3
"""Upper bound on the graceful disconnect wait, in seconds."""

DISCONNECT_POLL_INCREMENT = 0.05
"""Granularity of the polled disconnect wait, in seconds."""

WRITE_TIMEOUT = 1.5
"""Upper bound on flushing a command frame to the socket, in seconds."""

QUERY_RESPONSE_TIMEOUT_MS = 800
"""Response wait for each query issued by a full state refresh."""

PROBE_INPUT_TIMEOUT_MS = 1500
"""Response wait for the probeCurrentInput adapter action."""

PROBE_TIMEOUT = 1.5
"""Connect and response timeout for the standalone probe, in seconds."""

INITIAL_REFRESH_DELAY = 1.5
"""Seconds after adapter start before the first full state refresh."""

PLUGIN_TYPE = "onkyo-pioneer"
"""Plugin type, also the device id of last resort."""

DEFAULT_MANUFACTURER = "Onkyo & Pioneer"

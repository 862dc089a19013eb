# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Receiver device descriptor.

A DeviceDescriptor is a snapshot of everything the adapter is told about one
receiver: its address, its identity, and the metadata dict the external
configuration store keeps for it (poll/retry intervals, volume scale, active
inputs and input labels). Numeric settings are clamped each time they are read.
"""

from __future__ import annotations

import os
import json
import copy

from ..internal_types import *
from ..exceptions import IscpReceiverError
from ..constants import (
    DEFAULT_PORT,
    DEFAULT_POLL_INTERVAL_MS,
    MIN_POLL_INTERVAL_MS,
    MAX_POLL_INTERVAL_MS,
    DEFAULT_RETRY_INTERVAL_MS,
    MIN_RETRY_INTERVAL_MS,
    MAX_RETRY_INTERVAL_MS,
    DEFAULT_VOLUME_MAX_RAW,
    MIN_VOLUME_MAX_RAW,
    MAX_VOLUME_MAX_RAW,
    PRESENCE_GRACE_MS,
  )
from ..pkg_logging import logger
from ..util import clamp, to_int
from ..protocol import (
    ACTIVE_CODES_KEY,
    parse_active_codes,
    parse_label_overrides,
  )
from .resolve_host import resolve_receiver_tcp_host

POLL_INTERVAL_KEY = "pollIntervalMs"
RETRY_INTERVAL_KEY = "retryIntervalMs"
VOLUME_MAX_RAW_KEY = "volumeMaxRaw"

class DeviceDescriptor:
    """Receiver device descriptor."""
    adapter_id: str
    name: str
    host: str
    ip: str
    port: int
    meta: JsonableDict

    def __init__(
            self,
            host: Optional[str]=None,
            *,
            ip: Optional[str]=None,
            port: Optional[int]=None,
            adapter_id: Optional[str]=None,
            name: Optional[str]=None,
            meta: Optional[Mapping[str, Any]]=None,
            base_descriptor: Optional[DeviceDescriptor]=None,
            use_config_file: bool=True,
          ) -> None:
        """Creates a descriptor for a receiver.

           Args:
             host: The hostname or IPV4 address of the receiver.
                   May optionally be prefixed with "tcp://".
                   May be suffixed with ":<port>" to specify a
                   non-default port.
                   If None, the host will be taken from the base descriptor,
                   or from the ISCP_RECEIVER_HOST environment variable.
             ip:   The IP address of the receiver, as reported by discovery.
                   Preferred over host when both are set.
             port: The eISCP TCP/IP port. If None or 0, the port is taken from
                   the host string, the ISCP_RECEIVER_PORT environment variable,
                   or DEFAULT_PORT (60128), in that order.
             adapter_id:
                   The id of the adapter instance that owns this receiver.
             name: The user-visible adapter name.
             meta: Device metadata. Keys in meta are merged over the
                   base descriptor's metadata.
             base_descriptor:
                   An optional base descriptor to copy.
             use_config_file:
                   If True and no base descriptor is given, the JSON file
                   named by ISCP_RECEIVER_CONFIG_FILE is loaded first.
        """
        if base_descriptor is None:
            self.init_from_defaults(use_config_file=use_config_file)
        else:
            self.init_from_base_descriptor(base_descriptor)

        if host is not None and host != '':
            self.host = host

        if ip is not None and ip != '':
            self.ip = ip

        if port is not None and port > 0:
            self.port = port

        if adapter_id is not None:
            self.adapter_id = adapter_id

        if name is not None:
            self.name = name

        if meta is not None:
            self.meta.update(copy.deepcopy(dict(meta)))

    def init_from_defaults(self, use_config_file: bool=True) -> None:
        """Initializes the descriptor from defaults."""
        self.adapter_id = ''
        self.name = ''
        self.host = ''
        self.ip = ''
        self.port = 0
        self.meta = {}

        if use_config_file:
            config_file = os.environ.get('ISCP_RECEIVER_CONFIG_FILE')
            if config_file is not None and config_file != '':
                with open(config_file, 'r') as f:
                    config_jsonable = json.load(f)
                self.update_from_jsonable(config_jsonable)

        host = os.environ.get('ISCP_RECEIVER_HOST')
        if host is not None and host != '':
            self.host = host
        port_str = os.environ.get('ISCP_RECEIVER_PORT')
        if port_str is not None and port_str != '':
            try:
                self.port = int(port_str)
            except ValueError as e:
                raise IscpReceiverError(f"Invalid ISCP_RECEIVER_PORT: {port_str!r}") from e

    def init_from_base_descriptor(self, base_descriptor: DeviceDescriptor) -> None:
        """Initializes the descriptor from a base descriptor."""
        self.adapter_id = base_descriptor.adapter_id
        self.name = base_descriptor.name
        self.host = base_descriptor.host
        self.ip = base_descriptor.ip
        self.port = base_descriptor.port
        self.meta = copy.deepcopy(base_descriptor.meta)

    # ------------------------------------------------------------------ address

    @property
    def address(self) -> Optional[HostAndPort]:
        """The resolved (host, port) to connect to, or None if no usable address is configured."""
        host_str = self.ip.strip() or self.host.strip()
        if host_str == '':
            return None
        try:
            return self.address_of(host_str)
        except IscpReceiverError as e:
            logger.debug(f"Unusable receiver address {host_str!r}: {e}")
            return None

    def address_of(self, host_str: str) -> HostAndPort:
        """Resolves a host string against this descriptor's port. An explicit port wins over a ":<port>" suffix."""
        host, port = resolve_receiver_tcp_host(host_str)
        if self.port > 0:
            port = self.port
        return (host, port)

    @property
    def control_host(self) -> str:
        """The resolved hostname or IP, or '' if none is configured."""
        address = self.address
        return '' if address is None else address[0]

    @property
    def control_port(self) -> int:
        """The resolved eISCP port; DEFAULT_PORT if none is configured."""
        address = self.address
        if address is not None:
            return address[1]
        return self.port if self.port > 0 else DEFAULT_PORT

    # ------------------------------------------------------------------ clamped settings

    @property
    def poll_interval_ms(self) -> int:
        return clamp(
            to_int(self.meta.get(POLL_INTERVAL_KEY), DEFAULT_POLL_INTERVAL_MS),
            MIN_POLL_INTERVAL_MS,
            MAX_POLL_INTERVAL_MS)

    @property
    def retry_interval_ms(self) -> int:
        return clamp(
            to_int(self.meta.get(RETRY_INTERVAL_KEY), DEFAULT_RETRY_INTERVAL_MS),
            MIN_RETRY_INTERVAL_MS,
            MAX_RETRY_INTERVAL_MS)

    @property
    def volume_max_raw(self) -> int:
        return clamp(
            to_int(self.meta.get(VOLUME_MAX_RAW_KEY), DEFAULT_VOLUME_MAX_RAW),
            MIN_VOLUME_MAX_RAW,
            MAX_VOLUME_MAX_RAW)

    @property
    def presence_timeout_ms(self) -> int:
        """Silence after which a connected receiver is declared disconnected."""
        return self.poll_interval_ms + PRESENCE_GRACE_MS

    @property
    def active_input_codes(self) -> Optional[List[str]]:
        """The active SLI code allow-list, or None if the metadata declares none."""
        return parse_active_codes(self.meta.get(ACTIVE_CODES_KEY))

    @property
    def input_label_overrides(self) -> Dict[str, str]:
        return parse_label_overrides(self.meta)

    def meta_str(self, key: str) -> str:
        """Returns a trimmed string metadata value, or '' if missing or not a string."""
        value = self.meta.get(key)
        return value.strip() if isinstance(value, str) else ''

    def meta_bool(self, key: str) -> bool:
        value = self.meta.get(key)
        if isinstance(value, str):
            return value.strip().lower() == 'true'
        return bool(value)

    def with_meta_patch(self, patch: Mapping[str, Any]) -> DeviceDescriptor:
        """Returns a copy of this descriptor with a metadata patch applied."""
        return DeviceDescriptor(base_descriptor=self, meta=patch)

    # ------------------------------------------------------------------ serialization

    def to_jsonable(self) -> JsonableDict:
        """Returns a JSON-serializable representation of the descriptor."""
        result: JsonableDict = dict(
            adapter_id=self.adapter_id,
            name=self.name,
            host=self.host,
            ip=self.ip,
            port=self.port,
            meta=copy.deepcopy(self.meta),
          )
        return result

    def to_json(self) -> str:
        """Returns a JSON representation of the descriptor."""
        return json.dumps(self.to_jsonable())

    def update_from_jsonable(self, jsonable: JsonableDict) -> None:
        """Updates the descriptor from a JSON-serializable representation."""
        adapter_id = jsonable.get('adapter_id')
        if adapter_id is not None and adapter_id != '':
            self.adapter_id = str(adapter_id)
        name = jsonable.get('name')
        if name is not None and name != '':
            self.name = str(name)
        host = jsonable.get('host')
        if host is not None and host != '':
            self.host = str(host)
        ip = jsonable.get('ip')
        if ip is not None and ip != '':
            self.ip = str(ip)
        port = jsonable.get('port')
        if port is not None and port != '':
            self.port = int(port)
        meta = jsonable.get('meta')
        if isinstance(meta, dict):
            self.meta.update(copy.deepcopy(meta))

    @classmethod
    def from_jsonable(cls, jsonable: JsonableDict, use_config_file: bool=True) -> DeviceDescriptor:
        """Creates a descriptor from a JSON-serializable representation."""
        result = cls(use_config_file=use_config_file)
        result.update_from_jsonable(jsonable)
        return result

    @classmethod
    def from_json(cls, json_str: str, use_config_file: bool=True) -> DeviceDescriptor:
        """Creates a descriptor from a JSON representation."""
        jsonable = json.loads(json_str)
        return cls.from_jsonable(jsonable, use_config_file=use_config_file)

    @classmethod
    def from_config_file(cls, filename: str) -> DeviceDescriptor:
        """Creates a descriptor from a JSON-serialized config file."""
        with open(filename, 'r') as f:
            jsonable: JsonableDict = json.load(f)

        result = cls.from_jsonable(jsonable, use_config_file=False)
        return result

    def __str__(self) -> str:
        return (
            f"DeviceDescriptor("
            f"adapter_id={self.adapter_id!r}, "
            f"host={self.host!r}, "
            f"ip={self.ip!r}, "
            f"port={self.port})"
          )

    def __repr__(self) -> str:
        return str(self)

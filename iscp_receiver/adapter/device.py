# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Device and channel descriptors reported in the adapter's device snapshot.
"""

from __future__ import annotations

import re

from ..internal_types import *
from ..constants import PLUGIN_TYPE, DEFAULT_MANUFACTURER
from ..protocol import (
    InputLabelRegistry,
    CHANNEL_POWER,
    CHANNEL_VOLUME,
    CHANNEL_MUTE,
    CHANNEL_INPUT,
    CHANNEL_CONNECTIVITY,
  )
from ..client import DeviceDescriptor

_MODEL_RE = re.compile(r'^(?:Pioneer|Onkyo)[-_ ]?(.+?)(?:-[0-9A-F]{4,12})?$', re.IGNORECASE)
_DIGIT_RE = re.compile(r'\d')

DEVICE_CLASS_MEDIA_PLAYER = "media_player"

class Channel:
    """Descriptor of one logical channel."""

    id: str
    name: str
    kind: str
    data_type: str
    writable: bool
    min_value: Optional[float]
    max_value: Optional[float]
    step_value: Optional[float]
    choices: List[Tuple[str, str]]
    """(value, label) pairs for string channels with a fixed set of values."""

    def __init__(
            self,
            id: str,
            name: str,
            kind: str,
            data_type: str,
            *,
            writable: bool=True,
            min_value: Optional[float]=None,
            max_value: Optional[float]=None,
            step_value: Optional[float]=None,
            choices: Optional[List[Tuple[str, str]]]=None,
          ):
        self.id = id
        self.name = name
        self.kind = kind
        self.data_type = data_type
        self.writable = writable
        self.min_value = min_value
        self.max_value = max_value
        self.step_value = step_value
        self.choices = [] if choices is None else list(choices)

    def to_jsonable(self) -> JsonableDict:
        result: JsonableDict = dict(
            id=self.id,
            name=self.name,
            kind=self.kind,
            data_type=self.data_type,
            writable=self.writable,
          )
        if self.min_value is not None:
            result['min_value'] = self.min_value
        if self.max_value is not None:
            result['max_value'] = self.max_value
        if self.step_value is not None:
            result['step_value'] = self.step_value
        if len(self.choices) > 0:
            result['choices'] = [ dict(value=value, label=label) for value, label in self.choices ]
        return result

    def __str__(self) -> str:
        return f"Channel({self.id}: {self.data_type})"

    def __repr__(self) -> str:
        return str(self)

class Device:
    """Identity of the receiver as reported to the host application."""

    id: str
    name: str
    manufacturer: str
    model: str
    device_class: str
    meta: JsonableDict

    def __init__(
            self,
            id: str,
            name: str='',
            manufacturer: str=DEFAULT_MANUFACTURER,
            model: str='',
            device_class: str=DEVICE_CLASS_MEDIA_PLAYER,
            meta: Optional[JsonableDict]=None,
          ):
        self.id = id
        self.name = name
        self.manufacturer = manufacturer
        self.model = model
        self.device_class = device_class
        self.meta = {} if meta is None else meta

    def to_jsonable(self) -> JsonableDict:
        return dict(
            id=self.id,
            name=self.name,
            manufacturer=self.manufacturer,
            model=self.model,
            device_class=self.device_class,
            meta=dict(self.meta),
          )

    def __str__(self) -> str:
        return f"Device({self.id!r}, name={self.name!r}, model={self.model!r})"

    def __repr__(self) -> str:
        return str(self)

def infer_model_from_identifier(raw: Optional[str]) -> str:
    """Extracts a model name from a discovery-style identifier.

    E.g., "Onkyo-TX-NR686-0009B0123456.local:60128" -> "TX-NR686". Returns ''
    unless the candidate contains a digit.
    """
    if raw is None:
        return ''
    trimmed = raw.strip()
    if trimmed == '':
        return ''
    port_index = trimmed.rfind(':')
    if port_index > 0:
        trimmed = trimmed[:port_index]
    if trimmed.lower().endswith('.local'):
        trimmed = trimmed[:-6]
    match = _MODEL_RE.match(trimmed)
    if match is not None:
        model = match.group(1).strip()
        if model != '' and _DIGIT_RE.search(model) is not None:
            return model
    return ''

def resolve_device_id(descriptor: DeviceDescriptor) -> str:
    """deviceUuid, else uuid, else adapter id, else host, else IP, else the plugin type."""
    for candidate in (
            descriptor.meta_str('deviceUuid'),
            descriptor.meta_str('uuid'),
            descriptor.adapter_id,
            descriptor.host.strip(),
            descriptor.ip.strip(),
          ):
        if candidate != '':
            return candidate
    return PLUGIN_TYPE

def build_device(descriptor: DeviceDescriptor, device_id: Optional[str]=None) -> Device:
    name = descriptor.name.strip() or descriptor.meta_str('deviceName') or descriptor.ip.strip()
    manufacturer = descriptor.meta_str('manufacturer') or DEFAULT_MANUFACTURER
    model = descriptor.meta_str('model')
    if model == '':
        for candidate in (
                descriptor.ip,
                descriptor.meta_str('deviceUuid'),
                descriptor.meta_str('uuid'),
                descriptor.meta_str('deviceName'),
                descriptor.name,
              ):
            model = infer_model_from_identifier(candidate)
            if model != '':
                break
    meta: JsonableDict = {}
    if descriptor.meta_bool('supportsSpotify'):
        meta['supportsSpotify'] = True
    if descriptor.meta_bool('supportsTranscoder'):
        meta['supportsTranscoder'] = True
    return Device(
        resolve_device_id(descriptor) if device_id is None else device_id,
        name=name,
        manufacturer=manufacturer,
        model=model,
        meta=meta,
      )

def build_input_channel(input_labels: InputLabelRegistry) -> Channel:
    return Channel(CHANNEL_INPUT, "Input", "input_source", "string", choices=input_labels.choices())

def build_channels(input_labels: InputLabelRegistry) -> List[Channel]:
    """The channels every receiver exposes, in snapshot order."""
    return [
        Channel(CHANNEL_POWER, "Power", "power_on_off", "bool"),
        Channel(CHANNEL_VOLUME, "Volume", "volume", "float", min_value=0.0, max_value=100.0, step_value=1.0),
        Channel(CHANNEL_MUTE, "Mute", "mute", "bool"),
        build_input_channel(input_labels),
        Channel(CHANNEL_CONNECTIVITY, "Connectivity", "connectivity_status", "enum", writable=False),
      ]

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Input selector (SLI) code <-> label mapping.

Receivers identify inputs with 2-character hex-ish codes ("23" is HDMI 1 on most
models). The set of codes actually wired on a given receiver, and what the
user calls them, varies, so the built-in table can be narrowed to an
allow-list of active codes and individual labels can be overridden.
"""

from __future__ import annotations

from ..internal_types import *

DEFAULT_INPUT_LABELS: Dict[str, str] = {
    "00": "Video 1",
    "01": "Video 2",
    "02": "GAME",
    "03": "AUX",
    "04": "Video 5",
    "05": "Video 6",
    "06": "Video 7",
    "10": "BD/DVD",
    "12": "TV",
    "20": "TV",
    "21": "TV/CD",
    "22": "Cable/Sat",
    "23": "HDMI 1",
    "24": "HDMI 2",
    "25": "HDMI 3",
    "26": "HDMI 4",
    "2E": "BT Audio",
    "30": "CD",
    "31": "FM",
    "32": "AM",
    "40": "USB",
    "41": "Network",
    "44": "Bluetooth",
    "80": "USB Front",
    "81": "USB Rear",
  }
"""Built-in SLI code -> label table."""

INPUT_LABEL_KEY_PREFIX = "inputLabel_"
"""Metadata keys of the form "inputLabel_<code>" override the label of <code>."""

ACTIVE_CODES_KEY = "activeSliCodes"
"""Metadata key holding the allow-list of active SLI codes."""

def default_input_label(code: str) -> str:
    """The generated label for a code with no known label."""
    return f"SLI {code}"

def normalize_input_code(value: Any) -> str:
    """Normalizes a code from device metadata.

    Strings are trimmed; numbers are converted to decimal and zero-padded to
    2 digits (metadata editors sometimes store 3 for "03"). Returns '' for
    anything unusable.
    """
    if isinstance(value, bool) or value is None:
        return ''
    if isinstance(value, (int, float)):
        code = str(int(value))
    elif isinstance(value, str):
        code = value.strip()
    else:
        return ''
    if len(code) == 1 and code.isdigit():
        code = '0' + code
    return code

def parse_active_codes(value: Any) -> Optional[List[str]]:
    """Parses an activeSliCodes metadata value. Returns None if it is not a list."""
    if not isinstance(value, (list, tuple)):
        return None
    result: List[str] = []
    for entry in value:
        code = normalize_input_code(entry)
        if code != '' and code not in result:
            result.append(code)
    return result

def parse_label_overrides(meta: Mapping[str, Any]) -> Dict[str, str]:
    """Extracts "inputLabel_<code>" overrides from device metadata.

    An empty label is replaced by the generated "SLI <code>" label.
    """
    result: Dict[str, str] = {}
    for key, value in meta.items():
        if not key.startswith(INPUT_LABEL_KEY_PREFIX):
            continue
        code = key[len(INPUT_LABEL_KEY_PREFIX):].strip()
        if code == '':
            continue
        label = value.strip() if isinstance(value, str) else ''
        result[code] = label if label != '' else default_input_label(code)
    return result

class InputLabelRegistry:
    """The merged code -> label mapping for the input channel of one receiver."""

    _labels: Dict[str, str]
    _active_codes: List[str]

    def __init__(
            self,
            active_codes: Optional[Iterable[str]]=None,
            label_overrides: Optional[Mapping[str, str]]=None,
            default_labels: Optional[Mapping[str, str]]=None,
          ):
        self._labels = {}
        self._active_codes = []
        self.reload(
            active_codes=active_codes,
            label_overrides=label_overrides,
            default_labels=default_labels,
          )

    @classmethod
    def from_meta(cls, meta: Mapping[str, Any]) -> InputLabelRegistry:
        """Creates a registry from device metadata (activeSliCodes and inputLabel_<code> keys)."""
        return cls(
            active_codes=parse_active_codes(meta.get(ACTIVE_CODES_KEY)),
            label_overrides=parse_label_overrides(meta),
          )

    def reload(
            self,
            active_codes: Optional[Iterable[str]]=None,
            label_overrides: Optional[Mapping[str, str]]=None,
            default_labels: Optional[Mapping[str, str]]=None,
          ) -> None:
        """Rebuilds the mapping.

        The built-in table is narrowed to active_codes if that is non-empty; codes
        without a built-in label get "SLI <code>". Overrides are then applied, but
        only to active codes when an active set is declared.
        """
        defaults = DEFAULT_INPUT_LABELS if default_labels is None else default_labels
        labels: Dict[str, str] = dict(defaults)
        active: List[str] = [] if active_codes is None else [c for c in active_codes if c != '']
        if len(active) > 0:
            labels = { code: defaults.get(code) or default_input_label(code) for code in active }
        if label_overrides is not None:
            for code, label in label_overrides.items():
                if len(active) == 0 or code in active:
                    labels[code] = label if label != '' else default_input_label(code)
        self._labels = labels
        self._active_codes = active

    @property
    def active_codes(self) -> List[str]:
        return list(self._active_codes)

    def choices(self) -> List[Tuple[str, str]]:
        """Returns the (code, label) choices for the input channel, ordered by code."""
        return [
            (code, label.strip())
            for code, label in sorted(self._labels.items())
            if label.strip() != ''
          ]

    def label_for(self, code: str) -> Optional[str]:
        return self._labels.get(code)

    def resolve_label(self, label: str) -> Optional[str]:
        """Returns the code whose label matches (case-insensitive, exact), or None."""
        wanted = label.strip().lower()
        for code, code_label in sorted(self._labels.items()):
            if code_label.lower() == wanted:
                return code
        return None

    def to_jsonable(self) -> JsonableDict:
        return { code: label for code, label in self.choices() }

    def __contains__(self, code: object) -> bool:
        return code in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def __str__(self) -> str:
        return f"InputLabelRegistry({len(self._labels)} inputs)"

    def __repr__(self) -> str:
        return str(self)

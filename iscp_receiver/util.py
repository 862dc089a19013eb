# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
General utility functions
"""
from __future__ import annotations

import time

from .internal_types import *

def full_name_of_class(cls: Type[object]) -> str:
    """Return the full name of a class, including the module name."""
    module = cls.__module__
    if module == 'builtins':
        return cls.__qualname__
    return f"{module}.{cls.__qualname__}"

def full_class_name(o: object) -> str:
    """Return the full name of an object's class, including the module name."""
    return full_name_of_class(o.__class__)

def monotonic_ms() -> int:
    """Milliseconds from a monotonic clock. Used for all interval bookkeeping."""
    return int(time.monotonic() * 1000)

def epoch_ms() -> int:
    """Milliseconds since the Unix epoch. Used for event timestamps."""
    return int(time.time() * 1000)

def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))

def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, with halves rounded away from zero."""
    if value < 0:
        return -int(-value + 0.5)
    return int(value + 0.5)

def to_bool(value: Any) -> bool:
    """Loosely converts a channel write value to a bool.

    Strings such as "true", "on" and "yes" are True. Numeric strings, like
    numbers, are True if nonzero, so "01" and "2" are True and "00" is False.
    Anything else, including "", is False.
    """
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "on", "yes", "y"):
            return True
        try:
            return float(text) != 0
        except ValueError:
            return False
    return bool(value)

def to_int(value: Any, default: int) -> int:
    """Converts a metadata value to an int, returning default if it is missing or not numeric."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default

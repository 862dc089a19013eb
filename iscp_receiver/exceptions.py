#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from typing import Optional

class IscpReceiverError(Exception):
  """Base class for all error exceptions defined by this package."""
  pass

class ReceiverUnavailableError(IscpReceiverError):
  """The receiver could not be reached (connect timeout, refusal, unreachable host)."""
  pass

class OperationCancelledError(IscpReceiverError):
  """A blocking wait was cut short because the owning adapter is stopping."""

  def __init__(self, msg: Optional[str]=None):
    super().__init__("Operation cancelled" if msg is None else msg)

class InvalidArgumentError(IscpReceiverError):
  """A channel write value or configuration value was rejected before any network activity."""
  pass

class NotSupportedError(IscpReceiverError):
  """The requested channel, device or action is not supported by this adapter."""
  pass

# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
ISCP receiver emulator.

Provides a simple emulation of an Onkyo/Pioneer receiver on TCP/IP.
"""

from .emulator_impl import (
    ReceiverEmulator,
  )

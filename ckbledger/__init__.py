#
# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#

__all__ = [ 'proto', 'exceptions', 'transport', 'constants', 'utils', 'bip32' ]

from ckbledger.version import __version__

# find connected devices
from ckbledger.transport import find_devices, find_first

# base class for working with the app, wants a transport
from ckbledger.proto import CKBLedger

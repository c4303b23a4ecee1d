# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# transport.py
#
# Implement the desktop to device connection: USB (HID) or the Speculos emulator (TCP).
#
#
import socket
from .utils import B2A
from .constants import *
from .exceptions import TransportError
from .proto import CKBLedger

# Change this to see traffic details
VERBOSE = False

def find_devices():
    #
    # Search for a connected device running our app, and any emulator.
    #
    # - generator function.
    #

    # emulator running on the usual TCP port
    sim = LedgerCommTransport.find_simulator()
    if sim:
        yield CKBLedger(sim)

    try:
        tr = LedgerCommTransport(interface='hid')
    except Exception as exc:
        # ledgercomm raises various things when nothing is plugged in
        if VERBOSE:
            print(f"No USB device: {exc}")
        return

    yield CKBLedger(tr)

def find_first():
    # operate on the first device we can find
    for c in find_devices():
        return c

    return None

class LedgerTransportABC:
    #
    # Abstract base class. Low level details about talking to the device.
    #
    name = 'ABC'
    is_emulator = False

    def _send_recv(self, cla, ins, p1, p2, data):
        # send one APDU, return (status word, response data)
        raise NotImplementedError

    def close(self):
        # release resources
        pass

    def send(self, cla, ins, p1=0x00, p2=0x00, data=b''):
        # Send APDU, get response. Raise if status word isn't okay.
        # - returns response data with the status word still on the end, as
        #   the device sent it

        data = bytes(data or b'')
        assert len(data) <= 255, "APDU data too long"

        if VERBOSE:
            print(f">> {cla:02x} {ins:02x} {p1:02x} {p2:02x} [{len(data)}] {B2A(data)}")

        # Send and wait for reply
        stat_word, resp = self._send_recv(cla, ins, p1, p2, data)

        if VERBOSE:
            print(f"<< {B2A(resp)} {stat_word:04x}")

        if stat_word != SW_OKAY:
            msg = STATUS_WORDS.get(stat_word, 'Unknown error')
            raise TransportError(f'0x{stat_word:04x} on INS=0x{ins:02x}: {msg}', stat_word, msg)

        return bytes(resp) + stat_word.to_bytes(SW_LENGTH, 'big')

class LedgerCommTransport(LedgerTransportABC):
    #
    # For talking to a real device over USB, or Speculos over TCP. Uses "ledgercomm".
    #

    @classmethod
    def find_simulator(cls, server=SPECULOS_HOST, port=SPECULOS_PORT):
        # is something listening on the emulator's port?
        try:
            probe = socket.create_connection((server, port), timeout=0.25)
        except OSError:
            return None
        probe.close()

        return cls(interface='tcp', server=server, port=port)

    def __init__(self, interface='hid', server=SPECULOS_HOST, port=SPECULOS_PORT, debug=False):
        from ledgercomm import Transport

        self.is_emulator = (interface == 'tcp')
        self.name = f'TCP {server}:{port}' if self.is_emulator else 'USB'
        self._conn = Transport(interface=interface, server=server, port=port, debug=debug)

    def close(self):
        # release resources
        self._conn.close()
        del self._conn

    def _send_recv(self, cla, ins, p1, p2, data):
        sw, resp = self._conn.exchange(cla, ins, p1=p1, p2=p2, cdata=data)
        return sw, bytes(resp)

# EOF

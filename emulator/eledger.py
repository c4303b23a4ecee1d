#!/usr/bin/env python3
#
# (c) Copyright 2021 by Coinkite Inc. All rights reserved.
#
# Emulate the Nervos (CKB) app on a Ledger device.
#
# - same APDUs as the real app, no UX: everything is approved unless told otherwise
# - can run as a TCP server speaking the Speculos APDU framing (port 9999)
# - tests use it in-process, via EmulatorTransport
#
import struct, hmac, click, traceback
from hashlib import sha512

from coincurve import PrivateKey

from ckbledger.constants import *
from ckbledger.compat import ckb_hash
from ckbledger.exceptions import MalformedPathError, ResponseTooShortError
from ckbledger.transport import LedgerTransportABC
from ckbledger.utils import B2A, HARDENED, decode_path, path2str

# Print more?
DEBUG = False

# BIP-32 seed for the keys; fixed so results are repeatable
DEFAULT_SEED = bytes(range(16))

# what we claim to be
APP_VERSION = (1, 0, 3)
APP_GIT_HASH = 'emu-0000000000000000000000'

# wallet id is a hash of the pubkey at this path
WALLET_ID_PATH = [44 | HARDENED, 309 | HARDENED]

# status words we produce
SW_WRONG_LENGTH = 0x6700
SW_DENIED       = 0x6985
SW_BAD_DATA     = 0x6a80
SW_BAD_P1P2     = 0x6b00
SW_BAD_INS      = 0x6d00
SW_BAD_CLA      = 0x6e00

# provides msg+code number
class LedgerErrorCode(RuntimeError):
    def __init__(self, msg, code):
        self.code = code
        super().__init__(msg)

def bip32_derivation(seed, path):
    # return privkey and chain code for path, by BIP-32 from the seed
    I = hmac.new(b'Bitcoin seed', seed, sha512).digest()
    privkey, chain_code = I[:32], I[32:]

    for idx in path:
        if idx & HARDENED:
            data = b'\0' + privkey
        else:
            data = PrivateKey(privkey).public_key.format(compressed=True)

        I = hmac.new(chain_code, data + struct.pack('>I', idx), sha512).digest()
        privkey = PrivateKey(privkey).add(I[:32]).secret
        chain_code = I[32:]

    return privkey, chain_code


class CKBAppState:
    '''
        Whole-app state
    '''

    def __init__(self, seed=DEFAULT_SEED, user_approves=True):
        self.seed = seed
        self.user_approves = user_approves
        self._reset_signing()

    def _reset_signing(self):
        # forget any message signing in progress
        self.sign_path = None
        self.sign_display_hex = False
        self.sign_msg = b''

    def _key(self, path):
        priv, chain_code = bip32_derivation(self.seed, path)
        return PrivateKey(priv), chain_code

    def _read_path(self, data):
        try:
            return decode_path(data)
        except (MalformedPathError, ResponseTooShortError):
            raise LedgerErrorCode('bad path', SW_BAD_DATA)

    def _approve(self, what):
        if DEBUG:
            print(f"User is asked to approve: {what}")
        if not self.user_approves:
            raise LedgerErrorCode('denied by user', SW_DENIED)

    def apdu(self, cla, ins, p1, p2, data):
        # handle one APDU, return (status word, response data)
        try:
            if cla != CKB_CLA:
                raise LedgerErrorCode('bad CLA', SW_BAD_CLA)

            method = {
                INS_GET_APP_VERSION: self.cmd_version,
                INS_GET_WALLET_ID: self.cmd_wallet_id,
                INS_GET_WALLET_PUBKEY: self.cmd_pubkey,
                INS_GET_EXT_PUBKEY: self.cmd_ext_pubkey,
                INS_SIGN_MESSAGE: self.cmd_sign_message,
                INS_SIGN_MESSAGE_HASH: self.cmd_sign_hash,
                INS_GET_APP_GIT_HASH: self.cmd_git_hash,
            }.get(ins)
            if not method:
                raise LedgerErrorCode('unknown INS', SW_BAD_INS)

            resp = method(p1, p2, bytes(data))
            sw = SW_OKAY
        except LedgerErrorCode as exc:
            if ins in (INS_SIGN_MESSAGE, INS_SIGN_MESSAGE_HASH):
                self._reset_signing()
            resp, sw = b'', exc.code
        except Exception as exc:
            # shouldn't happen
            print(f"FAILED: INS=0x{ins:02x} => {exc}")
            traceback.print_exc()
            resp, sw = b'', 0x6f00

        if DEBUG:
            print(f"INS=0x{ins:02x} P1=0x{p1:02x} [{len(data)}] => {sw:04x} [{len(resp)}]")

        return sw, resp

    #
    # Commands.
    #

    def cmd_version(self, p1, p2, data):
        return bytes(APP_VERSION)

    def cmd_git_hash(self, p1, p2, data):
        # NUL terminated
        return APP_GIT_HASH.encode('latin1') + b'\0'

    def cmd_wallet_id(self, p1, p2, data):
        pk, _ = self._key(WALLET_ID_PATH)
        return ckb_hash(pk.public_key.format(compressed=True))

    def cmd_pubkey(self, p1, p2, data):
        pk, _ = self._key(self._read_path(data))
        pubkey = pk.public_key.format(compressed=False)
        return bytes([len(pubkey)]) + pubkey

    def cmd_ext_pubkey(self, p1, p2, data):
        pk, chain_code = self._key(self._read_path(data))
        pubkey = pk.public_key.format(compressed=False)
        return bytes([len(pubkey)]) + pubkey + bytes([len(chain_code)]) + chain_code

    def cmd_sign_message(self, p1, p2, data):
        if p1 == P1_FIRST:
            if not data or data[0] not in (0, 1):
                raise LedgerErrorCode('bad display flag', SW_BAD_DATA)
            self._reset_signing()
            self.sign_path = self._read_path(data[1:])
            self.sign_display_hex = bool(data[0])
            return b''

        if self.sign_path is None:
            raise LedgerErrorCode('no signing in progress', SW_DENIED)

        if p1 == P1_NEXT:
            if len(data) != MAX_APDU_SIZE:
                raise LedgerErrorCode('short middle chunk', SW_WRONG_LENGTH)
            self.sign_msg += data
            return b''

        if p1 != P1_LAST_MSG:
            raise LedgerErrorCode('bad P1', SW_BAD_P1P2)

        msg = self.sign_msg + data
        path = self.sign_path
        self._reset_signing()

        if not msg.startswith(MESSAGE_MAGIC):
            raise LedgerErrorCode('not a message', SW_BAD_DATA)

        body = msg[len(MESSAGE_MAGIC):]
        self._approve(B2A(body) if self.sign_display_hex else repr(body))

        pk, _ = self._key(path)
        return pk.sign_recoverable(ckb_hash(msg), hasher=None)

    def cmd_sign_hash(self, p1, p2, data):
        if p1 == P1_FIRST:
            self._reset_signing()
            self.sign_path = self._read_path(data)
            return b''

        if p1 != P1_LAST_MARKER:
            raise LedgerErrorCode('bad P1', SW_BAD_P1P2)
        if self.sign_path is None:
            raise LedgerErrorCode('no signing in progress', SW_DENIED)
        if len(data) != 32:
            raise LedgerErrorCode('digest must be 32 bytes', SW_WRONG_LENGTH)

        path = self.sign_path
        self._reset_signing()
        self._approve(f'hash {B2A(data)} with {path2str(path)}')

        pk, _ = self._key(path)
        return pk.sign_recoverable(data, hasher=None)

    def emulate(self, port, host='127.0.0.1'):
        # Using a TCP socket as connector, run as an emulator for the device.
        # - framing like Speculos: BE32 length + APDU in; BE32 length + data + SW out
        import socket

        def recv_exact(con, count):
            buf = b''
            while len(buf) < count:
                got = con.recv(count - len(buf))
                if not got:
                    return None
                buf += got
            return buf

        srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        srv.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        srv.bind((host, port))
        srv.listen()
        while 1:
            print(f"Waiting for new connection on: {host}:{port}")
            con, addr = srv.accept()

            print(f"Connected.")

            while 1:
                hdr = recv_exact(con, 4)
                if not hdr: break
                apdu = recv_exact(con, struct.unpack('>I', hdr)[0])
                if apdu is None or len(apdu) < 5: break

                cla, ins, p1, p2, lc = apdu[0:5]
                sw, resp = self.apdu(cla, ins, p1, p2, apdu[5:5+lc])

                con.sendall(struct.pack('>I', len(resp)) + resp + struct.pack('>H', sw))

            con.close()


class EmulatorTransport(LedgerTransportABC):
    #
    # In-process connection to the emulated app. Keeps a log of APDUs sent.
    #
    name = 'emulator'
    is_emulator = True

    def __init__(self, app=None):
        self.app = app or CKBAppState()
        self.log = []

    def _send_recv(self, cla, ins, p1, p2, data):
        self.log.append((cla, ins, p1, p2, bytes(data)))
        return self.app.apdu(cla, ins, p1, p2, data)


@click.group()
@click.option('--quiet', '-q', is_flag=True, help='Less debugging')
def main(quiet=False):
    global DEBUG
    DEBUG = not quiet

@main.command('emulate')
@click.option('--port', '-p', type=int, default=SPECULOS_PORT, help='TCP port for comms', metavar="PORT")
@click.option('--seed', '-s', type=str, default=None, help='BIP-32 seed, as hex', metavar="HEX")
@click.option('--deny', is_flag=True, help='Act like the user rejects every signing')
def emulate_app(port, seed=None, deny=False):
    '''
        Emulate the Nervos app, on a TCP port like Speculos.
    '''
    app = CKBAppState(seed=bytes.fromhex(seed) if seed else DEFAULT_SEED,
                        user_approves=not deny)
    app.emulate(port)


if __name__ == '__main__':
    main()

# EOF

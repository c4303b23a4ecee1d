#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# proto.py
#
# Implement the higher-level protocol for the Nervos (CKB) app on Ledger devices.
#
#
from .bip32 import PubKeyNode
from .utils import *
from .constants import *

class CKBLedger:
    #
    # Protocol/wrapper for the app. Call methods on this instance to get work done.
    #
    # - transport needs one method: send(cla, ins, p1, p2, data) => response bytes
    # - one operation at a time; the device keeps state between frames of a signing
    #
    def __init__(self, transport):
        self.tr = transport

    def __repr__(self):
        name = getattr(self.tr, 'name', self.tr.__class__.__name__)
        return '<%s via %s>' % (self.__class__.__name__, name)

    def close(self):
        # optional? cleanup connection
        self.tr.close()
        del self.tr

    def send(self, ins, p1=0x00, p2=0x00, data=b''):
        # Send one APDU to our app, and get response back.
        # - errors from transport are not caught here
        return self.tr.send(CKB_CLA, ins, p1, p2, data)

    def get_app_configuration(self) -> AppConfiguration:
        """
        Version of the app on the device, and the git hash it was built from.

        Returns AppConfiguration(version='1.0.3', hash='...')
        """
        resp = self.send(INS_GET_APP_VERSION)
        ver, _ = read_fixed(resp, 0, APP_VERSION_LENGTH, 'app version')

        resp = self.send(INS_GET_APP_GIT_HASH)
        expect_length(resp, APP_HASH_TRAILER, 'app hash')

        # last 3 bytes should be 00 90 00
        return AppConfiguration(version='%d.%d.%d' % tuple(ver),
                                hash=resp[:-APP_HASH_TRAILER].decode('latin1'))

    def get_wallet_id(self) -> str:
        # identifier for the seed phrase on the device, as hex
        resp = self.send(INS_GET_WALLET_ID)
        wallet_id, _ = read_fixed(resp, 0, WALLET_ID_LENGTH, 'wallet id')

        return B2A(wallet_id)

    def get_wallet_public_key(self, path, testnet=False) -> WalletPublicKey:
        """
        Get the public key at BIP-32 path, and the CKB address and lock args for it.

        The address is SECP256K1_BLAKE160 in full (2021) format. Pubkey is
        provided as the device gives it (65 bytes, uncompressed).
        """
        path_buf = encode_path(path)

        resp = self.send(INS_GET_WALLET_PUBKEY, data=path_buf)
        pubkey, _ = read_lv(resp, 0, 'public key')

        return derive_address(pubkey, testnet=testnet)

    def get_wallet_extended_public_key(self, path) -> ExtendedPublicKey:
        # public key and chain code at path, as hex
        path_buf = encode_path(path)

        resp = self.send(INS_GET_EXT_PUBKEY, data=path_buf)
        pubkey, offset = read_lv(resp, 0, 'extended public key')
        chain_code, _ = read_lv(resp, offset, 'chain code')

        return ExtendedPublicKey(public_key=B2A(pubkey), chain_code=B2A(chain_code))

    def get_pubkey_node(self, path, testnet=False) -> PubKeyNode:
        # fetch xpub at path, ready for unhardened derivation (here)
        xpub = self.get_wallet_extended_public_key(path)
        return PubKeyNode.from_device(xpub, path, testnet=testnet)

    def sign_message(self, path, message, display_hex=False) -> str:
        """
        Sign an arbitrary message (bytes or hex) with key at path.

        Message is prefixed with b'Nervos Message:' and sent in chunks, device
        shows it (as hex if display_hex) for approval. Returns 65-byte
        signature as hex.
        """
        path_buf = encode_path(path)
        raw_msg = MESSAGE_MAGIC + from_hex(message, 'message')

        handshake = bytes([0x01 if display_hex else 0x00]) + path_buf

        sig = None
        for state, chunk in message_frames(handshake, raw_msg):
            resp = self.send(INS_SIGN_MESSAGE, SIGN_STATE_P1[state], data=chunk)

            if state == SignState.FINAL:
                sig, _ = read_fixed(resp, 0, SIGNATURE_LENGTH, 'message signature')

        return B2A(sig)

    def sign_message_hash(self, path, digest) -> str:
        # Sign a pre-hashed message (bytes or hex), usually 32 bytes. Returns
        # signature as hex.
        path_buf = encode_path(path)
        digest = from_hex(digest, 'digest')

        if len(digest) > MAX_APDU_SIZE:
            raise ValueError(f"Digest must fit in one APDU ({MAX_APDU_SIZE} bytes)")

        self.send(INS_SIGN_MESSAGE_HASH, P1_FIRST, data=path_buf)
        resp = self.send(INS_SIGN_MESSAGE_HASH, P1_LAST_MARKER, data=digest)

        sig, _ = read_fixed(resp, 0, SIGNATURE_LENGTH, 'hash signature')

        return B2A(sig)

# EOF

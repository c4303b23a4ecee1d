#
# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Tests. Run against the emulator by default, or a real device: "--device hid" (or "tcp"
# for Speculos). Signing tests need someone to approve on the device.
#
import re
import pytest
from coincurve import PublicKey

from ckbledger.constants import *
from ckbledger.compat import *
from ckbledger.bip32 import PubKeyNode
from ckbledger.utils import str2path, derive_address

def test_wrap():
    # hash and curve lib wrappers need to function
    assert ckb_hash(b'') == bytes.fromhex(
                '44f4c69744d5f8c55d642062949dcae49bc4e7ef43d388c5a12f42b5633d163e')
    assert len(blake160(b'abc')) == 20

    pub = bytes.fromhex('0339a36013301597daef41fbe593a02cc513d0b55527ec2df1050e2e8ff49c85c2')
    assert CT_pubkey_format(CT_pubkey_format(pub, compressed=False)) == pub
    assert len(CT_pubkey_tweak_add(pub, bytes(31) + b'\x01')) == 33

    with pytest.raises(ValueError):
        CT_pubkey_format(bytes(33))

def test_version(dev):
    cfg = dev.get_app_configuration()
    assert re.match(r'^\d+\.\d+\.\d+$', cfg.version)
    assert cfg.hash

def test_wallet_id(dev):
    wid = dev.get_wallet_id()
    assert len(wid) == 64
    assert dev.get_wallet_id() == wid

@pytest.mark.parametrize('path', [ DEFAULT_PATH, "m/44'/309'/0'/1/0", "m/44'/309'/3'/0/99" ])
def test_addr(dev, path):
    main = dev.get_wallet_public_key(path)
    test = dev.get_wallet_public_key(path, testnet=True)

    assert main.public_key == test.public_key
    assert main.lock_arg == test.lock_arg
    assert main.address.startswith('ckb1')
    assert test.address.startswith('ckt1')
    assert derive_address(bytes.fromhex(main.public_key)) == main

def test_xpub(dev):
    path = "m/44'/309'/0'/0"
    xpub = dev.get_wallet_extended_public_key(path)
    assert len(bytes.fromhex(xpub.chain_code)) == 32

    node = PubKeyNode.from_device(xpub, path)
    for n in (0, 1, 19):
        got = dev.get_wallet_public_key(str2path(path) + [n])
        assert node.ckd(n).address() == got.address

def test_sign_msg(dev):
    path = DEFAULT_PATH
    msg = b'Testing 123'

    sig = bytes.fromhex(dev.sign_message(path, msg))
    assert len(sig) == SIGNATURE_LENGTH

    signer = PublicKey.from_signature_and_message(sig, ckb_hash(MESSAGE_MAGIC + msg), hasher=None)
    assert signer.format(compressed=False).hex() == dev.get_wallet_public_key(path).public_key

def test_sign_long_msg(dev):
    path = DEFAULT_PATH
    msg = b'x' * 1000

    sig = bytes.fromhex(dev.sign_message(path, msg.hex(), display_hex=True))

    signer = PublicKey.from_signature_and_message(sig, ckb_hash(MESSAGE_MAGIC + msg), hasher=None)
    assert signer.format(compressed=False).hex() == dev.get_wallet_public_key(path).public_key

# EOF

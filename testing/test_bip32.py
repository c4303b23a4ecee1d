#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Public BIP-32 derivation, from what the device gives us.
#
import pytest

from ckbledger.bip32 import PubKeyNode, InvalidKeyError
from ckbledger.compat import CT_pubkey_format, blake160
from ckbledger.exceptions import InvalidPublicKeyError
from ckbledger.utils import ExtendedPublicKey, HARDENED, render_address, B2A

# BIP-32 test vector 1: seed 000102030405060708090a0b0c0d0e0f
MASTER_PUB = '0339a36013301597daef41fbe593a02cc513d0b55527ec2df1050e2e8ff49c85c2'
MASTER_RAW = '0439a36013301597daef41fbe593a02cc513d0b55527ec2df1050e2e8ff49c85c2' \
                '3cbe7ded0e7ce6a594896b8f62888fdbc5c8821305e2ea42bf01e37300116281'
MASTER_CHAIN = '873dff81c02f525623fd1fe5167eac3a55a049de3d314bb42ee227ffed37d508'

# M/0, M/0/1, M/0/1/2147483647 (all public derivation)
CHILDREN = [
    (0, '027c4b09ffb985c298afe7e5813266cbfcb7780b480ac294b0b43dc21f2be3d13c',
        'd323f1be5af39a2d2f08f5e8f664633849653dbe329802e9847cfc85f8d7b52a'),
    (1, '02e740d213a1aa5746c66bae1ecda3b95d7f64d4bf8aff9d93702fc302f28df0f1',
        '5013ca9e43f801ce6e41c5dcef2dff48b184f9b030867c2849072ed0f0d85f1d'),
    (2**31-1, '0263160d684cbaf95010a18fb6c582b65b1176211fe33c695d9a0fa5f30920ca54',
        '1a586a903458080e3f2f490d5c76a9c771fd69b80b2043e9e338c82ea9d21567'),
]

def master(**kws):
    return PubKeyNode(key=bytes.fromhex(MASTER_RAW), chain_code=bytes.fromhex(MASTER_CHAIN), **kws)

def test_vector_1():
    M = master()
    assert M.sec() == bytes.fromhex(MASTER_PUB)
    assert M.is_root()
    assert repr(M) == 'M'

    node = M
    for idx, pub, chain in CHILDREN:
        node = node.ckd(index=idx)
        assert node.sec().hex() == pub
        assert node.chain_code.hex() == chain
        assert node.index == idx
        assert not node.is_hardened()

    assert node.depth == 3
    assert repr(node) == 'M/0/1/2147483647'

    # same result, all at once
    assert M.get_extended_pubkey_from_path([0, 1, 2**31-1]) == node
    assert M.get_extended_pubkey_from_path("0/1/2147483647") == node

def test_from_device():
    xpub = ExtendedPublicKey(public_key=MASTER_RAW, chain_code=MASTER_CHAIN)

    M = PubKeyNode.from_device(xpub, 'm')
    assert M == master()
    assert M.path == []
    assert repr(M) == 'm'

    child = M.ckd(0)
    assert child.path == [0]
    assert repr(child) == 'm/0'
    assert child.parent is M
    assert M.children == [child]

    deep = PubKeyNode.from_device(xpub, "m/44'/309'/0'")
    assert deep.depth == 3
    assert deep.index == 0 | HARDENED
    assert deep.is_hardened()
    assert repr(deep.ckd(5)) == 'm/44h/309h/0h/5'

    # round trip, always compressed
    assert M.extended_public_key() == ExtendedPublicKey(MASTER_PUB, MASTER_CHAIN)

def test_equality():
    assert master() == master()
    assert master() != master(testnet=True)
    assert master() != master().ckd(0)
    assert master() != MASTER_PUB

def test_ckd_pub_hardened_failure():
    M = master()
    with pytest.raises(RuntimeError):
        M.ckd(2**31)
    with pytest.raises(RuntimeError):
        M.ckd(2 ** 31 + 256)
    with pytest.raises(RuntimeError):
        M.get_extended_pubkey_from_path("0/1h")

def test_generate_children():
    M = master()
    kids = M.generate_children((0, 3))
    assert [k.index for k in kids] == [0, 1, 2]
    assert kids[0].sec().hex() == CHILDREN[0][1]
    assert len(M.generate_children()) == 20

def test_addresses():
    # lock args and addresses of the node's key
    M = master()
    assert M.lock_arg() == blake160(bytes.fromhex(MASTER_PUB))
    assert M.address() == render_address(M.lock_arg())
    assert M.address().startswith('ckb1')

    Mt = master(testnet=True)
    assert Mt.address() == render_address(M.lock_arg(), testnet=True)
    assert Mt.ckd(7).address().startswith('ckt1')

def test_bad_keys():
    with pytest.raises(InvalidPublicKeyError):
        PubKeyNode(key=b'\x05'*33, chain_code=bytes(32))
    with pytest.raises(InvalidPublicKeyError):
        PubKeyNode(key=bytes(65), chain_code=bytes(32))
    with pytest.raises(InvalidKeyError):
        PubKeyNode(key=bytes.fromhex(MASTER_PUB), chain_code=bytes(31))

def test_sec():
    data = [
        (
            '049d5ca49670cbe4c3bfa84c96a8c87df086c6ea6a24ba6b809c9de234496808d56fa15cc7f3d38cda98dee2419f415b7513dde1301f8643cd9245aea7f3f911f9',
            '039d5ca49670cbe4c3bfa84c96a8c87df086c6ea6a24ba6b809c9de234496808d5'
        ),
        (
            '04a598a8030da6d86c6bc7f2f5144ea549d28211ea58faa70ebf4c1e665c1fe9b5204b5d6f84822c307e4b4a7140737aec23fc63b65b35f86a10026dbd2d864e6b',
            '03a598a8030da6d86c6bc7f2f5144ea549d28211ea58faa70ebf4c1e665c1fe9b5',
        ),
        (
            '04aee2e7d843f7430097859e2bc603abcc3274ff8169c1a469fee0f20614066f8e21ec53f40efac47ac1c5211b2123527e0e9b57ede790c4da1e72c91fb7da54a3',
            '03aee2e7d843f7430097859e2bc603abcc3274ff8169c1a469fee0f20614066f8e'
        )
    ]
    for uncompressed, compressed in data:
        assert CT_pubkey_format(bytes.fromhex(uncompressed)) == bytes.fromhex(compressed)
        assert CT_pubkey_format(bytes.fromhex(compressed), compressed=False) \
                    == bytes.fromhex(uncompressed)
        node = PubKeyNode(key=bytes.fromhex(uncompressed), chain_code=bytes(32))
        assert B2A(node.sec()) == compressed

# EOF

#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# BIP-32 public derivation, starting from an extended public key read from the device.
#

import hmac
import hashlib
from typing import List, Tuple, Union

from .compat import CT_pubkey_format, CT_pubkey_tweak_add, blake160
from .exceptions import InvalidPublicKeyError
from .utils import HARDENED, path2str, str2path, render_address, from_hex, B2A, ExtendedPublicKey

# order of secp256k1
N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


def big_endian_to_int(b: bytes) -> int:
    """
    Big endian representation to integer.

    :param b: big endian representation
    :return: integer
    """
    return int.from_bytes(b, "big")


def int_to_big_endian(n: int, length: int) -> bytes:
    """
    Represents integer in big endian byteorder.

    :param n: integer
    :param length: byte length
    :return: big endian
    """
    return n.to_bytes(length, "big")


class InvalidKeyError(Exception):
    """Raised when derived key is invalid"""


class PubKeyNode(object):

    __slots__ = (
        "parent",
        "key",
        "chain_code",
        "depth",
        "index",
        "path",
        "testnet",
        "children"
    )

    def __init__(self, key: bytes, chain_code: bytes, index: int = 0,
                 depth: int = 0, testnet: bool = False,
                 parent: "PubKeyNode" = None, path: List[int] = None):
        """
        Initializes PubKeyNode.

        :param key: public key, compressed or uncompressed (as the device gives it)
        :param chain_code: chain code
        :param index: current node derivation index (default=0)
        :param depth: current node depth (default=0)
        :param testnet: whether addresses are for testnet (default=False)
        :param parent: parent node of the current node (default=None)
        :param path: full derivation path of this node, if known (default=None)
        """
        if len(chain_code) != 32:
            raise InvalidKeyError("chain code must be 32 bytes")
        try:
            key = CT_pubkey_format(bytes(key), compressed=True)
        except ValueError as exc:
            raise InvalidPublicKeyError(f"Bad public key for BIP-32 node: {exc}")

        self.parent = parent
        self.key = key
        self.chain_code = bytes(chain_code)
        self.depth = depth
        self.index = index
        self.path = list(path) if path is not None else None
        self.testnet = testnet
        self.children = []

    @classmethod
    def from_device(cls, xpub: ExtendedPublicKey, path: Union[str, List[int]],
                    testnet: bool = False) -> "PubKeyNode":
        """
        Build node from the result of CKBLedger.get_wallet_extended_public_key()

        :param xpub: public key and chain code, as hex
        :param path: the path that was given to the device
        :param testnet: whether addresses are for testnet (default=False)
        :return: public key node
        """
        path = str2path(path)
        return cls(key=from_hex(xpub.public_key, 'public key'),
                   chain_code=from_hex(xpub.chain_code, 'chain code'),
                   index=path[-1] if path else 0,
                   depth=len(path),
                   testnet=testnet,
                   path=path)

    def __eq__(self, other) -> bool:
        """
        Checks whether two public key nodes are equal.

        :param other: other public key node
        """
        if type(self) != type(other):
            return False
        return self.key == other.key and \
            self.chain_code == other.chain_code and \
            self.depth == other.depth and \
            self.index == other.index and \
            self.testnet == other.testnet

    def __repr__(self) -> str:
        if self.path is not None:
            return path2str(self.path)
        if self.is_root():
            return "M"
        if self.is_hardened():
            index = str(self.index - HARDENED) + "'"
        else:
            index = str(self.index)
        return str(self.parent) + "/" + index

    def is_hardened(self) -> bool:
        """Check whether current key node is hardened."""
        return self.index >= HARDENED

    def is_root(self) -> bool:
        """Check whether current key node is root (has no parent)."""
        return self.parent is None

    def sec(self) -> bytes:
        return self.key

    def lock_arg(self) -> bytes:
        """
        CKB lock args for this key.

        :return: first 20 bytes of the CKB blake2b hash of compressed public key
        """
        return blake160(self.key)

    def address(self) -> str:
        """CKB address (SECP256K1_BLAKE160, full format) of this node."""
        return render_address(self.lock_arg(), testnet=self.testnet)

    def extended_public_key(self) -> ExtendedPublicKey:
        return ExtendedPublicKey(public_key=B2A(self.key), chain_code=B2A(self.chain_code))

    def ckd(self, index: int) -> "PubKeyNode":
        """
        The function CKDpub((Kpar, cpar), i) → (Ki, ci) computes a child
        extended public key from the parent extended public key.
        It is only defined for non-hardened child keys.

        * Check whether i ≥ 231 (whether the child is a hardened key).
        * If so (hardened child):
            return failure
        * If not (normal child):
            let I = HMAC-SHA512(Key=cpar, Data=serP(Kpar) || ser32(i)).
        * Split I into two 32-byte sequences, IL and IR.
        * The returned child key Ki is point(parse256(IL)) + Kpar.
        * The returned chain code ci is IR.
        * In case parse256(IL) ≥ n or Ki is the point at infinity,
            the resulting key is invalid, and one should proceed with the next
             value for i.

        :param index: derivation index
        :return: derived child
        """
        if index >= HARDENED:
            raise RuntimeError("failure: hardened child for public ckd")
        I = hmac.new(key=self.chain_code, msg=self.key + int_to_big_endian(index, 4),
                     digestmod=hashlib.sha512).digest()
        IL, IR = I[:32], I[32:]
        if big_endian_to_int(IL) >= N:
            raise InvalidKeyError(
                "public key {} is greater/equal to curve order".format(
                    big_endian_to_int(IL)
                )
            )
        try:
            Ki = CT_pubkey_tweak_add(self.key, IL)
        except ValueError:
            raise InvalidKeyError("public key is a point at infinity")
        child = self.__class__(
            key=Ki,
            chain_code=IR,
            index=index,
            depth=self.depth + 1,
            testnet=self.testnet,
            parent=self,
            path=(self.path + [index]) if self.path is not None else None
        )
        self.children.append(child)
        return child

    def generate_children(self, interval: Tuple[int, int] = (0, 20)
                          ) -> List["PubKeyNode"]:
        """
        Generates children of current node.

        :param interval: specific interval of integers
                        from which to generate children (default=(0, 20))
        :return: list of generated children
        """
        return [self.ckd(index=i) for i in range(*interval)]

    def get_extended_pubkey_from_path(self, index_list: Union[str, List[int]]) -> "PubKeyNode":
        """
        Derives node from current node.

        :param index_list: specific index list (or relative path text, like "0/5")
        :return: derived node
        """
        node = self
        for i in str2path(index_list):
            node = node.ckd(index=i)
        return node

# EOF

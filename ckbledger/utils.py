# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
import struct, bech32
from binascii import b2a_hex, a2b_hex, Error as BinasciiError
from enum import Enum
from typing import List, NamedTuple

from .constants import *
from .compat import blake160
from .exceptions import MalformedPathError, InvalidPublicKeyError, ResponseTooShortError

# show bytes as hex in a string
B2A = lambda x: b2a_hex(x).decode('ascii')


class AppConfiguration(NamedTuple):
    version: str
    hash: str

class WalletPublicKey(NamedTuple):
    public_key: str
    lock_arg: str
    address: str

class ExtendedPublicKey(NamedTuple):
    public_key: str
    chain_code: str


def from_hex(value, what='value'):
    # accept bytes as-is, or a hex string (optional 0x prefix)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if value[0:2] in ('0x', '0X'):
        value = value[2:]
    try:
        return a2b_hex(value)
    except (BinasciiError, ValueError):
        raise ValueError(f"Bad hex for {what}: {value!r}")


# high bit set in BE32 indicating hardened BIP-32 path component
HARDENED = 0x8000_0000

def path_component_in_range(num: int) -> bool:
    # cannot be less than 0
    # cannot be more than (2 ** 31) - 1
    if 0 <= num < HARDENED:
        return True
    return False

def path2str(path):
    # take numeric path (list of numbers) and convert to human form
    # - standardizing on "m/44h" style
    return '/'.join(['m'] + [str(i & ~HARDENED)+('h' if i&HARDENED else '') for i in path])

def str2path(path) -> List[int]:
    # normalize notation and return numbers
    # - "m/44'/309'/0'/0/0", "44h/309h/0h/0/0" and "" (no components) are all fine
    # - lists of numbers are checked and passed thru
    if isinstance(path, (list, tuple)):
        for i in path:
            if not isinstance(i, int) or not (0 <= i <= 0xffff_ffff):
                raise MalformedPathError(f"Path component out of range: {i!r}")
        rv = list(path)
    else:
        parts = path.strip().split('/')
        if parts[0] in ('m', 'M', ''):
            if parts[0] == '' and len(parts) > 1:
                raise MalformedPathError(f"Malformed bip32 path: {path}")
            parts = parts[1:]

        rv = []
        for i in parts:
            if not i:
                # trailing or duplicated slashes
                raise MalformedPathError(f"Empty bip32 path component in: {path}")

            if i[-1] in "'phHP":
                if len(i) < 2 or not i[:-1].isdecimal():
                    raise MalformedPathError(f"Malformed bip32 path component: {i}")
                num = int(i[:-1])
                if not path_component_in_range(num):
                    raise MalformedPathError(f"Hardened path component out of range: {i}")
                here = num | HARDENED
            else:
                if not i.isdecimal():
                    if i[0] == '-' and i[1:].isdecimal():
                        raise MalformedPathError(f"Non-hardened path component out of range: {i}")
                    raise MalformedPathError(f"Malformed bip32 path component: {i}")
                here = int(i)
                if not path_component_in_range(here):
                    raise MalformedPathError(f"Non-hardened path component out of range: {i}")

            rv.append(here)

    if len(rv) > MAX_PATH_DEPTH:
        raise MalformedPathError(f"No more than {MAX_PATH_DEPTH} path components allowed.")

    return rv

def encode_path(path) -> bytes:
    # device layout: count byte, then each component as BE32
    path = str2path(path)
    return struct.pack(f'>B{len(path)}I', len(path), *path)

def decode_path(buf) -> List[int]:
    # reverse of encode_path; must consume whole buffer
    expect_length(buf, 1, 'path')
    count = buf[0]
    expect_length(buf, 1 + (4 * count), 'path')
    if len(buf) != 1 + (4 * count):
        raise MalformedPathError(f"Extra bytes after {count} path components")
    return list(struct.unpack_from(f'>{count}I', buf, 1))

# predicates for numeric paths
all_hardened = lambda path: all(bool(i & HARDENED) for i in path)
none_hardened = lambda path: not any(bool(i & HARDENED) for i in path)


#
# Response decoding. Everything is positional, so check lengths before every read.
#
def expect_length(resp, needed, what):
    if len(resp) < needed:
        raise ResponseTooShortError(f"Response for {what} too short: "
                                    f"need {needed} bytes, got {len(resp)}", needed, len(resp))

def read_fixed(resp, offset, length, what):
    # fixed-size field at offset; returns (value, next offset)
    expect_length(resp, offset + length, what)
    return bytes(resp[offset:offset+length]), offset + length

def read_lv(resp, offset, what):
    # one-byte length then that many bytes; returns (value, next offset)
    expect_length(resp, offset + 1, what)
    return read_fixed(resp, offset + 1, resp[offset], what)


#
# Address derivation: device pubkey => lock arg => lock script => bech32m address
#
def compress_pubkey(pubkey):
    # take 65-byte uncompressed SEC1 pubkey from device, return 33-byte compressed
    # - parity of Y decides the prefix
    if len(pubkey) != RAW_PUBKEY_LENGTH or pubkey[0] != 0x04:
        raise InvalidPublicKeyError(f"Expected {RAW_PUBKEY_LENGTH}-byte uncompressed "
                                    f"pubkey, got {len(pubkey)} bytes: {B2A(pubkey[0:4])}...")

    prefix = 0x03 if (pubkey[64] & 1) else 0x02
    return bytes([prefix]) + bytes(pubkey[1:33])

def pubkey_to_lock_arg(compressed_pubkey):
    # SECP256K1_BLAKE160 lock args
    assert len(compressed_pubkey) == COMPRESSED_PUBKEY_LENGTH, 'expecting compressed pubkey'
    return blake160(compressed_pubkey)

def lock_script(lock_arg):
    # full-format address payload: format, code hash, hash type, args
    assert len(lock_arg) == LOCK_ARG_LENGTH
    return bytes([ADDRESS_FORMAT_FULL]) + SECP256K1_BLAKE160_CODE_HASH \
                + bytes([SECP256K1_BLAKE160_HASH_TYPE]) + bytes(lock_arg)

def bech32m_encode(hrp, data):
    # bech32 lib only makes the original checksum; same polymod, other constant
    values = bech32.bech32_hrp_expand(hrp) + data
    polymod = bech32.bech32_polymod(values + [0]*6) ^ BECH32M_CONST
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]

    return hrp + '1' + ''.join(bech32.CHARSET[d] for d in data + checksum)

def bech32m_verify(addr):
    # checksum is right? doesn't have the 90-char limit of bech32.bech32_decode()
    hrp, _, data = addr.lower().rpartition('1')
    if not hrp or len(data) < 6 or any(c not in bech32.CHARSET for c in data):
        return False
    values = bech32.bech32_hrp_expand(hrp) + [bech32.CHARSET.find(c) for c in data]
    return bech32.bech32_polymod(values) == BECH32M_CONST

def render_address(lock_arg, testnet=False):
    # make the text string used as a payment address
    HRP = HRP_MAINNET if not testnet else HRP_TESTNET
    words = bech32.convertbits(lock_script(lock_arg), 8, 5)
    rv = bech32m_encode(HRP, words)

    if len(rv) > BECH32_LIMIT:
        # unreachable with a fixed-size script
        raise ValueError(f"Address too long: {len(rv)} > {BECH32_LIMIT}")

    return rv

def derive_address(raw_pubkey, testnet=False) -> WalletPublicKey:
    # full pipeline from what the device gives us
    compressed = compress_pubkey(raw_pubkey)
    lock_arg = pubkey_to_lock_arg(compressed)

    return WalletPublicKey(public_key=B2A(raw_pubkey), lock_arg=B2A(lock_arg),
                            address=render_address(lock_arg, testnet=testnet))


#
# Message signing is spread over several APDUs.
#
class SignState(Enum):
    INIT = 'init'               # handshake: display flag and path
    CONTINUING = 'continuing'   # full-size chunk, more to come
    FINAL = 'final'             # last chunk, might be empty; reply has signature
    DONE = 'done'

# what P1 value goes with each frame
SIGN_STATE_P1 = {
    SignState.INIT: P1_FIRST,
    SignState.CONTINUING: P1_NEXT,
    SignState.FINAL: P1_LAST_MSG,
}

def next_sign_state(state, remaining, max_size=MAX_APDU_SIZE):
    # transition once the current frame has been sent
    # - a full chunk still remaining goes out as CONTINUING, anything less is FINAL
    # - when message length is an exact multiple of max_size, FINAL is empty but still sent
    if state in (SignState.INIT, SignState.CONTINUING):
        return SignState.CONTINUING if remaining >= max_size else SignState.FINAL
    return SignState.DONE

def message_frames(handshake, msg, max_size=MAX_APDU_SIZE):
    # generate (state, payload) for every frame of a message signing, in order
    state = SignState.INIT
    pos = 0
    while state != SignState.DONE:
        if state == SignState.INIT:
            yield state, handshake
        elif state == SignState.CONTINUING:
            yield state, msg[pos:pos+max_size]
            pos += max_size
        else:
            yield state, msg[pos:]
            pos = len(msg)

        state = next_sign_state(state, len(msg) - pos, max_size)

# EOF

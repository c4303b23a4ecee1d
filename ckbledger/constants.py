#
# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# System constants.
#

# APDU CLA byte for every command the Nervos app understands
CKB_CLA = 0x80

# APDU INS values
INS_GET_APP_VERSION     = 0x00
INS_GET_WALLET_ID       = 0x01
INS_GET_WALLET_PUBKEY   = 0x02
INS_GET_EXT_PUBKEY      = 0x04
INS_SIGN_MESSAGE        = 0x06
INS_SIGN_MESSAGE_HASH   = 0x07
INS_GET_APP_GIT_HASH    = 0x09

# P1 values for the multi-frame signing commands
P1_FIRST        = 0x00          # handshake: flags + derivation path
P1_NEXT         = 0x01          # more message bytes follow
P1_LAST_MARKER  = 0x80          # set on the final frame
P1_LAST_MSG     = P1_NEXT | P1_LAST_MARKER

# largest data field we put into one APDU
MAX_APDU_SIZE = 230

# recoverable secp256k1 signature from device: r(32) s(32) rec_id(1)
SIGNATURE_LENGTH = 65

# uncompressed SEC1 public key, as the device provides it
RAW_PUBKEY_LENGTH = 65
COMPRESSED_PUBKEY_LENGTH = 33

# wallet identifier is a 32-byte hash
WALLET_ID_LENGTH = 32

# version reply: major, minor, patch
APP_VERSION_LENGTH = 3

# git hash reply ends with a NUL and then the status word
APP_HASH_TRAILER = 3

# Correct ADPU response from all commands: 90 00
SW_OKAY = 0x9000
SW_LENGTH = 2

# well-known status words, for humans
STATUS_WORDS = {
    0x6700: 'Incorrect length',
    0x6982: 'Security status not satisfied (device locked?)',
    0x6985: 'Conditions of use not satisfied (denied by the user?)',
    0x6a80: 'Invalid data',
    0x6b00: 'Incorrect parameter P1 or P2',
    0x6d00: 'Instruction not supported (wrong app open?)',
    0x6e00: 'Class not supported (wrong app open?)',
    0x6e01: 'App not open',
    0x6f00: 'Technical problem (internal error)',
    0x9001: 'Device busy',
}

# path depth is encoded in a single byte
MAX_PATH_DEPTH = 255

# default account for CKB, per SLIP-44 coin type 309
DEFAULT_PATH = "m/44'/309'/0'/0/0"

# blake2b personalization used for every hash in CKB (16 bytes)
CKB_HASH_PERSONALIZATION = b'ckb-default-hash'
CKB_HASH_LENGTH = 32

# lock args are "blake160": first 20 bytes of the blake2b hash
LOCK_ARG_LENGTH = 20

# prefix added to messages before signing, so they can't be mistaken for transactions
MESSAGE_MAGIC = b'Nervos Message:'

# CKB 2021 full address format
ADDRESS_FORMAT_FULL = 0x00

# SECP256K1_BLAKE160 system script: code hash and hash type ("type")
SECP256K1_BLAKE160_CODE_HASH = bytes.fromhex(
            '9bd7e06f3ecf4be0f2fcd2188b23f1b9fcc88e5d4b65a8637b17723bbda3cce8')
SECP256K1_BLAKE160_HASH_TYPE = 0x01

# human readable part of bech32m addresses
HRP_MAINNET = 'ckb'
HRP_TESTNET = 'ckt'

# CKB addresses are longer than any Bitcoin address, so raise the bech32m limit
BECH32_LIMIT = 1023

# bech32m checksum constant (BIP-350); plain bech32 uses 1
BECH32M_CONST = 0x2bc830a3

# Speculos emulator, default APDU port
SPECULOS_HOST = '127.0.0.1'
SPECULOS_PORT = 9999

# EOF

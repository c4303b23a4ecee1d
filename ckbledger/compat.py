#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Wrappers for the hash function and curve library. AKA API Cleanup
#
# My standards:
# - pubkeys: 33 bytes, always compressed, unless told otherwise
# - hashes: CKB flavour of blake2b-256, personalized
# - curve library raises ValueError, we convert to our exceptions at the edges
#
from hashlib import blake2b
from coincurve import PublicKey
from .constants import CKB_HASH_PERSONALIZATION, CKB_HASH_LENGTH, LOCK_ARG_LENGTH

__all__ = [ 'ckb_hash', 'blake160', 'CT_pubkey_format', 'CT_pubkey_tweak_add' ]

def ckb_hash(msg):
    # single-shot blake2b-256 with CKB's personalization
    return blake2b(msg, digest_size=CKB_HASH_LENGTH, person=CKB_HASH_PERSONALIZATION).digest()

def blake160(msg):
    # first 20 bytes of the CKB hash; used for lock args
    return ckb_hash(msg)[0:LOCK_ARG_LENGTH]

def CT_pubkey_format(pub, compressed=True):
    # re-serialize a pubkey (33 or 65 bytes in), also proves it's on the curve
    return PublicKey(pub).format(compressed=compressed)

def CT_pubkey_tweak_add(pub, tweak):
    # point(tweak) + pub, returned compressed
    return PublicKey(pub).add(tweak).format(compressed=True)

# EOF

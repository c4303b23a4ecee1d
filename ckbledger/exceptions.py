#
# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Exceptions
#

class CKBRuntimeError(RuntimeError):
    pass

class MalformedPathError(ValueError):
    pass

class InvalidPublicKeyError(CKBRuntimeError):
    pass

class ResponseTooShortError(CKBRuntimeError):
    def __init__(self, msg, needed, got):
        self.needed = needed
        self.got = got
        super().__init__(msg)

class TransportError(CKBRuntimeError):
    def __init__(self, msg, code, raw_msg):
        self.code = code
        self.raw_msg = raw_msg
        super().__init__(msg)

# EOF

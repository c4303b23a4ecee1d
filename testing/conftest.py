import os, sys
import pytest

# emulator isn't part of the package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'emulator'))

from ckbledger.constants import SW_OKAY, SW_LENGTH

# status word on the end of every good reply
OK = SW_OKAY.to_bytes(SW_LENGTH, 'big')

def pytest_addoption(parser):
    parser.addoption("--device", action="store", type=str,
                     choices=['emu', 'hid', 'tcp'], default='emu',
                     help="Device for tests: in-process emulator (default), USB, or Speculos")

class ScriptedTransport:
    #
    # Canned replies, in order, and a record of what was sent.
    #
    name = 'scripted'

    def __init__(self, *replies):
        self.replies = list(replies)
        self.sent = []

    def send(self, cla, ins, p1=0, p2=0, data=b''):
        self.sent.append((cla, ins, p1, p2, bytes(data)))
        assert self.replies, "unexpected APDU"
        rv = self.replies.pop(0)
        if isinstance(rv, Exception):
            raise rv
        return rv

    def close(self):
        pass

@pytest.fixture
def scripted():
    # use as: dev, tr = scripted(reply1, reply2, ...)
    from ckbledger.proto import CKBLedger

    def doit(*replies):
        tr = ScriptedTransport(*replies)
        return CKBLedger(tr), tr

    return doit

@pytest.fixture
def emu():
    # fresh emulated app, all signings approved
    from ckbledger.proto import CKBLedger
    from eledger import CKBAppState, EmulatorTransport

    return CKBLedger(EmulatorTransport(CKBAppState()))

@pytest.fixture(scope='session')
def dev(request):
    # app on a real device, Speculos, or the emulator
    # use command line flag to pick: --device hid|tcp|emu
    from ckbledger.proto import CKBLedger
    from ckbledger.transport import LedgerCommTransport

    which = request.config.getoption("--device")
    if which == 'emu':
        from eledger import EmulatorTransport
        return CKBLedger(EmulatorTransport())

    try:
        tr = LedgerCommTransport(interface=which)
    except Exception as exc:
        raise pytest.fail(f'no device on {which}: {exc}')

    return CKBLedger(tr)

# EOF

#!/usr/bin/env python
#
# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# To use this, install with:
#
#   pip install --editable '.[cli]'
#
# That will create the command "ckbledger" in your path.
#
#
import click, sys, json
from functools import wraps

from ckbledger.constants import *
from ckbledger.exceptions import CKBRuntimeError
from ckbledger.transport import find_devices, find_first, LedgerCommTransport
from ckbledger.proto import CKBLedger
from ckbledger import __version__

# dict of options that apply to all commands
global global_opts
global_opts = dict()

# Cleanup display (supress traceback) for user-feedback exceptions
_sys_excepthook = sys.excepthook
def my_hook(ty, val, tb):
    if issubclass(ty, CKBRuntimeError) or ty is RuntimeError:
        print("FATAL: %s" % val, file=sys.stderr)
    else:
        return _sys_excepthook(ty, val, tb)
sys.excepthook=my_hook

def fail(msg):
    # show message and stop
    click.echo(f"FAILURE: {msg}", err=True)
    sys.exit(1)

def get_device():
    # Pick a device to work with
    global global_opts
    tcp = global_opts.get('tcp')

    be_verbose = global_opts.get('verbose', False)
    if be_verbose:
        import ckbledger.transport as tt
        tt.VERBOSE = True

    if tcp:
        host, _, port = tcp.rpartition(':')
        try:
            tr = LedgerCommTransport(interface='tcp', server=host or SPECULOS_HOST, port=int(port))
        except (OSError, ValueError) as exc:
            fail(f"Cannot connect to {tcp}: {exc}")
        return CKBLedger(tr)

    dev = find_first()
    if not dev:
        fail("No device found. Is it plugged in, unlocked, with the Nervos app open?")

    return dev

def display_errors(f):
    # clean-up display of errors from device, and bad arguments
    @wraps(f)
    def wrapper(*args, **kws):
        try:
            return f(*args, **kws)
        except (CKBRuntimeError, ValueError) as exc:
            fail(str(exc))
    return wrapper

def show_result(rv, as_json=False, only=None):
    # print a result tuple, either one field or all of it
    if as_json:
        click.echo(json.dumps(rv._asdict(), indent=2))
    elif only:
        click.echo(getattr(rv, only))
    else:
        for k, v in rv._asdict().items():
            click.echo('%s: %s' % (k, v))

# Accept any prefix of a command name.
#
# from <https://click.palletsprojects.com/en/8.0.x/advanced/?#command-aliases>
class AliasedGroup(click.Group):
    def get_command(self, ctx, cmd_name):
        rv = click.Group.get_command(self, ctx, cmd_name)
        if rv is not None:
            return rv
        matches = [x for x in self.list_commands(ctx)
                   if x.startswith(cmd_name)]
        if not matches:
            return None
        elif len(matches) == 1:
            return click.Group.get_command(self, ctx, matches[0])
        ctx.fail(f"Abiguous command. Pick one of: {' | '.join(sorted(matches))}")

    def resolve_command(self, ctx, args):
        # always return the full command name
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name, cmd, args


#
# Options we want for all commands
#
@click.group(cls=AliasedGroup)
@click.option('--tcp', '-t', default=None, metavar="HOST:PORT",
                    help="Connect to emulator (Speculos) at this address")
@click.option('--verbose', '-v', is_flag=True,
                    help="Show traffic with device.")
@click.option('--pdb', is_flag=True,
                    help="Prepare patient for surgery to remove bugs.")
@click.version_option(version=__version__)
def main(**kws):
    '''
    Interact with the Nervos (CKB) app on a Ledger device.

    Paths look like: m/44h/309h/0h/0/0 (the "m/" is optional, and ' works for h).

    You can use "addr", or "a" for "address": any distinct prefix for all commands.
    '''
    # implement PDB option here
    if kws.pop('pdb', False):
        import pdb, sys
        def doit(ex_cls, ex, tb):
            pdb.pm()
        sys.excepthook = doit

    # global options, mostly not considered here
    global global_opts
    global_opts.update(kws)

@main.command('version')
@display_errors
def get_version():
    "Get the version of the Nervos app on the device"
    dev = get_device()

    cfg = dev.get_app_configuration()
    click.echo(f'{cfg.version} ({cfg.hash})')

@main.command('list')
def list_devices():
    "List all devices (and emulators) found."

    count = 0
    for dev in find_devices():
        click.echo(repr(dev))
        count += 1

    if not count:
        click.echo("(none found)")

@main.command('wallet-id')
@display_errors
def get_wallet_id():
    "Show identifier of the seed loaded on device"
    dev = get_device()

    click.echo(dev.get_wallet_id())

@main.command('address')
@click.argument('path', type=str, metavar="44h/309h/0h/0/0", default=DEFAULT_PATH)
@click.option('--testnet', '-x', is_flag=True, help="Address for testnet (ckt1...)")
@click.option('--json', '-j', 'as_json', is_flag=True, help="Everything, as JSON")
@click.option('--verbose', '-v', is_flag=True, help="Also show public key and lock args")
@display_errors
def get_address(path, testnet, as_json, verbose):
    "Show address for a key on the device"
    dev = get_device()

    rv = dev.get_wallet_public_key(path, testnet=testnet)
    show_result(rv, as_json=as_json, only=None if verbose else 'address')

@main.command('xpub')
@click.argument('path', type=str, metavar="44h/309h/0h", default="m/44'/309'/0'")
@click.option('--json', '-j', 'as_json', is_flag=True, help="As JSON")
@display_errors
def get_xpub(path, as_json):
    "Show public key and chain code for a path"
    dev = get_device()

    show_result(dev.get_wallet_extended_public_key(path), as_json=as_json)

@main.command('addresses')
@click.argument('path', type=str, metavar="44h/309h/0h/0", default="m/44'/309'/0'/0")
@click.option('--count', '-n', type=click.IntRange(min=1, max=1000), default=10,
                    help="How many addresses, default: 10")
@click.option('--start', '-s', type=click.IntRange(min=0), default=0,
                    help="First index, default: 0")
@click.option('--testnet', '-x', is_flag=True, help="Addresses for testnet (ckt1...)")
@display_errors
def list_addresses(path, count, start, testnet):
    "List addresses under a path; one request, the rest is derived here"
    dev = get_device()

    node = dev.get_pubkey_node(path, testnet=testnet)
    for child in node.generate_children((start, start+count)):
        click.echo('%s => %s' % (child, child.address()))

@main.command('msg')
@click.argument('message')
@click.argument('path', type=str, metavar="44h/309h/0h/0/0", default=DEFAULT_PATH)
@click.option('--hex', '-h', 'is_hex', is_flag=True, help='Message is given as hex')
@click.option('--display-hex', '-d', is_flag=True, help='Device shows message as hex')
@display_errors
def sign_message(message, path, is_hex, display_hex):
    """Sign a message. Approve it on the device."""
    dev = get_device()

    message = message if is_hex else message.encode('utf-8')

    click.echo(dev.sign_message(path, message, display_hex=display_hex))

@main.command('sign-hash')
@click.argument('digest', type=str, metavar="(32 bytes as hex)")
@click.argument('path', type=str, metavar="44h/309h/0h/0/0", default=DEFAULT_PATH)
@display_errors
def sign_hash(digest, path):
    """Sign a hash (blind). Approve it on the device."""
    dev = get_device()

    click.echo(dev.sign_message_hash(path, digest))

# EOF

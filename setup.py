#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
#
# Nervos (CKB) Ledger app protocol and python support library
#

# To use this command to install and yet be able to edit the code (here). Great for dev:
#
#   pip install --editable .
#
# with cli dependencies
#
#   pip install --editable '.[cli]'
#
# with test dependencies
#
#   pip install --editable '.[test]'
#
# for USB (HID) devices, rather than just the emulator
#
#   pip install --editable '.[hid]'
#
#
from setuptools import setup

# can't import the package here, its requirements might not be installed yet
about = {}
with open("ckbledger/version.py", "r") as fh:
    exec(fh.read(), about)

# these minimum versions are tested, some earlier values would probably work too.
requirements = [
    'ledgercomm>=1.1.0',
    'bech32>=1.2.0',
    'coincurve>=15.0.1',
]

hid_requirements = [
    'ledgercomm[hid]>=1.1.0',
]

cli_requirements = [
    'click>=8.0.3',
]

test_requirements = [
    'pytest',
] + cli_requirements

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='ckb-ledger-protocol',
    version=about['__version__'],
    packages=[ 'ckbledger' ],
    python_requires='>=3.7',
    install_requires=requirements,
    extras_require={
        'cli': cli_requirements,
        'hid': hid_requirements,
        'test': test_requirements,
    },
    description="Talk to the Nervos (CKB) app on a Ledger device using Python",
    long_description=long_description,
    long_description_content_type="text/markdown",
    entry_points='''
        [console_scripts]
        ckbledger=ckbledger.cli:main
    ''',
    classifiers=[
        'Operating System :: POSIX :: Linux',
        'Operating System :: Microsoft :: Windows',
        'Operating System :: MacOS :: MacOS X',
    ],
)

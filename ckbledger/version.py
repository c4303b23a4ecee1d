#
# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Kept apart from __init__ so setup.py can read it without importing dependencies.
#
__version__ = '0.2.0'

# EOF

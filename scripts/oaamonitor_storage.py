#!/usr/bin/env python3
# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""oaamonitor-storage script entry point.

Delegates to :func:`oaamonitor.cli.cli`.  Equivalent to running the
installed ``oaamonitor-storage`` command.
"""

import sys
from pathlib import Path


# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from oaamonitor.cli import cli


if __name__ == "__main__":
    cli()

# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""mitmproxy entry script for the SigV4 signing addon.

Usage:
    mitmdump -s scripts/sigv4_addon.py

Properties are read from ``~/.config/sigv4callout/callout.yaml`` unless
``SIGV4CALLOUT_CONFIG`` points elsewhere.
"""

import os
from pathlib import Path

from sigv4callout.logging import configure_logging
from sigv4callout.proxy import SigV4Addon


configure_logging()

_config = os.environ.get("SIGV4CALLOUT_CONFIG")

addons = [SigV4Addon.from_config(Path(_config) if _config else None)]

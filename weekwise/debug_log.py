"""
Debug output for Weekwise.

Modules print timestamped, tagged lines to stderr. Output is off unless
enabled from the command line or the configuration file.
"""

import sys
from datetime import datetime


_enabled: bool = False


def set_debug(enabled: bool) -> None:
    """Enable or disable debug output for the whole application."""
    global _enabled
    _enabled = enabled


def debug_print(tag: str, message: str) -> None:
    if not _enabled:
        return
    timestamp = datetime.now().strftime("%H:%M:%S")
    print(f"[{timestamp}] {tag}: {message}", file=sys.stderr)

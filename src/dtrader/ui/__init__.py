"""
UI components for the dtrader console.
"""

from dtrader.ui.keys import decode_key, iter_keys
from dtrader.ui.terminal import RichTerminal

__all__ = [
    "RichTerminal",
    "decode_key",
    "iter_keys",
]

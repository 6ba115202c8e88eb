"""Extract the AES key from a Click'n'Load ``jk`` snippet.

The snippet looks like ``function f(){ return "0102..."; }`` and comes from
a third-party page, so it is only ever pattern-matched, never evaluated.
"""

import re
from typing import Optional

KEY_FUNCTION_PATTERN = re.compile(r"""return\s*["']([0-9A-Fa-f]+)["']""")


def extract_key(jk: Optional[str]) -> Optional[str]:
    """Return the hex string returned by the snippet, or None if there is none."""
    if not jk or not isinstance(jk, str):
        return None
    match = KEY_FUNCTION_PATTERN.search(jk)
    if not match:
        return None
    return match.group(1)

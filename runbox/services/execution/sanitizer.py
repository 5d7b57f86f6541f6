"""
Output sanitization for captured container output.
"""

import re
from typing import Union

# ASCII whitespace, Unicode space separators, line/paragraph separators and
# the BOM. Not \s: \x1c-\x1f and \x85 are controls here and get stripped.
_WHITESPACE = re.compile(
    r"[\t\n\x0b\x0c\r \u00a0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000\ufeff]+"
)
# C0 controls, DEL and C1 controls
_CONTROL = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def sanitize(raw: Union[str, bytes]) -> str:
    """
    Normalize raw program output into compact, control-free text.

    Whitespace runs (newlines and tabs included) become a single space,
    control characters are dropped and the result is trimmed. Never raises;
    sanitize(sanitize(x)) == sanitize(x).
    """
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
    else:
        text = raw

    # \t, \n and friends collapse to spaces before the remaining controls are
    # removed, then removal gaps are collapsed again.
    text = _WHITESPACE.sub(" ", text)
    text = _CONTROL.sub("", text)
    return _WHITESPACE.sub(" ", text).strip(" ")

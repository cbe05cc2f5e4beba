from __future__ import annotations

import re
from typing import Optional

_DASHES_RE = re.compile("[‐-―]")
_SINGLE_QUOTES_RE = re.compile("[‘’]")
_DOUBLE_QUOTES_RE = re.compile("[“”]")
_NON_ASCII_RE = re.compile(r"[^\x00-\x7f]")


def sanitize_text(text: Optional[str]) -> str:
    """
    Map typographic punctuation to ASCII and blank out anything else the
    standard Type 1 fonts cannot encode.

    ``None`` becomes the empty string.
    """
    if text is None:
        return ""
    text = _DASHES_RE.sub("-", text)
    text = _SINGLE_QUOTES_RE.sub("'", text)
    text = _DOUBLE_QUOTES_RE.sub('"', text)
    text = text.replace("…", "...")
    return _NON_ASCII_RE.sub(" ", text)

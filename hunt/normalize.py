"""Canonical forms of titles and employer names for comparison."""
from __future__ import annotations

import re

# Separators and sentence punctuation that scraped titles pick up but that never
# distinguish one role from another ("Engineer, Platform" vs "Engineer Platform").
STRIP_CHARS = ",.|;:!?\"'()[]{}"

_STRIP_TABLE = str.maketrans("", "", STRIP_CHARS)
_WS_RE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """Lowercase, drop noise punctuation, collapse whitespace, trim.

    normalize(normalize(x)) == normalize(x) for every string.
    """
    if not text:
        return ""
    out = text.lower().translate(_STRIP_TABLE)
    return _WS_RE.sub(" ", out).strip()


def employer_key(name: str | None) -> str:
    """Matching key for an employer name."""
    return normalize(name)

"""Issue key recognition for free text and sheet cells.

Two surface forms are understood:

``ADV-123``
    A bare key anywhere in the text (commit messages, PR titles, branch
    names or a plain sheet cell).

``=HYPERLINK("https://jira/browse/ADV-123", "ADV-123")``
    The formula written into column A for new rows.  Only the quoted display
    text is considered, never the URL argument.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Optional, Pattern

DEFAULT_KEY_PREFIX = "ADV"


def _key_pattern(prefix: str) -> str:
    return rf"{re.escape(prefix)}-\d+"


@lru_cache(maxsize=None)
def _text_regex(prefix: str) -> Pattern[str]:
    key = _key_pattern(prefix)
    # Alternation order matters: a key hyperlink is consumed as a whole, and
    # the quoted URL argument of any other hyperlink is skipped, so keys inside
    # a URL are never reported.
    return re.compile(
        rf'HYPERLINK\(\s*"[^"]*"\s*,\s*"\s*(?P<display>{key})\s*"\s*\)'
        rf'|HYPERLINK\(\s*"[^"]*"\s*,'
        rf"|(?<![A-Za-z0-9])(?P<bare>{key})(?!\d)",
        re.IGNORECASE,
    )


@lru_cache(maxsize=None)
def _bare_cell_regex(prefix: str) -> Pattern[str]:
    return re.compile(rf"^{_key_pattern(prefix)}$", re.IGNORECASE)


@lru_cache(maxsize=None)
def _formula_cell_regex(prefix: str) -> Pattern[str]:
    return re.compile(
        rf'^=?\s*HYPERLINK\(\s*[^,]+,\s*"\s*({_key_pattern(prefix)})\s*"\s*\)\s*$',
        re.IGNORECASE,
    )


def normalise_key(value: str) -> str:
    return (value or "").strip().upper()


def extract_issue_keys(text: str, *, prefix: str = DEFAULT_KEY_PREFIX) -> List[str]:
    """Return the distinct upper-cased keys in ``text`` in order of appearance."""

    if not text:
        return []
    keys: List[str] = []
    seen = set()
    for match in _text_regex(prefix).finditer(text):
        found = match.group("display") or match.group("bare")
        if not found:
            continue
        key = found.upper()
        if key in seen:
            continue
        seen.add(key)
        keys.append(key)
    return keys


def extract_issue_key(cell_value: object, *, prefix: str = DEFAULT_KEY_PREFIX) -> Optional[str]:
    """Return the key held by a single sheet cell, or ``None``.

    The cell must either be exactly a key or exactly a hyperlink formula whose
    display text is a key.  Anything else, such as a status label or an
    unrelated formula, yields ``None``.
    """

    text = str(cell_value or "").strip()
    if not text:
        return None
    if _bare_cell_regex(prefix).match(text):
        return text.upper()
    match = _formula_cell_regex(prefix).match(text)
    if match:
        return match.group(1).upper()
    return None


__all__ = [
    "DEFAULT_KEY_PREFIX",
    "extract_issue_key",
    "extract_issue_keys",
    "normalise_key",
]

# menuscan/parsers/currency_vocab.py
"""
Currency markers and resolution.

Explicit symbols/words on a line win; lines without one inherit the menu's
dominant currency (most frequent explicit marker across the whole text,
falling back to the configured default).
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Dict, Iterable, Optional, Sequence


# code -> raw markers (symbols, ISO codes, words). Words are matched
# case-insensitively; ASCII words need non-letter neighbours.
CURRENCY_MARKERS: Dict[str, Sequence[str]] = {
    "baht": ("฿", "บาท", "บ.", "baht", "thb"),
    "usd": ("$", "us$", "usd", "dollars", "dollar"),
    "yen": ("¥", "円", "jpy", "yen"),
    "euro": ("€", "eur", "euros", "euro"),
    "pound": ("£", "gbp", "pounds", "pound"),
}

_MARKER_TO_CODE: Dict[str, str] = {
    m: code for code, markers in CURRENCY_MARKERS.items() for m in markers
}


def _marker_alt() -> str:
    parts = []
    for m in sorted(_MARKER_TO_CODE, key=len, reverse=True):
        if m.isascii() and m[-1].isalpha():
            parts.append(r"(?<![A-Za-z])" + re.escape(m) + r"(?![A-Za-z])")
        else:
            parts.append(re.escape(m))
    return "|".join(parts)


# Regex source for one currency marker, usable inside larger patterns.
CURRENCY_PATTERN = r"(?i:" + _marker_alt() + r")"

CURRENCY_RE = re.compile(CURRENCY_PATTERN)


def currency_code(marker: str) -> Optional[str]:
    return _MARKER_TO_CODE.get((marker or "").strip().lower())


def find_currency(text: str) -> Optional[str]:
    """First explicit currency on the text, as a code."""
    m = CURRENCY_RE.search(text or "")
    return currency_code(m.group(0)) if m else None


def strip_currency(text: str) -> str:
    return CURRENCY_RE.sub(" ", text or "")


def dominant_currency(lines: Iterable[str], default: str) -> str:
    """
    Most frequent explicit currency across lines. Ties and menus without any
    marker resolve to `default`.
    """
    counts: Counter = Counter()
    for line in lines:
        for m in CURRENCY_RE.finditer(line or ""):
            code = currency_code(m.group(0))
            if code:
                counts[code] += 1
    if not counts:
        return default
    ranked = counts.most_common()
    top_code, top_n = ranked[0]
    if len(ranked) > 1 and ranked[1][1] == top_n:
        return default if default in {c for c, n in ranked if n == top_n} else top_code
    return top_code

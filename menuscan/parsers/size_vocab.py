# menuscan/parsers/size_vocab.py
"""
Shared Size Vocabulary

Single source of truth for size/portion word detection and normalization.
Used by price_parser.py (size-tiered prices) and menu_grammar.py (size-only
header lines).

Canonical labels: small < medium < large < extra.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

from ..menu_types import SIZE_ORDER


# Canonical mapping: lowercase token -> canonical label
SIZE_WORD_MAP: Dict[str, str] = {
    # small
    "small": "small",
    "mini": "small",
    "sm": "small",
    "เล็ก": "small",
    "ขนาดเล็ก": "small",
    "มินิ": "small",
    # medium
    "medium": "medium",
    "med": "medium",
    "regular": "medium",
    "normal": "medium",
    "กลาง": "medium",
    "ขนาดกลาง": "medium",
    "ปกติ": "medium",
    "ธรรมดา": "medium",
    # large
    "large": "large",
    "lg": "large",
    "jumbo": "large",
    "ใหญ่": "large",
    "ขนาดใหญ่": "large",
    "จัมโบ้": "large",
    "พิเศษ": "large",
    # extra
    "extra": "extra",
    "extra large": "extra",
    "x-large": "extra",
    "ยักษ์": "extra",
}

# Single-letter codes only count in upper case ("S 40 M 50 L 60")
SIZE_LETTER_MAP: Dict[str, str] = {
    "S": "small",
    "M": "medium",
    "L": "large",
    "XL": "extra",
    "XXL": "extra",
}

_RANK: Dict[str, int] = {label: i for i, label in enumerate(SIZE_ORDER)}


def _word_alt(words: Iterable[str]) -> str:
    # longest first so "extra large" wins over "extra", "ขนาดเล็ก" over "เล็ก"
    ordered = sorted(words, key=len, reverse=True)
    parts = []
    for w in ordered:
        if w.isascii():
            parts.append(r"(?<![A-Za-z])" + re.escape(w) + r"(?![A-Za-z])")
        else:
            parts.append(re.escape(w))
    return "|".join(parts)


# Regex source for one size keyword, usable inside larger patterns.
SIZE_KEYWORD_PATTERN = (
    r"(?:(?i:" + _word_alt(SIZE_WORD_MAP) + r")"
    r"|(?<![A-Za-z])(?:" + "|".join(sorted(SIZE_LETTER_MAP, key=len, reverse=True)) + r")(?![A-Za-z]))"
)

SIZE_KEYWORD_RE = re.compile(SIZE_KEYWORD_PATTERN)


def normalize_size(raw: str) -> Optional[str]:
    """
    Map a raw size token to its canonical label, or None.

    Examples:
        "Large" -> "large"
        "L"     -> "large"
        "l"     -> None   (single letters must be upper case)
        "กลาง"  -> "medium"
    """
    token = (raw or "").strip()
    if not token:
        return None
    if token in SIZE_LETTER_MAP:
        return SIZE_LETTER_MAP[token]
    return SIZE_WORD_MAP.get(token.lower())


def size_rank(label: Optional[str]) -> int:
    """Canonical position; unlabeled sorts last."""
    if label is None:
        return len(SIZE_ORDER)
    return _RANK.get(label, len(SIZE_ORDER))


T = TypeVar("T")


def sort_by_size(items: Sequence[T], key=lambda t: getattr(t, "size", None)) -> List[T]:
    return sorted(items, key=lambda t: size_rank(key(t)))


def sizes_for_positions(count: int) -> List[str]:
    """Sizes for an unlabeled list of `count` amounts ("80/100/120")."""
    if count < 1 or count > len(SIZE_ORDER):
        raise ValueError(f"cannot size a list of {count} amounts")
    return list(SIZE_ORDER[:count])


def is_size_only(text: str) -> bool:
    """True when a line is nothing but size keywords ("Small  Medium  Large")."""
    stripped = text.strip()
    if not stripped:
        return False
    hits = SIZE_KEYWORD_RE.findall(stripped)
    if len(hits) < 2:
        return False
    rest = SIZE_KEYWORD_RE.sub(" ", stripped)
    return not re.sub(r"[\s/|,.()\-]+", "", rest)

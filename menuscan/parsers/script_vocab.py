# menuscan/parsers/script_vocab.py
"""
Script helpers shared by the classifier, the price extractor and the
orchestrator.

"Native script" means letters outside the Latin alphabet (Thai, CJK,
Hangul, ...). Bare numbers are only trusted as prices on lines that carry
native-script text, so this distinction matters.
"""

from __future__ import annotations

import unicodedata
from collections import Counter
from typing import Dict, Iterable, Optional


# Unicode blocks -> language tag
_SCRIPT_RANGES = (
    (0x0E00, 0x0E7F, "th"),
    (0x3040, 0x30FF, "ja"),    # hiragana + katakana
    (0xAC00, 0xD7AF, "ko"),
    (0x1100, 0x11FF, "ko"),
    (0x4E00, 0x9FFF, "zh"),
    (0x3400, 0x4DBF, "zh"),
    (0x0E80, 0x0EFF, "lo"),
    (0x1780, 0x17FF, "km"),
    (0x1000, 0x109F, "my"),
    (0x0600, 0x06FF, "ar"),
    (0x0900, 0x097F, "hi"),
    (0x0400, 0x04FF, "ru"),
)


def _script_of(ch: str) -> Optional[str]:
    cp = ord(ch)
    for lo, hi, tag in _SCRIPT_RANGES:
        if lo <= cp <= hi:
            return tag
    if ch.isalpha() and cp < 0x0250:
        return "en"
    return None


def is_letter(ch: str) -> bool:
    return unicodedata.category(ch)[0] == "L"


def is_native_letter(ch: str) -> bool:
    """Letter (or combining mark) from a non-Latin script."""
    cat = unicodedata.category(ch)
    return cat[0] in ("L", "M") and ord(ch) >= 0x0370


def has_native_script(text: str) -> bool:
    return any(is_native_letter(c) for c in text)


def has_script_text(text: str) -> bool:
    """Any letter at all, Latin included."""
    return any(is_letter(c) for c in text)


def meaningful_char_count(text: str) -> int:
    """Letters plus combining marks (Thai vowels/tones are marks)."""
    return sum(1 for c in text if unicodedata.category(c)[0] in ("L", "M"))


def script_counts(text: str) -> Dict[str, int]:
    counts: Counter = Counter()
    for ch in text:
        tag = _script_of(ch)
        if tag:
            counts[tag] += 1
    return dict(counts)


def detect_language(texts: Iterable[str]) -> str:
    """
    Dominant language tag across texts.

    Kana anywhere tips Han characters toward Japanese. Latin-only text is
    reported as "en". No letters at all gives "unknown".
    """
    counts: Counter = Counter()
    for t in texts:
        counts.update(script_counts(t or ""))
    if not counts:
        return "unknown"
    if counts.get("ja") and counts.get("zh"):
        counts["ja"] += counts.pop("zh")
    # ties resolve alphabetically so the result is deterministic
    best = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]
    return best

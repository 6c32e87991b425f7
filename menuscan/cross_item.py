"""
Cross-Item Deduplication

Compares dishes ACROSS the menu to collapse OCR variants of the same dish
("Pad Thai" / "Pad Tha1" / "PAD THAI.") into one entry.

Two names are the same dish when their normalized forms are identical or
their normalized Levenshtein similarity (1 - distance / max_len) is above
the configured threshold. The higher-confidence entry survives; on a tie
the first-seen one does, in its original position.

O(n^2) in dish count, fine for menus with tens of dishes.

Entry function: dedupe_dishes(dishes, threshold=...)
"""
from __future__ import annotations

import logging
import re
import unicodedata
from typing import List, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from .menu_types import Dish

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Name normalisation helpers
# ---------------------------------------------------------------------------

_PUNCT_WS_RE = re.compile(r"[\W_]+", re.UNICODE)

DEFAULT_THRESHOLD = 0.85


def normalize_name(name: str) -> str:
    """NFKC, casefold, then drop whitespace and punctuation.

    Thai vowel and tone marks are kept: they are combining marks, and
    dropping them would merge different words.
    """
    text = unicodedata.normalize("NFKC", name or "").casefold()
    kept = []
    for ch in text:
        if unicodedata.category(ch)[0] == "M" or not _PUNCT_WS_RE.match(ch):
            kept.append(ch)
    return "".join(kept)


def name_similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity of two already-normalized names."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return Levenshtein.normalized_similarity(a, b)


def same_dish(a: str, b: str, threshold: float = DEFAULT_THRESHOLD) -> bool:
    na, nb = normalize_name(a), normalize_name(b)
    if not na or not nb:
        return False
    return na == nb or name_similarity(na, nb) > threshold


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------

def dedupe_dishes(
    dishes: Sequence[Dish],
    threshold: float = DEFAULT_THRESHOLD,
) -> Tuple[List[Dish], List[Tuple[str, str]]]:
    """
    Returns (kept, merges) where merges lists (dropped_name, kept_name).

    Each new dish is compared against the already-accepted ones; when it
    matches one, only the higher-confidence of the pair stays in that slot.
    """
    kept: List[Dish] = []
    keys: List[str] = []
    merges: List[Tuple[str, str]] = []

    for dish in dishes:
        key = normalize_name(dish.name)
        match_at = -1
        for i, existing in enumerate(keys):
            if key and existing and (key == existing or name_similarity(key, existing) > threshold):
                match_at = i
                break

        if match_at < 0:
            kept.append(dish)
            keys.append(key)
            continue

        current = kept[match_at]
        if dish.confidence > current.confidence:
            merges.append((current.name, dish.name))
            kept[match_at] = dish
            keys[match_at] = key
        else:
            merges.append((dish.name, current.name))
        log.debug("dedupe: merged %r into %r", merges[-1][0], merges[-1][1])

    return kept, merges

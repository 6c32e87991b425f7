"""
Quality Guard: dish validation and hallucination filter

PURPOSE:
Last line of defence before a result leaves the pipeline. Generative
engines in particular like to "complete" a menu with plausible siblings
("Base Special A", "Base Special B", ...) or drift onto an entirely
different menu; OCR likes to emit "ๆๆๆ" and "....".

RULES:
- Per dish: name length bounds, repeated-character runs, generative
  artifact patterns, price bounds.
- Whole batch: menu-context check (mutually exclusive anchor signatures).
- Cap at max_dishes, dropping the lowest confidence first.
- Never mutates dishes; returns a report.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .config import PipelineConfig
from .menu_types import Dish

log = logging.getLogger(__name__)


# ----------------------------
# Heuristics
# ----------------------------

_REPEAT_RUN_RE = re.compile(r"ๆ{3,}|([^\w\s])\1{2,}|([^\W\d_])\2{3,}")

_QUALIFIER = r"(?:special|premium|deluxe|variant|พิเศษ)"
_LETTERED_QUALIFIER_RE = re.compile(r"(?i:" + _QUALIFIER + r")\s*[A-G](?![A-Za-z])")
_DOUBLED_QUALIFIER_RE = re.compile(r"(?i:(" + _QUALIFIER + r")\s*\1)")
_QUALIFIER_WORDS = {"special", "premium", "deluxe", "variant", "พิเศษ"}
_LONE_LETTER_RE = re.compile(r"^[A-G]$")
_WS_RE = re.compile(r"\s+")

# Anchor dishes that define a whole shop. Two anchors from one exclusive
# pair in the same result means the wrong menu was read.
MENU_SIGNATURES: Dict[str, Sequence[str]] = {
    "pork_leg": ("ขาหมู", "pork leg", "kha moo", "khao kha moo"),
    "crispy_pork": ("หมูกรอบ", "crispy pork", "moo krob", "mu krob"),
}

EXCLUSIVE_SIGNATURES: Sequence[Tuple[str, str]] = (
    ("pork_leg", "crispy_pork"),
)


@dataclass
class ValidationReport:
    accepted: List[Dish] = field(default_factory=list)
    rejected: List[Tuple[Dish, str]] = field(default_factory=list)
    context_conflict: Optional[Tuple[str, str]] = None
    capped: int = 0

    @property
    def valid(self) -> bool:
        return self.context_conflict is None and bool(self.accepted)


def _ws(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def has_repeated_run(name: str) -> bool:
    return _REPEAT_RUN_RE.search(name) is not None


def _lettered_suffix(suffix: str) -> bool:
    """
    A lone capital A-G closing the suffix or right after a qualifier
    ("Variant A", "Variant A Variant", " B"), or a doubled qualifier.
    "A La Carte" and "Chicken or Pork or Beef" are real names.
    """
    tokens = suffix.split()
    for i, tok in enumerate(tokens):
        if not _LONE_LETTER_RE.match(tok):
            continue
        if i == len(tokens) - 1 or (i > 0 and tokens[i - 1].lower() in _QUALIFIER_WORDS):
            return True
    return _DOUBLED_QUALIFIER_RE.search(suffix) is not None


def lettered_sibling_base(name: str, others: Sequence[str]) -> Optional[str]:
    """
    Return the base name `name` was generated from, if any: another name in
    the batch that `name` extends with a lone capital letter or a repeated
    qualifier ("Base" -> "Base Variant A", "Base Variant A Variant").
    """
    full = _ws(name)
    low = full.lower()
    for other in others:
        base = _ws(other)
        if not base or len(base) >= len(full) or not low.startswith(base.lower()):
            continue
        suffix = full[len(base):]
        # Latin words must split on whitespace: "Bases" is not "Base" + "s"
        if base[-1].isascii() and base[-1].isalnum() and not suffix[0].isspace():
            continue
        if _lettered_suffix(suffix):
            return other
    return None


def artifact_reason(name: str, others: Sequence[str] = ()) -> Optional[str]:
    if _LETTERED_QUALIFIER_RE.search(name):
        return "lettered_qualifier"
    if _DOUBLED_QUALIFIER_RE.search(name):
        return "doubled_qualifier"
    base = lettered_sibling_base(name, others)
    if base is not None:
        return f"lettered_sibling_of:{base}"
    return None


def dish_reject_reason(dish: Dish, config: PipelineConfig, others: Sequence[str] = ()) -> Optional[str]:
    name = _ws(dish.name)
    if len(name) < config.name_min_len:
        return "name_too_short"
    if len(name) > config.name_max_len:
        return "name_too_long"
    if has_repeated_run(name):
        return "repeated_run"
    artifact = artifact_reason(name, others)
    if artifact:
        return artifact
    for token in dish.prices:
        amounts = [token.amount] if token.max_amount is None else [token.amount, token.max_amount]
        for amount in amounts:
            if not math.isfinite(amount):
                return "price_not_finite"
            if not 0 < amount <= config.price_ceiling:
                return "price_non_positive" if amount <= 0 else "price_above_ceiling"
    return None


def menu_signatures(dishes: Sequence[Dish]) -> Dict[str, int]:
    """Count dishes hitting each anchor signature."""
    hits: Dict[str, int] = {}
    for dish in dishes:
        low = dish.name.lower()
        for sig, keywords in MENU_SIGNATURES.items():
            if any(kw in low for kw in keywords):
                hits[sig] = hits.get(sig, 0) + 1
    return hits


def context_conflict(dishes: Sequence[Dish], min_hits: int = 1) -> Optional[Tuple[str, str]]:
    hits = menu_signatures(dishes)
    for a, b in EXCLUSIVE_SIGNATURES:
        if hits.get(a, 0) >= min_hits and hits.get(b, 0) >= min_hits:
            return (a, b)
    return None


def cap_dishes(dishes: Sequence[Dish], limit: int) -> List[Dish]:
    """Keep the `limit` most confident dishes, in their original order."""
    if len(dishes) <= limit:
        return list(dishes)
    ranked = sorted(range(len(dishes)), key=lambda i: (-dishes[i].confidence, i))
    keep = sorted(ranked[:limit])
    return [dishes[i] for i in keep]


def validate_dishes(dishes: Sequence[Dish], *, config: Optional[PipelineConfig] = None) -> ValidationReport:
    cfg = config or PipelineConfig()
    report = ValidationReport()
    names = [d.name for d in dishes]

    survivors: List[Dish] = []
    for dish in dishes:
        reason = dish_reject_reason(dish, cfg, names)
        if reason:
            report.rejected.append((dish, reason))
            log.debug("quality_guard: rejected %r (%s)", dish.name, reason)
        else:
            survivors.append(dish)

    report.context_conflict = context_conflict(survivors, cfg.context_min_hits)
    if report.context_conflict:
        log.warning("quality_guard: menu context mismatch %s vs %s", *report.context_conflict)

    report.accepted = cap_dishes(survivors, cfg.max_dishes)
    report.capped = len(survivors) - len(report.accepted)
    return report

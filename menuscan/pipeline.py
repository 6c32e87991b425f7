# menuscan/pipeline.py
"""
Stage wiring for one extraction pass.

Text path:
    raw text -> split_raw_lines -> classify_lines (prices per line)
             -> associate -> dedupe -> validate -> aggregate

Generative path (dishes already structured by a vision model):
    GenerativeDish list -> Dish records -> dedupe -> validate -> aggregate

Both paths raise the taxonomy errors (NoTextDetected,
NoDishesAfterValidation, MenuContextMismatch) for the orchestrator to act
on. Nothing here does I/O or keeps state between calls.
"""

from __future__ import annotations

import logging
import numbers
import re
from typing import List, Optional, Sequence

from .category_infer import resolve_category
from .config import PipelineConfig
from .cross_item import dedupe_dishes
from .diagnostics import Diagnostics
from .errors import MenuContextMismatch, NoDishesAfterValidation, NoTextDetected
from .associator import associate
from .menu_types import Dish, GenerativeDish, PipelineOutcome, PriceToken
from .parsers.currency_vocab import dominant_currency
from .parsers.menu_grammar import classify_lines, split_raw_lines
from .parsers.price_parser import parse_price_line
from .parsers.script_vocab import detect_language
from .quality_guard import validate_dishes
from .scoring.confidence import aggregate_confidence

log = logging.getLogger(__name__)

# "Price not shown", "N/A", "-", "ไม่ระบุ", ...
_NO_PRICE_RE = re.compile(
    r"^\s*(?:price\s+not\s+(?:shown|detected|visible|listed)|not\s+shown|n/?a|none|unknown|market\s+price|-+|ไม่ระบุ|ไม่มีราคา)?\s*$",
    re.IGNORECASE,
)


def _finish(
    dishes: Sequence[Dish],
    language: str,
    cfg: PipelineConfig,
    diagnostics: Diagnostics,
) -> PipelineOutcome:
    kept, merges = dedupe_dishes(dishes, cfg.similarity_threshold)
    for dropped, survivor in merges:
        diagnostics.add("dedupe", "merged", dropped=dropped, kept=survivor)

    report = validate_dishes(kept, config=cfg)
    for dish, reason in report.rejected:
        diagnostics.add("validate", "rejected", line=dish.source_line, name=dish.name, reason=reason)
    if report.capped:
        diagnostics.add("validate", "capped", dropped=report.capped, limit=cfg.max_dishes)

    if report.context_conflict:
        diagnostics.add("validate", "context_mismatch", signatures=list(report.context_conflict))
        raise MenuContextMismatch(report.context_conflict)
    if not report.accepted:
        raise NoDishesAfterValidation(rejected=len(report.rejected))

    confidence = aggregate_confidence(report.accepted)
    return PipelineOutcome(
        dishes=list(report.accepted),
        language=language,
        confidence=confidence,
        rejected=len(report.rejected),
    )


def run_text_pipeline(
    text: str,
    *,
    config: Optional[PipelineConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> PipelineOutcome:
    cfg = config or PipelineConfig()
    diag = diagnostics if diagnostics is not None else Diagnostics()

    if not text or not text.strip():
        raise NoTextDetected("recognized text is empty")

    lines = split_raw_lines(text)
    currency = dominant_currency((ln.text for ln in lines), cfg.default_currency)
    diag.add("pipeline", "text_pass", lines=len(lines), currency=currency)

    classifications = classify_lines(lines, config=cfg, currency=currency, diagnostics=diag)
    dishes = associate(classifications, config=cfg, diagnostics=diag)
    log.debug("text pipeline: %d lines -> %d dishes before validation", len(lines), len(dishes))

    language = detect_language(ln.text for ln in lines)
    return _finish(dishes, language, cfg, diag)


# ---------------------------------------------------------------------------
# Generative path
# ---------------------------------------------------------------------------

def _price_tokens(value, cfg: PipelineConfig, currency: str) -> Optional[tuple]:
    """
    Tokens for a generative price field. None means "price not shown".
    Out-of-band numbers are kept as tokens so the validator can reject the
    dish with a reason.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return (PriceToken(amount=float(value), currency=currency),)
    text = str(value)
    if _NO_PRICE_RE.match(text):
        return None
    extraction = parse_price_line(text, config=cfg, currency=currency)
    if extraction.group is not None:
        return extraction.group.tokens
    if extraction.discarded:
        return (PriceToken(amount=extraction.discarded[0], currency=currency),)
    return None


def generative_to_dish(
    item: GenerativeDish,
    *,
    config: Optional[PipelineConfig] = None,
    currency: Optional[str] = None,
    index: Optional[int] = None,
) -> Dish:
    cfg = config or PipelineConfig()
    name = " ".join(item.name.split())
    tokens = _price_tokens(item.price, cfg, currency or cfg.default_currency)
    confidence = item.confidence if item.confidence is not None else cfg.generative_default_confidence
    confidence = max(0.0, min(1.0, float(confidence)))
    return Dish(
        name=name,
        prices=tokens or (),
        category=resolve_category(name, item.category),
        confidence=round(confidence, 2),
        price_detected=bool(tokens),
        source_line=index,
    )


def run_generative_pipeline(
    items: Sequence[GenerativeDish],
    *,
    config: Optional[PipelineConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
    language: Optional[str] = None,
) -> PipelineOutcome:
    """Dishes from a generative engine skip classification and association."""
    cfg = config or PipelineConfig()
    diag = diagnostics if diagnostics is not None else Diagnostics()

    price_texts = [str(it.price) for it in items if isinstance(it.price, str)]
    currency = dominant_currency(price_texts, cfg.default_currency)
    diag.add("pipeline", "generative_pass", dishes=len(items), currency=currency)

    dishes: List[Dish] = [
        generative_to_dish(it, config=cfg, currency=currency, index=i)
        for i, it in enumerate(items)
    ]
    lang = language or detect_language(d.name for d in dishes)
    return _finish(dishes, lang, cfg, diag)

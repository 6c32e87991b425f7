"""
Confidence Scoring
Reduces per-dish confidences into one menu-level score.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from ..menu_types import Dish


def aggregate_confidence(dishes: Iterable[Dish]) -> float:
    """
    Arithmetic mean of dish confidences, rounded half-up to two decimals.
    No dishes -> 0.0.
    """
    values = [d.confidence for d in dishes]
    if not values:
        return 0.0
    mean = Decimal(sum(Decimal(str(v)) for v in values)) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def confidence_tier(score: float) -> str:
    """high (0.80+), medium (0.60-0.79), low (0.40-0.59), reject below."""
    if score >= 0.80:
        return "high"
    if score >= 0.60:
        return "medium"
    if score >= 0.40:
        return "low"
    return "reject"

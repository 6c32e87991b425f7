# menuscan/menu_types.py
"""
Shared data model for the menu extraction pipeline.

Every record here is immutable. Intermediate records (RawLine,
LineClassification, PriceToken, PriceGroup, DishCandidate) live for one
pipeline run; only MenuResult crosses the boundary to callers.

Wire shape (MenuResult.to_dict):
{
  "dishes": [
    {"name": str, "prices": [{"amount": float, "currency": str, "size": str?}],
     "category": str, "confidence": float, "priceDetected": bool}
  ],
  "language": str,
  "confidence": float,
  "processingTimeMs": int,
  "engine": str,
  "status": "ok" | "degraded",
  "rawText": str   # degraded results only
}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# Canonical size order used for sorting tokens inside a PriceGroup.
SIZE_ORDER: Tuple[str, ...] = ("small", "medium", "large", "extra")


@dataclass(frozen=True)
class RawLine:
    text: str
    index: int


class LineTag(str, Enum):
    DISH_CANDIDATE = "dish_candidate"
    PRICE_ONLY = "price_only"
    HEADER = "header"
    DESCRIPTION = "description"


@dataclass(frozen=True)
class PriceToken:
    """
    One normalized price.

    amount      -> numeric value (low end for ranges)
    currency    -> currency code ("baht", "usd", ...)
    size        -> small|medium|large|extra or None
    multi_size  -> True when the token came from a size-tiered group
    max_amount  -> high end of a "100-150" range
    explicit    -> a currency marker was present on the source text
    bare        -> recovered by the bare-number heuristic
    """
    amount: float
    currency: Optional[str] = None
    size: Optional[str] = None
    multi_size: bool = False
    max_amount: Optional[float] = None
    explicit: bool = False
    bare: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"amount": self.amount, "currency": self.currency}
        if self.size:
            out["size"] = self.size
        if self.max_amount is not None:
            out["maxAmount"] = self.max_amount
        return out


@dataclass(frozen=True)
class PriceGroup:
    """Tokens that share one source line."""
    tokens: Tuple[PriceToken, ...]
    line_index: int
    family: str
    residual: str = ""

    @property
    def is_bare(self) -> bool:
        return any(t.bare for t in self.tokens)

    @property
    def has_explicit_currency(self) -> bool:
        return any(t.explicit for t in self.tokens)


@dataclass(frozen=True)
class LineClassification:
    tag: LineTag
    line_index: int
    reason: str
    text: str = ""
    name: str = ""
    price_group: Optional[PriceGroup] = None
    discarded: Tuple[float, ...] = ()   # out-of-band amounts seen on the line


@dataclass(frozen=True)
class DishCandidate:
    name: str
    line_index: int


@dataclass(frozen=True)
class Dish:
    """
    Terminal dish record. Either carries at least one PriceToken or is
    explicitly marked price_detected=False.
    """
    name: str
    prices: Tuple[PriceToken, ...] = ()
    category: str = "main"
    confidence: float = 0.0
    price_detected: bool = True
    source_line: Optional[int] = None

    def __post_init__(self) -> None:
        if self.price_detected and not self.prices:
            raise ValueError(f"dish {self.name!r} has no prices but is not marked price-not-detected")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range for {self.name!r}: {self.confidence}")

    @property
    def primary_amount(self) -> Optional[float]:
        return self.prices[0].amount if self.prices else None

    def with_confidence(self, confidence: float) -> "Dish":
        return replace(self, confidence=confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "prices": [p.to_dict() for p in self.prices],
            "category": self.category,
            "confidence": self.confidence,
            "priceDetected": self.price_detected,
        }


@dataclass(frozen=True)
class GenerativeDish:
    """One entry from a generative engine payload, before pipeline checks."""
    name: str
    price: Any = None
    category: Optional[str] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class Acquisition:
    """What a text-acquisition engine hands back to the orchestrator."""
    text: str
    confidence: float = 0.0
    engine: str = ""
    dishes: Optional[Tuple[GenerativeDish, ...]] = None
    language: Optional[str] = None


@dataclass(frozen=True)
class MenuResult:
    dishes: Tuple[Dish, ...] = ()
    language: str = "unknown"
    confidence: float = 0.0
    processing_time_ms: int = 0
    raw_text: str = ""
    engine: str = ""
    status: str = "ok"

    @property
    def degraded(self) -> bool:
        return self.status != "ok"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "dishes": [d.to_dict() for d in self.dishes],
            "language": self.language,
            "confidence": self.confidence,
            "processingTimeMs": self.processing_time_ms,
            "engine": self.engine,
            "status": self.status,
        }
        if self.degraded:
            out["rawText"] = self.raw_text
        return out


@dataclass
class PipelineOutcome:
    """Output of one pipeline pass, before the orchestrator stamps timing."""
    dishes: List[Dish] = field(default_factory=list)
    language: str = "unknown"
    confidence: float = 0.0
    rejected: int = 0

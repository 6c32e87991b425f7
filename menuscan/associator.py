# menuscan/associator.py
"""
Dish-Price Association

Turns classified lines into Dish records.

  - A candidate whose own line carries a price takes it (same-line ceiling).
  - Other candidates look for PRICE_ONLY lines within the configured window
    above and below. Assignment is greedy over all (candidate, price line)
    pairs, ordered by distance, then "price after name" before "price before
    name", then document order. Each price line is used at most once.
  - Confidence decays linearly with distance from the ceiling. Matches that
    rely on a bare number (bare family, or a cross-line price without any
    currency marker) use the lower ceiling.
  - Candidates with nothing reachable are kept with price_detected=False.
  - Candidates whose own price was out of band (0, absurdly large) are
    dropped rather than left priceless.

Unclaimed price lines end up in diagnostics.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .category_infer import infer_category
from .config import PipelineConfig
from .diagnostics import Diagnostics
from .menu_types import Dish, DishCandidate, LineClassification, LineTag, PriceGroup

log = logging.getLogger(__name__)


def _confidence(ceiling: float, distance: int, cfg: PipelineConfig) -> float:
    value = ceiling - cfg.distance_decay * distance
    return round(max(cfg.min_association_confidence, min(ceiling, value)), 2)


def _ceiling_for(group: PriceGroup, same_line: bool, cfg: PipelineConfig) -> float:
    if group.is_bare:
        return cfg.bare_number_ceiling
    if not same_line and not group.has_explicit_currency:
        return cfg.bare_number_ceiling
    return cfg.same_line_ceiling


def _make_dish(
    candidate: DishCandidate,
    group: Optional[PriceGroup],
    confidence: float,
) -> Dish:
    category = infer_category(candidate.name).category
    if group is None:
        return Dish(
            name=candidate.name,
            prices=(),
            category=category,
            confidence=confidence,
            price_detected=False,
            source_line=candidate.line_index,
        )
    return Dish(
        name=candidate.name,
        prices=group.tokens,
        category=category,
        confidence=confidence,
        price_detected=True,
        source_line=candidate.line_index,
    )


def _cross_line_pairs(
    pending: Sequence[Tuple[int, DishCandidate]],
    price_lines: Dict[int, PriceGroup],
    window: int,
) -> List[Tuple[int, int, int, int]]:
    """(distance, before_flag, candidate_order, price_line) for each reachable pair."""
    pairs = []
    for order, cand in pending:
        for line_idx in price_lines:
            delta = line_idx - cand.line_index
            if delta == 0 or abs(delta) > window:
                continue
            pairs.append((abs(delta), 0 if delta > 0 else 1, order, line_idx))
    pairs.sort()
    return pairs


def associate(
    classifications: Sequence[LineClassification],
    *,
    config: Optional[PipelineConfig] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> List[Dish]:
    cfg = config or PipelineConfig()

    candidates: List[Tuple[DishCandidate, Optional[PriceGroup]]] = []
    price_lines: Dict[int, PriceGroup] = {}
    for c in classifications:
        if c.tag is LineTag.DISH_CANDIDATE:
            if c.price_group is None and c.discarded:
                # its own price was out of band; do not borrow a neighbour's
                if diagnostics is not None:
                    diagnostics.add("associate", "price_out_of_band", line=c.line_index,
                                    name=c.name, amounts=list(c.discarded))
                continue
            candidates.append((DishCandidate(c.name, c.line_index), c.price_group))
        elif c.tag is LineTag.PRICE_ONLY and c.price_group is not None:
            price_lines[c.line_index] = c.price_group

    assigned: Dict[int, Tuple[PriceGroup, int]] = {}
    pending: List[Tuple[int, DishCandidate]] = []
    for order, (cand, own) in enumerate(candidates):
        if own is not None:
            assigned[order] = (own, 0)
        else:
            pending.append((order, cand))

    used_lines = set()
    for distance, _, order, line_idx in _cross_line_pairs(pending, price_lines, cfg.association_window):
        if order in assigned or line_idx in used_lines:
            continue
        assigned[order] = (price_lines[line_idx], distance)
        used_lines.add(line_idx)
        if diagnostics is not None:
            diagnostics.add(
                "associate", "cross_line_match",
                line=candidates[order][0].line_index, price_line=line_idx, distance=distance,
            )

    dishes: List[Dish] = []
    for order, (cand, _) in enumerate(candidates):
        hit = assigned.get(order)
        if hit is None:
            dishes.append(_make_dish(cand, None, cfg.no_price_confidence))
            if diagnostics is not None:
                diagnostics.add("associate", "price_not_detected", line=cand.line_index, name=cand.name)
            continue
        group, distance = hit
        ceiling = _ceiling_for(group, distance == 0, cfg)
        dishes.append(_make_dish(cand, group, _confidence(ceiling, distance, cfg)))

    for line_idx in sorted(set(price_lines) - used_lines):
        amounts = [t.amount for t in price_lines[line_idx].tokens]
        log.debug("associate: unclaimed price line %s %s", line_idx, amounts)
        if diagnostics is not None:
            diagnostics.add("associate", "unassociated_price", line=line_idx, amounts=amounts)

    return dishes

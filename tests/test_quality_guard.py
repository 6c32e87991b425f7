"""
Quality guard: dish validation, hallucination filter, menu context.

Covers:
  - name length bounds and repeated-character runs
  - price bounds (non-positive, above ceiling, NaN, infinity) reject only that dish
  - lettered and doubled qualifiers, lettered siblings of a base name
  - "Bases" is not a sibling of "Base"; "A La Carte" and "or" lists are real names
  - mutually exclusive menu signatures -> context conflict
  - cap keeps the most confident dishes in original order
  - menu-level confidence: mean, half-up rounding, tiers
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menuscan.config import PipelineConfig
from menuscan.menu_types import Dish, PriceToken
from menuscan.quality_guard import (
    artifact_reason,
    cap_dishes,
    context_conflict,
    has_repeated_run,
    lettered_sibling_base,
    validate_dishes,
)
from menuscan.scoring.confidence import aggregate_confidence, confidence_tier


def _dish(name: str, amount: float = 100.0, confidence: float = 0.9) -> Dish:
    return Dish(name=name, prices=(PriceToken(amount, "baht"),), confidence=confidence)


def _reasons(report):
    return {d.name: reason for d, reason in report.rejected}


# ==================================================================
# Per-dish rules
# ==================================================================

class TestDishRules:

    def test_name_too_short(self):
        report = validate_dishes([_dish("ab"), _dish("Pad Thai")])
        assert _reasons(report) == {"ab": "name_too_short"}

    def test_name_too_long(self):
        report = validate_dishes([_dish("Curry " * 20), _dish("Pad Thai")])
        assert list(_reasons(report).values()) == ["name_too_long"]

    def test_repeated_runs(self):
        assert has_repeated_run("ๆๆๆ")
        assert has_repeated_run("Sooooup")
        assert has_repeated_run("Tom Yum!!!")
        assert not has_repeated_run("Coffee")
        report = validate_dishes([_dish("ๆๆๆ"), _dish("Sooooup"), _dish("Coffee")])
        assert _reasons(report) == {"ๆๆๆ": "repeated_run", "Sooooup": "repeated_run"}

    def test_non_positive_price(self):
        report = validate_dishes([_dish("Water", amount=0.0), _dish("Pad Thai")])
        assert _reasons(report) == {"Water": "price_non_positive"}
        assert [d.name for d in report.accepted] == ["Pad Thai"]

    def test_price_above_ceiling_keeps_siblings(self):
        report = validate_dishes([_dish("Lobster Platter", amount=1500.0), _dish("Pad Thai", amount=120.0)])
        assert _reasons(report) == {"Lobster Platter": "price_above_ceiling"}
        assert [d.name for d in report.accepted] == ["Pad Thai"]
        assert report.valid

    def test_range_high_end_above_ceiling(self):
        dish = Dish(name="Seafood Set", prices=(PriceToken(500.0, "baht", max_amount=1200.0),), confidence=0.9)
        report = validate_dishes([dish])
        assert _reasons(report) == {"Seafood Set": "price_above_ceiling"}

    def test_priceless_dish_is_valid(self):
        dish = Dish(name="Green Curry", prices=(), price_detected=False, confidence=0.4)
        assert validate_dishes([dish]).accepted == [dish]

    def test_ceiling_from_config(self):
        cfg = PipelineConfig(price_ceiling=5000.0)
        report = validate_dishes([_dish("Lobster Platter", amount=1500.0)], config=cfg)
        assert report.rejected == []

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_price(self, amount):
        report = validate_dishes([_dish("Pad Thai", amount=amount), _dish("Tom Yum", amount=95.0)])
        assert _reasons(report) == {"Pad Thai": "price_not_finite"}
        assert [d.name for d in report.accepted] == ["Tom Yum"]

    def test_non_finite_range_end(self):
        dish = Dish(name="Seafood Set", prices=(PriceToken(500.0, "baht", max_amount=float("nan")),), confidence=0.9)
        assert _reasons(validate_dishes([dish])) == {"Seafood Set": "price_not_finite"}


# ==================================================================
# Hallucination filter
# ==================================================================

class TestHallucination:

    def test_lettered_set_reduces_to_base(self):
        names = ["Base", "Base Special A", "Base Special B", "Base Deluxe Deluxe", "Base C"]
        report = validate_dishes([_dish(n) for n in names])
        assert [d.name for d in report.accepted] == ["Base"]
        reasons = _reasons(report)
        assert reasons["Base Special A"] == "lettered_qualifier"
        assert reasons["Base Deluxe Deluxe"] == "doubled_qualifier"
        assert reasons["Base C"] == "lettered_sibling_of:Base"

    def test_variant_series_reduces_to_base(self):
        names = ["Base", "Base Variant A", "Base Variant A Variant", "Base Variant B"]
        report = validate_dishes([_dish(n) for n in names])
        assert [d.name for d in report.accepted] == ["Base"]
        assert len(report.rejected) == 3

    def test_lettered_sibling_base(self):
        assert lettered_sibling_base("Base Variant A Variant", ["Base"]) == "Base"
        assert lettered_sibling_base("Base C", ["Base", "Other"]) == "Base"

    def test_plural_is_not_a_sibling(self):
        assert lettered_sibling_base("Bases", ["Base"]) is None
        assert artifact_reason("Bases", ["Base"]) is None

    def test_real_dish_words_pass(self):
        assert artifact_reason("Special Fried Rice") is None
        assert artifact_reason("Chicken Satay", ["Chicken"]) is None

    def test_long_real_names_are_not_siblings(self):
        names = ["Green Curry", "Green Curry with Chicken or Pork or Beef", "Fried Rice", "Fried Rice A La Carte"]
        report = validate_dishes([_dish(n) for n in names])
        assert report.rejected == []
        assert [d.name for d in report.accepted] == names

    @pytest.mark.parametrize("name", ["Pad Thai B", "Pad Thai Special C Deluxe", "Pad Thai Premium Premium"])
    def test_lettered_or_doubled_suffix_is_a_sibling(self, name):
        assert lettered_sibling_base(name, ["Pad Thai"]) == "Pad Thai"

    def test_letter_outside_a_to_g_is_not_a_sibling(self):
        assert lettered_sibling_base("Pad Thai X", ["Pad Thai"]) is None


# ==================================================================
# Menu context
# ==================================================================

class TestContext:

    def test_exclusive_signatures_conflict(self):
        report = validate_dishes([_dish("ข้าวขาหมู"), _dish("ข้าวหมูกรอบ"), _dish("ต้มจืด")])
        assert report.context_conflict == ("pork_leg", "crispy_pork")
        assert not report.valid

    def test_single_signature_is_fine(self):
        assert context_conflict([_dish("ข้าวขาหมู"), _dish("Pork Leg Rice")]) is None

    def test_english_signatures(self):
        assert context_conflict([_dish("Pork Leg Rice"), _dish("Crispy Pork Rice")]) == ("pork_leg", "crispy_pork")


# ==================================================================
# Cap
# ==================================================================

class TestCap:

    def test_cap_keeps_most_confident_in_order(self):
        low = {2, 5, 11, 17, 23}
        dishes = [_dish(f"Dish {i:02d}", confidence=0.6 if i in low else 0.9) for i in range(25)]
        report = validate_dishes(dishes)
        assert report.capped == 5
        assert len(report.accepted) == 20
        assert [d.name for d in report.accepted] == [f"Dish {i:02d}" for i in range(25) if i not in low]

    def test_under_limit_unchanged(self):
        dishes = [_dish("Pad Thai"), _dish("Tom Yum")]
        assert cap_dishes(dishes, 20) == dishes

    def test_confidence_ties_keep_earliest(self):
        dishes = [_dish(f"Dish {i:02d}") for i in range(5)]
        assert [d.name for d in cap_dishes(dishes, 3)] == ["Dish 00", "Dish 01", "Dish 02"]


# ==================================================================
# Menu-level confidence
# ==================================================================

class TestConfidence:

    def test_mean(self):
        assert aggregate_confidence([_dish("Pad Thai", confidence=0.9), _dish("Tom Yum", confidence=0.8)]) == 0.85

    def test_half_up_rounding(self):
        dishes = [_dish("Pad Thai", confidence=0.12), _dish("Tom Yum", confidence=0.13)]
        assert aggregate_confidence(dishes) == 0.13

    def test_no_dishes(self):
        assert aggregate_confidence([]) == 0.0

    @pytest.mark.parametrize("score,tier", [(0.9, "high"), (0.8, "high"), (0.65, "medium"), (0.45, "low"), (0.2, "reject")])
    def test_tiers(self, score, tier):
        assert confidence_tier(score) == tier

"""
End-to-end extraction passes.

Covers:
  Text path:
  - mixed-price menu -> dishes, unclaimed trailing number left alone
  - same input twice -> identical result (timing aside)
  - empty text, noise-only text, context mismatch -> taxonomy errors
  - Thai menu -> language "th", sized prices kept
  - two-digit prices on their own lines, space-separated tier prices

  Generative path:
  - "Price not shown" -> priceDetected False
  - numeric 0 price -> rejected by the validator
  - NaN price -> rejected, output stays strict JSON
  - missing confidence -> configured default
  - price text parsed with the same price parser
"""

from __future__ import annotations

import sys
from pathlib import Path

import json

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menuscan.config import PipelineConfig
from menuscan.diagnostics import Diagnostics
from menuscan.errors import MenuContextMismatch, NoDishesAfterValidation, NoTextDetected
from menuscan.menu_types import GenerativeDish
from menuscan.orchestrator import MenuOrchestrator
from menuscan.pipeline import generative_to_dish, run_generative_pipeline, run_text_pipeline


MIXED_MENU = "Fried Rice 70 baht\nTom Yum Soup 95\n110"

THAI_MENU = "\n".join([
    "ร้านป้าแดง",
    "ข้าวผัดกุ้ง 60 บาท",
    "ต้มยำกุ้ง 120/220 บาท",
    "ส้มตำ 50 บาท",
    "โทร 081-234-5678",
])


# ==================================================================
# Text path
# ==================================================================

class TestTextPipeline:

    def test_mixed_menu(self):
        diag = Diagnostics()
        outcome = run_text_pipeline(MIXED_MENU, diagnostics=diag)
        assert [d.name for d in outcome.dishes] == ["Fried Rice", "Tom Yum Soup"]
        assert [d.prices[0].amount for d in outcome.dishes] == [70.0, 95.0]
        assert [d.category for d in outcome.dishes] == ["rice", "soup"]
        assert all(d.prices[0].currency == "baht" for d in outcome.dishes)
        assert outcome.confidence == 0.9
        assert outcome.language == "en"
        assert any(r.message == "unassociated_price" and r.line == 2 for r in diag.records)

    def test_empty_text(self):
        with pytest.raises(NoTextDetected):
            run_text_pipeline("   \n  ")

    def test_noise_only(self):
        with pytest.raises(NoDishesAfterValidation):
            run_text_pipeline("Tel 0812345678\n~~~~")

    def test_context_mismatch(self):
        diag = Diagnostics()
        with pytest.raises(MenuContextMismatch) as exc:
            run_text_pipeline("ข้าวขาหมู 50\nข้าวหมูกรอบ 50\nต้มจืด 40", diagnostics=diag)
        assert exc.value.signatures == ("pork_leg", "crispy_pork")
        assert diag.for_stage("validate")[-1].message == "context_mismatch"

    def test_thai_menu(self):
        outcome = run_text_pipeline(THAI_MENU)
        assert outcome.language == "th"
        names = [d.name for d in outcome.dishes]
        assert names == ["ข้าวผัดกุ้ง", "ต้มยำกุ้ง", "ส้มตำ"]
        tom_yum = outcome.dishes[1]
        assert [(t.size, t.amount) for t in tom_yum.prices] == [("small", 120.0), ("medium", 220.0)]
        assert tom_yum.category == "soup"

    def test_two_digit_prices_on_own_lines(self):
        outcome = run_text_pipeline("Fried Rice\n70\nPad Thai\n80\nTom Yum Soup\n95")
        got = [(d.name, d.price_detected, [t.amount for t in d.prices], d.confidence) for d in outcome.dishes]
        assert got == [
            ("Fried Rice", True, [70.0], 0.65),
            ("Pad Thai", True, [80.0], 0.65),
            ("Tom Yum Soup", True, [95.0], 0.65),
        ]

    def test_space_separated_tiers_are_not_a_phone_number(self):
        outcome = run_text_pipeline("Tom Yum 100 120 150\nPad Thai 80 baht\nFried Rice 70 baht")
        tom_yum = outcome.dishes[0]
        assert tom_yum.name == "Tom Yum"
        assert [t.amount for t in tom_yum.prices] == [100.0, 120.0, 150.0]
        assert [t.size for t in tom_yum.prices] == ["small", "medium", "large"]
        assert [d.name for d in outcome.dishes] == ["Tom Yum", "Pad Thai", "Fried Rice"]

    def test_usd_menu_inherits_currency(self):
        outcome = run_text_pipeline("Burger $12\nFries 5\nCola 3.50\nSalad $9")
        by_name = {d.name: d for d in outcome.dishes}
        assert by_name["Fries"].prices[0].currency == "usd"


class TestIdempotence:

    def test_same_input_same_result(self):
        orchestrator = MenuOrchestrator(primary=None)
        first, _ = orchestrator.process_text(MIXED_MENU)
        second, _ = orchestrator.process_text(MIXED_MENU)
        a, b = first.to_dict(), second.to_dict()
        a.pop("processingTimeMs")
        b.pop("processingTimeMs")
        assert a == b

    def test_orchestrated_mixed_menu(self):
        result, diag = MenuOrchestrator(primary=None).process_text(MIXED_MENU)
        out = result.to_dict()
        assert out["status"] == "ok"
        assert len(out["dishes"]) == 2
        assert out["confidence"] == 0.9
        assert out["engine"] == "static_text"
        assert "rawText" not in out
        assert isinstance(out["processingTimeMs"], int)


# ==================================================================
# Generative path
# ==================================================================

class TestGenerativePipeline:

    def _items(self):
        return [
            GenerativeDish("Pad Thai", "120 baht", "noodles", 0.9),
            GenerativeDish("Green Curry", "Price not shown", None, None),
            GenerativeDish("Water", 0, "drink", 0.9),
            GenerativeDish("ต้มยำกุ้ง", "120/220 บาท", "soup", 0.95),
        ]

    def test_generative_pass(self):
        diag = Diagnostics()
        outcome = run_generative_pipeline(self._items(), diagnostics=diag, language="th")
        by_name = {d.name: d for d in outcome.dishes}
        assert set(by_name) == {"Pad Thai", "Green Curry", "ต้มยำกุ้ง"}
        assert outcome.language == "th"

        curry = by_name["Green Curry"]
        assert curry.price_detected is False
        assert curry.confidence == 0.8
        assert curry.to_dict()["priceDetected"] is False

        assert by_name["Pad Thai"].prices[0].amount == 120.0
        assert by_name["Pad Thai"].category == "noodles"
        assert [t.size for t in by_name["ต้มยำกุ้ง"].prices] == ["small", "medium"]

        rejected = [r for r in diag.for_stage("validate") if r.message == "rejected"]
        assert [(r.detail["name"], r.detail["reason"]) for r in rejected] == [("Water", "price_non_positive")]

    def test_numeric_price(self):
        dish = generative_to_dish(GenerativeDish("Pad Thai", 120, None, 0.9))
        assert dish.prices[0].amount == 120.0
        assert dish.prices[0].currency == "baht"
        assert dish.category == "noodles"

    def test_unknown_category_is_inferred(self):
        dish = generative_to_dish(GenerativeDish("Iced Latte", "60", "beverage-ish", 0.9))
        assert dish.category == "drink"

    def test_default_confidence_from_config(self):
        cfg = PipelineConfig(generative_default_confidence=0.7)
        dish = generative_to_dish(GenerativeDish("Pad Thai", None), config=cfg)
        assert dish.confidence == 0.7
        assert dish.price_detected is False

    def test_nan_price_rejected(self):
        diag = Diagnostics()
        items = [GenerativeDish("Pad Thai", float("nan"), None, 0.9), GenerativeDish("Tom Yum", 95, None, 0.9)]
        outcome = run_generative_pipeline(items, diagnostics=diag)
        assert [d.name for d in outcome.dishes] == ["Tom Yum"]
        rejected = [r for r in diag.for_stage("validate") if r.message == "rejected"]
        assert [r.detail["reason"] for r in rejected] == ["price_not_finite"]
        json.dumps([d.to_dict() for d in outcome.dishes], allow_nan=False)

    def test_nothing_survives(self):
        with pytest.raises(NoDishesAfterValidation):
            run_generative_pipeline([GenerativeDish("ab", "50")])

"""
Shared vocabularies: sizes, currencies, scripts, categories.

Covers:
  - size words and upper-case letter codes -> canonical sizes
  - size-only header lines
  - explicit currency markers, dominant menu currency and ties
  - native script vs Latin, language detection
  - category inference (longest keyword wins) and label normalization
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menuscan.category_infer import infer_category, normalize_category, resolve_category
from menuscan.parsers.currency_vocab import dominant_currency, find_currency, strip_currency
from menuscan.parsers.script_vocab import detect_language, has_native_script, has_script_text, meaningful_char_count
from menuscan.parsers.size_vocab import is_size_only, normalize_size, sizes_for_positions


# ==================================================================
# Sizes
# ==================================================================

class TestSizes:

    @pytest.mark.parametrize("raw,expected", [
        ("Large", "large"),
        ("L", "large"),
        ("l", None),
        ("กลาง", "medium"),
        ("พิเศษ", "large"),
        ("XL", "extra"),
        ("regular", "medium"),
        ("family", None),
    ])
    def test_normalize_size(self, raw, expected):
        assert normalize_size(raw) == expected

    def test_positions(self):
        assert sizes_for_positions(2) == ["small", "medium"]
        assert sizes_for_positions(4) == ["small", "medium", "large", "extra"]
        with pytest.raises(ValueError):
            sizes_for_positions(5)

    def test_size_only_lines(self):
        assert is_size_only("Small  Medium  Large")
        assert is_size_only("S / M / L")
        assert is_size_only("เล็ก  ใหญ่")
        assert not is_size_only("Large")
        assert not is_size_only("Small Pad Thai")


# ==================================================================
# Currency
# ==================================================================

class TestCurrency:

    def test_find_currency(self):
        assert find_currency("Pad Thai 120 บาท") == "baht"
        assert find_currency("฿60") == "baht"
        assert find_currency("Burger $12") == "usd"
        assert find_currency("Thai Tea 45") is None

    def test_word_markers_need_word_boundaries(self):
        assert find_currency("Bahtbath 12") is None

    def test_dominant(self):
        lines = ["Burger $12", "Fries $5", "Tea 40 baht"]
        assert dominant_currency(lines, "baht") == "usd"

    def test_no_markers_uses_default(self):
        assert dominant_currency(["Tom Yum 95"], "baht") == "baht"

    def test_tie_prefers_default(self):
        assert dominant_currency(["Burger $12", "Tea 40 baht"], "baht") == "baht"

    def test_strip(self):
        assert strip_currency("120 บาท").strip() == "120"


# ==================================================================
# Script and language
# ==================================================================

class TestScript:

    def test_native_script(self):
        assert has_native_script("ข้าวผัด 50")
        assert not has_native_script("Fried Rice 50")
        assert has_script_text("Fried Rice 50")
        assert not has_script_text("120 / 150")

    def test_thai_marks_count(self):
        assert meaningful_char_count("ต้ม") == 3

    @pytest.mark.parametrize("texts,lang", [
        (["ข้าวผัด 50", "ต้มยำ 80"], "th"),
        (["Fried Rice", "Tom Yum"], "en"),
        (["ラーメン", "餃子"], "ja"),
        (["炒饭", "汤面"], "zh"),
        (["120", "---"], "unknown"),
    ])
    def test_detect_language(self, texts, lang):
        assert detect_language(texts) == lang


# ==================================================================
# Categories
# ==================================================================

class TestCategories:

    @pytest.mark.parametrize("name,category", [
        ("Mango Sticky Rice", "dessert"),
        ("Fried Rice", "rice"),
        ("Tom Yum Goong", "soup"),
        ("Som Tam", "salad"),
        ("Pad Thai", "noodles"),
        ("Thai Iced Tea", "drink"),
        ("Steak Frites", "main"),
        ("ข้าวเหนียวมะม่วง", "dessert"),
        ("ก๋วยเตี๋ยวเรือ", "noodles"),
        ("ชาเย็น", "drink"),
    ])
    def test_infer(self, name, category):
        assert infer_category(name).category == category

    def test_fallback(self):
        guess = infer_category("Chef's Surprise")
        assert guess.category == "main"
        assert guess.confidence == 30

    def test_normalize(self):
        assert normalize_category("Beverages") == "drink"
        assert normalize_category("noodles") == "noodles"
        assert normalize_category("specials") is None

    def test_resolve(self):
        assert resolve_category("Pad Thai", "noodle") == "noodles"
        assert resolve_category("Pad Thai", "whatever") == "noodles"

"""
Line classifier.

Covers:
  - split_raw_lines: trimming, blank removal, contiguous indices
  - noise: contact, phone, time, decorative, boilerplate, size headers
  - phone numbers need phone grouping; tier prices are not phones
  - price_only lines (Latin and Thai currency, two-digit amounts)
  - dish candidates with and without their own price
  - section headings vs ALL CAPS names followed by a price line,
    directly or after one description line
  - descriptions: lowercase prose, openers, generic words
  - out-of-band own price is remembered on the classification
  - one classify diagnostic per line
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from menuscan.diagnostics import Diagnostics
from menuscan.menu_types import LineTag, RawLine
from menuscan.parsers.menu_grammar import classify_line, classify_lines, split_raw_lines, tag_counts


def _classify(text: str):
    return classify_line(RawLine(text, 0))


def _tags(text: str):
    return [c.tag for c in classify_lines(split_raw_lines(text))]


class TestSplitRawLines:

    def test_trims_and_drops_blank_lines(self):
        lines = split_raw_lines("  Pad Thai 120  \n\n   \nTom Yum 95\n")
        assert [ln.text for ln in lines] == ["Pad Thai 120", "Tom Yum 95"]
        assert [ln.index for ln in lines] == [0, 1]

    def test_empty_text(self):
        assert split_raw_lines("") == []
        assert split_raw_lines(None) == []


class TestNoise:
    """Header/noise heuristics run before anything price related."""

    def test_contact_line(self):
        c = _classify("Tel: 081-234-5678")
        assert c.tag is LineTag.HEADER
        assert c.reason == "contact"

    def test_bare_phone_number(self):
        c = _classify("081 234 5678")
        assert c.tag is LineTag.HEADER
        assert c.reason == "phone"

    def test_opening_hours(self):
        c = _classify("Open 10:00 - 22:00")
        assert c.tag is LineTag.HEADER
        assert c.reason == "time"

    def test_thai_opening_hours(self):
        assert _classify("เปิดทุกวัน 8.00-20.00 น.").tag is LineTag.HEADER

    def test_decorative(self):
        assert _classify("~~~~~~").reason == "decorative"

    def test_too_short(self):
        assert _classify("ab").reason == "too_short"

    def test_single_character(self):
        assert _classify("7").reason == "too_short"

    @pytest.mark.parametrize("text", ["+66 81 234 5678", "02-123-4567", "555-123-4567"])
    def test_grouped_phone_numbers(self, text):
        assert _classify(text).reason == "phone"

    def test_tier_prices_are_not_a_phone(self):
        c = _classify("Tom Yum 100 120 150")
        assert c.tag is LineTag.DISH_CANDIDATE
        assert c.name == "Tom Yum"
        assert len(c.price_group.tokens) == 3

    def test_boilerplate(self):
        assert _classify("All prices include VAT").tag is LineTag.HEADER

    def test_size_header(self):
        assert _classify("Small  Medium  Large").reason == "size_header"

    def test_fried_is_not_a_day_name(self):
        assert _classify("Fried Rice 70 baht").tag is LineTag.DISH_CANDIDATE


class TestPriceAndDish:

    def test_price_only(self):
        c = _classify("120 บาท")
        assert c.tag is LineTag.PRICE_ONLY
        assert c.price_group.tokens[0].amount == 120.0

    def test_bare_price_only(self):
        assert _classify("110").tag is LineTag.PRICE_ONLY

    @pytest.mark.parametrize("text", ["50", "70", "95"])
    def test_two_digit_price_only(self, text):
        c = _classify(text)
        assert c.tag is LineTag.PRICE_ONLY
        assert c.price_group.tokens[0].amount == float(text)

    def test_dish_with_price(self):
        c = _classify("Pad Thai 120 baht")
        assert c.tag is LineTag.DISH_CANDIDATE
        assert c.name == "Pad Thai"
        assert c.price_group is not None

    def test_thai_dish_with_price(self):
        c = _classify("ข้าวผัดกุ้ง 60")
        assert c.tag is LineTag.DISH_CANDIDATE
        assert c.name == "ข้าวผัดกุ้ง"

    def test_dish_without_price(self):
        c = _classify("Green Curry")
        assert c.tag is LineTag.DISH_CANDIDATE
        assert c.price_group is None
        assert c.reason == "name"

    def test_out_of_band_price_is_remembered(self):
        c = _classify("Water 0 baht")
        assert c.tag is LineTag.DISH_CANDIDATE
        assert c.price_group is None
        assert c.discarded == (0.0,)
        assert c.name == "Water"


class TestHeadings:

    def test_known_section_heading(self):
        c = _classify("NOODLES")
        assert c.tag is LineTag.HEADER
        assert c.reason == "section_heading"

    def test_thai_section_heading(self):
        assert _classify("เครื่องดื่ม").tag is LineTag.HEADER

    def test_caps_heading(self):
        c = _classify("CHEF TABLE")
        assert c.tag is LineTag.HEADER
        assert c.reason == "caps_heading"

    def test_caps_name_before_price_becomes_dish(self):
        results = classify_lines(split_raw_lines("FRIED RICE\n70 baht"))
        assert [r.tag for r in results] == [LineTag.DISH_CANDIDATE, LineTag.PRICE_ONLY]
        assert results[0].reason == "caps_name_before_price"
        assert results[0].name == "FRIED RICE"

    def test_caps_name_description_then_price(self):
        results = classify_lines(split_raw_lines("PAD THAI\nrice noodles with shrimp\n120"))
        assert [r.tag for r in results] == [LineTag.DISH_CANDIDATE, LineTag.DESCRIPTION, LineTag.PRICE_ONLY]
        assert results[0].reason == "caps_name_before_price"

    def test_caps_heading_two_descriptions_away_stays_heading(self):
        results = classify_lines(split_raw_lines("CHEF TABLE\nrice noodles with shrimp\nserved with lime\n120"))
        assert results[0].tag is LineTag.HEADER

    def test_caps_heading_before_dish_stays_heading(self):
        assert _tags("CHEF TABLE\nGreen Curry 80") == [LineTag.HEADER, LineTag.DISH_CANDIDATE]


class TestDescriptions:

    def test_lowercase_prose(self):
        c = _classify("stir fried with garlic and pepper")
        assert c.tag is LineTag.DESCRIPTION
        assert c.reason == "lowercase_start"

    def test_description_opener(self):
        assert _classify("Served with jasmine rice").reason == "description_opener"

    def test_generic_word(self):
        assert _classify("Toppings").reason == "generic_word"

    def test_long_prose_without_price(self):
        c = _classify("A Rich Coconut Curry Slowly Simmered With Fresh Thai Herbs And Spices")
        assert c.tag is LineTag.DESCRIPTION


class TestDiagnostics:

    def test_one_classify_record_per_line(self):
        diag = Diagnostics()
        lines = split_raw_lines("MENU\nPad Thai 120\n~~~~\n95")
        classify_lines(lines, diagnostics=diag)
        records = diag.for_stage("classify")
        assert [r.line for r in records] == [0, 1, 2, 3]

    def test_out_of_band_reported(self):
        diag = Diagnostics()
        classify_line(RawLine("Water 0 baht", 3), diagnostics=diag)
        price = diag.for_stage("price")
        assert price[0].message == "out_of_band"
        assert price[0].line == 3

    def test_tag_counts(self):
        results = classify_lines(split_raw_lines("MENU\nPad Thai 120\n95"))
        assert dict(tag_counts(results)) == {"dish_candidate": 1, "header": 1, "price_only": 1}

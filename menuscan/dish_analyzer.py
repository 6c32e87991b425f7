# menuscan/dish_analyzer.py
"""
Dish enrichment (ingredients, dietary flags, spice level, tags).

Runs after extraction and never changes a Dish; enrich_dishes() returns
wire dicts with an extra "analysis" object next to the fixed dish fields.

Dietary "free-from" flags are only set when the name says so explicitly
("gluten-free", "vegan"). Guessing them from ingredients is not safe for
allergy decisions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .menu_types import Dish, MenuResult


@dataclass(frozen=True)
class DishAnalysis:
    spice_level: int = 0          # 0 unknown, 1 mild .. 4 very hot
    vegetarian: bool = False
    vegan: bool = False
    gluten_free: bool = False
    dairy_free: bool = False
    nut_free: bool = False
    tags: Tuple[str, ...] = ()
    ingredients: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spiceLevel": self.spice_level,
            "isVegetarian": self.vegetarian,
            "isVegan": self.vegan,
            "isGlutenFree": self.gluten_free,
            "isDairyFree": self.dairy_free,
            "isNutFree": self.nut_free,
            "tags": list(self.tags),
            "ingredients": list(self.ingredients),
        }


# ── Vocabulary ───────────────────────────────────────────────────────

# Checked first: "non-spicy" and "ไม่เผ็ด" both contain a hot word.
_NOT_SPICY = ("no spice", "non-spicy", "not spicy", "ไม่เผ็ด")

_SPICE_LEVELS: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
    (4, ("extra spicy", "very spicy", "very hot", "burning hot", "volcano", "ghost pepper", "เผ็ดมาก", "เผ็ดจัด")),
    (3, ("spicy", "hot", "fiery", "chili", "chilli", "curry", "sambal", "bird's eye", "เผ็ด", "พริก", "แกง")),
    (2, ("medium", "moderate", "เผ็ดกลาง")),
    (1, ("mild", "sweet", "sour", "light", "หวาน")),
)

# name keyword -> canonical ingredient
_INGREDIENTS: Dict[str, str] = {
    "chicken": "chicken", "ไก่": "chicken",
    "pork": "pork", "หมู": "pork", "bacon": "pork", "ham": "pork",
    "beef": "beef", "เนื้อวัว": "beef", "steak": "beef", "เนื้อ": "beef",
    "duck": "duck", "เป็ด": "duck",
    "shrimp": "shrimp", "prawn": "shrimp", "กุ้ง": "shrimp",
    "fish": "fish", "ปลา": "fish",
    "squid": "squid", "ปลาหมึก": "squid",
    "crab": "crab", "ปู": "crab",
    "seafood": "seafood", "ทะเล": "seafood",
    "tofu": "tofu", "เต้าหู้": "tofu",
    "egg": "egg", "ไข่": "egg",
    "rice": "rice", "ข้าว": "rice",
    "noodle": "noodles", "noodles": "noodles", "เส้น": "noodles", "ก๋วยเตี๋ยว": "noodles", "บะหมี่": "noodles",
    "mushroom": "mushroom", "เห็ด": "mushroom",
    "basil": "basil", "กะเพรา": "basil", "กระเพรา": "basil",
    "coconut milk": "coconut milk", "กะทิ": "coconut milk",
    "lemongrass": "lemongrass", "ตะไคร้": "lemongrass",
    "galangal": "galangal", "ข่า": "galangal",
    "peanut": "peanuts", "peanuts": "peanuts", "ถั่วลิสง": "peanuts",
    "cashew": "cashew", "เม็ดมะม่วงหิมพานต์": "cashew",
    "papaya": "papaya", "มะละกอ": "papaya",
    "mango": "mango", "มะม่วง": "mango",
    "vegetable": "vegetables", "vegetables": "vegetables", "ผัก": "vegetables",
}

_MEAT = {"chicken", "pork", "beef", "duck", "shrimp", "fish", "squid", "crab", "seafood"}
_VEG_WORDS = ("vegetarian", "veggie", "meatless", "plant-based", "มังสวิรัติ", "อาหารเจ")
_VEGAN_WORDS = ("vegan",)
_GLUTEN_FREE_WORDS = ("gluten-free", "gluten free")
_DAIRY_FREE_WORDS = ("dairy-free", "dairy free")
_NUT_FREE_WORDS = ("nut-free", "nut free")

_PROTEIN_TAGS: Tuple[Tuple[str, str], ...] = (
    ("chicken", "Chicken"),
    ("beef", "Beef"),
    ("pork", "Pork"),
    ("shrimp", "Seafood"),
    ("fish", "Seafood"),
    ("squid", "Seafood"),
    ("crab", "Seafood"),
    ("seafood", "Seafood"),
)

_METHOD_TAGS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("fried", "ทอด", "ผัด"), "Fried"),
    (("steamed", "นึ่ง"), "Steamed"),
    (("grilled", "ย่าง", "ปิ้ง"), "Grilled"),
)


def _has(text: str, word: str) -> bool:
    if word.isascii():
        return re.search(r"(?<![a-z])" + re.escape(word) + r"(?![a-z])", text) is not None
    return word in text


def _any(text: str, words: Sequence[str]) -> bool:
    return any(_has(text, w) for w in words)


# ── Analyzers ────────────────────────────────────────────────────────

class KeywordDishAnalyzer:
    """Keyword lookup over Thai and English dish names."""

    def spice_level(self, text: str) -> int:
        if _any(text, _NOT_SPICY):
            return 1
        for level, words in _SPICE_LEVELS:
            if _any(text, words):
                return level
        return 0

    def ingredients(self, text: str) -> List[str]:
        found: List[str] = []
        rest = text
        # longer keywords first so "ปลาหมึก" is consumed before "ปลา"
        for kw in sorted(_INGREDIENTS, key=len, reverse=True):
            if not _has(rest, kw):
                continue
            if not kw.isascii():
                rest = rest.replace(kw, " ")
            canonical = _INGREDIENTS[kw]
            if canonical not in found:
                found.append(canonical)
        return found

    def analyze(self, name: str) -> DishAnalysis:
        text = " ".join((name or "").lower().split())
        ingredients = self.ingredients(text)
        has_meat = any(i in _MEAT for i in ingredients)

        vegan = _any(text, _VEGAN_WORDS)
        vegetarian = vegan or (_any(text, _VEG_WORDS) and not has_meat)
        spice = self.spice_level(text)

        tags: List[str] = []
        if spice >= 3:
            tags.append("Spicy")
        elif spice == 1:
            tags.append("Mild")
        for ingredient, tag in _PROTEIN_TAGS:
            if ingredient in ingredients:
                tags.append(tag)
                break
        for words, tag in _METHOD_TAGS:
            if _any(text, words):
                tags.append(tag)
                break

        return DishAnalysis(
            spice_level=spice,
            vegetarian=vegetarian,
            vegan=vegan,
            gluten_free=_any(text, _GLUTEN_FREE_WORDS),
            dairy_free=vegan or _any(text, _DAIRY_FREE_WORDS),
            nut_free=_any(text, _NUT_FREE_WORDS),
            tags=tuple(tags),
            ingredients=tuple(ingredients),
        )


class NoopDishAnalyzer:
    """Returns an empty analysis for every dish."""

    def analyze(self, name: str) -> DishAnalysis:
        return DishAnalysis()


def enrich_dishes(result: MenuResult, analyzer: Optional[Any] = None) -> List[Dict[str, Any]]:
    """Wire dicts for result.dishes, each with an added "analysis" object."""
    analyzer = analyzer or KeywordDishAnalyzer()
    out: List[Dict[str, Any]] = []
    for dish in result.dishes:
        row = dish.to_dict()
        row["analysis"] = analyzer.analyze(dish.name).to_dict()
        out.append(row)
    return out


def analyze_dish(dish: Dish, analyzer: Optional[Any] = None) -> DishAnalysis:
    return (analyzer or KeywordDishAnalyzer()).analyze(dish.name)

"""
menuscan/category_infer.py

Lightweight category inference for dish names.

Goals:
- No heavyweight ML deps.
- Thai and English keywords side by side.
- Return a simple category + confidence score + human-readable reason.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple


# ------------------------
# Data structures
# ------------------------

@dataclass(frozen=True)
class CategoryGuess:
    category: str
    confidence: int  # 0-100
    reason: str = ""


CATEGORIES: Tuple[str, ...] = (
    "rice", "noodles", "soup", "salad", "appetizer", "main", "dessert", "drink", "side",
)

DEFAULT_CATEGORY = "main"

# Aliases accepted from generative payloads
_CATEGORY_ALIASES: Dict[str, str] = {
    "noodle": "noodles",
    "soups": "soup",
    "salads": "salad",
    "appetizers": "appetizer",
    "starter": "appetizer",
    "starters": "appetizer",
    "snack": "appetizer",
    "mains": "main",
    "main course": "main",
    "entree": "main",
    "curry": "main",
    "desserts": "dessert",
    "sweet": "dessert",
    "drinks": "drink",
    "beverage": "drink",
    "beverages": "drink",
    "sides": "side",
}


# ------------------------
# Keyword heuristics
# ------------------------

# Latin keywords match on word boundaries ("tea" must not hit "steak");
# Thai keywords are substrings since Thai has no spaces between words.
CATEGORY_KEYWORDS: Dict[str, Sequence[str]] = {
    "drink": [
        "tea", "coffee", "latte", "espresso", "cappuccino", "juice", "soda",
        "coke", "pepsi", "sprite", "water", "beer", "smoothie", "shake",
        "lemonade", "milk", "cocoa",
        "ชาเย็น", "ชาไทย", "ชาดำ", "ชามะนาว", "ชาเขียว", "กาแฟ", "โอเลี้ยง",
        "น้ำเปล่า", "น้ำแข็ง", "น้ำส้ม", "น้ำมะนาว", "น้ำมะพร้าว", "น้ำอัดลม",
        "น้ำผลไม้", "โค้ก", "เบียร์", "นมเย็น", "โกโก้", "สมูทตี้", "ปั่น",
    ],
    "dessert": [
        "dessert", "ice cream", "cake", "pudding", "brownie", "mango sticky rice",
        "sticky rice with mango", "custard", "roti", "pancake",
        "ของหวาน", "ข้าวเหนียวมะม่วง", "ไอศกรีม", "ไอติม", "บัวลอย", "ทับทิมกรอบ",
        "สังขยา", "ขนม", "โรตี", "เค้ก", "ลอดช่อง",
    ],
    "soup": [
        "soup", "tom yum", "tom yam", "tom kha", "broth", "consomme",
        "ต้มยำ", "ต้มข่า", "ต้มจืด", "แกงจืด", "ซุป", "ต้มแซ่บ", "ต้มเลือดหมู",
    ],
    "salad": [
        "salad", "som tam", "som tum", "papaya", "larb", "laab", "yum",
        "ส้มตำ", "ตำ", "ยำ", "ลาบ", "น้ำตก", "สลัด",
    ],
    "noodles": [
        "noodle", "noodles", "pad thai", "pad see ew", "ramen", "udon", "pho",
        "spaghetti", "pasta", "vermicelli", "lo mein", "chow mein", "khao soi",
        "ก๋วยเตี๋ยว", "บะหมี่", "ผัดไทย", "ผัดซีอิ๊ว", "ราดหน้า", "เส้น", "ขนมจีน",
        "ข้าวซอย", "วุ้นเส้น", "มาม่า", "เย็นตาโฟ",
    ],
    "appetizer": [
        "spring roll", "spring rolls", "satay", "appetizer", "wings", "dumpling",
        "dumplings", "gyoza", "fish cake", "tempura", "nuggets", "fries",
        "ปอเปี๊ยะ", "สะเต๊ะ", "ทอดมัน", "เกี๊ยว", "ขนมจีบ", "ซาลาเปา", "เฟรนช์ฟรายส์",
        "ปีกไก่ทอด", "หมูปิ้ง",
    ],
    "rice": [
        "rice", "biryani", "risotto", "donburi", "bibimbap",
        "ข้าว", "โจ๊ก",
    ],
    "side": [
        "side", "fried egg", "steamed rice", "extra rice", "sticky rice",
        "ไข่ดาว", "ไข่เจียว", "ข้าวสวย", "ข้าวเปล่า", "ข้าวเหนียว",
    ],
}

# Tie-break when two keywords of equal length hit.
_PRIORITY: Tuple[str, ...] = (
    "dessert", "drink", "side", "soup", "salad", "noodles", "appetizer", "rice",
)

_whitespace_re = re.compile(r"\s+")


def _norm(text: Optional[str]) -> str:
    if not text:
        return ""
    text = text.strip().lower()
    return _whitespace_re.sub(" ", text)


def _keyword_re(kw: str) -> re.Pattern:
    if kw.isascii():
        return re.compile(r"(?<![a-z])" + re.escape(kw) + r"(?![a-z])")
    return re.compile(re.escape(kw))


_COMPILED: Dict[str, List[Tuple[str, re.Pattern]]] = {
    cat: [(kw, _keyword_re(kw)) for kw in kws] for cat, kws in CATEGORY_KEYWORDS.items()
}


def _keyword_hits(text: str, category: str) -> List[str]:
    if not text:
        return []
    return [kw for kw, rx in _COMPILED.get(category, ()) if rx.search(text)]


# ------------------------
# Core inference
# ------------------------

def normalize_category(raw: Optional[str]) -> Optional[str]:
    """Map a free-form category label to a known one, or None."""
    key = _norm(raw)
    if not key:
        return None
    if key in CATEGORIES:
        return key
    return _CATEGORY_ALIASES.get(key)


def infer_category(name: Optional[str], fallback: str = DEFAULT_CATEGORY) -> CategoryGuess:
    """
    Infer a category from a dish name.

    The longest keyword hit decides (so "mango sticky rice" beats "rice");
    equal lengths resolve through the priority order.
    """
    text = _norm(name)
    if not text:
        return CategoryGuess(fallback, 5, "empty name; using fallback")

    best: Optional[Tuple[int, int, str, str]] = None
    for rank, category in enumerate(_PRIORITY):
        for kw in _keyword_hits(text, category):
            key = (-len(kw), rank, category, kw)
            if best is None or key < best:
                best = key

    if best is None:
        return CategoryGuess(fallback, 30, "no keyword hit; using fallback")

    _, _, category, kw = best
    confidence = 90 if len(kw) >= 4 else 70
    return CategoryGuess(category, confidence, f"keyword '{kw}'")


def resolve_category(name: str, declared: Optional[str] = None) -> str:
    """Declared category when it is recognizable, otherwise inferred."""
    return normalize_category(declared) or infer_category(name).category

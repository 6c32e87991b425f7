# menuscan/parsers/menu_grammar.py
"""
Menu Line Grammar

Labels each recognized text line as one of:
  - dish_candidate: a plausible dish name (its own price may ride along)
  - price_only:     a price expression with nothing else on the line
  - header:         section headings, banners, contact/time/boilerplate noise
  - description:    anything else (ingredient prose, generic words, ...)

Decision order per line:
  1. noise heuristics that do not depend on prices
  2. price detectability (price_only when no residual text remains)
  3. length floor and heading heuristics (priceless lines only)
  4. script presence + dish-name plausibility -> dish_candidate
  5. description

A second contextual pass turns ALL-CAPS "headings" back into dish
candidates when a bare price follows, directly or after one description
line.

Pure regex + heuristics, no side effects beyond the optional diagnostics
value passed in.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from ..config import PipelineConfig
from ..diagnostics import Diagnostics
from ..menu_types import LineClassification, LineTag, RawLine
from .currency_vocab import strip_currency
from .price_parser import AMOUNT_PATTERN, clean_residual, parse_price_line
from .script_vocab import has_script_text, meaningful_char_count
from .size_vocab import is_size_only


# ── Noise patterns ───────────────────────────────────

_DECORATIVE_RE = re.compile(r"^[\W_]+$")

# Needs phone grouping: a leading + or 0, or dash-separated groups.
# "Tom Yum 100 120 150" is a tier list, not a number.
_PHONE_RE = re.compile(
    r"(?<![\w.])(?:\+|0|\(0?\d)[\d\s\-().]{7,}\d"
    r"|(?<!\d)\d{2,4}-\d{3,4}-\d{4}(?!\d)"
)

_CONTACT_RE = re.compile(
    r"(?<![A-Za-z])(?:tel|phone|call|fax|e-?mail|facebook|fb|instagram|ig|twitter)(?![A-Za-z])"
    r"|line\s*(?:id|@|:)|www\.|https?://|@\w|โทร|ที่อยู่|ติดต่อ|เฟซบุ๊ก|ไลน์",
    re.IGNORECASE,
)

_ADDRESS_WORD_RE = re.compile(
    r"(?<![A-Za-z])(?:road|rd\.|street|soi|district|province|village)(?![A-Za-z])"
    r"|ถนน|ซอย|ตำบล|อำเภอ|จังหวัด|แขวง|เขต",
    re.IGNORECASE,
)

_DAY = r"(?:mon|tue|wed|thu|fri|sat|sun)"

_TIME_RE = re.compile(
    r"\d{1,2}:\d{2}"
    r"|(?<!\d)\d{1,2}(?:[.]\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.|น\.)(?![A-Za-z])"
    r"|(?<![A-Za-z])(?:open|opens|opening|closed?|hours|daily|monday|tuesday|wednesday|"
    r"thursday|friday|saturday|sunday|" + _DAY + r"\s*[-–]\s*" + _DAY + r")(?![A-Za-z])"
    r"|เปิด|ปิด|ทุกวัน|วันจันทร์|วันอาทิตย์",
    re.IGNORECASE,
)

_BOILERPLATE_RE = re.compile(
    r"(?:(?<![A-Za-z])(?:welcome|thank\s*you|thanks|service\s*charge|vat|"
    r"all\s+prices|prices?\s+(?:include|exclude|are)|tax(?:es)?\s+(?:incl|excl)|"
    r"promotion|promo|discount|best\s*seller|recommended|wifi|wi-fi|password)(?![A-Za-z])"
    r"|ยินดีต้อนรับ|ขอบคุณ|โปรโมชั่น|โปรโมชัน|ส่วนลด|ราคานี้|ราคารวม|ไม่รวม|ภาษี|บริการ|แนะนำ|ขายดี)",
    re.IGNORECASE,
)

_BRAND_RE = re.compile(
    r"^(?:by\s+\S+|ร้าน|restaurant(?![A-Za-z])|since\s+\d{4})"
    r"|(?<![A-Za-z])(?:restaurant|café|cafe|bistro|kitchen|eatery)\s*$",
    re.IGNORECASE,
)

_SUMMARY_RE = re.compile(
    r"^(?:total|sub-?total|grand\s+total)(?![A-Za-z])|^(?:รวม|ยอดรวม|ทั้งหมด)(?:\s|:|$)",
    re.IGNORECASE,
)


# ── Heading detection ────────────────────────────────

_KNOWN_SECTION_HEADINGS = {
    "menu", "menus", "food menu", "drink menu", "a la carte", "set menu",
    "rice", "rice dishes", "noodles", "noodle", "noodle dishes",
    "soup", "soups", "curry", "curries", "salad", "salads",
    "appetizers", "appetiser", "appetisers", "starters", "snacks", "sides",
    "main", "mains", "main course", "main courses", "main dishes", "entrees",
    "seafood", "stir fry", "stir-fried", "grilled",
    "desserts", "dessert", "sweets",
    "drinks", "beverages", "cold drinks", "hot drinks", "coffee & tea",
    "specials", "chef's specials", "recommended menu",
    # Thai
    "เมนู", "รายการอาหาร", "อาหารจานเดียว", "กับข้าว", "เมนูข้าว", "เมนูเส้น",
    "ก๋วยเตี๋ยว", "ต้ม", "แกง", "ยำ", "ผัด", "ทอด", "ย่าง", "สลัด",
    "ของทานเล่น", "ของว่าง", "อาหารทะเล", "ของหวาน", "เครื่องดื่ม",
    "เมนูแนะนำ", "เมนูพิเศษ",
}

_HEADING_STRIP_RE = re.compile(r"[\s_!.:\-–—*•·|#=~]+")


def _heading_key(text: str) -> str:
    return _HEADING_STRIP_RE.sub(" ", text.lower()).strip()


def _is_known_heading(text: str) -> bool:
    return _heading_key(text) in _KNOWN_SECTION_HEADINGS


def _is_caps_heading(text: str) -> bool:
    """1-4 word ALL CAPS Latin line, e.g. 'NOODLE DISHES'."""
    words = text.split()
    if not words or len(words) > 4:
        return False
    alpha = [c for c in text if c.isalpha()]
    return bool(alpha) and all(c.isascii() and c.isupper() for c in alpha)


# ── Dish-name plausibility ───────────────────────────

_GENERIC_WORDS = {
    "menu", "price", "prices", "special", "specials", "set", "combo", "item",
    "items", "dish", "dishes", "food", "drink", "drinks", "extra", "add",
    "add on", "add-on", "topping", "toppings", "size", "sizes", "new",
    "เมนู", "ราคา", "อาหาร", "รายการ", "ชุด", "เพิ่ม", "ท็อปปิ้ง", "ขนาด",
}

_DESCRIPTION_OPENER_RE = re.compile(
    r"^(?:with|served|topped|comes\s+with|w/|includes?|choice\s+of|made\s+with|and)(?![A-Za-z])",
    re.IGNORECASE,
)

_AMOUNT_RE = re.compile(AMOUNT_PATTERN)

_LONG_PROSE_WORDS = 9
_LONG_PROSE_CHARS = 60
_MIN_LINE_CHARS = 2
_MIN_TEXT_CHARS = 3


def _noise_reason(text: str) -> Optional[str]:
    if len(text) < _MIN_LINE_CHARS:
        return "too_short"
    if _DECORATIVE_RE.match(text):
        return "decorative"
    if _CONTACT_RE.search(text):
        return "contact"
    digits = sum(c.isdigit() for c in text)
    if digits >= 9 and _PHONE_RE.search(text):
        return "phone"
    if digits and _ADDRESS_WORD_RE.search(text):
        return "address"
    if _TIME_RE.search(text):
        return "time"
    if _BOILERPLATE_RE.search(text):
        return "boilerplate"
    if _BRAND_RE.search(text):
        return "brand_banner"
    if _SUMMARY_RE.search(text):
        return "summary"
    if is_size_only(text):
        return "size_header"
    return None


def _implausible_name(name: str, config: PipelineConfig) -> Optional[str]:
    key = _heading_key(name)
    if key in _GENERIC_WORDS:
        return "generic_word"
    stripped = strip_currency(name)
    if not has_script_text(stripped):
        return "numeric"
    if _TIME_RE.search(name) or _BOILERPLATE_RE.search(name):
        return "time_or_promo"
    if meaningful_char_count(stripped) < config.name_min_len:
        return "too_few_letters"
    return None


def _description_reason(name: str, has_price: bool) -> Optional[str]:
    first = name[:1]
    if first.isascii() and first.isalpha() and first.islower():
        return "lowercase_start"
    if _DESCRIPTION_OPENER_RE.match(name):
        return "description_opener"
    if not has_price and (len(name.split()) >= _LONG_PROSE_WORDS or len(name) > _LONG_PROSE_CHARS):
        return "long_prose"
    return None


# ── Public API ───────────────────────────────────────

def split_raw_lines(text: str) -> List[RawLine]:
    """Trim, drop blanks, and index the remaining lines in document order."""
    out: List[RawLine] = []
    for raw in (text or "").splitlines():
        stripped = raw.strip()
        if stripped:
            out.append(RawLine(stripped, len(out)))
    return out


def classify_line(
    line: RawLine,
    *,
    config: Optional[PipelineConfig] = None,
    currency: Optional[str] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> LineClassification:
    cfg = config or PipelineConfig()
    text = line.text.strip()

    discarded: Tuple[float, ...] = ()

    def _done(tag: LineTag, reason: str, name: str = "", group=None) -> LineClassification:
        if diagnostics is not None:
            diagnostics.add("classify", tag.value, line=line.index, reason=reason, text=text)
        return LineClassification(tag, line.index, reason, text, name, group, discarded)

    noise = _noise_reason(text)
    if noise:
        return _done(LineTag.HEADER, noise)

    extraction = parse_price_line(text, line.index, config=cfg, currency=currency)
    group = extraction.group
    residual = extraction.residual
    if diagnostics is not None:
        if extraction.discarded:
            diagnostics.add("price", "out_of_band", line=line.index, amounts=list(extraction.discarded))
        if extraction.ignored:
            diagnostics.add("price", "bare_number_ignored", line=line.index, amounts=list(extraction.ignored))
    if group is None and extraction.discarded:
        discarded = tuple(extraction.discarded)
        residual = clean_residual(_AMOUNT_RE.sub(" ", residual))

    if group is not None and not has_script_text(residual):
        return _done(LineTag.PRICE_ONLY, f"price_{group.family}", group=group)

    if group is None:
        if len(text) < _MIN_TEXT_CHARS:
            return _done(LineTag.HEADER, "too_short")
        if _is_known_heading(text):
            return _done(LineTag.HEADER, "section_heading")
        if _is_caps_heading(text):
            return _done(LineTag.HEADER, "caps_heading", name=residual)

    if not has_script_text(residual):
        return _done(LineTag.DESCRIPTION, "no_script_text")

    implausible = _implausible_name(residual, cfg)
    if implausible:
        return _done(LineTag.DESCRIPTION, implausible)

    desc = _description_reason(residual, group is not None)
    if desc:
        return _done(LineTag.DESCRIPTION, desc)

    reason = f"name_with_{group.family}_price" if group else "name"
    return _done(LineTag.DISH_CANDIDATE, reason, name=residual, group=group)


def classify_lines(
    lines: Iterable[RawLine],
    *,
    config: Optional[PipelineConfig] = None,
    currency: Optional[str] = None,
    diagnostics: Optional[Diagnostics] = None,
) -> List[LineClassification]:
    """
    Classify every line, then resolve ALL-CAPS headings against their
    neighbours: "FRIED RICE" above "70" is a dish, not a section, and so is
    "PAD THAI" / "rice noodles with shrimp" / "120".
    """
    results = [
        classify_line(ln, config=config, currency=currency, diagnostics=diagnostics)
        for ln in lines
    ]

    def _tag_at(j: int) -> Optional[LineTag]:
        return results[j].tag if j < len(results) else None

    for i, r in enumerate(results):
        if r.tag is not LineTag.HEADER or r.reason != "caps_heading":
            continue
        price_follows = _tag_at(i + 1) is LineTag.PRICE_ONLY or (
            _tag_at(i + 1) is LineTag.DESCRIPTION and _tag_at(i + 2) is LineTag.PRICE_ONLY
        )
        if not price_follows:
            continue
        cfg = config or PipelineConfig()
        if _implausible_name(r.name, cfg):
            continue
        results[i] = LineClassification(
            LineTag.DISH_CANDIDATE, r.line_index, "caps_name_before_price", r.text, r.name, None
        )
        if diagnostics is not None:
            diagnostics.add("classify", "reclassified", line=r.line_index, reason="caps_name_before_price")

    return results


def tag_counts(classifications: Iterable[LineClassification]) -> List[Tuple[str, int]]:
    counts = {}
    for c in classifications:
        counts[c.tag.value] = counts.get(c.tag.value, 0) + 1
    return sorted(counts.items())

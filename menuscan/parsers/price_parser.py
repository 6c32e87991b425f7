# menuscan/parsers/price_parser.py
"""
Price Parser

Recognizes price expressions on one menu line and normalizes them into
PriceTokens. Pattern families are tried in a fixed order and the first one
that yields a valid amount wins:

  1. multi_size    "S 40 M 50 L 60", "เล็ก 40 ใหญ่ 60"
  2. list          "80/100/120", "120/220 บาท", "80, 100", "100 120 150"
  3. paren_size    "Curry (large) 90"
  4. size          "Large 90"
  5. range         "100-150"
  6. trailing      "Pad Thai 120 baht", "Tom Yum 95", "฿120"
  7. bare          "ข้าวผัด 50 จาน" (native-script lines only, 15-3000)
  8. leading       "฿60 Iced Tea", "60 บาท ชาเย็น"

Amounts outside the configured band are dropped here and reported back in
PriceExtraction.discarded; they never become PriceTokens. Bare numbers
outside the bare band are only "ignored" (they are as likely to be counts
or page numbers as prices).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import PipelineConfig
from ..menu_types import SIZE_ORDER, PriceGroup, PriceToken
from .currency_vocab import CURRENCY_PATTERN, CURRENCY_RE, currency_code, find_currency
from .script_vocab import has_native_script
from .size_vocab import SIZE_KEYWORD_PATTERN, normalize_size, sizes_for_positions, sort_by_size


# ── Amount patterns ──────────────────────────────────
# "1,200" is a thousands separator only with a one-digit lead group;
# "80,100" is a two-price list, handled by the list family.

_AMOUNT_CORE = r"(?:\d,\d{3}|\d+)(?:\.\d{1,2})?(?!\d|\.\d)"
AMOUNT_PATTERN = r"(?<![\d.,])" + _AMOUNT_CORE
_LIST_ITEM = r"\d{2,}(?:\.\d{1,2})?(?!\d|\.\d)"

_CUR = CURRENCY_PATTERN
_SIZE = SIZE_KEYWORD_PATTERN

_SIZE_PAIR_RE = re.compile(
    r"(?P<size>" + _SIZE + r")\s*[:=\-]?\s*(?P<pre>" + _CUR + r")?\s*"
    r"(?P<amt>" + AMOUNT_PATTERN + r")(?:\s*(?P<cur>" + _CUR + r"))?"
)

_SLASH_LIST_RE = re.compile(
    r"(?:(?P<pre>" + _CUR + r")\s*)?"
    r"(?P<list>" + AMOUNT_PATTERN + r"(?:\s*/\s*" + _AMOUNT_CORE + r")+)"
    r"\s*(?P<cur>" + _CUR + r")?\s*[.)\]\-]*\s*$"
)

_COMMA_LIST_RE = re.compile(
    r"(?:(?P<pre>" + _CUR + r")\s*)?"
    r"(?P<list>(?<![\d.,])" + _LIST_ITEM + r"(?:\s*,\s*" + _LIST_ITEM + r")+)"
    r"\s*(?P<cur>" + _CUR + r")?\s*[.)\]\-]*\s*$"
)

# Space-separated tiers must ascend: "Tom Yum 100 120 150".
_SPACE_LIST_RE = re.compile(
    r"(?:(?P<pre>" + _CUR + r")\s*)?"
    r"(?P<list>(?<![\d.,])" + _LIST_ITEM + r"(?:\s+" + _LIST_ITEM + r")+)"
    r"\s*(?P<cur>" + _CUR + r")?\s*[.)\]\-]*\s*$"
)

_PAREN_SIZE_RE = re.compile(
    r"[(\[]\s*(?P<size>" + _SIZE + r")\s*[)\]]\s*[:=\-]?\s*(?P<pre>" + _CUR + r")?\s*"
    r"(?P<amt>" + AMOUNT_PATTERN + r")(?:\s*(?P<cur>" + _CUR + r"))?"
)

_RANGE_RE = re.compile(
    r"(?:(?P<pre>" + _CUR + r")\s*)?(?P<lo>" + AMOUNT_PATTERN + r")\s*[-–—~]\s*"
    r"(?:" + _CUR + r"\s*)?(?P<hi>" + _AMOUNT_CORE + r")(?:\s*(?P<cur>" + _CUR + r"))?"
)

_TRAILING_RE = re.compile(
    r"(?:(?P<pre>" + _CUR + r")\s*)?(?P<amt>" + AMOUNT_PATTERN + r")"
    r"\s*(?P<cur>" + _CUR + r")?\s*[.)\]*\-–]*\s*$"
)

_BARE_RE = re.compile(r"(?<![\d.,])\d{2,4}(?!\d|[.,]\d)")

_LEADING_RE = re.compile(
    r"^\s*(?:(?P<pre>" + _CUR + r")\s*(?P<amt>" + AMOUNT_PATTERN + r")"
    r"|(?P<amt2>" + AMOUNT_PATTERN + r")\s*(?P<cur>" + _CUR + r"))"
    r"\s*[:\-–.]?\s+(?=\S)"
)

_LEADER_RE = re.compile(r"\.{2,}|…+|_{2,}|·{2,}")
_EDGE_JUNK_RE = re.compile(r"^[\s:;,.\-–—|/*•·=]+|[\s:;,.\-–—|/*•·=(\[]+$")
_WS_RE = re.compile(r"\s+")


def parse_amount(raw: str) -> float:
    """'1,200' -> 1200.0, '34.50' -> 34.5"""
    return float(raw.replace(",", ""))


# ── Family plumbing ──────────────────────────────────

@dataclass
class _Raw:
    amount: float
    size: Optional[str] = None
    max_amount: Optional[float] = None
    marker: Optional[str] = None
    bare: bool = False


@dataclass
class _FamilyMatch:
    amounts: List[_Raw]
    spans: List[Tuple[int, int]]
    multi_size: bool = False
    ignored: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class PriceContext:
    config: PipelineConfig
    currency: str


@dataclass
class PriceExtraction:
    group: Optional[PriceGroup]
    discarded: List[float] = field(default_factory=list)
    ignored: List[float] = field(default_factory=list)
    residual: str = ""


def _marker(m: re.Match) -> Optional[str]:
    gd = m.groupdict()
    return gd.get("pre") or gd.get("cur")


def _family_multi_size(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    pairs = list(_SIZE_PAIR_RE.finditer(text))
    if len(pairs) < 2:
        return None
    sizes = [normalize_size(p.group("size")) for p in pairs]
    if None in sizes or len(set(sizes)) != len(sizes):
        return None
    amounts = [
        _Raw(parse_amount(p.group("amt")), size=s, marker=_marker(p))
        for p, s in zip(pairs, sizes)
    ]
    return _FamilyMatch(amounts, [p.span() for p in pairs], multi_size=True)


def _list_match(rx: re.Pattern, sep: Optional[str], text: str, ascending: bool = False) -> Optional[_FamilyMatch]:
    m = rx.search(text)
    if not m:
        return None
    before = text[: m.start()].rstrip()
    if before.endswith(("/", ",")):
        return None
    parts = [p.strip() for p in m.group("list").split(sep)]
    values = [parse_amount(p) for p in parts]
    if ascending and any(a >= b for a, b in zip(values, values[1:])):
        return None
    # more tiers than canonical sizes: keep every amount, unsized
    if len(values) <= len(SIZE_ORDER):
        sizes: List[Optional[str]] = list(sizes_for_positions(len(values)))
    else:
        sizes = [None] * len(values)
    marker = _marker(m)
    amounts = [_Raw(v, size=s, marker=marker) for v, s in zip(values, sizes)]
    return _FamilyMatch(amounts, [m.span()], multi_size=True)


def _family_list(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    return (
        _list_match(_SLASH_LIST_RE, "/", text)
        or _list_match(_COMMA_LIST_RE, ",", text)
        or _list_match(_SPACE_LIST_RE, None, text, ascending=True)
    )


def _family_paren_size(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    pairs = list(_PAREN_SIZE_RE.finditer(text))
    if not pairs:
        return None
    sizes = [normalize_size(p.group("size")) for p in pairs]
    if None in sizes or len(set(sizes)) != len(sizes):
        return None
    amounts = [
        _Raw(parse_amount(p.group("amt")), size=s, marker=_marker(p))
        for p, s in zip(pairs, sizes)
    ]
    return _FamilyMatch(amounts, [p.span() for p in pairs], multi_size=len(pairs) > 1)


def _family_size(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    pairs = list(_SIZE_PAIR_RE.finditer(text))
    if len(pairs) != 1:
        return None
    p = pairs[0]
    size = normalize_size(p.group("size"))
    if size is None:
        return None
    return _FamilyMatch([_Raw(parse_amount(p.group("amt")), size=size, marker=_marker(p))], [p.span()])


def _family_range(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    found = None
    for m in _RANGE_RE.finditer(text):
        lo, hi = parse_amount(m.group("lo")), parse_amount(m.group("hi"))
        if lo < hi:
            found = (m, lo, hi)
    if not found:
        return None
    m, lo, hi = found
    return _FamilyMatch([_Raw(lo, max_amount=hi, marker=_marker(m))], [m.span()])


def _family_trailing(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    m = _TRAILING_RE.search(text)
    if not m:
        return None
    return _FamilyMatch([_Raw(parse_amount(m.group("amt")), marker=_marker(m))], [m.span()])


def _family_bare(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    if not has_native_script(text) or find_currency(text):
        return None
    lo, hi = ctx.config.bare_price_min, ctx.config.bare_price_max
    picked = None
    ignored: List[float] = []
    for m in _BARE_RE.finditer(text):
        value = float(m.group(0))
        if lo <= value <= hi:
            picked = m
        else:
            ignored.append(value)
    if picked is None:
        if ignored:
            return _FamilyMatch([], [], ignored=ignored)
        return None
    return _FamilyMatch([_Raw(float(picked.group(0)), bare=True)], [picked.span()], ignored=ignored)


def _family_leading(text: str, ctx: PriceContext) -> Optional[_FamilyMatch]:
    m = _LEADING_RE.match(text)
    if not m:
        return None
    raw = m.group("amt") or m.group("amt2")
    return _FamilyMatch([_Raw(parse_amount(raw), marker=_marker(m))], [m.span()])


PriceFamily = Callable[[str, PriceContext], Optional[_FamilyMatch]]

# Priority order matters; earlier families are more specific.
PRICE_FAMILIES: Sequence[Tuple[str, PriceFamily]] = (
    ("multi_size", _family_multi_size),
    ("list", _family_list),
    ("paren_size", _family_paren_size),
    ("size", _family_size),
    ("range", _family_range),
    ("trailing", _family_trailing),
    ("bare", _family_bare),
    ("leading", _family_leading),
)


# ── Residual text ────────────────────────────────────

def clean_residual(text: str) -> str:
    """Strip currency words, dot leaders and edge punctuation from a name."""
    out = CURRENCY_RE.sub(" ", text)
    out = _LEADER_RE.sub(" ", out)
    out = _WS_RE.sub(" ", out).strip()
    prev = None
    while prev != out:
        prev = out
        out = _EDGE_JUNK_RE.sub("", out).strip()
    return out


def _cut_spans(text: str, spans: List[Tuple[int, int]]) -> str:
    pieces = []
    pos = 0
    for start, end in sorted(spans):
        pieces.append(text[pos:start])
        pos = max(pos, end)
    pieces.append(text[pos:])
    return " ".join(pieces)


# ── Public API ───────────────────────────────────────

def parse_price_line(
    text: str,
    line_index: int = 0,
    *,
    config: Optional[PipelineConfig] = None,
    currency: Optional[str] = None,
) -> PriceExtraction:
    """
    Run the families over one line. `currency` is the menu's dominant
    currency, used when the line has no explicit marker.
    """
    cfg = config or PipelineConfig()
    ctx = PriceContext(cfg, currency or cfg.default_currency)
    line_currency = find_currency(text)
    discarded: List[float] = []
    ignored: List[float] = []

    for name, family in PRICE_FAMILIES:
        match = family(text, ctx)
        if match is None:
            continue
        ignored.extend(match.ignored)
        valid: List[_Raw] = []
        for raw in match.amounts:
            in_band = cfg.price_min < raw.amount <= cfg.price_max
            if raw.max_amount is not None:
                in_band = in_band and raw.max_amount <= cfg.price_max
            if in_band:
                valid.append(raw)
            else:
                discarded.append(raw.amount)
        if not valid:
            continue

        tokens = []
        for raw in valid:
            code = currency_code(raw.marker) if raw.marker else line_currency
            tokens.append(PriceToken(
                amount=raw.amount,
                currency=code or ctx.currency,
                size=raw.size,
                multi_size=match.multi_size and len(valid) > 1,
                max_amount=raw.max_amount,
                explicit=code is not None,
                bare=raw.bare,
            ))
        if any(t.size for t in tokens):
            tokens = sort_by_size(tokens)
        residual = clean_residual(_cut_spans(text, match.spans))
        group = PriceGroup(tuple(tokens), line_index, name, residual)
        return PriceExtraction(group, discarded, ignored, residual)

    return PriceExtraction(None, discarded, ignored, clean_residual(text))


def extract_prices(
    text: str,
    line_index: int = 0,
    *,
    config: Optional[PipelineConfig] = None,
    currency: Optional[str] = None,
) -> Optional[PriceGroup]:
    """Convenience wrapper: the PriceGroup for a line, or None."""
    return parse_price_line(text, line_index, config=config, currency=currency).group

# menuscan/ai_menu_extract.py
"""
Claude Vision Menu Extraction: secondary (generative) text-acquisition engine.

Sends the menu photo to Claude and expects a JSON object back:

    {"dishes": [{"name": "...", "price": "120/220 บาท", "category": "rice",
                 "confidence": 0.9}, ...],
     "language": "th", "totalDishes": 12}

The response parser is strict: the only transformation applied before
json.loads is removing one surrounding Markdown code fence. Anything that
does not match the contract raises GenerativeParseError; there is no
bracket balancing or other guesswork.

Usage:
    from menuscan.ai_menu_extract import ClaudeVisionEngine

    engine = ClaudeVisionEngine()
    acquisition = engine.acquire("menu.jpg")

Requires ANTHROPIC_API_KEY in environment (loaded via .env).
"""

from __future__ import annotations

import base64
import io
import json
import logging
import math
import mimetypes
import numbers
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import anthropic
from PIL import Image

from .errors import EngineUnavailable, GenerativeParseError, NoTextDetected
from .menu_types import Acquisition, GenerativeDish

log = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

ImageSource = Union[str, Path, bytes, Image.Image]


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------
_SYSTEM_PROMPT = """\
You are a restaurant menu reader. You receive a photo of a printed or \
hand-written menu, most often Thai and/or English.

Rules:
1. List ONLY dishes and drinks that are actually printed on the menu. Never \
invent items, never complete a series ("Special A", "Special B", ...) that \
is not visible, and never add items from other menus.
2. Skip section headings, restaurant names, addresses, phone numbers, \
opening hours and promotional text.
3. For each dish provide:
   - "name": the dish name exactly as printed, in its original script.
   - "price": the price text as printed, e.g. "80", "120/220 บาท", \
"S 40 L 60". Use "Price not shown" when no price is visible.
   - "category": one of "rice", "noodles", "soup", "salad", "appetizer", \
"main", "dessert", "drink", "side".
   - "confidence": 0.0-1.0, how sure you are the item is legible and real.
4. Output ONLY valid JSON:
   {"dishes": [...], "language": "<ISO 639-1 code>", "totalDishes": <int>}
   No markdown, no explanation.\
"""

_USER_PROMPT = "Extract every dish on this menu as JSON."


# ---------------------------------------------------------------------------
# Strict payload parsing
# ---------------------------------------------------------------------------
_FENCE_RE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n(?P<body>.*?)\n?```$", re.DOTALL)


@dataclass(frozen=True)
class GenerativePayload:
    dishes: Tuple[GenerativeDish, ...]
    language: Optional[str] = None
    total_dishes: Optional[int] = None


def strip_code_fence(text: str) -> str:
    """
    Remove one Markdown code fence wrapping the whole text, if present.

    '```json\\n{...}\\n```' -> '{...}'. Text that is not fully wrapped is
    returned stripped but otherwise unchanged.
    """
    stripped = (text or "").strip()
    m = _FENCE_RE.match(stripped)
    return m.group("body").strip() if m else stripped


def _parse_dish(i: int, item: Any) -> GenerativeDish:
    if not isinstance(item, dict):
        raise GenerativeParseError(f"dish {i}: expected an object, got {type(item).__name__}")

    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        raise GenerativeParseError(f"dish {i}: 'name' must be a non-empty string")

    price = item.get("price")
    if price is not None and (isinstance(price, bool) or not isinstance(price, (str, numbers.Real))):
        raise GenerativeParseError(f"dish {i}: 'price' must be a string or number")
    if isinstance(price, numbers.Real) and not math.isfinite(price):
        raise GenerativeParseError(f"dish {i}: 'price' must be finite, got {price}")

    category = item.get("category")
    if category is not None and not isinstance(category, str):
        raise GenerativeParseError(f"dish {i}: 'category' must be a string")

    confidence = item.get("confidence")
    if confidence is not None:
        if isinstance(confidence, bool) or not isinstance(confidence, numbers.Real):
            raise GenerativeParseError(f"dish {i}: 'confidence' must be a number")
        if not 0.0 <= float(confidence) <= 1.0:
            raise GenerativeParseError(f"dish {i}: 'confidence' out of range: {confidence}")
        confidence = float(confidence)

    return GenerativeDish(name=name.strip(), price=price, category=category, confidence=confidence)


def parse_generative_dishes(items: Any) -> List[GenerativeDish]:
    """Validate a list of {name, price, category, confidence} objects."""
    if not isinstance(items, list):
        raise GenerativeParseError("'dishes' must be a list")
    return [_parse_dish(i, it) for i, it in enumerate(items)]


def parse_generative_payload(raw: Union[str, bytes, Dict[str, Any]]) -> GenerativePayload:
    """Parse a generative engine response or raise GenerativeParseError."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="strict")
    if isinstance(raw, str):
        body = strip_code_fence(raw)
        if not body:
            raise GenerativeParseError("empty response")
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise GenerativeParseError(f"invalid JSON: {e}") from e
    else:
        data = raw

    if not isinstance(data, dict):
        raise GenerativeParseError("response must be a JSON object")
    if "dishes" not in data:
        raise GenerativeParseError("response is missing 'dishes'")

    dishes = parse_generative_dishes(data["dishes"])

    language = data.get("language")
    if language is not None and not isinstance(language, str):
        raise GenerativeParseError("'language' must be a string")

    total = data.get("totalDishes")
    if total is not None and (isinstance(total, bool) or not isinstance(total, int)):
        raise GenerativeParseError("'totalDishes' must be an integer")
    if total is not None and total != len(dishes):
        log.info("generative payload says %d dishes but lists %d", total, len(dishes))

    return GenerativePayload(tuple(dishes), (language or None), total)


def payload_text(dishes: Sequence[GenerativeDish]) -> str:
    """Plain-text rendering of generative dishes, one per line."""
    lines = []
    for d in dishes:
        price = "" if d.price is None else f" {d.price}"
        lines.append(f"{d.name}{price}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Image helpers
# ---------------------------------------------------------------------------
def image_payload(source: ImageSource) -> Tuple[bytes, str]:
    """(bytes, media_type) for a path, raw bytes, or PIL image."""
    if isinstance(source, Image.Image):
        buf = io.BytesIO()
        source.save(buf, format="PNG")
        return buf.getvalue(), "image/png"
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
        with Image.open(io.BytesIO(data)) as im:
            fmt = (im.format or "JPEG").lower()
        return data, Image.MIME.get(fmt.upper(), f"image/{fmt}")
    path = Path(source)
    data = path.read_bytes()
    media_type = mimetypes.guess_type(str(path))[0] or "image/jpeg"
    return data, media_type


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
class ClaudeVisionEngine:
    """Secondary engine: slower, costlier, returns pre-structured dishes."""

    name = "claude_vision"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        client: Any = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else os.environ.get("ANTHROPIC_API_KEY", "").strip()
        self._model = model or os.environ.get("MENUSCAN_CLAUDE_MODEL") or DEFAULT_MODEL
        self._max_tokens = max_tokens
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self):
        """Lazy-init Anthropic client."""
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise EngineUnavailable("No Anthropic API key configured")
        self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    def _request(self, data: bytes, media_type: str) -> str:
        client = self._get_client()
        message = client.messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            system=_SYSTEM_PROMPT,
            messages=[{
                "role": "user",
                "content": [
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": media_type,
                            "data": base64.standard_b64encode(data).decode(),
                        },
                    },
                    {"type": "text", "text": _USER_PROMPT},
                ],
            }],
        )
        resp_text = ""
        for block in message.content:
            if hasattr(block, "text"):
                resp_text += block.text
        return resp_text

    def acquire(self, source: ImageSource) -> Acquisition:
        data, media_type = image_payload(source)
        resp_text = self._request(data, media_type)
        if not resp_text.strip():
            raise NoTextDetected("Claude returned an empty response")

        payload = parse_generative_payload(resp_text)
        log.info("Claude extracted %d menu dishes", len(payload.dishes))
        confidences = [d.confidence for d in payload.dishes if d.confidence is not None]
        nominal = round(sum(confidences) / len(confidences), 2) if confidences else 0.0
        return Acquisition(
            text=payload_text(payload.dishes),
            confidence=nominal,
            engine=self.name,
            dishes=payload.dishes,
            language=payload.language,
        )

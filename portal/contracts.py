# portal/contracts.py
from __future__ import annotations
import math
from typing import Any, Dict, Tuple

ParseRequestKeys = {"text", "generativeDishes", "enrich", "language", "timeout"}

def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)

def validate_parse_request(payload: Any) -> Tuple[bool, str]:
    """Shape check for POST /api/menu/parse bodies. Dish fields are checked by the strict parser."""
    if not isinstance(payload, dict):
        return False, "body must be a JSON object"

    unknown = sorted(k for k in payload if k not in ParseRequestKeys)
    if unknown:
        return False, f"unknown keys: {', '.join(unknown)}"

    # text
    text = payload.get("text", "")
    if not isinstance(text, str):
        return False, "text must be a string"

    # generativeDishes
    dishes = payload.get("generativeDishes")
    if dishes is not None and not isinstance(dishes, list):
        return False, "generativeDishes must be a list or null"

    if not text.strip() and not dishes:
        return False, "text or generativeDishes is required"

    if "enrich" in payload and not isinstance(payload["enrich"], bool):
        return False, "enrich must be a boolean"
    if "language" in payload and payload["language"] is not None and not isinstance(payload["language"], str):
        return False, "language must be a string or null"
    if "timeout" in payload and payload["timeout"] is not None:
        if not _is_number(payload["timeout"]) or payload["timeout"] <= 0:
            return False, "timeout must be a positive number"

    return True, ""

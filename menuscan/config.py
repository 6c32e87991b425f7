# menuscan/config.py
"""
Pipeline configuration.

Thresholds here were tuned against sample menus and have no deeper
derivation; treat them as knobs. Every field can be overridden through a
MENUSCAN_* environment variable (or the repo-root .env file).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]

_ENV_PREFIX = "MENUSCAN_"


@dataclass(frozen=True)
class PipelineConfig:
    # Price extraction
    price_min: float = 0.0              # amounts must be strictly greater
    price_max: float = 100000.0
    bare_price_min: float = 15.0
    bare_price_max: float = 3000.0
    default_currency: str = "baht"

    # Association
    association_window: int = 2
    same_line_ceiling: float = 0.9
    bare_number_ceiling: float = 0.75
    distance_decay: float = 0.1
    min_association_confidence: float = 0.45
    no_price_confidence: float = 0.4

    # Deduplication
    similarity_threshold: float = 0.85

    # Validation
    name_min_len: int = 3
    name_max_len: int = 100
    price_ceiling: float = 1000.0
    max_dishes: int = 20
    context_min_hits: int = 1
    generative_default_confidence: float = 0.8

    # Orchestration
    min_dishes: int = 3
    min_confidence: float = 0.5
    stage_timeout_s: float = 30.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "PipelineConfig":
        """
        Build a config from MENUSCAN_<FIELD> variables, e.g.
        MENUSCAN_MIN_DISHES=8 or MENUSCAN_DEFAULT_CURRENCY=usd.
        Unset or blank variables keep the default.
        """
        if env is None:
            if dotenv:
                load_dotenv(ROOT / ".env")
            env = os.environ

        overrides: Dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(_ENV_PREFIX + f.name.upper())
            if raw is None or not raw.strip():
                continue
            overrides[f.name] = _coerce(f.name, f.type, raw.strip())
        return cls(**overrides)


def _coerce(name: str, type_name: Any, raw: str) -> Any:
    # annotations are strings under `from __future__ import annotations`
    kind = type_name if isinstance(type_name, str) else getattr(type_name, "__name__", "str")
    try:
        if kind == "int":
            return int(raw)
        if kind == "float":
            return float(raw)
    except ValueError as e:
        raise ValueError(f"bad value for {_ENV_PREFIX}{name.upper()}: {raw!r}") from e
    return raw.lower() if name == "default_currency" else raw

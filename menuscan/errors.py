# menuscan/errors.py
"""
Error taxonomy for menu extraction.

All of these are owned by the orchestrator: pipeline stages and engines
raise them, the orchestrator turns them into escalation decisions and never
lets them reach the caller.
"""

from __future__ import annotations

from typing import Optional, Tuple


class MenuExtractionError(Exception):
    """Base class for extraction failures inside one engine pass."""


class NoTextDetected(MenuExtractionError):
    """Acquisition produced empty or whitespace-only text."""


class NoDishesAfterValidation(MenuExtractionError):
    """Parsing ran but every candidate was filtered out."""

    def __init__(self, message: str = "no dishes survived validation", rejected: int = 0):
        super().__init__(message)
        self.rejected = rejected


class MenuContextMismatch(MenuExtractionError):
    """Accepted dishes carry two mutually exclusive menu signatures."""

    def __init__(self, signatures: Tuple[str, str], message: Optional[str] = None):
        super().__init__(message or f"menu context mismatch: {signatures[0]} vs {signatures[1]}")
        self.signatures = signatures


class AllEnginesExhausted(MenuExtractionError):
    """Every escalation path failed; the caller gets a degraded result."""


class GenerativeParseError(MenuExtractionError):
    """Generative engine output did not match the expected JSON contract."""


class EngineUnavailable(MenuExtractionError):
    """An engine cannot run (missing binary, missing API key, ...)."""

# menuscan/ocr_engine.py
"""
Text-acquisition engines.

TesseractEngine is the primary engine: fast, local, no structure. It runs
one `--psm 6` pass and, when that pass looks weak (few letters, no prices),
a `--psm 3` pass; the better-scoring text wins. The nominal confidence is
the mean of Tesseract's word-level confidences.

StaticTextEngine / StaticGenerativeEngine wrap text or dishes that were
acquired elsewhere (HTTP callers, CLI, tests) so they can sit in the
orchestrator's engine slots.

engine_health() is what /health reports.
"""

from __future__ import annotations

import io
import logging
import os
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytesseract
from PIL import Image, ImageOps

from .ai_menu_extract import DEFAULT_MODEL, payload_text
from .errors import EngineUnavailable, NoTextDetected
from .menu_types import Acquisition, GenerativeDish

log = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, Image.Image]

DEFAULT_LANG = "tha+eng"
OCR_CONFIG_MAIN = "--oem 3 --psm 6 -c preserve_interword_spaces=1"
OCR_CONFIG_FALLBACK = "--oem 3 --psm 3 -c preserve_interword_spaces=1"

# psm6 is kept unless it scores below these
_MIN_SCORE = 0.48
_MIN_LETTERS = 0.52
# psm3 must beat psm6 by this factor to replace it
_FALLBACK_MARGIN = 1.05

_PRICE_TOKEN = re.compile(r"(?:[$฿€£¥]\s*)?\d{2,4}(?:\.\d{2})?(?:\s*(?:บาท|baht))?", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Pass scoring
# ---------------------------------------------------------------------------
def _letters_ratio(s: str) -> float:
    if not s:
        return 0.0
    letters = sum(1 for c in s if c.isalpha())
    visible = sum(1 for c in s if not c.isspace())
    return letters / max(1, visible)


def _quality_score(s: str) -> float:
    if not s:
        return 0.0
    lr = _letters_ratio(s)
    price_hits = len(_PRICE_TOKEN.findall(s))
    length = max(50, len(s))
    price_component = min(1.0, (price_hits * 8.0) / length)
    return 0.7 * lr + 0.3 * price_component


def _word_confidence(data: Dict[str, List[Any]]) -> float:
    """Mean word confidence (0..1) from image_to_data output; -1 entries are layout rows."""
    confs = []
    for raw, word in zip(data.get("conf", []), data.get("text", [])):
        try:
            c = float(raw)
        except (TypeError, ValueError):
            continue
        if c >= 0 and str(word).strip():
            confs.append(c)
    if not confs:
        return 0.0
    return round(sum(confs) / len(confs) / 100.0, 2)


# ---------------------------------------------------------------------------
# Tesseract location
# ---------------------------------------------------------------------------
def _tesseract_cmd() -> str:
    """Locate the tesseract executable on disk."""
    env_cmd = os.environ.get("TESSERACT_CMD", "").strip()
    if env_cmd:
        return env_cmd

    cmd = getattr(pytesseract.pytesseract, "tesseract_cmd", "") or ""
    if cmd and (Path(cmd).exists() or shutil.which(cmd)):
        return cmd

    which = shutil.which("tesseract") or shutil.which("tesseract.exe") or ""
    if which:
        return which

    for p in (
        r"C:\Program Files\Tesseract-OCR\tesseract.exe",
        r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
    ):
        if Path(p).exists():
            return p

    return ""


def load_image(source: ImageSource) -> Image.Image:
    """PIL image from a path, raw bytes, or an existing image."""
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray)):
        im = Image.open(io.BytesIO(bytes(source)))
    else:
        im = Image.open(Path(source))
    im.load()
    return im


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
class TesseractEngine:
    """Primary engine: Tesseract OCR, Thai + English by default."""

    name = "tesseract"

    def __init__(self, lang: Optional[str] = None, cmd: Optional[str] = None) -> None:
        self.lang = lang or os.environ.get("MENUSCAN_OCR_LANG") or DEFAULT_LANG
        self._cmd = cmd

    def _prepare(self, source: ImageSource) -> Image.Image:
        cmd = self._cmd or _tesseract_cmd()
        if not cmd:
            raise EngineUnavailable("tesseract executable not found")
        pytesseract.pytesseract.tesseract_cmd = cmd

        im = ImageOps.exif_transpose(load_image(source))
        return im.convert("L")

    def _run_pass(self, image: Image.Image, config: str) -> Tuple[str, float]:
        text = pytesseract.image_to_string(image, lang=self.lang, config=config)
        data = pytesseract.image_to_data(
            image, lang=self.lang, config=config, output_type=pytesseract.Output.DICT
        )
        return text.strip(), _word_confidence(data)

    def acquire(self, source: ImageSource) -> Acquisition:
        image = self._prepare(source)

        text_main, conf_main = self._run_pass(image, OCR_CONFIG_MAIN)
        score_main = _quality_score(text_main)
        text_best, conf_best, used = text_main, conf_main, "psm6"

        if score_main < _MIN_SCORE or _letters_ratio(text_main) < _MIN_LETTERS:
            text_fb, conf_fb = self._run_pass(image, OCR_CONFIG_FALLBACK)
            score_fb = _quality_score(text_fb)
            if score_fb > score_main * _FALLBACK_MARGIN:
                text_best, conf_best, used = text_fb, conf_fb, "psm3"
            log.debug("ocr fallback tried (main=%.3f, fb=%.3f) -> using %s", score_main, score_fb, used)
        else:
            log.debug("ocr fallback not needed (main score=%.3f)", score_main)

        if not text_best:
            raise NoTextDetected("tesseract recognized no text")
        log.info("tesseract %s: %d chars, word confidence %.2f", used, len(text_best), conf_best)
        return Acquisition(text=text_best, confidence=conf_best, engine=self.name)


class StaticTextEngine:
    """Hands back text that was recognized elsewhere."""

    name = "static_text"

    def __init__(self, text: str, confidence: float = 1.0, name: Optional[str] = None) -> None:
        self.text = text or ""
        self.confidence = confidence
        if name:
            self.name = name

    def acquire(self, source: Any = None) -> Acquisition:
        if not self.text.strip():
            raise NoTextDetected("no text supplied")
        return Acquisition(text=self.text, confidence=self.confidence, engine=self.name)


class StaticGenerativeEngine:
    """Hands back dishes a generative engine already produced."""

    name = "static_generative"

    def __init__(
        self,
        dishes: Sequence[GenerativeDish],
        language: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        self.dishes = tuple(dishes)
        self.language = language
        if name:
            self.name = name

    def acquire(self, source: Any = None) -> Acquisition:
        text = payload_text(self.dishes)
        confs = [d.confidence for d in self.dishes if d.confidence is not None]
        nominal = round(sum(confs) / len(confs), 2) if confs else 0.0
        return Acquisition(
            text=text,
            confidence=nominal,
            engine=self.name,
            dishes=self.dishes,
            language=self.language,
        )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
def engine_health() -> Dict[str, Any]:
    """
    Report engine availability for /health:
      {
        "tesseract": {"cmd": str|None, "version": str|None, "found_on_disk": bool,
                      "lang": str},
        "claude": {"configured": bool, "model": str}
      }
    """
    cmd = _tesseract_cmd()
    version: Optional[str] = None

    if cmd:
        try:
            pytesseract.pytesseract.tesseract_cmd = cmd
            version = str(pytesseract.get_tesseract_version())
        except Exception as e:
            log.warning("tesseract version check failed: %s", e)
            version = None

    found = bool(cmd) and (Path(cmd).exists() or bool(shutil.which(cmd)))

    return {
        "tesseract": {
            "cmd": cmd or None,
            "version": version,
            "found_on_disk": found,
            "lang": os.environ.get("MENUSCAN_OCR_LANG") or DEFAULT_LANG,
        },
        "claude": {
            "configured": bool(os.environ.get("ANTHROPIC_API_KEY", "").strip()),
            "model": os.environ.get("MENUSCAN_CLAUDE_MODEL") or DEFAULT_MODEL,
        },
    }

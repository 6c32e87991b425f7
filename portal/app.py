# portal/app.py
"""
HTTP surface for menu extraction.

  GET  /health           -> engine availability
  POST /api/menu/parse   -> JSON {text, generativeDishes?, enrich?, language?, timeout?}
  POST /api/menu/scan    -> multipart "image" (jpg/png/webp), optional "enrich"

Every response is {"ok": true, "result": ..., "diagnostics": ...} or
{"ok": false, "error": "..."}. Extraction itself never fails the request:
a menu nobody could read comes back as a degraded result with rawText.
"""

from flask import Flask, jsonify, request

# --- Standard libs & typing ---
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

# safer filename + big-file error handling
from werkzeug.utils import secure_filename
from werkzeug.exceptions import RequestEntityTooLarge

from dotenv import load_dotenv

from menuscan.ai_menu_extract import ClaudeVisionEngine, parse_generative_dishes
from menuscan.config import PipelineConfig
from menuscan.diagnostics import Diagnostics
from menuscan.dish_analyzer import KeywordDishAnalyzer, enrich_dishes
from menuscan.errors import GenerativeParseError
from menuscan.menu_types import MenuResult
from menuscan.ocr_engine import TesseractEngine, engine_health
from menuscan.orchestrator import MenuOrchestrator
from portal.contracts import validate_parse_request

# --- Paths ---
ROOT = Path(__file__).resolve().parents[1]

# --- Load .env (TESSERACT_CMD, ANTHROPIC_API_KEY, MENUSCAN_*) ---
load_dotenv(ROOT / ".env")

logging.basicConfig(
    level=os.getenv("MENUSCAN_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# ------------------------
# App & Config
# ------------------------
app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = 20 * 1024 * 1024        # ~20 MB
app.json.ensure_ascii = False                               # keep Thai readable in responses

ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}


def allowed_image(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_IMAGE_EXTENSIONS


def pipeline_config() -> PipelineConfig:
    return PipelineConfig.from_env(dotenv=False)


def build_text_orchestrator() -> MenuOrchestrator:
    # process_text() supplies its own engines
    return MenuOrchestrator(primary=None, config=pipeline_config())


def build_image_orchestrator() -> MenuOrchestrator:
    claude = ClaudeVisionEngine()
    return MenuOrchestrator(
        primary=TesseractEngine(),
        secondary=claude if claude.configured else None,
        config=pipeline_config(),
    )


def _ok_payload(result: MenuResult, diag: Diagnostics, enrich: bool) -> Dict[str, Any]:
    body = result.to_dict()
    if enrich:
        body["dishes"] = enrich_dishes(result, KeywordDishAnalyzer())
    return {"ok": True, "result": body, "diagnostics": diag.to_dict()}


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


# ------------------------
# Errors
# ------------------------
@app.errorhandler(RequestEntityTooLarge)
def too_large(_e):
    return jsonify({"ok": False, "error": "File too large. Try a smaller image or raise MAX_CONTENT_LENGTH."}), 413


# ------------------------
# Health
# ------------------------
@app.get("/health")
def health():
    return jsonify({"ok": True, "engines": engine_health()})


# ------------------------
# Menu API
# ------------------------
@app.post("/api/menu/parse")
def parse_menu():
    payload = request.get_json(silent=True)
    ok, err = validate_parse_request(payload)
    if not ok:
        return jsonify({"ok": False, "error": err}), 400

    dishes = None
    if payload.get("generativeDishes") is not None:
        try:
            dishes = parse_generative_dishes(payload["generativeDishes"])
        except GenerativeParseError as e:
            return jsonify({"ok": False, "error": f"generativeDishes: {e}"}), 400

    orchestrator = build_text_orchestrator()
    result, diag = orchestrator.process_text(
        payload.get("text", ""),
        generative_dishes=dishes,
        timeout=payload.get("timeout"),
        language=payload.get("language"),
    )
    log.info("parse: %d dishes via %s (%s)", len(result.dishes), result.engine, result.status)
    return jsonify(_ok_payload(result, diag, bool(payload.get("enrich", False))))


@app.post("/api/menu/scan")
def scan_menu():
    if "image" not in request.files:
        return jsonify({"ok": False, "error": "No file field 'image' provided"}), 400
    file = request.files["image"]
    if file.filename == "":
        return jsonify({"ok": False, "error": "Empty filename"}), 400
    name = secure_filename(file.filename) or "upload"
    if not allowed_image(name):
        return jsonify({"ok": False, "error": "Unsupported file type. Allowed: jpg, jpeg, png, webp"}), 400

    data = file.read()
    if not data:
        return jsonify({"ok": False, "error": "Empty upload"}), 400

    orchestrator = build_image_orchestrator()
    result, diag = orchestrator.process(data)
    log.info("scan %s: %d dishes via %s (%s)", name, len(result.dishes), result.engine, result.status)
    return jsonify(_ok_payload(result, diag, _flag(request.form.get("enrich"))))


# ------------------------
# Run
# ------------------------
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=os.getenv("FLASK_DEBUG") == "1")

#!/usr/bin/env python3
"""
Command-line menu extraction.

Examples:
    python scripts/parse_menu.py menu.txt
    python scripts/parse_menu.py menu.txt --generative claude.json --diagnostics
    python scripts/parse_menu.py --image menu.jpg --enrich
    cat menu.txt | python scripts/parse_menu.py -

Prints the MenuResult as JSON (UTF-8, Thai kept readable).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from menuscan.ai_menu_extract import ClaudeVisionEngine, parse_generative_payload  # noqa: E402
from menuscan.config import PipelineConfig  # noqa: E402
from menuscan.dish_analyzer import enrich_dishes  # noqa: E402
from menuscan.errors import GenerativeParseError  # noqa: E402
from menuscan.ocr_engine import TesseractEngine  # noqa: E402
from menuscan.orchestrator import MenuOrchestrator  # noqa: E402

log = logging.getLogger("parse_menu")


def _read_text(arg: str) -> str:
    if arg == "-":
        return sys.stdin.read()
    return Path(arg).read_text(encoding="utf-8")


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Extract dishes from menu text or a menu photo.")
    ap.add_argument("text_file", nargs="?", help="Recognized menu text (use '-' for stdin)")
    ap.add_argument("--image", type=str, help="Menu photo; runs Tesseract, then Claude if configured")
    ap.add_argument("--generative", type=str, help="JSON file with a generative payload ({\"dishes\": [...]})")
    ap.add_argument("--timeout", type=float, default=None, help="Per-stage timeout in seconds")
    ap.add_argument("--enrich", action="store_true", help="Add dish analysis to each dish")
    ap.add_argument("--diagnostics", action="store_true", help="Include per-line diagnostics in the output")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.text_file and not args.image:
        ap.error("give a text file or --image")

    cfg = PipelineConfig.from_env()

    if args.image:
        claude = ClaudeVisionEngine()
        orchestrator = MenuOrchestrator(
            primary=TesseractEngine(),
            secondary=claude if claude.configured else None,
            config=cfg,
        )
        result, diag = orchestrator.process(args.image, timeout=args.timeout)
    else:
        dishes = None
        language = None
        if args.generative:
            try:
                payload = parse_generative_payload(Path(args.generative).read_text(encoding="utf-8"))
            except GenerativeParseError as e:
                log.error("generative payload rejected: %s", e)
                return 2
            dishes, language = list(payload.dishes), payload.language
        orchestrator = MenuOrchestrator(primary=None, config=cfg)
        result, diag = orchestrator.process_text(
            _read_text(args.text_file), generative_dishes=dishes, timeout=args.timeout, language=language
        )

    out = result.to_dict()
    if args.enrich:
        out["dishes"] = enrich_dishes(result)
    if args.diagnostics:
        out["diagnostics"] = diag.to_dict()

    print(json.dumps(out, ensure_ascii=False, indent=2))
    return 0 if not result.degraded else 1


if __name__ == "__main__":
    sys.exit(main())

# menuscan/orchestrator.py
"""
Fallback Orchestrator

    PRIMARY_EXTRACTION ──ok──────────────────────────────> DONE
            │ escalate
            v
    SECONDARY_EXTRACTION ──ok────────────────────────────> DONE
            │ fails
            v
    TERTIARY_RAW_RETURN (no dishes, raw text, degraded) ─> DONE

Escalation out of the primary state happens when the engine fails or times
out, the text is empty, nothing survives validation, the validator flags a
menu-context mismatch, fewer than `min_dishes` dishes remain, or the overall
confidence is below `min_confidence`.

The secondary engine runs at most once. Its result is accepted when at
least one dish survives and the menu context is consistent.

When no secondary engine is configured, a primary result that escalated
only for being sparse or low-confidence is returned as-is; there is nowhere
else to go and the dishes did pass validation.

Every engine call plus its pipeline pass runs on a worker thread with a
per-stage timeout. A stage that overruns is abandoned (never retried) and
writes into its own Diagnostics, which is only merged when the stage
finishes in time, so nothing from a dropped stage leaks into the result.

Callers always get (MenuResult, Diagnostics); no exception escapes.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from .config import PipelineConfig
from .diagnostics import Diagnostics
from .errors import (
    AllEnginesExhausted,
    EngineUnavailable,
    GenerativeParseError,
    MenuContextMismatch,
    MenuExtractionError,
    NoDishesAfterValidation,
    NoTextDetected,
)
from .menu_types import Acquisition, GenerativeDish, MenuResult, PipelineOutcome
from .ocr_engine import StaticGenerativeEngine, StaticTextEngine
from .parsers.script_vocab import detect_language
from .pipeline import run_generative_pipeline, run_text_pipeline
from .scoring.confidence import confidence_tier

log = logging.getLogger(__name__)

PRIMARY_EXTRACTION = "PRIMARY_EXTRACTION"
SECONDARY_EXTRACTION = "SECONDARY_EXTRACTION"
TERTIARY_RAW_RETURN = "TERTIARY_RAW_RETURN"
DONE = "DONE"

# escalation reasons that still leave a validated dish list behind
_SOFT_REASONS = ("sparse", "low_confidence")


@dataclass
class StageResult:
    """What one engine pass produced. `error` is set when the pass failed."""
    engine: str
    acquisition: Optional[Acquisition] = None
    outcome: Optional[PipelineOutcome] = None
    error: Optional[BaseException] = None
    timed_out: bool = False

    @property
    def raw_text(self) -> str:
        return self.acquisition.text if self.acquisition is not None else ""


def _error_reason(exc: BaseException) -> str:
    if isinstance(exc, NoTextDetected):
        return "no_text"
    if isinstance(exc, NoDishesAfterValidation):
        return "no_dishes"
    if isinstance(exc, MenuContextMismatch):
        return "context_mismatch"
    if isinstance(exc, GenerativeParseError):
        return "parse_error"
    if isinstance(exc, EngineUnavailable):
        return "engine_unavailable"
    return "engine_error"


def _engine_name(engine: Any) -> str:
    return getattr(engine, "name", None) or type(engine).__name__


def run_stage(engine: Any, source: Any, cfg: PipelineConfig, diagnostics: Diagnostics) -> StageResult:
    """
    Acquire with `engine` and run the matching pipeline. Never raises:
    taxonomy errors and unexpected engine failures land in `error`.
    """
    result = StageResult(engine=_engine_name(engine))
    try:
        acquisition = engine.acquire(source)
        result.acquisition = acquisition
        if acquisition.dishes is not None:
            result.outcome = run_generative_pipeline(
                acquisition.dishes, config=cfg, diagnostics=diagnostics, language=acquisition.language
            )
        else:
            result.outcome = run_text_pipeline(acquisition.text, config=cfg, diagnostics=diagnostics)
    except MenuExtractionError as e:
        result.error = e
    except Exception as e:
        log.warning("engine %s failed: %s", result.engine, e)
        result.error = e
    return result


class MenuOrchestrator:
    """Runs the primary engine, escalates once, and always resolves to a MenuResult."""

    def __init__(
        self,
        primary: Any,
        secondary: Any = None,
        config: Optional[PipelineConfig] = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.config = config or PipelineConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def process(self, source: Any, timeout: Optional[float] = None) -> Tuple[MenuResult, Diagnostics]:
        return self._run(self.primary, self.secondary, source, timeout)

    def process_text(
        self,
        text: str,
        generative_dishes: Optional[Sequence[GenerativeDish]] = None,
        timeout: Optional[float] = None,
        language: Optional[str] = None,
    ) -> Tuple[MenuResult, Diagnostics]:
        """
        Text that was recognized elsewhere. Supplied generative dishes take
        the secondary slot; otherwise there is no secondary engine.
        """
        primary = StaticTextEngine(text)
        secondary = (
            StaticGenerativeEngine(generative_dishes, language=language, name="generative")
            if generative_dishes is not None
            else None
        )
        return self._run(primary, secondary, None, timeout)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    def _run(
        self,
        primary: Any,
        secondary: Any,
        source: Any,
        timeout: Optional[float],
    ) -> Tuple[MenuResult, Diagnostics]:
        started = time.perf_counter()
        diag = Diagnostics()
        budget = self.config.stage_timeout_s if timeout is None else timeout

        diag.enter(PRIMARY_EXTRACTION)
        first = self._timed_stage(primary, source, budget, diag)
        reason = self._escalation_reason(first)
        if reason is None:
            return self._done(first, diag, started), diag

        diag.escalate(PRIMARY_EXTRACTION, reason)
        self._log_escalation(first, reason)

        second: Optional[StageResult] = None
        if secondary is not None:
            diag.enter(SECONDARY_EXTRACTION)
            second = self._timed_stage(secondary, source, budget, diag)
            if second.outcome is not None:
                return self._done(second, diag, started), diag
            second_reason = self._escalation_reason(second) or "failed"
            diag.escalate(SECONDARY_EXTRACTION, second_reason)
            self._log_escalation(second, second_reason)
        elif reason in _SOFT_REASONS and first.outcome is not None:
            diag.add("orchestrator", "kept_primary", reason=reason, secondary=None)
            return self._done(first, diag, started), diag

        diag.enter(TERTIARY_RAW_RETURN)
        stages = [s for s in (first, second) if s is not None]
        return self._tertiary(stages, diag, started), diag

    def _timed_stage(self, engine: Any, source: Any, budget: float, diag: Diagnostics) -> StageResult:
        name = _engine_name(engine)
        stage_diag = Diagnostics()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="menuscan-stage")
        try:
            future = executor.submit(run_stage, engine, source, self.config, stage_diag)
            try:
                result = future.result(timeout=budget if budget and budget > 0 else None)
            except FuturesTimeout:
                log.warning("engine %s exceeded stage timeout of %.1fs", name, budget)
                diag.add("orchestrator", "stage_timeout", engine=name, timeout_s=budget)
                return StageResult(engine=name, timed_out=True)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        diag.records.extend(stage_diag.records)
        if result.error is not None:
            diag.add("orchestrator", "stage_failed", engine=name,
                     error=type(result.error).__name__, error_text=str(result.error))
        elif result.outcome is not None:
            diag.add("orchestrator", "stage_result", engine=name,
                     dishes=len(result.outcome.dishes), confidence=result.outcome.confidence,
                     tier=confidence_tier(result.outcome.confidence))
        return result

    def _escalation_reason(self, stage: StageResult) -> Optional[str]:
        if stage.timed_out:
            return "timeout"
        if stage.error is not None:
            return _error_reason(stage.error)
        if stage.outcome is None:
            return "no_dishes"
        if len(stage.outcome.dishes) < self.config.min_dishes:
            return "sparse"
        if stage.outcome.confidence < self.config.min_confidence:
            return "low_confidence"
        return None

    def _log_escalation(self, stage: StageResult, reason: str) -> None:
        if reason == "context_mismatch":
            sigs = getattr(stage.error, "signatures", ())
            log.warning("menu context mismatch from %s (%s); the wrong source was likely read",
                        stage.engine, " vs ".join(sigs))
        elif reason in _SOFT_REASONS and stage.outcome is not None:
            log.info("escalating after %s: %s (%d dishes, confidence %.2f)",
                     stage.engine, reason, len(stage.outcome.dishes), stage.outcome.confidence)
        else:
            log.info("escalating after %s: %s", stage.engine, reason)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int(round((time.perf_counter() - started) * 1000))

    def _done(self, stage: StageResult, diag: Diagnostics, started: float) -> MenuResult:
        diag.enter(DONE)
        outcome = stage.outcome
        assert outcome is not None
        return MenuResult(
            dishes=tuple(outcome.dishes),
            language=outcome.language,
            confidence=outcome.confidence,
            processing_time_ms=self._elapsed_ms(started),
            raw_text=stage.raw_text,
            engine=stage.engine,
            status="ok",
        )

    def _tertiary(self, stages: Sequence[StageResult], diag: Diagnostics, started: float) -> MenuResult:
        exhausted = AllEnginesExhausted("every extraction engine failed; returning raw text")
        diag.add("orchestrator", "all_engines_exhausted", error_text=str(exhausted),
                 engines=[s.engine for s in stages])
        log.info("all engines exhausted after %d stage(s)", len(stages))

        best = next((s for s in stages if s.raw_text.strip()), None)
        raw_text = best.raw_text if best is not None else ""
        lines = [ln for ln in raw_text.splitlines() if ln.strip()]

        diag.enter(DONE)
        return MenuResult(
            dishes=(),
            language=detect_language(lines),
            confidence=0.0,
            processing_time_ms=self._elapsed_ms(started),
            raw_text=raw_text,
            engine=best.engine if best is not None else "none",
            status="degraded",
        )

# menuscan/diagnostics.py
"""
Per-request diagnostics value.

Created by the caller (usually the orchestrator), threaded through every
stage, and handed back next to the MenuResult the same way the OCR facade
returns (payload, debug_payload). Nothing here is process-wide.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagnosticRecord:
    stage: str
    message: str
    line: Optional[int] = None
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"stage": self.stage, "message": self.message}
        if self.line is not None:
            out["line"] = self.line
        if self.detail:
            out["detail"] = dict(self.detail)
        return out


@dataclass
class Diagnostics:
    records: List[DiagnosticRecord] = field(default_factory=list)
    states: List[str] = field(default_factory=list)
    escalations: List[Dict[str, str]] = field(default_factory=list)

    def add(self, stage: str, message: str, line: Optional[int] = None, **detail: Any) -> None:
        self.records.append(DiagnosticRecord(stage, message, line, detail))
        log.debug("[%s] %s line=%s %s", stage, message, line, detail or "")

    def enter(self, state: str) -> None:
        self.states.append(state)

    def escalate(self, from_state: str, reason: str) -> None:
        self.escalations.append({"from": from_state, "reason": reason})

    def for_stage(self, stage: str) -> List[DiagnosticRecord]:
        return [r for r in self.records if r.stage == stage]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "states": list(self.states),
            "escalations": list(self.escalations),
            "records": [r.to_dict() for r in self.records],
        }

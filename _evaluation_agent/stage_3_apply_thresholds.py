"""
Stage 3: Apply Thresholds — REST Lens Evaluation Action

Turns the violation counts into the pass/fail gate:

    failed = (fail_on_error and errors > 0) or (fail_on_warning and warnings > 0)

Info-level violations never fail the gate. Each severity threshold is an
independent on/off switch, not a count limit.
"""

from dataclasses import dataclass, field
from typing import List

from .violation_model import ViolationSummary


@dataclass(frozen=True)
class GateDecision:
    passed: bool
    reasons: List[str] = field(default_factory=list)

    @property
    def failure_message(self) -> str:
        return f"Evaluation failed: {', '.join(self.reasons)}" if self.reasons else ""


def apply_thresholds(
    summary: ViolationSummary,
    fail_on_error: bool = True,
    fail_on_warning: bool = False
) -> GateDecision:
    reasons = []
    if fail_on_error and summary.error_count > 0:
        reasons.append(f"{summary.error_count} error(s)")
    if fail_on_warning and summary.warning_count > 0:
        reasons.append(f"{summary.warning_count} warning(s)")
    return GateDecision(passed=not reasons, reasons=reasons)

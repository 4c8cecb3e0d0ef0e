"""
Violation Model & Aggregator — REST Lens Evaluation Action

PURPOSE:
    The shared data shapes every stage passes around, plus the two pure
    transformations on them:

      1. flatten_violations_with_lines() — turn the nested violations that
         REST Lens returns into one FlatViolation per location, each with a
         concrete 1-based line number in the uploaded document.
      2. build_violation_summary() — count violations per severity.

    Nothing in this file does I/O.

WIRE SHAPE (what REST Lens returns per rule):
    {
      "ruleId": "operation-description",
      "ruleName": "Operations must have a description",
      "severity": "warning",
      "message": "...",                       # rule-level message (optional)
      "locations": [                          # one entry per hit
        {"path": "/paths/~1pets/get", "message": "..."}
      ]
    }

    A flat entry carrying its own "path" (or "pointer") and "message"
    instead of "locations" is treated as a single-location rule.

DESIGN DECISIONS:
    - Severity is a closed enum with a rank so display order is stable.
      Unknown severities count as INFO, matching how the counters always
      treated "neither error nor warning".
    - ViolationSummary is frozen. It is built once from a finished list and
      its total is derived from the three counters, so the invariant
      total == error + warning + info holds by construction.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

from .line_locator import FALLBACK_LINE, LineLocator

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Higher is more severe: error > warning > info."""
        return _SEVERITY_RANK[self]

    @property
    def annotation_command(self) -> str:
        return _ANNOTATION_COMMANDS[self]

    @classmethod
    def parse(cls, value) -> "Severity":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.debug(f"Unknown severity {value!r}, counting as info")
            return cls.INFO


_SEVERITY_RANK = {Severity.ERROR: 3, Severity.WARNING: 2, Severity.INFO: 1}

_ANNOTATION_COMMANDS = {
    Severity.ERROR: "::error",
    Severity.WARNING: "::warning",
    Severity.INFO: "::notice",
}


@dataclass(frozen=True)
class ViolationLocation:
    pointer: object = None
    message: Optional[str] = None


@dataclass(frozen=True)
class RawViolation:
    """One rule's result as reported by REST Lens, before line resolution."""

    rule_id: str
    rule_name: str
    severity: str
    message: str = ""
    locations: tuple = ()

    @classmethod
    def from_payload(cls, payload: dict) -> "RawViolation":
        rule_id = str(payload.get("ruleId") or payload.get("rule_id") or "")
        rule_name = str(payload.get("ruleName") or payload.get("rule_name") or rule_id)
        message = str(payload.get("message") or "")

        raw_locations = payload.get("locations")
        if isinstance(raw_locations, list):
            locations = tuple(
                ViolationLocation(
                    pointer=_pointer_of(item),
                    message=item.get("message"),
                )
                for item in raw_locations
                if isinstance(item, dict)
            )
        else:
            locations = (ViolationLocation(pointer=_pointer_of(payload)),)

        return cls(
            rule_id=rule_id,
            rule_name=rule_name,
            severity=str(payload.get("severity") or Severity.INFO.value),
            message=message,
            locations=locations,
        )


@dataclass(frozen=True)
class FlatViolation:
    rule_id: str
    rule_name: str
    severity: Severity
    message: str
    line: int = FALLBACK_LINE
    pointer: object = None

    def __post_init__(self):
        if self.line < FALLBACK_LINE:
            object.__setattr__(self, "line", FALLBACK_LINE)

    def annotation(self, file_path: str) -> str:
        """The workflow-command line GitHub turns into a build annotation."""
        return (
            f"{self.severity.annotation_command} "
            f"file={file_path}:{self.line}::{self.rule_name}: {self.message}"
        )

    def to_inline_payload(self, path: str) -> dict:
        return {
            "path": path,
            "line": self.line,
            "ruleId": self.rule_id,
            "ruleName": self.rule_name,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class ViolationSummary:
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    total: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self, "total", self.error_count + self.warning_count + self.info_count
        )

    def count_for(self, severity: Severity) -> int:
        return {
            Severity.ERROR: self.error_count,
            Severity.WARNING: self.warning_count,
            Severity.INFO: self.info_count,
        }[severity]

    def to_payload(self) -> dict:
        return {
            "totalViolations": self.total,
            "errorCount": self.error_count,
            "warningCount": self.warning_count,
            "infoCount": self.info_count,
        }


def build_violation_summary(violations: Iterable[FlatViolation]) -> ViolationSummary:
    counts = {Severity.ERROR: 0, Severity.WARNING: 0, Severity.INFO: 0}
    for violation in violations:
        counts[violation.severity] += 1
    return ViolationSummary(
        error_count=counts[Severity.ERROR],
        warning_count=counts[Severity.WARNING],
        info_count=counts[Severity.INFO],
    )


def flatten_violations_with_lines(
    raw_violations: Iterable[RawViolation],
    content: str,
) -> List[FlatViolation]:
    """
    Expand each rule's locations into FlatViolations with line numbers.

    The document is parsed once per call. Callers must pass the same text
    that was uploaded, otherwise the lines point at the wrong place.
    """
    locator = LineLocator(content)
    flat = []
    for raw in raw_violations:
        severity = Severity.parse(raw.severity)
        for location in raw.locations or (ViolationLocation(),):
            flat.append(
                FlatViolation(
                    rule_id=raw.rule_id,
                    rule_name=raw.rule_name,
                    severity=severity,
                    message=location.message or raw.message,
                    line=locator.line_for(location.pointer),
                    pointer=location.pointer,
                )
            )
    return flat


def sort_violations(violations: Iterable[FlatViolation]) -> List[FlatViolation]:
    """Most severe first, then by line."""
    return sorted(violations, key=lambda v: (-v.severity.rank, v.line, v.rule_id))


def _pointer_of(item: dict):
    for key in ("path", "pointer", "jsonPointer"):
        if item.get(key) is not None:
            return item[key]
    return None

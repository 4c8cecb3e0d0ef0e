"""
Stage 2: Evaluate Spec Files — REST Lens Evaluation Action

PURPOSE:
    Resolve the `spec-path` glob, run every matched file through Stage 1,
    and fold the answers into one BatchResult for the pipeline main.

    For each file, in sorted order:
      1. Read the file (UTF-8)
      2. Upload + wait (Stage 1)
      3. Resolve violations to line numbers against the SAME text that was
         uploaded
      4. Log one annotation line per violation right away, most severe
         first

CALLED BY:
    evaluation_pipeline_main.py

DESIGN DECISIONS:
    - Files are evaluated strictly one after another. This bounds load on
      REST Lens and keeps log output reproducible for a given input set.
    - Annotations are streamed as soon as a file is resolved, not after the
      whole batch. If file 3 of 5 fails, files 1 and 2 still show up in
      the log.
    - No partial success: the first error from Stage 1 aborts the batch
      and propagates unchanged.
    - Only the LAST file's evaluation URL is kept. One representative link
      is all the action reports (known limitation).
    - Zero matched files is a hard NoMatchError, raised before any network
      call. Evaluating nothing is never a meaningful pass.
"""

import glob
import logging
import os
from dataclasses import dataclass, field
from typing import List

from .errors import NoMatchError, SpecReadError
from .stage_1_upload_and_evaluate import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    evaluate_specification,
)
from .violation_model import (
    FlatViolation,
    ViolationSummary,
    build_violation_summary,
    flatten_violations_with_lines,
    sort_violations,
)

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    spec_files: List[str] = field(default_factory=list)
    violations: List[FlatViolation] = field(default_factory=list)
    evaluation_url: str = ""

    @property
    def summary(self) -> ViolationSummary:
        return build_violation_summary(self.violations)


def find_spec_files(pattern: str) -> List[str]:
    """Expand the glob to regular files only, sorted."""
    matches = sorted(
        path for path in glob.glob(pattern, recursive=True) if os.path.isfile(path)
    )
    if not matches:
        raise NoMatchError(pattern)
    return matches


def read_spec_file(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SpecReadError(path, str(e)) from e


def evaluate_spec_files(
    spec_pattern: str,
    api_url: str,
    api_token: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
) -> BatchResult:
    """
    Evaluate every file matching `spec_pattern`.

    This is the ONLY public entry point for the batch. It raises whatever
    Stage 1 raises for the first file that fails.
    """
    spec_files = find_spec_files(spec_pattern)
    logger.info(f"Found {len(spec_files)} specification file(s)")

    batch = BatchResult(spec_files=spec_files)

    for spec_file in spec_files:
        logger.info(f"\nEvaluating: {spec_file}")

        spec_content = read_spec_file(spec_file)

        result = evaluate_specification(
            api_url,
            api_token,
            spec_file,
            spec_content,
            max_attempts=max_attempts,
            interval_seconds=interval_seconds,
        )

        flat_violations = sort_violations(
            flatten_violations_with_lines(result.violations, spec_content)
        )
        if not flat_violations:
            logger.info("  No violations found")

        for violation in flat_violations:
            logger.info(violation.annotation(spec_file))

        batch.violations.extend(flat_violations)
        batch.evaluation_url = result.evaluation_url

    return batch

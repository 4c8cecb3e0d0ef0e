"""
Evaluation Pipeline Main — REST Lens Evaluation Action

PURPOSE:
    The entry point the action runs. It sequences the stages and makes the
    final pass/fail decision:

      1. Read inputs, mask the API token
      2. Stage 2: evaluate every matched spec file (uses Stage 1 per file)
      3. Set the count outputs and the evaluation URL
      4. Stage 4: post PR feedback (pull requests only, best effort)
      5. Stage 3: apply the fail-on-error / fail-on-warning gate
      6. Set `passed`, print the summary block
      7. Fail the step if the gate failed

CALLED BY:
    action.yml, `python -m _evaluation_agent`, or the `restlens-evaluate`
    console script.

DESIGN DECISIONS:
    - Outputs are set BEFORE the step is marked failed, so downstream steps
      with `if: always()` can still read the counts.
    - Stage 4 failures are caught right here, at one boundary, and logged as
      a warning. The gate only looks at the violation counts.
    - Any fatal error (no files, upload rejected, evaluation failed, timeout,
      polling error, bad input) ends the run with that error's message as
      the step failure. Annotations already logged for earlier files stay
      in the log.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from . import actions_runtime
from .actions_runtime import EventContext
from .errors import EvaluationRunError, FeedbackError
from .run_config import RunConfig, parse_args
from .stage_2_evaluate_spec_files import BatchResult, evaluate_spec_files
from .stage_3_apply_thresholds import apply_thresholds
from .stage_4_post_pr_feedback import post_pr_feedback, pull_request_feedback_target
from .violation_model import Severity, ViolationSummary

logger = logging.getLogger(__name__)

SUMMARY_RULE = "=" * 60
SUMMARY_LABELS = (
    (Severity.ERROR, "Errors"),
    (Severity.WARNING, "Warnings"),
    (Severity.INFO, "Info"),
)


@dataclass
class RunResult:
    summary: Optional[ViolationSummary] = None
    evaluation_url: str = ""
    passed: Optional[bool] = None
    comment_url: Optional[str] = None
    failure_message: Optional[str] = None
    outputs: Dict[str, str] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 1 if self.failure_message else 0


def run(config: RunConfig, context: EventContext) -> RunResult:
    """Run the whole evaluation. Never raises for expected failures."""
    result = RunResult()
    actions_runtime.set_secret(config.api_token)

    try:
        batch = evaluate_spec_files(
            config.spec_path,
            config.api_url,
            config.api_token,
            max_attempts=config.poll_max_attempts,
            interval_seconds=config.poll_interval_seconds,
        )
    except EvaluationRunError as e:
        return _fail(result, str(e))

    summary = batch.summary
    result.summary = summary
    result.evaluation_url = batch.evaluation_url

    _publish(result, "total-violations", summary.total)
    _publish(result, "error-count", summary.error_count)
    _publish(result, "warning-count", summary.warning_count)
    _publish(result, "info-count", summary.info_count)
    _publish(result, "evaluation-url", batch.evaluation_url)

    if context.is_pull_request and config.wants_pr_feedback:
        _post_feedback(result, config, context, batch, summary)

    decision = apply_thresholds(summary, config.fail_on_error, config.fail_on_warning)
    result.passed = decision.passed
    _publish(result, "passed", decision.passed)

    _log_summary(summary, batch.evaluation_url)

    if not decision.passed:
        return _fail(result, decision.failure_message)
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    actions_runtime.configure_logging()
    args = parse_args(argv)

    try:
        config = RunConfig.from_inputs(args)
    except EvaluationRunError as e:
        return _fail(RunResult(), str(e)).exit_code

    context = EventContext.from_environment()
    return run(config, context).exit_code


# ---------------------------------------------------------------------------
# PRIVATE HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def _post_feedback(
    result: RunResult,
    config: RunConfig,
    context: EventContext,
    batch: BatchResult,
    summary: ViolationSummary
) -> None:
    try:
        target = pull_request_feedback_target(context)
        if target is None:
            logger.debug("No pull request number in the event payload, skipping PR feedback")
            return
        pull_number, commit_sha = target

        logger.info("\nPosting PR feedback...")
        feedback = post_pr_feedback(
            config.api_url,
            config.api_token,
            context.owner,
            context.repo,
            pull_number,
            commit_sha,
            batch.spec_files[0],
            summary,
            batch.violations,
            config.post_inline_comments,
        )
    except FeedbackError as e:
        logger.warning(str(e))
        return

    if not feedback.success:
        logger.debug("REST Lens accepted the PR feedback request but reported it as unsuccessful")

    if feedback.comment_url:
        result.comment_url = feedback.comment_url
        _publish(result, "comment-url", feedback.comment_url)
        logger.info(f"PR comment posted: {feedback.comment_url}")

    if feedback.review_url:
        logger.info(f"PR review created: {feedback.review_url}")


def _publish(result: RunResult, name: str, value) -> None:
    actions_runtime.set_output(name, value)
    result.outputs[name] = actions_runtime.format_output_value(value)


def _log_summary(summary: ViolationSummary, evaluation_url: str) -> None:
    logger.info("\n" + SUMMARY_RULE)
    logger.info("REST Lens Evaluation Summary")
    logger.info(SUMMARY_RULE)
    logger.info(f"Total violations: {summary.total}")
    for severity, label in SUMMARY_LABELS:
        count = summary.count_for(severity)
        if count > 0:
            logger.info(f"  {label}: {count}")
    logger.info(f"\nView full results: {evaluation_url}")
    logger.info(SUMMARY_RULE)


def _fail(result: RunResult, message: str) -> RunResult:
    logger.error(message)
    result.failure_message = message
    return result


if __name__ == "__main__":
    sys.exit(main())

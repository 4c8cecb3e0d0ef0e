"""
Stage 4: Post PR Feedback — REST Lens Evaluation Action

PURPOSE:
    When the workflow runs for a pull request, hand the aggregated results
    to the REST Lens GitHub App so it can post a summary comment and,
    optionally, an inline review on the PR. The GitHub App does all the
    Markdown rendering; this stage only builds the request.

CALLED BY:
    evaluation_pipeline_main.py — only when the event is a pull request,
    either post-pr-comment or post-inline-comments is on, and a PR number
    is present in the event payload.

EXTERNAL APIS USED:
    - POST /github-app/pr-feedback

DESIGN DECISIONS:
    - BEST EFFORT. Every failure (HTTP error, network error, unreadable
      reply) surfaces as FeedbackError and nothing else, so the caller has
      exactly one exception type to downgrade to a warning. Not being able
      to comment on a PR is never a reason to block the merge gate.
    - All inline violations are pinned to ONE file path: the first
      evaluated spec file. Multi-file PR annotation targeting is a known
      limitation, not a bug.
    - The head SHA comes from the pull_request payload. If the payload has
      none we fall back to the run's own GITHUB_SHA.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import requests

from .actions_runtime import EventContext
from .errors import FeedbackError
from .restlens_api import RestLensAPI
from .violation_model import FlatViolation, ViolationSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PRFeedbackResult:
    success: bool
    comment_url: Optional[str] = None
    review_url: Optional[str] = None
    violation_count: int = 0


def pull_request_feedback_target(context: EventContext) -> Optional[Tuple[int, str]]:
    """
    Return (pull_number, commit_sha) when the run can comment on a PR.

    Push, schedule and manual runs return None, as does a PR event whose
    payload carries no PR number.
    """
    if not context.is_pull_request:
        return None

    pull_request = context.payload.get("pull_request") or {}
    pull_number = pull_request.get("number")
    if not pull_number:
        return None

    head = pull_request.get("head") or {}
    commit_sha = head.get("sha") or context.sha
    try:
        return int(pull_number), commit_sha
    except (TypeError, ValueError) as e:
        raise FeedbackError(f"unusable pull request number: {pull_number!r}") from e


def post_pr_feedback(
    api_url: str,
    api_token: str,
    owner: str,
    repo: str,
    pull_number: int,
    commit_sha: str,
    spec_file_path: str,
    summary: ViolationSummary,
    inline_violations: Iterable[FlatViolation],
    post_inline_comments: bool
) -> PRFeedbackResult:
    """
    Send the summary and violations for one PR to REST Lens.

    Args:
        spec_file_path: Path every inline violation is attached to.
        inline_violations: All flattened violations of the run, with lines.
        post_inline_comments: Whether the GitHub App should open a review
            with line comments in addition to the summary comment.

    Raises:
        FeedbackError: for any failure. The caller downgrades it to a
            warning.
    """
    payload = build_feedback_payload(
        owner,
        repo,
        pull_number,
        commit_sha,
        spec_file_path,
        summary,
        inline_violations,
        post_inline_comments,
    )

    logger.debug(f"Posting feedback for {owner}/{repo}#{pull_number} at {commit_sha}")

    api = RestLensAPI(api_url, api_token)
    try:
        resp = api.post_pr_feedback(payload)
    except requests.RequestException as e:
        raise FeedbackError(str(e)) from e

    if not resp.ok:
        raise FeedbackError(resp.text, status_code=resp.status_code)

    try:
        body = resp.json()
    except ValueError as e:
        raise FeedbackError(f"unreadable response body: {resp.text}") from e
    if not isinstance(body, dict):
        raise FeedbackError(f"unexpected response body: {body!r}")

    try:
        return PRFeedbackResult(
            success=bool(body.get("success", True)),
            comment_url=_optional_url(body.get("commentUrl")),
            review_url=_optional_url(body.get("reviewUrl")),
            violation_count=int(body.get("violationCount") or 0),
        )
    except (TypeError, ValueError) as e:
        raise FeedbackError(f"unexpected response body: {body!r}") from e


def build_feedback_payload(
    owner: str,
    repo: str,
    pull_number: int,
    commit_sha: str,
    spec_file_path: str,
    summary: ViolationSummary,
    inline_violations: Iterable[FlatViolation],
    post_inline_comments: bool
) -> dict:
    return {
        "owner": owner,
        "repo": repo,
        "pullNumber": pull_number,
        "commitSha": commit_sha,
        "specFilePath": spec_file_path,
        "summary": summary.to_payload(),
        "inlineViolations": [v.to_inline_payload(spec_file_path) for v in inline_violations],
        "postInlineComments": post_inline_comments,
    }


def _optional_url(value) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise TypeError(f"expected a URL string, got {value!r}")
    return value

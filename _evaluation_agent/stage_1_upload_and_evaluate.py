"""
Stage 1: Upload & Evaluate — REST Lens Evaluation Action

PURPOSE:
    Take ONE specification document, upload it to REST Lens with
    evaluation switched on, and block until the service has finished
    evaluating it. The asynchronous server-side job becomes a plain
    synchronous call for the batch stage:

        submit_specification()  ->  EvaluationJob
        await_evaluation()      ->  list[RawViolation]
        evaluate_specification() does both and builds the results URL.

CALLED BY:
    stage_2_evaluate_spec_files.py — once per matched spec file, in order.

EXTERNAL APIS USED:
    - POST /v1/specifications
    - GET  /v1/specifications/{id}/violations

POLLING STATE MACHINE:
    After a successful upload the job is "submitted". Each poll returns one
    of four statuses:

        404 / pending / in_progress  -> still submitted: sleep, poll again
        ready                        -> done, return the violations
        failed                       -> EvaluationError (service's reason)

    Anything else (5xx, 401, a body we cannot read, a status we do not
    know) is a RequestError and is NOT retried. Running out of attempts
    while still submitted is an EvaluationTimeoutError.

DESIGN DECISIONS:
    - Fixed interval, bounded attempts (default 2s x 60 = ~2 minutes), no
      exponential backoff. Evaluations finish in seconds to low minutes and
      an unbounded loop would hang CI forever on a stuck job.
    - A 404 on the violations endpoint means the evaluation artifact does
      not exist YET. It costs one attempt like "pending" does.
    - We do not sleep after the final attempt; there is nothing left to
      wait for.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

import requests

from .errors import EvaluationError, EvaluationTimeoutError, RequestError, UploadError
from .restlens_api import RestLensAPI
from .violation_model import RawViolation

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_SECONDS = 2.0


class EvaluationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class PollResult:
    """One poll of the violations endpoint, already classified."""

    status: EvaluationStatus
    violations: tuple = ()
    error: Optional[str] = None


@dataclass(frozen=True)
class EvaluationJob:
    spec_version_id: str
    file_path: str
    content: str = field(repr=False)
    project_slug: str = ""
    organization_slug: str = ""


@dataclass(frozen=True)
class EvaluationResult:
    spec_version_id: str
    violations: List[RawViolation]
    evaluation_url: str


def submit_specification(
    api_url: str,
    api_token: str,
    filename: str,
    content: str
) -> EvaluationJob:
    """
    Upload one spec with evaluate=true.

    Only the basename is sent as the filename; the full path stays on the
    job for annotations. Raises UploadError with the service's response
    body verbatim when the upload is rejected.
    """
    api = RestLensAPI(api_url, api_token)
    try:
        resp = api.upload_specification(os.path.basename(filename), content)
    except requests.RequestException as e:
        raise UploadError(str(e)) from e

    if not resp.ok:
        raise UploadError(resp.text, status_code=resp.status_code)

    try:
        body = resp.json()
        spec_version_id = str(body["specificationVersionId"])
    except (ValueError, KeyError, TypeError) as e:
        raise UploadError(f"unexpected upload response: {resp.text}") from e

    logger.debug(f"Uploaded {filename} as specification version {spec_version_id}")

    return EvaluationJob(
        spec_version_id=spec_version_id,
        file_path=filename,
        content=content,
        project_slug=str(body.get("projectSlug") or ""),
        organization_slug=str(body.get("organizationSlug") or ""),
    )


def await_evaluation(
    api_url: str,
    api_token: str,
    job: EvaluationJob,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
) -> List[RawViolation]:
    """
    Poll the violations endpoint until the job is ready or failed.

    Makes at most `max_attempts` requests, sleeping `interval_seconds`
    between consecutive ones.
    """
    api = RestLensAPI(api_url, api_token)

    for attempt in range(1, max_attempts + 1):
        result = _poll_once(api, job.spec_version_id)

        if result.status == EvaluationStatus.READY:
            return list(result.violations)

        if result.status == EvaluationStatus.FAILED:
            raise EvaluationError(result.error or "Unknown error")

        logger.debug(
            f"Evaluation {job.spec_version_id} is {result.status.value} "
            f"(attempt {attempt}/{max_attempts})"
        )
        if attempt < max_attempts:
            time.sleep(interval_seconds)

    raise EvaluationTimeoutError(job.spec_version_id, max_attempts)


def evaluate_specification(
    api_url: str,
    api_token: str,
    filename: str,
    content: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
) -> EvaluationResult:
    """Upload, wait, and return violations plus the dashboard URL."""
    job = submit_specification(api_url, api_token, filename, content)
    violations = await_evaluation(
        api_url,
        api_token,
        job,
        max_attempts=max_attempts,
        interval_seconds=interval_seconds,
    )
    return EvaluationResult(
        spec_version_id=job.spec_version_id,
        violations=violations,
        evaluation_url=build_evaluation_url(api_url, job),
    )


def build_evaluation_url(api_url: str, job: EvaluationJob) -> str:
    """
    Dashboard URL for the job's project.

    The dashboard lives on the API host minus its "api" marker: an "api."
    host prefix or a trailing "/api" path segment.
        https://api.restlens.dev       -> https://restlens.dev
        https://lens.example.com/api   -> https://lens.example.com
    """
    parts = urlsplit((api_url or "").rstrip("/"))
    host = parts.netloc[len("api."):] if parts.netloc.startswith("api.") else parts.netloc
    path = parts.path[:-len("/api")] if parts.path.endswith("/api") else parts.path
    base_url = urlunsplit((parts.scheme, host, path, "", ""))

    project = quote(job.project_slug, safe="!~*'()")
    return f"{base_url}/organizations/{job.organization_slug}/projects/{project}"


# ---------------------------------------------------------------------------
# PRIVATE HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def _poll_once(api: RestLensAPI, spec_version_id: str) -> PollResult:
    try:
        resp = api.get_violations(spec_version_id)
    except requests.RequestException as e:
        raise RequestError(str(e)) from e

    if resp.status_code == 404:
        return PollResult(status=EvaluationStatus.PENDING)

    if not resp.ok:
        raise RequestError(resp.text, status_code=resp.status_code)

    try:
        body = resp.json()
    except ValueError as e:
        raise RequestError(f"unreadable response body: {resp.text}") from e

    return _parse_poll_body(body)


def _parse_poll_body(body) -> PollResult:
    if not isinstance(body, dict):
        raise RequestError(f"unexpected response body: {body!r}")

    try:
        status = EvaluationStatus(body.get("status"))
    except ValueError:
        raise RequestError(f"unknown evaluation status: {body.get('status')!r}")

    if status == EvaluationStatus.READY:
        violations = tuple(
            RawViolation.from_payload(item)
            for item in (body.get("violations") or [])
            if isinstance(item, dict)
        )
        return PollResult(status=status, violations=violations)

    if status == EvaluationStatus.FAILED:
        return PollResult(status=status, error=body.get("error") or None)

    return PollResult(status=status)

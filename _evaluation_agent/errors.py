"""
Error Taxonomy — REST Lens Evaluation Action

PURPOSE:
    Every way the evaluation run can stop early has its own exception class
    here, so the pipeline main can turn any of them into a single step
    failure message without string matching.

    FATAL (abort the batch and fail the step):
      ConfigError             — action inputs are missing or malformed
      NoMatchError            — the spec-path glob matched zero files
      SpecReadError           — a matched file is unreadable or not UTF-8
      UploadError             — REST Lens rejected the upload
      EvaluationError         — REST Lens reported the evaluation as failed
      EvaluationTimeoutError  — polling ran out of attempts
      RequestError            — unexpected HTTP failure while polling

    NON-FATAL:
      FeedbackError           — posting PR feedback failed

DESIGN DECISIONS:
    - FeedbackError deliberately does NOT inherit from EvaluationRunError.
      The pipeline main catches EvaluationRunError as "the run failed", and
      a PR comment that could not be posted must never be caught there.
"""


class EvaluationRunError(Exception):
    """Base class for errors that fail the whole evaluation run."""


class ConfigError(EvaluationRunError):
    pass


class NoMatchError(EvaluationRunError):
    def __init__(self, pattern: str):
        super().__init__(f"No files found matching pattern: {pattern}")
        self.pattern = pattern


class SpecReadError(EvaluationRunError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to read specification {path}: {reason}")
        self.path = path
        self.reason = reason


class UploadError(EvaluationRunError):
    def __init__(self, body: str, status_code=None):
        super().__init__(f"Failed to upload specification: {body}")
        self.body = body
        self.status_code = status_code


class EvaluationError(EvaluationRunError):
    def __init__(self, reason: str):
        super().__init__(f"Evaluation failed: {reason}")
        self.reason = reason


class EvaluationTimeoutError(EvaluationRunError):
    def __init__(self, spec_version_id: str, attempts: int):
        super().__init__(
            f"Evaluation timed out after {attempts} attempts "
            f"(specification version {spec_version_id})"
        )
        self.spec_version_id = spec_version_id
        self.attempts = attempts


class RequestError(EvaluationRunError):
    def __init__(self, body: str, status_code=None):
        super().__init__(f"Failed to get violations: {body}")
        self.body = body
        self.status_code = status_code


class FeedbackError(Exception):
    """PR feedback could not be delivered. Never fails the run."""

    def __init__(self, body: str, status_code=None):
        super().__init__(f"Failed to post PR feedback: {body}")
        self.body = body
        self.status_code = status_code

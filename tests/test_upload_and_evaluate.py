import pytest
import requests

from _evaluation_agent.errors import (
    EvaluationError,
    EvaluationTimeoutError,
    RequestError,
    UploadError,
)
from _evaluation_agent.stage_1_upload_and_evaluate import (
    EvaluationJob,
    await_evaluation,
    build_evaluation_url,
    evaluate_specification,
    submit_specification,
)
from tests.api_helpers import FakeResponse, poll, rule, upload_ok

API_URL = "https://api.restlens.dev"


def _job(spec_version_id="ver-1"):
    return EvaluationJob(
        spec_version_id=spec_version_id,
        file_path="specs/petstore.yaml",
        content="openapi: 3.0.3\n",
        project_slug="petstore",
        organization_slug="acme",
    )


def test_submit_sends_basename_content_and_evaluate_flag(fake_api):
    fake_api.uploads.append(upload_ok("ver-42"))

    job = submit_specification(API_URL, "tok", "specs/v1/petstore.yaml", "openapi: 3.0.3\n")

    method, url, body, headers = fake_api.calls[0]
    assert (method, url) == ("POST", f"{API_URL}/v1/specifications")
    assert body == {"filename": "petstore.yaml", "content": "openapi: 3.0.3\n", "evaluate": True}
    assert headers["Authorization"] == "Bearer tok"
    assert job.spec_version_id == "ver-42"
    assert job.file_path == "specs/v1/petstore.yaml"
    assert (job.organization_slug, job.project_slug) == ("acme", "petstore")


def test_submit_rejection_carries_body_verbatim(fake_api):
    fake_api.uploads.append(FakeResponse(422, text='{"error":"not an OpenAPI document"}'))

    with pytest.raises(UploadError) as excinfo:
        submit_specification(API_URL, "tok", "bad.yaml", "nope")

    assert excinfo.value.body == '{"error":"not an OpenAPI document"}'
    assert excinfo.value.status_code == 422
    assert str(excinfo.value) == 'Failed to upload specification: {"error":"not an OpenAPI document"}'


def test_submit_network_failure_is_upload_error(fake_api):
    fake_api.uploads.append(requests.ConnectionError("connection refused"))

    with pytest.raises(UploadError, match="connection refused"):
        submit_specification(API_URL, "tok", "a.yaml", "x")


def test_ready_returns_terminal_violations_and_stops_polling(fake_api, sleeps):
    violations = [rule("r1", "error", "/info"), rule("r2", "info", "/paths")]
    fake_api.polls.extend([poll("pending"), poll("in_progress"), poll("ready", violations)])

    result = await_evaluation(API_URL, "tok", _job(), max_attempts=10, interval_seconds=2.0)

    assert [v.rule_id for v in result] == ["r1", "r2"]
    assert len(fake_api.requests_to("/v1/specifications/ver-1/violations")) == 3
    assert sleeps == [2.0, 2.0]


def test_ready_without_violations_returns_empty_list(fake_api, sleeps):
    fake_api.polls.append(poll("ready"))

    assert await_evaluation(API_URL, "tok", _job()) == []
    assert sleeps == []


def test_not_found_counts_as_pending(fake_api, sleeps):
    fake_api.polls.extend([FakeResponse(404, text="not found"), poll("ready", [])])

    assert await_evaluation(API_URL, "tok", _job(), max_attempts=2, interval_seconds=0.5) == []
    assert len(fake_api.calls) == 2
    assert sleeps == [0.5]


def test_timeout_after_exactly_max_attempts(fake_api, sleeps):
    fake_api.polls.extend(
        [poll("pending"), FakeResponse(404), poll("in_progress"), poll("pending")]
    )

    with pytest.raises(EvaluationTimeoutError) as excinfo:
        await_evaluation(API_URL, "tok", _job(), max_attempts=4, interval_seconds=1.5)

    assert excinfo.value.attempts == 4
    assert len(fake_api.calls) == 4
    assert sleeps == [1.5, 1.5, 1.5]
    assert all(interval >= 1.5 for interval in sleeps)


def test_failed_status_carries_reason(fake_api, sleeps):
    fake_api.polls.extend([poll("in_progress"), poll("failed", error="parser crashed")])

    with pytest.raises(EvaluationError) as excinfo:
        await_evaluation(API_URL, "tok", _job())

    assert excinfo.value.reason == "parser crashed"
    assert str(excinfo.value) == "Evaluation failed: parser crashed"


def test_failed_status_without_reason_uses_generic_message(fake_api, sleeps):
    fake_api.polls.append(poll("failed"))

    with pytest.raises(EvaluationError, match="Unknown error"):
        await_evaluation(API_URL, "tok", _job())


@pytest.mark.parametrize("status_code", [401, 403, 500, 503])
def test_other_http_errors_are_terminal(fake_api, sleeps, status_code):
    fake_api.polls.extend([FakeResponse(status_code, text="boom"), poll("ready", [])])

    with pytest.raises(RequestError) as excinfo:
        await_evaluation(API_URL, "tok", _job())

    assert excinfo.value.status_code == status_code
    assert len(fake_api.calls) == 1
    assert sleeps == []


def test_unknown_status_is_request_error(fake_api, sleeps):
    fake_api.polls.append(poll("queued"))

    with pytest.raises(RequestError, match="queued"):
        await_evaluation(API_URL, "tok", _job())


def test_unreadable_body_is_request_error(fake_api, sleeps):
    fake_api.polls.append(FakeResponse(200, text="<html>gateway</html>"))

    with pytest.raises(RequestError):
        await_evaluation(API_URL, "tok", _job())


def test_evaluate_specification_builds_dashboard_url(fake_api, sleeps):
    fake_api.uploads.append(upload_ok("ver-9", project="pet store", org="acme"))
    fake_api.polls.extend([poll("in_progress"), poll("ready", [rule("r", "warning", "/x")])])

    result = evaluate_specification(API_URL, "tok", "petstore.yaml", "openapi: 3.0.3\n")

    assert result.spec_version_id == "ver-9"
    assert len(result.violations) == 1
    assert result.evaluation_url == "https://restlens.dev/organizations/acme/projects/pet%20store"


@pytest.mark.parametrize(
    "api_url, expected_base",
    [
        ("https://api.restlens.dev", "https://restlens.dev"),
        ("https://restlens.example.com/api", "https://restlens.example.com"),
        ("http://localhost:3000", "http://localhost:3000"),
    ],
)
def test_build_evaluation_url_strips_api_marker(api_url, expected_base):
    assert build_evaluation_url(api_url, _job()) == (
        f"{expected_base}/organizations/acme/projects/petstore"
    )

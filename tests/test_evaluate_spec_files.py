import logging

import pytest

from _evaluation_agent.errors import NoMatchError, SpecReadError, UploadError
from _evaluation_agent.stage_2_evaluate_spec_files import evaluate_spec_files, find_spec_files
from _evaluation_agent.violation_model import Severity
from tests.api_helpers import FakeResponse, poll, rule, upload_ok

API_URL = "https://api.restlens.dev"

PETSTORE = """\
openapi: 3.0.3
info:
  title: Petstore
paths:
  /pets:
    get:
      summary: List pets
"""

USERS = """\
openapi: 3.0.3
info:
  title: Users
"""


@pytest.fixture
def spec_dir(tmp_path):
    (tmp_path / "specs").mkdir()
    (tmp_path / "specs" / "petstore.yaml").write_text(PETSTORE)
    (tmp_path / "specs" / "users.yaml").write_text(USERS)
    (tmp_path / "specs" / "nested.yaml").mkdir()
    return tmp_path


def test_find_spec_files_skips_directories_and_sorts(spec_dir):
    files = find_spec_files(str(spec_dir / "specs" / "*.yaml"))

    assert files == [
        str(spec_dir / "specs" / "petstore.yaml"),
        str(spec_dir / "specs" / "users.yaml"),
    ]


def test_find_spec_files_supports_recursive_patterns(spec_dir):
    (spec_dir / "specs" / "v2").mkdir()
    (spec_dir / "specs" / "v2" / "orders.yaml").write_text(USERS)

    files = find_spec_files(str(spec_dir / "**" / "*.yaml"))

    assert str(spec_dir / "specs" / "v2" / "orders.yaml") in files
    assert len(files) == 3


def test_empty_match_fails_before_any_request(tmp_path, fake_api):
    with pytest.raises(NoMatchError) as excinfo:
        evaluate_spec_files(str(tmp_path / "*.json"), API_URL, "tok")

    assert "No files found matching pattern" in str(excinfo.value)
    assert fake_api.calls == []


def test_batch_resolves_lines_per_file_and_keeps_last_url(spec_dir, fake_api, sleeps, caplog):
    caplog.set_level(logging.INFO)
    fake_api.uploads.extend(
        [upload_ok("v-pets", project="pets"), upload_ok("v-users", project="users")]
    )
    fake_api.polls.extend(
        [
            poll("in_progress"),
            poll(
                "ready",
                [
                    rule("summary-style", "warning", "/paths/~1pets/get/summary", "Use sentence case"),
                    rule("info-contact", "error", "/info", "Add a contact"),
                ],
            ),
            poll("ready", [rule("info-contact", "error", "/info/title", "Add a contact")]),
        ]
    )

    batch = evaluate_spec_files(str(spec_dir / "specs" / "*.yaml"), API_URL, "tok", interval_seconds=1)

    petstore = str(spec_dir / "specs" / "petstore.yaml")
    users = str(spec_dir / "specs" / "users.yaml")
    assert batch.spec_files == [petstore, users]
    assert [(v.rule_id, v.line) for v in batch.violations] == [
        ("info-contact", 2),
        ("summary-style", 7),
        ("info-contact", 3),
    ]
    assert batch.evaluation_url == "https://restlens.dev/organizations/acme/projects/users"
    assert batch.summary.error_count == 2
    assert batch.summary.warning_count == 1

    messages = [record.getMessage() for record in caplog.records]
    assert f"::warning file={petstore}:7::summary-style: Use sentence case" in messages
    assert f"::error file={users}:3::info-contact: Add a contact" in messages


def test_clean_file_logs_no_violations(spec_dir, fake_api, sleeps, caplog):
    caplog.set_level(logging.INFO)
    fake_api.uploads.append(upload_ok())
    fake_api.polls.append(poll("ready", []))

    batch = evaluate_spec_files(str(spec_dir / "specs" / "users.yaml"), API_URL, "tok")

    assert batch.violations == []
    assert batch.summary.total == 0
    assert "  No violations found" in [record.getMessage() for record in caplog.records]


def test_first_failure_aborts_remaining_files(spec_dir, fake_api, sleeps, caplog):
    caplog.set_level(logging.INFO)
    fake_api.uploads.extend([upload_ok("v-pets"), FakeResponse(500, text="storage down")])
    fake_api.polls.append(poll("ready", [rule("r", "info", "/info")]))

    with pytest.raises(UploadError, match="storage down"):
        evaluate_spec_files(str(spec_dir / "specs" / "*.yaml"), API_URL, "tok")

    petstore = str(spec_dir / "specs" / "petstore.yaml")
    assert f"::notice file={petstore}:2::r: problem" in [r.getMessage() for r in caplog.records]
    assert len(fake_api.requests_to("/v1/specifications")) == 2


def test_violations_use_the_uploaded_content(spec_dir, fake_api, sleeps):
    fake_api.uploads.append(upload_ok())
    fake_api.polls.append(poll("ready", [rule("r", "warning", "/paths/~1pets/get")]))

    batch = evaluate_spec_files(str(spec_dir / "specs" / "petstore.yaml"), API_URL, "tok")

    (_, _, body, _) = fake_api.calls[0]
    assert body["content"] == PETSTORE
    assert batch.violations[0].line == 6
    assert batch.violations[0].severity is Severity.WARNING


def test_non_utf8_file_is_a_read_error_before_upload(tmp_path, fake_api):
    spec = tmp_path / "latin1.yaml"
    spec.write_bytes(b"openapi: 3.0.3\ninfo:\n  title: Caf\xe9\xff\xfe\n")

    with pytest.raises(SpecReadError) as excinfo:
        evaluate_spec_files(str(spec), API_URL, "tok")

    assert excinfo.value.path == str(spec)
    assert str(excinfo.value).startswith(f"Failed to read specification {spec}:")
    assert fake_api.calls == []

import logging
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from _evaluation_agent import actions_runtime, restlens_api, stage_1_upload_and_evaluate
from tests.api_helpers import FakeRestLens


@pytest.fixture
def fake_api(monkeypatch):
    fake = FakeRestLens()
    monkeypatch.setattr(restlens_api.requests, "post", fake.post)
    monkeypatch.setattr(restlens_api.requests, "get", fake.get)
    return fake


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(stage_1_upload_and_evaluate.time, "sleep", recorded.append)
    return recorded


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in list(os.environ):
        if key.startswith(("INPUT_", "GITHUB_")) or key == "RUNNER_DEBUG":
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def reset_package_logger():
    logger = logging.getLogger(actions_runtime.PACKAGE_LOGGER)
    yield
    for handler in list(logger.handlers):
        if isinstance(handler, actions_runtime.ActionsLogHandler):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)

"""
Actions Runtime — REST Lens Evaluation Action

PURPOSE:
    Everything the action needs from the GitHub Actions runner, in one place:

      - reading action inputs            (INPUT_<NAME> environment variables)
      - writing step outputs             ($GITHUB_OUTPUT file)
      - masking secrets                  (::add-mask::)
      - logging as workflow commands     (ActionsLogHandler)
      - the triggering event             (EventContext)

    The rest of the package never touches os.environ or prints workflow
    commands by hand. Tests drive this module with monkeypatch.setenv().

WORKFLOW COMMANDS:
    GitHub scans stdout for lines starting with "::". We use:
        ::add-mask::<value>      hide a secret in all later log lines
        ::debug::<msg>           shown only with step debug logging
        ::warning::<msg>         yellow annotation
        ::error::<msg>           red annotation
        ::set-output name=..::   legacy outputs, only when $GITHUB_OUTPUT
                                 is not available
    Message data must escape %, CR and LF or the runner truncates it.
"""

import json
import logging
import os
import sys
import uuid
from dataclasses import dataclass, field
from typing import Optional

from .errors import ConfigError

PACKAGE_LOGGER = "_evaluation_agent"

_TRUE_VALUES = ("true", "True", "TRUE")
_FALSE_VALUES = ("false", "False", "FALSE")


# ---------------------------------------------------------------------------
# INPUTS
# ---------------------------------------------------------------------------


def get_input(name: str, required: bool = False) -> str:
    """
    Read an action input.

    The runner exports inputs as INPUT_<NAME> with the name upper-cased and
    spaces turned into underscores ("api-token" -> INPUT_API-TOKEN). Shells
    cannot set hyphenated variables, so INPUT_API_TOKEN is accepted too.
    """
    key = name.replace(" ", "_").upper()
    value = os.environ.get(f"INPUT_{key}")
    if value is None:
        value = os.environ.get(f"INPUT_{key.replace('-', '_')}", "")
    value = value.strip()
    if required and not value:
        raise ConfigError(f"Input required and not supplied: {name}")
    return value


def get_boolean_input(name: str, default: bool) -> bool:
    value = get_input(name)
    if not value:
        return default
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(
        f'Input does not meet YAML 1.2 "Core Schema" specification: {name}\n'
        "Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


# ---------------------------------------------------------------------------
# OUTPUTS & SECRETS
# ---------------------------------------------------------------------------


def set_output(name: str, value) -> None:
    """
    Publish a step output.

    Booleans are written as "true"/"false" so workflow expressions like
    `steps.lint.outputs.passed == 'true'` work.
    """
    text = format_output_value(value)
    output_file = os.environ.get("GITHUB_OUTPUT")

    if output_file:
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with open(output_file, "a", encoding="utf-8") as f:
            f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
        return

    _write_stdout(f"::set-output name={name}::{escape_data(text)}")


def format_output_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def set_secret(value: str) -> None:
    if value:
        _write_stdout(f"::add-mask::{escape_data(value)}")


def escape_data(text: str) -> str:
    return str(text).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


# ---------------------------------------------------------------------------
# LOGGING
# ---------------------------------------------------------------------------


class ActionsLogHandler(logging.Handler):
    """Writes log records to stdout as Actions workflow commands."""

    _PREFIXES = (
        (logging.ERROR, "::error::"),
        (logging.WARNING, "::warning::"),
        (logging.INFO, ""),
    )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            _write_stdout(self._render(record.levelno, message))
        except Exception:
            self.handleError(record)

    def _render(self, levelno: int, message: str) -> str:
        for threshold, prefix in self._PREFIXES:
            if levelno >= threshold:
                return prefix + escape_data(message) if prefix else message
        return "::debug::" + escape_data(message)


def configure_logging(debug: Optional[bool] = None) -> logging.Logger:
    """
    Attach ActionsLogHandler to the package logger (idempotent).

    Debug output is on when the runner has step debugging enabled
    (RUNNER_DEBUG=1) unless `debug` says otherwise.
    """
    if debug is None:
        debug = os.environ.get("RUNNER_DEBUG") == "1"

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, ActionsLogHandler):
            logger.removeHandler(handler)

    handler = ActionsLogHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger


# ---------------------------------------------------------------------------
# EVENT CONTEXT
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EventContext:
    """The slice of github.context this action reads."""

    event_name: str = ""
    sha: str = ""
    owner: str = ""
    repo: str = ""
    payload: dict = field(default_factory=dict)

    @property
    def is_pull_request(self) -> bool:
        return self.event_name in ("pull_request", "pull_request_target")

    @classmethod
    def from_environment(cls) -> "EventContext":
        owner, _, repo = os.environ.get("GITHUB_REPOSITORY", "").partition("/")
        return cls(
            event_name=os.environ.get("GITHUB_EVENT_NAME", ""),
            sha=os.environ.get("GITHUB_SHA", ""),
            owner=owner,
            repo=repo,
            payload=_load_event_payload(os.environ.get("GITHUB_EVENT_PATH")),
        )


# ---------------------------------------------------------------------------
# PRIVATE HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def _load_event_payload(event_path: Optional[str]) -> dict:
    if not event_path:
        return {}
    try:
        with open(event_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logging.getLogger(__name__).warning(f"Could not read event payload {event_path}: {e}")
        return {}
    return payload if isinstance(payload, dict) else {}


def _write_stdout(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

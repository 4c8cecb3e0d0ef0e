"""
Run Configuration — REST Lens Evaluation Action

Collects the action inputs into one frozen RunConfig. Values come from, in
order of precedence:

    1. command-line flags   (local runs: `restlens-evaluate --spec-path ...`)
    2. action inputs        (INPUT_* variables set by the runner)
    3. the defaults below   (same as action.yml)
"""

import argparse
from dataclasses import dataclass
from typing import Optional, Sequence

from . import actions_runtime
from .errors import ConfigError
from .restlens_api import DEFAULT_API_URL
from .stage_1_upload_and_evaluate import DEFAULT_INTERVAL_SECONDS, DEFAULT_MAX_ATTEMPTS


@dataclass(frozen=True)
class RunConfig:
    api_token: str
    spec_path: str
    fail_on_error: bool = True
    fail_on_warning: bool = False
    post_pr_comment: bool = True
    post_inline_comments: bool = True
    api_url: str = DEFAULT_API_URL
    poll_max_attempts: int = DEFAULT_MAX_ATTEMPTS
    poll_interval_seconds: float = DEFAULT_INTERVAL_SECONDS

    @property
    def wants_pr_feedback(self) -> bool:
        return self.post_pr_comment or self.post_inline_comments

    @classmethod
    def from_inputs(cls, args: Optional[argparse.Namespace] = None) -> "RunConfig":
        args = args if args is not None else argparse.Namespace()

        def pick(attr, read):
            value = getattr(args, attr, None)
            return value if value is not None else read()

        api_token = pick("api_token", lambda: actions_runtime.get_input("api-token", required=True))
        spec_path = pick("spec_path", lambda: actions_runtime.get_input("spec-path", required=True))
        if not api_token:
            raise ConfigError("Input required and not supplied: api-token")
        if not spec_path:
            raise ConfigError("Input required and not supplied: spec-path")

        return cls(
            api_token=api_token,
            spec_path=spec_path,
            fail_on_error=pick(
                "fail_on_error",
                lambda: actions_runtime.get_boolean_input("fail-on-error", True),
            ),
            fail_on_warning=pick(
                "fail_on_warning",
                lambda: actions_runtime.get_boolean_input("fail-on-warning", False),
            ),
            post_pr_comment=pick(
                "post_pr_comment",
                lambda: actions_runtime.get_boolean_input("post-pr-comment", True),
            ),
            post_inline_comments=pick(
                "post_inline_comments",
                lambda: actions_runtime.get_boolean_input("post-inline-comments", True),
            ),
            api_url=pick("api_url", lambda: actions_runtime.get_input("api-url")) or DEFAULT_API_URL,
            poll_max_attempts=pick(
                "poll_max_attempts",
                lambda: _positive(
                    "poll-max-attempts",
                    actions_runtime.get_input("poll-max-attempts"),
                    int,
                    DEFAULT_MAX_ATTEMPTS,
                ),
            ),
            poll_interval_seconds=pick(
                "poll_interval_seconds",
                lambda: _positive(
                    "poll-interval-seconds",
                    actions_runtime.get_input("poll-interval-seconds"),
                    float,
                    DEFAULT_INTERVAL_SECONDS,
                ),
            ),
        )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="restlens-evaluate",
        description="Evaluate API specifications with REST Lens and gate on the results.",
    )
    parser.add_argument("--spec-path", default=None, help="Glob of specification files.")
    parser.add_argument("--api-url", default=None)
    parser.add_argument(
        "--api-token",
        default=None,
        help="REST Lens API token. Prefer the INPUT_API_TOKEN variable over this flag.",
    )
    for flag in ("fail-on-error", "fail-on-warning", "post-pr-comment", "post-inline-comments"):
        parser.add_argument(f"--{flag}", action=argparse.BooleanOptionalAction, default=None)
    parser.add_argument("--poll-max-attempts", type=_positive_int, default=None)
    parser.add_argument("--poll-interval-seconds", type=_positive_float, default=None)
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_arg_parser().parse_args(argv)


def _positive(name: str, raw: str, cast, default):
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"Input {name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"Input {name} must be greater than zero, got {raw!r}")
    return value


def _positive_int(raw: str) -> int:
    return _argparse_positive(raw, int)


def _positive_float(raw: str) -> float:
    return _argparse_positive(raw, float)


def _argparse_positive(raw: str, cast):
    try:
        value = cast(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {raw!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero, got {raw!r}")
    return value

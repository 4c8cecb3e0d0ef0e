"""
REST Lens API wrapper — REST Lens Evaluation Action

Thin wrapper around the three REST Lens endpoints the action talks to.
It only does transport: building URLs and headers and sending requests.
Deciding what a status code MEANS (retry, fail, warn) is the caller's job,
so every method hands back the raw requests.Response.

    POST /v1/specifications                   upload + start evaluation
    GET  /v1/specifications/{id}/violations   poll evaluation status
    POST /github-app/pr-feedback              PR comment / review
"""

import requests

DEFAULT_API_URL = "https://api.restlens.dev"
REQUEST_TIMEOUT_SECONDS = 30


class RestLensAPI:
    """
    Bearer-token client for the REST Lens API.

    The token is the project's REST Lens API token (the `api-token` input),
    not the workflow's GITHUB_TOKEN.
    """

    def __init__(self, api_url: str, token: str):
        self.base_url = (api_url or DEFAULT_API_URL).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def upload_specification(self, filename: str, content: str) -> requests.Response:
        """Upload a spec and ask the service to evaluate it right away."""
        url = f"{self.base_url}/v1/specifications"
        data = {"filename": filename, "content": content, "evaluate": True}
        return requests.post(url, headers=self.headers, json=data, timeout=REQUEST_TIMEOUT_SECONDS)

    def get_violations(self, spec_version_id: str) -> requests.Response:
        url = f"{self.base_url}/v1/specifications/{spec_version_id}/violations"
        return requests.get(url, headers=self.headers, timeout=REQUEST_TIMEOUT_SECONDS)

    def post_pr_feedback(self, payload: dict) -> requests.Response:
        url = f"{self.base_url}/github-app/pr-feedback"
        return requests.post(url, headers=self.headers, json=payload, timeout=REQUEST_TIMEOUT_SECONDS)

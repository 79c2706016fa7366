from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import requests

from .retry import RetryConfig, TransientError, is_transient, parse_retry_after, run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "spectrsync-rest/0.1.0"
HTTP_ERROR_STATUS = 400
RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})
REQUEST_TIMEOUT = 30


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


def _is_retryable(response: requests.Response) -> bool:
    if response.status_code in RETRYABLE_STATUSES:
        return True
    # Secondary rate limits come back as 403 with an explanatory message
    return response.status_code == 403 and is_transient(response.text or "")


@dataclass
class GitHubRestClient:
    """Lightweight REST client for the issue operations a sync needs."""

    token: str
    repo: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    retry: RetryConfig | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("X-GitHub-Api-Version", "2022-11-28")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )

        def _run() -> requests.Response:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=REQUEST_TIMEOUT,
            )
            if _is_retryable(response):
                raise TransientError(
                    f"GitHub API {method} {url} returned {response.status_code}",
                    retry_after=parse_retry_after(response.headers.get("Retry-After")),
                    status=response.status_code,
                )
            return response

        try:
            response = run_with_retries(_run, cfg=self.retry)
        except TransientError as exc:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed after retries: {exc}", status=exc.status
            ) from exc
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        if response.text:
            try:
                return response.json()
            except ValueError:
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=dict(params))
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    # ---- Issue operations --------------------------------------------
    def create_issue(
        self,
        *,
        title: str,
        body: str,
        labels: Iterable[str] | None = None,
    ) -> int | None:
        payload: dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = list(labels)
        data = self._request("POST", f"/repos/{self.repo}/issues", json_body=payload)
        if isinstance(data, dict):
            number = data.get("number")
            if isinstance(number, int):
                return number
        return None

    def update_issue(
        self,
        *,
        number: int,
        title: str | None = None,
        body: str | None = None,
        labels: Iterable[str] | None = None,
        state: str | None = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if body is not None:
            payload["body"] = body
        if labels is not None:
            payload["labels"] = list(labels)
        if state is not None:
            payload["state"] = state
        if payload:
            self._request(
                "PATCH", f"/repos/{self.repo}/issues/{number}", json_body=payload
            )

    def close_issue(self, *, number: int) -> None:
        self.update_issue(number=number, state="closed")

    def list_issues(
        self, *, state: str = "open", labels: Iterable[str] | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"state": state, "per_page": 100, "page": 1}
        label_list = [lbl for lbl in (labels or []) if lbl]
        if label_list:
            params["labels"] = ",".join(label_list)
        data = self._paginate(f"/repos/{self.repo}/issues", params=params)
        out: list[dict[str, Any]] = []
        for entry in data:
            # The issues endpoint also returns pull requests
            if isinstance(entry, dict) and "pull_request" not in entry:
                out.append(entry)
        return out


__all__ = [
    "DEFAULT_API_URL",
    "GitHubAPIError",
    "GitHubRestClient",
]

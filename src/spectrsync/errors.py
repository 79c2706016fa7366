"""Error taxonomy & redaction.

Discovery surfaces plain ``OSError`` subclasses, configuration problems raise
``ConfigError`` and GitHub failures raise ``GitHubAPIError``. The CLI funnels
all of them through ``classify_error`` so user-facing output carries a stable
category and never leaks tokens.

Public API:
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any

import requests

from .config import ConfigError
from .github_rest import GitHubAPIError

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"gh[osu]_[A-Za-z0-9]{20,40}"),  # OAuth / server / user-to-server tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"(?i)(authorization:\s*(?:bearer|token)\s+)\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"
_TRANSIENT_STATUSES = {429, 502, 503, 504}


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def redact(text: str) -> str:
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - OSError (missing root, missing proposal.md, unreadable file) -> 'filesystem'
    - ConfigError -> 'config'
    - GitHubAPIError mentioning rate limits / 429 -> 'github.rate_limit', transient
    - other GitHubAPIError -> 'github.api' (transient for 5xx gateway statuses)
    - requests connection errors / timeouts -> 'network', transient
    - fallback -> 'generic'
    """
    msg = redact(str(exc))
    name = exc.__class__.__name__
    low = msg.lower()

    if isinstance(exc, ConfigError):
        return ErrorInfo("config", msg, name)
    if isinstance(exc, GitHubAPIError):
        details = {"status": exc.status} if exc.status is not None else None
        if exc.status == 429 or "rate limit" in low or "rate limit" in (exc.response_text or "").lower():
            return ErrorInfo("github.rate_limit", msg, name, transient=True, details=details)
        return ErrorInfo(
            "github.api", msg, name, transient=exc.status in _TRANSIENT_STATUSES, details=details
        )
    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ErrorInfo("network", msg, name, transient=True)
    if isinstance(exc, OSError):
        details = {"path": str(exc.filename)} if exc.filename else None
        return ErrorInfo("filesystem", msg, name, details=details)
    return ErrorInfo("generic", msg, name)


__all__ = ["ErrorInfo", "classify_error", "redact"]

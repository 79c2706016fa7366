"""Centralized retry / backoff helpers.

``run_with_retries`` wraps a thunk with exponential backoff plus jitter.
Only transient failures are retried: ``TransientError`` (raised by the REST
client for 429 / gateway errors / secondary rate limits) and requests
connection errors or timeouts. Everything else propagates immediately.

Environment overrides:
  SPECTRSYNC_RETRY_ATTEMPTS (default 3)
  SPECTRSYNC_RETRY_BASE (seconds base, default 0.5)
  SPECTRSYNC_RETRY_MAX_SLEEP (cap on a single sleep, unset = no cap)
"""

from __future__ import annotations

import os
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

import requests

from .logging import get_logger

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
)

_JITTER = random.SystemRandom()


class TransientError(RuntimeError):
    """A failure worth retrying; ``retry_after`` carries a server hint in seconds."""

    def __init__(self, message: str, *, retry_after: float | None = None, status: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after
        self.status = status


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


@dataclass
class RetryConfig:
    attempts: int = field(default_factory=lambda: _env_int("SPECTRSYNC_RETRY_ATTEMPTS", 3))
    base_sleep: float = field(default_factory=lambda: _env_float("SPECTRSYNC_RETRY_BASE", 0.5))


def is_transient(output: str) -> bool:
    out_lower = (output or "").lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def _compute_sleep(attempt: int, cfg: RetryConfig, explicit: float | None) -> float:
    backoff = cfg.base_sleep * (2 ** (attempt - 1)) + _JITTER.uniform(0, 0.25)
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("SPECTRSYNC_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except (TransientError, requests.ConnectionError, requests.Timeout) as exc:
            if attempt >= attempts:
                raise
            explicit = exc.retry_after if isinstance(exc, TransientError) else None
            sleep_for = _compute_sleep(attempt, cfg, explicit)
            get_logger().warning(
                f"[retry] transient error, attempt {attempt}/{attempts}, sleeping {sleep_for:.2f}s",
                error=str(exc),
            )
            time.sleep(sleep_for)
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "TransientError", "is_transient", "parse_retry_after", "run_with_retries"]

from __future__ import annotations

import difflib

from .formatting import bodies_match, normalize_body

MAX_BODY_DIFF_LINES = 120


def body_diff(old: str | None, new: str | None) -> list[str]:
    """Unified diff between a live issue body and the rendered one.

    Bodies are compared in normalized form so line-ending noise never shows
    up; returns an empty list when ``bodies_match`` holds.
    """
    if bodies_match(old, new):
        return []
    old_lines = normalize_body(old).splitlines()
    new_lines = normalize_body(new).splitlines()
    diff_lines = list(
        difflib.unified_diff(old_lines, new_lines, fromfile="issue", tofile="proposal", lineterm="", n=3)
    )
    if len(diff_lines) > MAX_BODY_DIFF_LINES:
        diff_lines = diff_lines[:MAX_BODY_DIFF_LINES] + ["... (truncated)"]
    return diff_lines


__all__ = ["MAX_BODY_DIFF_LINES", "body_diff"]

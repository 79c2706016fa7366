from __future__ import annotations

from spectrsync.diffing import MAX_BODY_DIFF_LINES, body_diff


def test_no_diff_when_bodies_match() -> None:
    assert body_diff("a\r\nb\n", "a\nb") == []


def test_diff_shows_changed_lines() -> None:
    diff = body_diff("<!-- spectr-change-id:x -->\n\nOld body", "<!-- spectr-change-id:x -->\n\nNew body")
    assert "-Old body" in diff
    assert "+New body" in diff


def test_missing_live_body_is_treated_as_empty() -> None:
    diff = body_diff(None, "content")
    assert "+content" in diff


def test_large_diff_is_truncated() -> None:
    old = "\n".join(f"line {i}" for i in range(300))
    new = "\n".join(f"changed {i}" for i in range(300))
    diff = body_diff(old, new)
    assert len(diff) == MAX_BODY_DIFF_LINES + 1
    assert diff[-1] == "... (truncated)"

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from spectrsync.formatting import (
    MAX_BODY_LENGTH,
    bodies_match,
    extract_change_id,
    format_issue_body,
    format_issue_title,
)
from spectrsync.models import ChangeProposal, IssueSyncConfig

CONFIG = IssueSyncConfig(
    enabled=True,
    close_on_archive=True,
    update_existing=True,
    github_token="test-token",
    labels=("spectr", "change-proposal"),
    spectr_label="spectr-managed",
    title_prefix="[Spectr Change]",
)


def _proposal(**overrides: Any) -> ChangeProposal:
    base: dict[str, Any] = {
        "id": "test-change",
        "path": Path("/path/to/change"),
        "is_archived": False,
        "proposal_content": "Test proposal content",
        "tasks_content": None,
        "affected_specs": (),
    }
    base.update(overrides)
    return ChangeProposal(**base)


def test_title_uses_prefix_and_id() -> None:
    assert format_issue_title("add-feature", CONFIG) == "[Spectr Change] add-feature"


def test_title_uses_custom_prefix() -> None:
    cfg = IssueSyncConfig(title_prefix="[RFC]")
    assert format_issue_title("new-api", cfg) == "[RFC] new-api"


def test_body_full_wire_format() -> None:
    body = format_issue_body(
        _proposal(
            id="add-auth",
            proposal_content="Proposal text",
            affected_specs=("auth", "api"),
            tasks_content="- [ ] Task 1",
        )
    )
    assert body == (
        "<!-- spectr-change-id:add-auth -->\n"
        "\n"
        "## Proposal\n"
        "\n"
        "Proposal text\n"
        "\n"
        "## Affected Specs\n"
        "\n"
        "- `auth`\n"
        "- `api`\n"
        "\n"
        "## Tasks\n"
        "\n"
        "- [ ] Task 1\n"
        "\n"
        "---\n"
        "*This issue is managed by Spectr. Do not edit this description manually.*"
    )


def test_body_starts_with_marker_and_has_footer() -> None:
    body = format_issue_body(_proposal())
    assert body.startswith("<!-- spectr-change-id:test-change -->")
    assert "managed by" in body
    assert "Spectr" in body


def test_optional_sections_omitted() -> None:
    body = format_issue_body(_proposal())
    assert "## Proposal" in body
    assert "## Affected Specs" not in body
    assert "## Tasks" not in body


def test_specs_keep_source_order() -> None:
    body = format_issue_body(_proposal(affected_specs=("zeta", "alpha")))
    assert body.index("`zeta`") < body.index("`alpha`")


def test_empty_tasks_still_renders_section() -> None:
    body = format_issue_body(_proposal(tasks_content=""))
    assert "## Tasks" in body


def test_body_is_idempotent() -> None:
    proposal = _proposal(affected_specs=("auth",), tasks_content="- [x] done")
    first = format_issue_body(proposal)
    second = format_issue_body(proposal)
    assert first == second
    assert bodies_match(first, second)


def test_oversized_body_is_truncated() -> None:
    body = format_issue_body(_proposal(proposal_content="A" * 70000))
    assert len(body) <= MAX_BODY_LENGTH
    assert "truncated" in body
    assert body.startswith("<!-- spectr-change-id:test-change -->\n")
    assert extract_change_id(body) == "test-change"
    assert body.endswith("Do not edit this description manually.*")


def test_oversized_tasks_are_truncated_too() -> None:
    body = format_issue_body(_proposal(tasks_content="- [ ] task\n" * 10000))
    assert len(body) <= MAX_BODY_LENGTH
    assert "truncated" in body


def test_body_exactly_at_limit_is_untouched() -> None:
    overhead = len(format_issue_body(_proposal(proposal_content="")))
    body = format_issue_body(_proposal(proposal_content="B" * (MAX_BODY_LENGTH - overhead)))
    assert len(body) == MAX_BODY_LENGTH
    assert "truncated" not in body


@pytest.mark.parametrize(
    "change_id",
    ["my-change-123", "add_feature", "with spaces", "trailing-dash-", "a -", "", "ünïcode"],
)
def test_change_id_round_trip(change_id: str) -> None:
    assert extract_change_id(format_issue_body(_proposal(id=change_id))) == change_id


def test_extract_finds_marker_after_prepended_content() -> None:
    body = "Note from a maintainer\n\n<!-- spectr-change-id:later -->\n\nrest"
    assert extract_change_id(body) == "later"


def test_extract_skips_unterminated_marker_prefix() -> None:
    body = (
        "Quoted from docs: `<!-- spectr-change-id:` prefix\n\n"
        "<!-- spectr-change-id:real-id -->\n\nrest"
    )
    assert extract_change_id(body) == "real-id"


def test_extract_returns_none_without_marker() -> None:
    assert extract_change_id("Some random issue body without marker") is None
    assert extract_change_id("") is None
    assert extract_change_id(None) is None


def test_bodies_match_normalization() -> None:
    assert bodies_match("a\r\nb", "a\nb")
    assert bodies_match("x   ", "x")
    assert bodies_match("Line1\r\nLine2\r\n", "Line1\nLine2")
    assert not bodies_match("A", "B")


def test_bodies_match_is_not_per_line() -> None:
    assert not bodies_match("a  \nb", "a\nb")
    assert not bodies_match("  a", "a")

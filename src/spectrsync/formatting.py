"""Issue title/body rendering and change-id extraction.

Everything here is pure: no I/O, no logging, no shared state. The body layout
is consumed by other tools reading synced issues, so it must stay stable::

    <!-- spectr-change-id:{id} -->

    ## Proposal

    {proposal}

    ## Affected Specs        (only when the change touches specs)

    - `{spec}`

    ## Tasks                 (only when tasks.md exists)

    {tasks}

    ---
    *This issue is managed by Spectr. Do not edit this description manually.*

The hidden marker on the first line is the only link between an issue and
its change directory. Markers are single-line, so ids containing a newline
or ``-->`` cannot be represented.
"""

from __future__ import annotations

import re

from .models import ChangeProposal, IssueSyncConfig

MAX_BODY_LENGTH = 65536  # GitHub issue body limit (characters)

MARKER_PREFIX = '<!-- spectr-change-id:'
MARKER_SUFFIX = ' -->'
FOOTER = '---\n*This issue is managed by Spectr. Do not edit this description manually.*'
TRUNCATION_NOTICE = (
    '> **Note:** content truncated to fit the GitHub issue size limit. '
    'See the change directory in the repository for the full proposal.'
)
SECTION_SEPARATOR = '\n\n'

# Non-greedy up to the first closing delimiter on the same line; an unclosed
# prefix earlier in the body never swallows the real marker.
_MARKER_RE = re.compile(re.escape(MARKER_PREFIX) + r'([^\n]*?)' + re.escape(MARKER_SUFFIX))


def format_marker(change_id: str) -> str:
    return f'{MARKER_PREFIX}{change_id}{MARKER_SUFFIX}'


def format_issue_title(change_id: str, config: IssueSyncConfig) -> str:
    return f'{config.title_prefix} {change_id}'


def _render_specs(specs: tuple[str, ...]) -> str:
    return '\n'.join(f'- `{name}`' for name in specs)


def _truncate(body: str) -> str:
    # Cut the content between marker and footer; marker and footer both survive.
    head = body[: len(body) - len(FOOTER) - len(SECTION_SEPARATOR)]
    tail = SECTION_SEPARATOR + TRUNCATION_NOTICE + SECTION_SEPARATOR + FOOTER
    keep = max(0, MAX_BODY_LENGTH - len(tail))
    return head[:keep] + tail


def format_issue_body(proposal: ChangeProposal) -> str:
    sections = [format_marker(proposal.id), '## Proposal', proposal.proposal_content]
    if proposal.affected_specs:
        sections += ['## Affected Specs', _render_specs(tuple(proposal.affected_specs))]
    if proposal.tasks_content is not None:
        sections += ['## Tasks', proposal.tasks_content]
    sections.append(FOOTER)
    body = SECTION_SEPARATOR.join(sections)
    if len(body) > MAX_BODY_LENGTH:
        return _truncate(body)
    return body


def extract_change_id(body: str | None) -> str | None:
    """Return the change id embedded in ``body`` or None when no marker exists.

    The marker is searched anywhere in the body since GitHub (or a human) may
    prepend content above it.
    """
    if not body:
        return None
    m = _MARKER_RE.search(body)
    if not m:
        return None
    return m.group(1)


def normalize_body(body: str | None) -> str:
    """CRLF -> LF and trailing whitespace trimmed (whole string, not per line)."""
    return (body or '').replace('\r\n', '\n').rstrip()


def bodies_match(a: str | None, b: str | None) -> bool:
    return normalize_body(a) == normalize_body(b)


__all__ = [
    "FOOTER",
    "MAX_BODY_LENGTH",
    "bodies_match",
    "extract_change_id",
    "format_issue_body",
    "format_issue_title",
    "format_marker",
    "normalize_body",
]

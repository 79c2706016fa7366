from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ChangeProposal:
    """In-memory representation of one Spectr change proposal directory.

    ``id`` is the directory name and the only key shared with GitHub issues;
    ``path`` is kept for re-reading and never used for identity.
    """

    id: str  # directory slug
    path: Path
    is_archived: bool
    proposal_content: str
    tasks_content: str | None = None
    affected_specs: tuple[str, ...] = ()


@dataclass(frozen=True)
class IssueSyncConfig:
    enabled: bool = True
    close_on_archive: bool = True
    update_existing: bool = True
    github_token: str | None = None
    labels: tuple[str, ...] = ('spectr', 'change-proposal')
    spectr_label: str = 'spectr-managed'
    title_prefix: str = '[Spectr Change]'
    repo: str | None = None  # owner/name

    def issue_labels(self) -> list[str]:
        """Labels applied to newly created issues: ``labels`` then ``spectr_label``.

        Passed through as configured; GitHub collapses repeated label names.
        """
        return [*self.labels, self.spectr_label]


__all__ = ["ChangeProposal", "IssueSyncConfig"]

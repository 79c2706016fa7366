"""Sync orchestration: change proposals -> GitHub issues.

Flow per run:

* discover active and archived proposals (any discovery failure aborts the run)
* list all existing issues, whatever their labels, and map them back to
  change ids through the hidden body marker
* active proposal, no issue        -> create
* active proposal, drifted issue   -> update title/body (``update_existing``)
* archived proposal, open issue    -> refresh body if drifted, then close
  (``close_on_archive``); archived proposals never create issues

Issue edits never flow back into the markdown. An id present in both the
active and archived sets is treated as active: its issue stays open.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from .diffing import body_diff
from .discovery import discover_active_changes, discover_archived_changes
from .formatting import bodies_match, extract_change_id, format_issue_body, format_issue_title
from .logging import get_logger
from .models import ChangeProposal, IssueSyncConfig


class IssueClient(Protocol):
    def list_issues(
        self, *, state: str = ..., labels: Iterable[str] | None = ...
    ) -> list[dict[str, Any]]: ...

    def create_issue(
        self, *, title: str, body: str, labels: Iterable[str] | None = ...
    ) -> int | None: ...

    def update_issue(
        self,
        *,
        number: int,
        title: str | None = ...,
        body: str | None = ...,
        labels: Iterable[str] | None = ...,
        state: str | None = ...,
    ) -> None: ...

    def close_issue(self, *, number: int) -> None: ...


@dataclass
class SyncAction:
    change_id: str
    action: str  # created / updated / closed / unchanged
    issue_number: int | None = None
    diff: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"change_id": self.change_id, "action": self.action}
        if self.issue_number is not None:
            out["issue_number"] = self.issue_number
        if self.diff:
            out["diff"] = list(self.diff)
        return out


@dataclass
class SyncSummary:
    dry_run: bool = False
    skipped: bool = False
    created: list[SyncAction] = field(default_factory=list)
    updated: list[SyncAction] = field(default_factory=list)
    closed: list[SyncAction] = field(default_factory=list)
    unchanged: list[SyncAction] = field(default_factory=list)
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def record(self, entry: SyncAction) -> None:
        getattr(self, entry.action).append(entry)

    def totals(self) -> dict[str, int]:
        return {
            "created": len(self.created),
            "updated": len(self.updated),
            "closed": len(self.closed),
            "unchanged": len(self.unchanged),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "dry_run": self.dry_run,
            "skipped": self.skipped,
            "totals": self.totals(),
            "changes": {
                "created": [a.to_dict() for a in self.created],
                "updated": [a.to_dict() for a in self.updated],
                "closed": [a.to_dict() for a in self.closed],
                "unchanged": [a.to_dict() for a in self.unchanged],
            },
        }


def _issue_number(issue: dict[str, Any]) -> int | None:
    number = issue.get("number")
    return number if isinstance(number, int) else None


def _is_open(issue: dict[str, Any]) -> bool:
    return str(issue.get("state") or "").lower() == "open"


def index_issues_by_change_id(issues: Iterable[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Map change id -> issue; open issues win over closed, then the lowest number."""
    indexed: dict[str, dict[str, Any]] = {}
    for issue in issues:
        change_id = extract_change_id(issue.get("body"))
        if change_id is None:
            continue
        current = indexed.get(change_id)
        if current is None:
            indexed[change_id] = issue
            continue
        rank_new = (not _is_open(issue), _issue_number(issue) or 0)
        rank_cur = (not _is_open(current), _issue_number(current) or 0)
        if rank_new < rank_cur:
            indexed[change_id] = issue
    return indexed


class IssueSyncer:
    def __init__(self, config: IssueSyncConfig, client: IssueClient, *, dry_run: bool = False):
        self.config = config
        self.client = client
        self.dry_run = dry_run
        self.logger = get_logger()

    def _fetch_existing(self) -> dict[str, dict[str, Any]]:
        # No label filter: the body marker alone links an issue to its change,
        # so relabelled managed issues are still found.
        issues = self.client.list_issues(state="all", labels=None)
        self.logger.debug(f"fetched {len(issues)} existing issue(s)", issue_count=len(issues))
        return index_issues_by_change_id(issues)

    def _create(self, proposal: ChangeProposal, summary: SyncSummary) -> None:
        title = format_issue_title(proposal.id, self.config)
        body = format_issue_body(proposal)
        number = None
        if not self.dry_run:
            number = self.client.create_issue(
                title=title, body=body, labels=self.config.issue_labels()
            )
        self.logger.log_issue_action("created", proposal.id, number, dry_run=self.dry_run)
        summary.record(SyncAction(proposal.id, "created", number))

    def _refresh(self, proposal: ChangeProposal, issue: dict[str, Any], summary: SyncSummary) -> None:
        number = _issue_number(issue)
        title = format_issue_title(proposal.id, self.config)
        body = format_issue_body(proposal)
        title_changed = (issue.get("title") or "") != title
        body_changed = not bodies_match(issue.get("body"), body)
        if number is None or not self.config.update_existing or not (title_changed or body_changed):
            summary.record(SyncAction(proposal.id, "unchanged", number))
            return
        if not self.dry_run:
            self.client.update_issue(number=number, title=title, body=body)
        self.logger.log_issue_action(
            "updated", proposal.id, number, dry_run=self.dry_run, title_changed=title_changed
        )
        diff = body_diff(issue.get("body"), body) if self.dry_run else []
        summary.record(SyncAction(proposal.id, "updated", number, diff))

    def _close(self, proposal: ChangeProposal, issue: dict[str, Any], summary: SyncSummary) -> None:
        number = _issue_number(issue)
        if number is None or not self.config.close_on_archive or not _is_open(issue):
            summary.record(SyncAction(proposal.id, "unchanged", number))
            return
        body = format_issue_body(proposal)
        if not self.dry_run:
            if self.config.update_existing and not bodies_match(issue.get("body"), body):
                self.client.update_issue(number=number, body=body)
            self.client.close_issue(number=number)
        self.logger.log_issue_action("closed", proposal.id, number, dry_run=self.dry_run)
        summary.record(SyncAction(proposal.id, "closed", number))

    def sync(
        self, active: Iterable[ChangeProposal], archived: Iterable[ChangeProposal]
    ) -> SyncSummary:
        summary = SyncSummary(dry_run=self.dry_run)
        active_list = list(active)
        existing = self._fetch_existing()
        for proposal in active_list:
            issue = existing.get(proposal.id)
            if issue is None:
                self._create(proposal, summary)
            else:
                self._refresh(proposal, issue, summary)
        active_ids = {p.id for p in active_list}
        for proposal in archived:
            if proposal.id in active_ids:
                continue
            issue = existing.get(proposal.id)
            if issue is not None:
                self._close(proposal, issue, summary)
        return summary


def sync_changes(
    root: str | Path,
    config: IssueSyncConfig,
    client: IssueClient,
    *,
    dry_run: bool = False,
    max_workers: int = 1,
) -> SyncSummary:
    logger = get_logger()
    if not config.enabled:
        logger.info("issue sync disabled in configuration; nothing to do")
        return SyncSummary(dry_run=dry_run, skipped=True)
    with logger.timed_operation("sync", root=str(root), dry_run=dry_run):
        active = discover_active_changes(root, max_workers=max_workers)
        archived = discover_archived_changes(root, max_workers=max_workers)
        summary = IssueSyncer(config, client, dry_run=dry_run).sync(active, archived)
    logger.log_operation("sync_totals", dry_run=dry_run, totals=summary.totals())
    return summary


__all__ = [
    "IssueClient",
    "IssueSyncer",
    "SyncAction",
    "SyncSummary",
    "index_issues_by_change_id",
    "sync_changes",
]

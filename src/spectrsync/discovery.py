"""Discovery of Spectr change proposals on disk.

Layout (relative to the repository root)::

    spectr/changes/<change-id>/proposal.md        required
    spectr/changes/<change-id>/tasks.md           optional
    spectr/changes/<change-id>/specs/<name>/      optional, one dir per spec
    spectr/changes/archive/<change-id>/...        archived proposals

Listing and reading are kept apart from interpretation:
``list_change_dirs`` and ``read_change_documents`` touch the filesystem,
``build_change_proposal`` is a pure function over already-read documents so
tests can feed it in-memory fixtures.

Failures are not isolated per proposal. A proposal without ``proposal.md``
raises ``FileNotFoundError`` and the whole discovery call fails; callers
treat the batch as lost.
"""

from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

from .logging import get_logger
from .models import ChangeProposal

CHANGES_DIR = Path('spectr') / 'changes'
ARCHIVE_DIR_NAME = 'archive'
PROPOSAL_FILE = 'proposal.md'
TASKS_FILE = 'tasks.md'
SPECS_DIR = 'specs'


@dataclass(frozen=True)
class ChangeDocuments:
    """Raw contents of one proposal directory."""

    proposal: str
    tasks: str | None = None
    spec_entries: tuple[str, ...] = ()


def _check_root(root: Path) -> None:
    if not root.exists():
        raise FileNotFoundError(f'Repository root not found: {root}')
    if not root.is_dir():
        raise NotADirectoryError(f'Repository root is not a directory: {root}')


def _subdirectories(parent: Path, *, exclude: Iterable[str] = ()) -> list[Path]:
    """Child directories of ``parent`` in listing order (hidden ones skipped)."""
    if not parent.is_dir():
        return []
    skip = set(exclude)
    return [
        entry
        for entry in parent.iterdir()
        if entry.is_dir() and not entry.name.startswith('.') and entry.name not in skip
    ]


def list_change_dirs(root: str | Path, *, archived: bool) -> list[Path]:
    base = Path(root).resolve()
    _check_root(base)
    changes = base / CHANGES_DIR
    if archived:
        return _subdirectories(changes / ARCHIVE_DIR_NAME)
    return _subdirectories(changes, exclude=(ARCHIVE_DIR_NAME,))


def read_change_documents(change_dir: Path) -> ChangeDocuments:
    proposal = (change_dir / PROPOSAL_FILE).read_text(encoding='utf-8')
    tasks_path = change_dir / TASKS_FILE
    tasks = tasks_path.read_text(encoding='utf-8') if tasks_path.is_file() else None
    specs = tuple(d.name for d in _subdirectories(change_dir / SPECS_DIR))
    return ChangeDocuments(proposal=proposal, tasks=tasks, spec_entries=specs)


def build_change_proposal(
    change_dir: Path, documents: ChangeDocuments, *, archived: bool
) -> ChangeProposal:
    return ChangeProposal(
        id=change_dir.name,
        path=change_dir,
        is_archived=archived,
        proposal_content=documents.proposal,
        tasks_content=documents.tasks,
        affected_specs=tuple(documents.spec_entries),
    )


def _load(change_dir: Path, archived: bool) -> ChangeProposal:
    return build_change_proposal(change_dir, read_change_documents(change_dir), archived=archived)


def _discover(root: str | Path, *, archived: bool, max_workers: int) -> list[ChangeProposal]:
    logger = get_logger()
    kind = 'archived' if archived else 'active'
    with logger.timed_operation('discover_changes', kind=kind, root=str(root)):
        dirs = list_change_dirs(root, archived=archived)
        if max_workers > 1 and len(dirs) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                # map() yields in submission order and re-raises the first failure
                proposals = list(pool.map(lambda d: _load(d, archived), dirs))
        else:
            proposals = [_load(d, archived) for d in dirs]
    logger.debug(f'discovered {len(proposals)} {kind} change(s)', kind=kind, change_count=len(proposals))
    return proposals


def discover_active_changes(root: str | Path, *, max_workers: int = 1) -> list[ChangeProposal]:
    """Return every active proposal under ``spectr/changes`` (``is_archived=False``)."""
    return _discover(root, archived=False, max_workers=max_workers)


def discover_archived_changes(root: str | Path, *, max_workers: int = 1) -> list[ChangeProposal]:
    """Return every archived proposal under ``spectr/changes/archive`` (``is_archived=True``)."""
    return _discover(root, archived=True, max_workers=max_workers)


__all__ = [
    "ARCHIVE_DIR_NAME",
    "CHANGES_DIR",
    "ChangeDocuments",
    "build_change_proposal",
    "discover_active_changes",
    "discover_archived_changes",
    "list_change_dirs",
    "read_change_documents",
]

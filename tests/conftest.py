"""Pytest configuration for spectrsync tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`).
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

FIXTURE_REPO = Path(__file__).resolve().parent / "fixtures" / "spectr-repo"

_TOKEN_VARS = ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT", "GITHUB_ACCESS_TOKEN", "GITHUB_REPOSITORY")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    import spectrsync.logging as spectrsync_logging

    # setenv before delenv so values loaded from .env files are undone too
    for name in (*_TOKEN_VARS, "SPECTRSYNC_QUIET", "SPECTRSYNC_RETRY_MAX_SLEEP"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # Fresh logger per test so handlers bind to the current (captured) stderr
    monkeypatch.setattr(spectrsync_logging, "_GLOBAL", None)


@pytest.fixture
def fixture_repo() -> Path:
    return FIXTURE_REPO


MakeChange = Callable[..., Path]


@pytest.fixture
def make_change(tmp_path: Path) -> MakeChange:
    """Create a change directory under ``tmp_path`` and return its path."""

    def _make(
        change_id: str,
        *,
        archived: bool = False,
        proposal: str | None = "# Proposal\n",
        tasks: str | None = None,
        specs: Iterable[str] = (),
    ) -> Path:
        base = tmp_path / "spectr" / "changes"
        if archived:
            base = base / "archive"
        change_dir = base / change_id
        change_dir.mkdir(parents=True)
        if proposal is not None:
            (change_dir / "proposal.md").write_text(proposal)
        if tasks is not None:
            (change_dir / "tasks.md").write_text(tasks)
        for name in specs:
            spec_dir = change_dir / "specs" / name
            spec_dir.mkdir(parents=True)
            (spec_dir / "spec.md").write_text(f"# {name}\n")
        return change_dir

    return _make

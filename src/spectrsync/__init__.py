"""spectrsync - keep GitHub issues in sync with Spectr change proposals.

High-level public API:

from spectrsync import discover_active_changes, format_issue_body, load_config

cfg = load_config('spectr/issues.yaml')
for change in discover_active_changes('.'):
    print(format_issue_title(change.id, cfg))
    print(format_issue_body(change))

The CLI (``spectrsync sync``) wires discovery, formatting and the GitHub REST
client together through :func:`spectrsync.sync.sync_changes`.
"""

from __future__ import annotations

from .config import ConfigError, load_config
from .discovery import discover_active_changes, discover_archived_changes
from .formatting import bodies_match, extract_change_id, format_issue_body, format_issue_title
from .models import ChangeProposal, IssueSyncConfig

__version__ = "0.1.0"

__all__ = [
    "ChangeProposal",
    "ConfigError",
    "IssueSyncConfig",
    "bodies_match",
    "discover_active_changes",
    "discover_archived_changes",
    "extract_change_id",
    "format_issue_body",
    "format_issue_title",
    "load_config",
    "__version__",
]

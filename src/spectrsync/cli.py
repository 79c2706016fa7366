"""spectrsync CLI.

Subcommands:
  sync     -> create/update/close GitHub issues for Spectr change proposals
  list     -> list discovered change proposals
  preview  -> print the issue title and body rendered for one change
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .config import DEFAULT_CONFIG_PATH, ConfigError, Settings, load_settings
from .discovery import discover_active_changes, discover_archived_changes
from .errors import classify_error
from .formatting import format_issue_body, format_issue_title
from .github_rest import GitHubRestClient
from .logging import configure_logging
from .models import ChangeProposal
from .sync import SyncSummary, sync_changes

ROOT_HELP = "Repository root containing spectr/changes (default: current directory)"
CONFIG_HELP = f"Configuration file (default: <root>/{DEFAULT_CONFIG_PATH.as_posix()})"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


class LookupFailed(LookupError):
    pass


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="spectrsync", description="Sync Spectr change proposals to GitHub issues"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Only log warnings and errors (env: SPECTRSYNC_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("sync", help="Create/update/close issues for change proposals")
    ps.add_argument("--root", default=".", help=ROOT_HELP)
    ps.add_argument("--config", help=CONFIG_HELP)
    ps.add_argument("--repo", help="Override target repository (owner/repo)")
    ps.add_argument("--dry-run", action="store_true", help="Plan actions without mutating issues")
    ps.add_argument("--summary-json", help="Write the sync summary to this JSON file")

    pl = sub.add_parser("list", help="List discovered change proposals")
    pl.add_argument("--root", default=".", help=ROOT_HELP)
    pl.add_argument("--archived", action="store_true", help="List archived proposals instead")

    pv = sub.add_parser("preview", help="Print the issue title and body for one change")
    pv.add_argument("change_id")
    pv.add_argument("--root", default=".", help=ROOT_HELP)
    pv.add_argument("--config", help=CONFIG_HELP)
    return p


def _load(args: argparse.Namespace) -> Settings:
    root = Path(args.root)
    config_path = Path(args.config) if args.config else root / DEFAULT_CONFIG_PATH
    settings = load_settings(config_path, base_dir=root)
    level = "WARNING" if args.quiet else settings.logging_level
    logger = configure_logging(json_logging=settings.logging_json_enabled, level=level)
    for warning in settings.warnings:
        logger.warning(warning)
    return settings


def _print_summary(summary: SyncSummary) -> None:
    if summary.skipped:
        print("[sync] skipped (issues.enabled is false)")
        return
    print("[sync] totals", json.dumps(summary.totals()))
    if not summary.dry_run:
        return
    for group in (summary.created, summary.updated, summary.closed):
        for entry in group:
            number = f" #{entry.issue_number}" if entry.issue_number else ""
            print(f"  would {entry.action.rstrip('d')}: {entry.change_id}{number}")
            for line in entry.diff:
                print(f"    {line}")


def _cmd_sync(args: argparse.Namespace) -> int:
    settings = _load(args)
    cfg = settings.issues
    repo = args.repo or cfg.repo
    if not repo:
        raise ConfigError("No repository configured (github.repo, --repo or GITHUB_REPOSITORY)")
    if not cfg.github_token:
        raise ConfigError("No GitHub token found (github.token, GITHUB_TOKEN or GH_TOKEN)")
    client = GitHubRestClient(token=cfg.github_token, repo=repo)
    summary = sync_changes(
        args.root,
        cfg,
        client,
        dry_run=args.dry_run,
        max_workers=settings.discovery_max_workers,
    )
    _print_summary(summary)
    if args.summary_json:
        Path(args.summary_json).write_text(json.dumps(summary.to_dict(), indent=2) + "\n")
    return EXIT_OK


def _cmd_list(args: argparse.Namespace) -> int:
    if args.archived:
        changes = discover_archived_changes(args.root)
    else:
        changes = discover_active_changes(args.root)
    for change in changes:
        specs = ",".join(change.affected_specs) or "-"
        tasks = "tasks" if change.tasks_content is not None else "no-tasks"
        print(f"{change.id}\t{tasks}\tspecs={specs}")
    return EXIT_OK


def _find_change(root: str, change_id: str) -> ChangeProposal:
    for change in discover_active_changes(root):
        if change.id == change_id:
            return change
    for change in discover_archived_changes(root):
        if change.id == change_id:
            return change
    raise LookupFailed(f"No change proposal named {change_id!r} under {root}")


def _cmd_preview(args: argparse.Namespace) -> int:
    settings = _load(args)
    change = _find_change(args.root, args.change_id)
    print(format_issue_title(change.id, settings.issues))
    print()
    print(format_issue_body(change))
    return EXIT_OK


_HANDLERS: dict[str, Callable[[argparse.Namespace], int]] = {
    "sync": _cmd_sync,
    "list": _cmd_list,
    "preview": _cmd_preview,
}


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.quiet and os.environ.get("SPECTRSYNC_QUIET") == "1":
        args.quiet = True
    handler = _HANDLERS.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return EXIT_FAILURE
    try:
        return handler(args)
    except (ConfigError, LookupFailed) as exc:
        info = classify_error(exc)
        print(f"[{args.cmd}] {info.category} error: {info.message}", file=sys.stderr)
        return EXIT_USAGE
    except Exception as exc:
        info = classify_error(exc)
        hint = " (transient, retry later)" if info.transient else ""
        print(f"[{args.cmd}] {info.category} error: {info.message}{hint}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

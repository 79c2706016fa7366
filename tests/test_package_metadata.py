from __future__ import annotations

from importlib import import_module
from typing import Any

import pytest


def test_dunder_all_exports() -> None:
    module = import_module("spectrsync")
    expected = {
        "discover_active_changes",
        "discover_archived_changes",
        "format_issue_title",
        "format_issue_body",
        "extract_change_id",
        "bodies_match",
        "ChangeProposal",
        "IssueSyncConfig",
        "load_config",
        "__version__",
    }
    assert expected <= set(module.__all__)
    for name in expected:
        assert hasattr(module, name)


def test_module_main_run_invokes_cli(monkeypatch: pytest.MonkeyPatch) -> None:
    module = import_module("spectrsync.__main__")
    called: dict[str, Any] = {}

    def fake_main(argv: Any) -> int:
        called["argv"] = argv
        return 123

    monkeypatch.setattr(module, "main", fake_main)

    assert module.run() == 123
    assert called["argv"] is None

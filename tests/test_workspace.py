from __future__ import annotations

from pathlib import Path

import pytest

from sonarfix.errors import MissingFileError
from sonarfix.tools.workspace import WorkspaceResolver


def test_resolve_joins_path_after_first_colon(tmp_path: Path) -> None:
    target = tmp_path / "src" / "a.ts"
    target.parent.mkdir()
    target.write_text("let x = 1;\n", encoding="utf-8")

    resolver = WorkspaceResolver(tmp_path)

    assert resolver.resolve("proj:src/a.ts") == target.resolve()


def test_resolve_keeps_later_colons(tmp_path: Path) -> None:
    target = tmp_path / "odd:name.py"
    target.write_text("", encoding="utf-8")

    assert WorkspaceResolver(tmp_path).resolve("proj:odd:name.py") == target.resolve()


def test_missing_file_returns_none(tmp_path: Path) -> None:
    assert WorkspaceResolver(tmp_path).resolve("proj:src/a.ts") is None


def test_directory_is_not_a_file(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    assert WorkspaceResolver(tmp_path).resolve("proj:src") is None


def test_project_level_component_returns_none(tmp_path: Path) -> None:
    assert WorkspaceResolver(tmp_path).resolve("proj:") is None


def test_reference_escaping_root_is_rejected(tmp_path: Path) -> None:
    root = tmp_path / "work"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("token\n", encoding="utf-8")

    resolver = WorkspaceResolver(root)

    assert resolver.resolve("proj:../secret.txt") is None
    assert resolver.resolve("proj:src/../../secret.txt") is None


def test_require_raises_missing_file_error(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError) as excinfo:
        WorkspaceResolver(tmp_path).require("BUG-9", "proj:src/gone.py")

    assert excinfo.value.key == "BUG-9"
    assert excinfo.value.component_ref == "proj:src/gone.py"

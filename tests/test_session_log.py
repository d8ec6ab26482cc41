from __future__ import annotations

import json
from pathlib import Path

from sonarfix.tools.session_log import SessionLog, load_session_log


def test_record_appends_json_lines(tmp_path: Path) -> None:
    log = SessionLog(tmp_path / "logs", session_id="abc123")

    log.record("fetched", total=2)
    log.record("outcome", key="BUG-1", outcome="applied")

    assert log.path is not None
    assert log.path.parent == tmp_path / "logs" / "sessions"
    assert log.path.name.startswith("session-") and log.path.name.endswith("-abc123.jsonl")
    lines = log.path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["event"] for line in lines] == ["fetched", "outcome"]

    entries = load_session_log(log.path)
    assert entries[0].payload["total"] == 2
    assert entries[1].key == "BUG-1"
    assert entries[1].level == "info"
    assert all(entry.timestamp for entry in entries)


def test_error_records_type_and_level(tmp_path: Path) -> None:
    log = SessionLog(tmp_path)

    entry = log.error("aborted", ValueError("boom"), state="PER_ISSUE")

    assert entry.level == "error"
    stored = load_session_log(log.path)[0]
    assert stored.payload["error"] == "boom"
    assert stored.payload["error_type"] == "ValueError"
    assert stored.payload["state"] == "PER_ISSUE"


def test_logs_directory_is_git_ignored(tmp_path: Path) -> None:
    SessionLog(tmp_path / "logs")
    assert (tmp_path / "logs" / ".gitignore").read_text(encoding="utf-8") == "*\n"


def test_without_root_only_logs_to_logger(tmp_path: Path) -> None:
    log = SessionLog(None)

    entry = log.record("started", branch="sonar-auto-fix")

    assert log.path is None
    assert entry.payload["branch"] == "sonar-auto-fix"
    assert list(tmp_path.iterdir()) == []

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from conftest import FakeIssues, make_config, make_finding
from sonarfix.chat import ChatHandlers, ChatSession, RecordingStream, render_findings
from sonarfix.clients.sonarqube import IssueBatch
from sonarfix.errors import NetworkError, SessionBusy
from sonarfix.orchestrator import RemediationResult, RunState


class _StubOrchestrator:
    def __init__(self, result: RemediationResult | None = None, error: Exception | None = None) -> None:
        self.result = result or RemediationResult(state=RunState.DONE, branch_name="sonar-auto-fix")
        self.error = error
        self.keys: List[Optional[str]] = []

    def run(self, *, only_key: Optional[str] = None) -> RemediationResult:
        self.keys.append(only_key)
        if self.error is not None:
            raise self.error
        return self.result


class _BrokenIssues:
    def fetch(self):
        raise NetworkError("HTTP 401: unauthorized")


def _session(tmp_path: Path, issues=None, orchestrator: _StubOrchestrator | None = None) -> ChatSession:
    stub = orchestrator or _StubOrchestrator()
    handlers = ChatHandlers(
        config=make_config(tmp_path),
        issues=issues or FakeIssues([make_finding("BUG-1", line=4), make_finding("BUG-2")]),
        orchestrator_factory=lambda _stream: stub,
    )
    return ChatSession(handlers)


def test_fetch_lists_findings(tmp_path: Path) -> None:
    stream = RecordingStream()

    _session(tmp_path).send("/fetch", stream)

    assert "Found **2** issue(s)" in stream.text
    assert "`src/a.py:4`" in stream.text
    assert stream.progress_markers == ["Fetching issues from SonarQube..."]


def test_followups_come_from_the_previous_turn(tmp_path: Path) -> None:
    session = _session(tmp_path)

    first = session.send("/fetch", RecordingStream())
    second = session.send("/analyze", RecordingStream())
    third = session.send("/config", RecordingStream())
    fourth = session.send("/help", RecordingStream())

    assert [item.command for item in first] == ["help", "config", "fetch"]
    assert [item.command for item in second] == ["fix-all", "analyze"]
    assert [item.command for item in third] == ["help", "config", "fetch"]
    assert [item.command for item in fourth] == ["fetch"]


def test_fetch_error_is_reported(tmp_path: Path) -> None:
    stream = RecordingStream()
    _session(tmp_path, issues=_BrokenIssues()).send("list issues", stream)
    assert "**Error:** HTTP 401: unauthorized" in stream.text


def test_fix_all_runs_orchestrator(tmp_path: Path) -> None:
    stub = _StubOrchestrator(
        RemediationResult(
            state=RunState.DONE,
            branch_name="sonar-auto-fix",
            fixed_count=1,
            total_count=2,
            skipped=["BUG-2"],
            pushed=True,
        )
    )
    stream = RecordingStream()

    _session(tmp_path, orchestrator=stub).send("/fix-all", stream)

    assert stub.keys == [None]
    assert "Remediation complete." in stream.text
    assert "Fixed 1/2" in stream.text
    assert "Skipped: BUG-2" in stream.text


def test_fix_specific_targets_key(tmp_path: Path) -> None:
    stub = _StubOrchestrator()
    _session(tmp_path, orchestrator=stub).send("please fix issue BUG-2", RecordingStream())
    assert stub.keys == ["BUG-2"]


def test_fix_without_key_asks_for_clarification(tmp_path: Path) -> None:
    stub = _StubOrchestrator()
    stream = RecordingStream()

    _session(tmp_path, orchestrator=stub).send("fix this issue", stream)

    assert stub.keys == []
    assert "Which issue should I fix?" in stream.text


def test_busy_session_is_reported(tmp_path: Path) -> None:
    stub = _StubOrchestrator(error=SessionBusy("A remediation session is already running."))
    stream = RecordingStream()
    _session(tmp_path, orchestrator=stub).send("/fix-all", stream)
    assert "already running" in stream.text


def test_config_masks_token(tmp_path: Path) -> None:
    stream = RecordingStream()

    _session(tmp_path).send("/config", stream)

    assert "squ_token_1234" not in stream.text
    assert "1234" in stream.text
    assert "http://sonar.test" in stream.text


def test_analyze_renders_report(tmp_path: Path) -> None:
    stream = RecordingStream()
    _session(tmp_path).send("/analyze", stream)
    assert "## Issue Analysis" in stream.text
    assert "- MAJOR: 2 (100%)" in stream.text


def test_unknown_command_points_to_help(tmp_path: Path) -> None:
    stream = RecordingStream()

    followups = _session(tmp_path).send("/deploy now", stream)

    assert "Unknown command `/deploy`" in stream.text
    assert "/help" in stream.text
    assert [item.command for item in followups] == ["help", "config", "fetch"]


def test_history_accumulates(tmp_path: Path) -> None:
    session = _session(tmp_path)
    session.send("/help", RecordingStream())
    followups = session.send("hello there", RecordingStream())

    assert [turn.raw_text for turn in session.history] == ["", "hello there"]
    assert [item.command for item in followups] == ["config", "fetch"]


def test_render_findings_notes_truncation() -> None:
    batch = IssueBatch([make_finding("BUG-1")], total=140)
    assert "Showing the first 1 of 140 issues" in render_findings(batch)

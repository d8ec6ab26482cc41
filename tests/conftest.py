from __future__ import annotations

import json
import subprocess
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from sonarfix.clients.sonarqube import IssueBatch  # noqa: E402
from sonarfix.config import RemediationConfig  # noqa: E402
from sonarfix.errors import AgentUnavailable  # noqa: E402
from sonarfix.findings import Confirmation, Finding  # noqa: E402
from sonarfix.fixing.agent import REQUIRED_CAPABILITIES, Editor, FixAgent  # noqa: E402

PROJECT_KEY = "proj"


def run_git(root: Path, *cmd: str) -> str:
    process = subprocess.run(
        ["git", *cmd],
        cwd=root,
        check=True,
        capture_output=True,
        text=True,
    )
    return process.stdout


@dataclass(slots=True)
class GitWorkspace:
    """Throwaway git checkout with a bare ``origin`` it can push to."""

    root: Path
    origin: Path

    def git(self, *cmd: str) -> str:
        return run_git(self.root, *cmd)

    def log_subjects(self, branch: str = "HEAD") -> List[str]:
        return self.git("log", "--format=%s", branch).splitlines()

    def origin_branches(self) -> List[str]:
        output = run_git(self.origin, "for-each-ref", "--format=%(refname:short)", "refs/heads/")
        return [line.strip() for line in output.splitlines() if line.strip()]


@pytest.fixture()
def git_workspace(tmp_path: Path) -> GitWorkspace:
    """Create a repository whose ``origin`` fetch URL is GitHub-shaped.

    Pushes go to a local bare repository so nothing leaves the machine.
    """

    origin = tmp_path / "origin.git"
    subprocess.run(["git", "init", "--bare", str(origin)], check=True, capture_output=True)

    root = tmp_path / "work"
    root.mkdir()
    run_git(root, "init")
    run_git(root, "config", "user.email", "autofix@example.com")
    run_git(root, "config", "user.name", "Sonar Autofix")
    run_git(root, "remote", "add", "origin", "https://github.com/acme/widgets.git")
    run_git(root, "remote", "set-url", "--push", "origin", str(origin))

    src = root / "src"
    src.mkdir()
    (src / "a.py").write_text(
        textwrap.dedent(
            """
            def divide(left, right):
                return left / right


            def unused(value):
                result = value
                return value
            """
        ).lstrip(),
        encoding="utf-8",
    )
    (src / "b.py").write_text("def noop():\n    pass\n", encoding="utf-8")
    run_git(root, "add", ".")
    run_git(root, "commit", "-m", "Initial state")
    return GitWorkspace(root=root, origin=origin)


def make_finding(
    key: str,
    path: str = "src/a.py",
    *,
    line: int | None = 2,
    rule: str = "python:S1481",
    severity: str = "MAJOR",
    type_: str = "BUG",
    message: str | None = None,
) -> Finding:
    return Finding.model_validate(
        {
            "key": key,
            "rule": rule,
            "severity": severity,
            "type": type_,
            "component": f"{PROJECT_KEY}:{path}",
            "line": line,
            "message": message or f"Problem {key}",
            "status": "OPEN",
        }
    )


def issues_payload(findings: Iterable[Finding], total: int | None = None) -> str:
    issues = [finding.model_dump(by_alias=True, mode="json") for finding in findings]
    return json.dumps({"issues": issues, "total": len(issues) if total is None else total})


class FakeIssues:
    """Stand-in for the SonarQube client returning a fixed batch."""

    def __init__(self, findings: List[Finding], total: int | None = None) -> None:
        self.findings = findings
        self.total = len(findings) if total is None else total
        self.calls = 0

    def fetch(self) -> IssueBatch:
        self.calls += 1
        return IssueBatch(list(self.findings), self.total)


class ScriptedConfirm:
    """Return scripted confirmations; an optional hook runs before each answer."""

    def __init__(
        self,
        answers: Iterable[Confirmation],
        before: Callable[[int], None] | None = None,
    ) -> None:
        self.answers = list(answers)
        self.prompts: List[str] = []
        self._before = before

    def __call__(self, prompt: str) -> Confirmation:
        index = len(self.prompts)
        self.prompts.append(prompt)
        if self._before is not None:
            self._before(index)
        return self.answers[index]


class RecordingAgent(FixAgent):
    """Agent that records calls; ``available`` toggles its capability set."""

    name = "recording"

    def __init__(self, *, available: bool = True, fail: bool = False) -> None:
        self.available = available
        self.fail = fail
        self.calls: List[tuple[str, Dict[str, Any]]] = []

    def capabilities(self):
        return REQUIRED_CAPABILITIES if self.available else frozenset()

    def execute(self, capability: str, payload: Mapping[str, Any]) -> None:
        self.calls.append((capability, dict(payload)))
        if self.fail or not self.available:
            raise AgentUnavailable(f"Capability '{capability}' is not registered.")


@dataclass(slots=True)
class RecordingEditor(Editor):
    opened: List[tuple[Path, int]] = field(default_factory=list)

    def open(self, path: Path, line: int) -> None:
        self.opened.append((path, line))


@dataclass(slots=True)
class Notes:
    messages: List[str] = field(default_factory=list)

    def __call__(self, text: str) -> None:
        self.messages.append(text)

    def contains(self, fragment: str) -> bool:
        return any(fragment in message for message in self.messages)


def make_config(root: Path, **overrides: Any) -> RemediationConfig:
    values: Dict[str, Any] = {
        "sonar_url": "http://sonar.test",
        "sonar_token": "squ_token_1234",
        "project_key": PROJECT_KEY,
        "workspace_root": root,
        "fix_delay_seconds": 0.0,
        "logs_root": root / "data" / "logs",
    }
    values.update(overrides)
    return RemediationConfig(**values)

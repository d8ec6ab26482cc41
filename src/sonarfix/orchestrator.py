"""State machine sequencing a full remediation run."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .clients.sonarqube import IssueBatch, SonarQubeClient, Transport
from .config import RemediationConfig
from .errors import MissingFileError, RemediationError, SessionBusy, UserCancelled
from .findings import Finding, FixOutcome
from .fixing.adapter import FixInvoker
from .fixing.agent import AGENT_INSTALL_HINT, Confirm, Editor, FixAgent, Notifier, NullAgent
from .tools.session_log import SessionLog
from .tools.vcs import GitRepository
from .tools.workspace import WorkspaceResolver

__all__ = [
    "RemediationOrchestrator",
    "RemediationResult",
    "RemediationSession",
    "RunState",
    "commit_message_for",
]

LOGGER = logging.getLogger(__name__)

Ask = Callable[[str], bool]
OpenUrl = Callable[[str], None]

_COMMIT_SUMMARY_LIMIT = 120


class RunState(str, Enum):
    """States visited by a remediation run."""

    INIT = "init"
    CHECK_AGENT = "check_agent"
    ENSURE_BRANCH = "ensure_branch"
    FETCH_ISSUES = "fetch_issues"
    PER_ISSUE = "per_issue"
    MAYBE_PUSH = "maybe_push"
    MAYBE_OFFER_PR = "maybe_offer_pr"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True)
class RemediationSession:
    """Mutable bookkeeping for one run; discarded when the run ends."""

    branch_name: str
    findings: List[Finding] = field(default_factory=list)
    fixed_count: int = 0
    total_count: int = 0
    cursor: int = 0

    def record_fix(self) -> None:
        if self.fixed_count >= self.total_count:
            raise RemediationError("Fixed count cannot exceed the number of fetched findings.")
        self.fixed_count += 1

    @property
    def progress(self) -> str:
        return f"{self.fixed_count}/{self.total_count}"


@dataclass(slots=True)
class RemediationResult:
    """Outcome of a remediation run as reported to the caller."""

    state: RunState = RunState.INIT
    branch_name: str = ""
    fixed_count: int = 0
    total_count: int = 0
    commits: List[tuple[str, str]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    trail: List[RunState] = field(default_factory=list)
    degraded: bool = False
    pushed: bool = False
    pr_link: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False
    log_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.state == RunState.DONE


def commit_message_for(finding: Finding) -> str:
    """Return the commit message recorded for an applied ``finding``."""
    summary = " ".join(finding.message.split()) or "resolve static analysis finding"
    return f"fix: {summary[:_COMMIT_SUMMARY_LIMIT]} ({finding.key})"


class RemediationOrchestrator:
    """Run fetch → fix → commit → push for the configured project.

    Findings are handled one at a time in the order the server returned them.
    Only one session may run per process; a concurrent ``run`` raises
    :class:`SessionBusy`.
    """

    _session_lock = threading.Lock()

    def __init__(
        self,
        *,
        config: RemediationConfig,
        issues: SonarQubeClient,
        repo: GitRepository,
        agent: FixAgent,
        editor: Editor,
        confirm: Confirm,
        ask: Ask,
        notify: Notifier,
        progress: Notifier | None = None,
        open_url: OpenUrl | None = None,
        resolver: WorkspaceResolver | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._issues = issues
        self._repo = repo
        self._agent = agent
        self._editor = editor
        self._confirm = confirm
        self._ask = ask
        self._notify = notify
        self._progress = progress or notify
        self._open_url = open_url
        self._resolver = resolver or WorkspaceResolver(config.workspace_root)
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: RemediationConfig,
        *,
        agent: FixAgent,
        editor: Editor,
        confirm: Confirm,
        ask: Ask,
        notify: Notifier,
        progress: Notifier | None = None,
        open_url: OpenUrl | None = None,
        transport: Transport | None = None,
    ) -> "RemediationOrchestrator":
        """Convenience constructor used by the CLI and the chat handlers."""
        return cls(
            config=config,
            issues=SonarQubeClient(config, transport=transport),
            repo=GitRepository.discover(config.workspace_root),
            agent=agent,
            editor=editor,
            confirm=confirm,
            ask=ask,
            notify=notify,
            progress=progress,
            open_url=open_url,
        )

    @classmethod
    def is_busy(cls) -> bool:
        return cls._session_lock.locked()

    def run(self, *, only_key: str | None = None) -> RemediationResult:
        """Execute a full session, optionally restricted to the finding ``only_key``."""
        if not self._session_lock.acquire(blocking=False):
            raise SessionBusy("A remediation session is already running.")
        try:
            return self._run(only_key)
        finally:
            self._session_lock.release()

    # ----------------------------------------------------------------- states
    def _run(self, only_key: str | None) -> RemediationResult:
        log = SessionLog(self._config.logs_root)
        result = RemediationResult(branch_name=self._config.git_branch, log_path=log.path)
        session: RemediationSession | None = None

        def enter(state: RunState) -> None:
            result.state = state
            result.trail.append(state)
            log.record("state", state=state.value)

        try:
            enter(RunState.INIT)
            self._config.require_credentials()

            enter(RunState.CHECK_AGENT)
            agent = self._check_agent(result, log)

            enter(RunState.ENSURE_BRANCH)
            created = self._repo.ensure_branch(self._config.git_branch)
            log.record("branch", name=self._config.git_branch, created=created)

            enter(RunState.FETCH_ISSUES)
            session = self._open_session(only_key, log)
            result.total_count = session.total_count
            if not session.findings:
                self._notify("No issues found. Nothing to fix.")
                enter(RunState.DONE)
                return result

            enter(RunState.PER_ISSUE)
            invoker = FixInvoker(
                agent=agent,
                editor=self._editor,
                confirm=self._confirm,
                notify=self._notify,
                delay=self._config.fix_delay_seconds,
                sleep=self._sleep,
            )
            self._process_findings(session, invoker, result, log)

            enter(RunState.MAYBE_PUSH)
            if session.fixed_count == 0:
                self._notify("Nothing was fixed; skipping push.")
                enter(RunState.DONE)
                return result
            self._repo.push(session.branch_name)
            result.pushed = True
            log.record("pushed", branch=session.branch_name, fixed=session.fixed_count)
            self._notify(f"Pushed {session.fixed_count} fix(es) to `{session.branch_name}`.")

            enter(RunState.MAYBE_OFFER_PR)
            self._offer_pull_request(session, result, log)

            enter(RunState.DONE)
            return result
        except UserCancelled as error:
            result.cancelled = True
            result.error = str(error)
            log.error("cancelled", error, key=self._current_key(session))
            self._notify("Remediation cancelled. Commits made so far are kept; nothing was pushed.")
            enter(RunState.ABORTED)
            return result
        except Exception as error:  # surfaced as one user-visible error
            result.error = str(error)
            log.error("failed", error, state=result.state.value)
            if not isinstance(error, RemediationError):
                LOGGER.exception("Unexpected failure during remediation")
            self._notify(f"Remediation failed during {result.state.value}: {error}")
            enter(RunState.ABORTED)
            return result
        finally:
            if session is not None:
                result.fixed_count = session.fixed_count

    def _check_agent(self, result: RemediationResult, log: SessionLog) -> FixAgent:
        if self._agent.is_available():
            log.record("agent", name=self._agent.name, available=True)
            return self._agent
        result.degraded = True
        log.record("agent", level="warning", name=self._agent.name, available=False)
        self._notify(AGENT_INSTALL_HINT)
        return NullAgent()

    def _open_session(self, only_key: str | None, log: SessionLog) -> RemediationSession:
        batch: IssueBatch = self._issues.fetch()
        findings: Sequence[Finding] = list(batch)
        if only_key is not None:
            findings = [finding for finding in findings if finding.key == only_key]
            if not findings:
                self._notify(f"Issue {only_key} was not found among the fetched findings.")
        elif batch.truncated:
            self._notify(
                f"Server reports {batch.total} findings; processing the first {len(batch)}."
            )
        log.record("fetched", count=len(findings), total=batch.total, only_key=only_key)
        return RemediationSession(
            branch_name=self._config.git_branch,
            findings=list(findings),
            total_count=len(findings),
        )

    def _process_findings(
        self,
        session: RemediationSession,
        invoker: FixInvoker,
        result: RemediationResult,
        log: SessionLog,
    ) -> None:
        protected = self._protected_paths()
        for index, finding in enumerate(session.findings):
            session.cursor = index
            try:
                path = self._resolver.require(finding.key, finding.component_ref)
            except MissingFileError as error:
                result.missing.append(finding.key)
                log.record("missing_file", level="warning", key=finding.key, error=str(error))
                self._notify(f"Skipping {finding.key}: `{finding.relative_path}` is not in the workspace.")
                continue

            outcome = invoker.invoke(path, finding)
            log.record("outcome", key=finding.key, outcome=outcome.value)
            if outcome == FixOutcome.APPLIED:
                sha = self._repo.commit_all(
                    commit_message_for(finding), allow_empty=True, exclude=protected
                )
                session.record_fix()
                result.commits.append((finding.key, sha or ""))
                log.record("committed", key=finding.key, sha=sha)
                self._progress(f"Fixed {session.progress}: {finding.key}")
            else:
                result.skipped.append(finding.key)
        session.cursor = len(session.findings)

    def _protected_paths(self) -> List[Path]:
        """Workspace files never staged by fix commits: the loaded config holds the token."""
        config_path = self._config.config_path
        if config_path is None:
            return []
        relative = self._repo.relative_path(config_path)
        return [relative] if relative is not None else []

    def _offer_pull_request(
        self,
        session: RemediationSession,
        result: RemediationResult,
        log: SessionLog,
    ) -> None:
        if not self._ask(f"Open a pull request link for `{session.branch_name}`?"):
            log.record("pr_declined", branch=session.branch_name)
            return
        link = self._repo.build_pr_link(session.branch_name)
        result.pr_link = link
        log.record("pr_link", url=link)
        self._notify(f"Create the pull request here: {link}")
        if self._open_url is not None:
            self._open_url(link)

    @staticmethod
    def _current_key(session: RemediationSession | None) -> str | None:
        if session is None or session.cursor >= len(session.findings):
            return None
        return session.findings[session.cursor].key

"""Conversational surface: bind classified intents to remediation operations."""

from __future__ import annotations

from typing import Callable, Dict, List, Sequence

from .clients.sonarqube import IssueBatch, SonarQubeClient
from .config import RemediationConfig
from .errors import RemediationError
from .orchestrator import RemediationOrchestrator, RemediationResult, RunState
from .reporting import render_markdown, summarize
from .router import (
    ConversationTurn,
    Followup,
    Handler,
    Intent,
    IntentKind,
    route,
    suggest_followups,
)

__all__ = [
    "ChatHandlers",
    "ChatSession",
    "RecordingStream",
    "ResponseStream",
    "render_findings",
    "render_result",
]

OrchestratorFactory = Callable[["ResponseStream"], RemediationOrchestrator]

_COMMAND_HELP: Sequence[tuple[str, str]] = (
    ("/help", "Show this help"),
    ("/config", "Show the SonarQube connection settings"),
    ("/fetch", "List unresolved issues from SonarQube"),
    ("/fix-all", "Fix every fetched issue, committing each fix"),
    ("/analyze", "Summarize issues by severity, type and rule"),
)


class ResponseStream:
    """Append-only response surface for one chat turn."""

    def markdown(self, text: str) -> None:
        raise NotImplementedError

    def progress(self, text: str) -> None:
        raise NotImplementedError


class RecordingStream(ResponseStream):
    """Stream that keeps every segment in memory."""

    def __init__(self) -> None:
        self.segments: List[tuple[str, str]] = []

    def markdown(self, text: str) -> None:
        self.segments.append(("markdown", text))

    def progress(self, text: str) -> None:
        self.segments.append(("progress", text))

    @property
    def text(self) -> str:
        return "\n".join(text for kind, text in self.segments if kind == "markdown")

    @property
    def progress_markers(self) -> List[str]:
        return [text for kind, text in self.segments if kind == "progress"]


def render_findings(batch: IssueBatch) -> str:
    """Format fetched findings as a markdown list."""
    if not batch:
        return "No issues found."
    lines = [f"Found **{len(batch)}** issue(s):", ""]
    for finding in batch:
        location = finding.relative_path
        if finding.line:
            location = f"{location}:{finding.line}"
        lines.append(
            f"- **{finding.key}** [{finding.severity.value}] `{location}`: {finding.message}"
        )
    if batch.truncated:
        lines.append("")
        lines.append(f"_Showing the first {len(batch)} of {batch.total} issues._")
    return "\n".join(lines)


def render_result(result: RemediationResult) -> str:
    """Summarize a remediation run for the chat surface."""
    if result.state == RunState.DONE:
        headline = "Remediation complete."
    elif result.cancelled:
        headline = "Remediation cancelled."
    else:
        headline = "Remediation aborted."
    lines = [f"**{headline}** Fixed {result.fixed_count}/{result.total_count}."]
    if result.skipped:
        lines.append(f"- Skipped: {', '.join(result.skipped)}")
    if result.missing:
        lines.append(f"- Not in workspace: {', '.join(result.missing)}")
    if result.pushed:
        lines.append(f"- Pushed branch `{result.branch_name}`")
    if result.pr_link:
        lines.append(f"- Pull request: {result.pr_link}")
    if result.error and not result.cancelled:
        lines.append(f"- Error: {result.error}")
    return "\n".join(lines)


class ChatHandlers:
    """Handlers for each :class:`IntentKind`, writing to a response stream."""

    def __init__(
        self,
        *,
        config: RemediationConfig,
        issues: SonarQubeClient,
        orchestrator_factory: OrchestratorFactory,
    ) -> None:
        self._config = config
        self._issues = issues
        self._orchestrator_factory = orchestrator_factory

    def table(self, stream: ResponseStream) -> Dict[IntentKind, Handler]:
        """Return the dispatch table bound to ``stream``."""

        def bind(method: Callable[[Intent, ResponseStream], None]) -> Handler:
            return lambda intent, _turn: method(intent, stream)

        return {
            IntentKind.FETCH_ISSUES: bind(self.fetch),
            IntentKind.FIX_ALL: bind(self.fix),
            IntentKind.FIX_SPECIFIC: bind(self.fix),
            IntentKind.CONFIGURE: bind(self.configure),
            IntentKind.ANALYZE: bind(self.analyze),
            IntentKind.HELP: bind(self.help),
            IntentKind.GENERAL: bind(self.general),
            IntentKind.UNKNOWN_COMMAND: bind(self.unknown),
        }

    def fetch(self, intent: Intent, stream: ResponseStream) -> None:
        stream.progress("Fetching issues from SonarQube...")
        try:
            batch = self._issues.fetch()
        except RemediationError as error:
            stream.markdown(f"**Error:** {error}")
            return
        stream.markdown(render_findings(batch))

    def fix(self, intent: Intent, stream: ResponseStream) -> None:
        if intent.needs_clarification:
            stream.markdown(
                "Which issue should I fix? Mention its key (for example `BUG-123`) "
                "or use `/fix-all` to fix everything."
            )
            return
        try:
            orchestrator = self._orchestrator_factory(stream)
            result = orchestrator.run(only_key=intent.key)
        except RemediationError as error:
            stream.markdown(f"**Error:** {error}")
            return
        stream.markdown(render_result(result))

    def configure(self, intent: Intent, stream: ResponseStream) -> None:
        lines = ["## Configuration", ""]
        lines.extend(f"- **{key}**: {value}" for key, value in self._config.describe().items())
        lines.append("")
        lines.append("Edit `config.yaml` or run `sonar-autofix init` to change these settings.")
        stream.markdown("\n".join(lines))

    def analyze(self, intent: Intent, stream: ResponseStream) -> None:
        stream.progress("Analyzing issues...")
        try:
            batch = self._issues.fetch()
        except RemediationError as error:
            stream.markdown(f"**Error:** {error}")
            return
        stream.markdown(render_markdown(summarize(batch)))

    def help(self, intent: Intent, stream: ResponseStream) -> None:
        lines = ["## SonarQube Autofix", "", "Available commands:"]
        lines.extend(f"- `{command}`: {description}" for command, description in _COMMAND_HELP)
        lines.append("")
        lines.append("You can also ask in plain words, e.g. \"list issues\" or \"fix issue BUG-12\".")
        stream.markdown("\n".join(lines))

    def general(self, intent: Intent, stream: ResponseStream) -> None:
        stream.markdown(
            "I can fetch SonarQube issues, fix them one by one with your confirmation, "
            "and summarize them. Type `/help` to see the commands."
        )

    def unknown(self, intent: Intent, stream: ResponseStream) -> None:
        stream.markdown(f"Unknown command `/{intent.command}`. Type `/help` to see available commands.")


class ChatSession:
    """Keep conversation history and answer turns through the router."""

    def __init__(self, handlers: ChatHandlers) -> None:
        self._handlers = handlers
        self.history: List[ConversationTurn] = []

    def send(self, text: str, stream: ResponseStream) -> List[Followup]:
        """Handle ``text`` and return the follow-ups emitted after it.

        Suggestions come from the turn before this one; the first turn of a
        session gets the default set.
        """
        turn = ConversationTurn.parse(text, self.history)
        route(turn, self._handlers.table(stream))
        self.history.append(ConversationTurn(raw_text=turn.raw_text, slash_command=turn.slash_command))
        return suggest_followups(turn.history)

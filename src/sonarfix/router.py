"""Routing logic that maps conversational turns to their handlers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple


class IntentKind(str, Enum):
    """Enumeration of the purposes a conversational turn can have."""

    FETCH_ISSUES = "fetch"
    FIX_ALL = "fix-all"
    FIX_SPECIFIC = "fix"
    CONFIGURE = "config"
    ANALYZE = "analyze"
    HELP = "help"
    GENERAL = "general"
    UNKNOWN_COMMAND = "unknown"


@dataclass(frozen=True, slots=True)
class Intent:
    """Classified intent; ``key`` is set for targeted fixes when one was named."""

    kind: IntentKind
    key: Optional[str] = None
    command: Optional[str] = None

    @property
    def needs_clarification(self) -> bool:
        return self.kind == IntentKind.FIX_SPECIFIC and not self.key


@dataclass(frozen=True, slots=True)
class ConversationTurn:
    """One chat request together with the turns that preceded it."""

    raw_text: str
    slash_command: Optional[str] = None
    history: Tuple["ConversationTurn", ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, text: str, history: Iterable["ConversationTurn"] = ()) -> "ConversationTurn":
        """Split ``"/command rest"`` into a slash command and its free text."""
        stripped = text.strip()
        if stripped.startswith("/") and len(stripped) > 1:
            command, _, rest = stripped[1:].partition(" ")
            return cls(raw_text=rest.strip(), slash_command=command.strip(), history=tuple(history))
        return cls(raw_text=stripped, history=tuple(history))


@dataclass(frozen=True, slots=True)
class Followup:
    """Suggested next action shown after a turn."""

    prompt: str
    label: str
    command: str


@dataclass(frozen=True, slots=True)
class IntentRule:
    """One entry of the ordered free-text rule table."""

    name: str
    matches: Callable[[str], bool]
    build: Callable[[str], Intent]


ISSUE_KEY_RE = re.compile(r"[A-Z]+-\d+")

SLASH_COMMANDS: Dict[str, IntentKind] = {
    "help": IntentKind.HELP,
    "config": IntentKind.CONFIGURE,
    "fetch": IntentKind.FETCH_ISSUES,
    "fix-all": IntentKind.FIX_ALL,
    "analyze": IntentKind.ANALYZE,
}


def _contains_any(*needles: str) -> Callable[[str], bool]:
    return lambda text: any(needle in text.lower() for needle in needles)


def _contains_all(*needles: str) -> Callable[[str], bool]:
    return lambda text: all(needle in text.lower() for needle in needles)


def _fix_intent(text: str) -> Intent:
    if "all" in text.lower():
        return Intent(IntentKind.FIX_ALL)
    match = ISSUE_KEY_RE.search(text)
    return Intent(IntentKind.FIX_SPECIFIC, key=match.group(0) if match else None)


INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule("fetch", _contains_any("fetch", "list", "issues"), lambda _: Intent(IntentKind.FETCH_ISSUES)),
    IntentRule("fix", _contains_all("fix", "issue"), _fix_intent),
    IntentRule("config", _contains_any("config", "setup"), lambda _: Intent(IntentKind.CONFIGURE)),
    IntentRule("help", _contains_any("help"), lambda _: Intent(IntentKind.HELP)),
)

_FOLLOWUPS: Dict[str, Followup] = {
    "help": Followup(prompt="Show help", label="Show available commands", command="help"),
    "config": Followup(prompt="Show configuration", label="Configure the SonarQube connection", command="config"),
    "fetch": Followup(prompt="Fetch issues", label="Fetch SonarQube issues", command="fetch"),
    "fix-all": Followup(prompt="Fix all issues", label="Fix all fetched issues", command="fix-all"),
    "analyze": Followup(prompt="Analyze issues", label="Summarize issues by severity and rule", command="analyze"),
}

FOLLOWUP_RULES: Dict[IntentKind, Tuple[str, ...]] = {
    IntentKind.HELP: ("config", "fetch"),
    IntentKind.CONFIGURE: ("fetch",),
    IntentKind.FETCH_ISSUES: ("fix-all", "analyze"),
    IntentKind.FIX_ALL: ("fetch",),
    IntentKind.FIX_SPECIFIC: ("fetch",),
}

DEFAULT_FOLLOWUPS: Tuple[str, ...] = ("help", "config", "fetch")
MAX_FOLLOWUPS = 3

Handler = Callable[[Intent, ConversationTurn], Any]


def classify(turn: ConversationTurn) -> Intent:
    """Return the intent for ``turn``.

    Slash commands match the command table exactly and never fall back to
    free-text classification.  Free text is tested against ``INTENT_RULES`` in
    order; the first matching rule wins.
    """
    if turn.slash_command is not None:
        command = turn.slash_command.strip().lower()
        kind = SLASH_COMMANDS.get(command)
        if kind is None:
            return Intent(IntentKind.UNKNOWN_COMMAND, command=command)
        return Intent(kind, command=command)

    text = turn.raw_text
    for rule in INTENT_RULES:
        if rule.matches(text):
            return rule.build(text)
    return Intent(IntentKind.GENERAL)


def route(turn: ConversationTurn, handlers: Mapping[IntentKind, Handler]) -> Any:
    """Classify ``turn`` and invoke the matching handler."""
    intent = classify(turn)
    try:
        handler = handlers[intent.kind]
    except KeyError as error:
        raise KeyError(f"No handler registered for intent '{intent.kind.value}'") from error
    return handler(intent, turn)


def suggest_followups(history: Sequence[ConversationTurn]) -> List[Followup]:
    """Propose next actions from the most recent turn in ``history``.

    An empty history yields ``DEFAULT_FOLLOWUPS``.
    """
    names: Sequence[str] = DEFAULT_FOLLOWUPS
    if history:
        previous = classify(history[-1])
        names = FOLLOWUP_RULES.get(previous.kind, DEFAULT_FOLLOWUPS)
    return [_FOLLOWUPS[name] for name in names[:MAX_FOLLOWUPS]]


def available_commands() -> Iterable[str]:
    """Return the registered slash commands in table order."""
    return SLASH_COMMANDS.keys()


__all__ = [
    "ConversationTurn",
    "DEFAULT_FOLLOWUPS",
    "FOLLOWUP_RULES",
    "Followup",
    "Handler",
    "INTENT_RULES",
    "ISSUE_KEY_RE",
    "Intent",
    "IntentKind",
    "IntentRule",
    "SLASH_COMMANDS",
    "available_commands",
    "classify",
    "route",
    "suggest_followups",
]

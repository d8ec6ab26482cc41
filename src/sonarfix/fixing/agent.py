"""Interfaces to the external fixing agent and the host editor."""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, FrozenSet, Mapping

from ..errors import AgentUnavailable
from ..findings import Confirmation

__all__ = [
    "AGENT_INSTALL_HINT",
    "CAPABILITY_FIX",
    "CAPABILITY_SEND_MESSAGE",
    "REQUIRED_CAPABILITIES",
    "CommandAgent",
    "Confirm",
    "Editor",
    "FixAgent",
    "Notifier",
    "NullAgent",
    "TerminalEditor",
]

LOGGER = logging.getLogger(__name__)

CAPABILITY_FIX = "fix"
CAPABILITY_SEND_MESSAGE = "send_message"
REQUIRED_CAPABILITIES: FrozenSet[str] = frozenset({CAPABILITY_FIX, CAPABILITY_SEND_MESSAGE})

AGENT_INSTALL_HINT = (
    "No fixing agent is available. Configure `agent.command` in config.yaml "
    "(for example an AI coding CLI that accepts a prompt and a file) to enable "
    "assisted fixes. Continuing in manual mode: each finding is shown so you can edit it yourself."
)

Confirm = Callable[[str], Confirmation]
Notifier = Callable[[str], None]


class FixAgent:
    """Base class for the external agent that proposes or applies code edits."""

    name = "agent"

    def capabilities(self) -> FrozenSet[str]:
        """Return the capability names currently registered by the agent."""
        raise NotImplementedError

    def execute(self, capability: str, payload: Mapping[str, Any]) -> None:
        """Invoke ``capability``; raise :class:`AgentUnavailable` when unregistered."""
        raise NotImplementedError

    def is_available(self) -> bool:
        return REQUIRED_CAPABILITIES.issubset(self.capabilities())


class NullAgent(FixAgent):
    """Agent stand-in used when nothing is installed; forces the manual path."""

    name = "none"

    def capabilities(self) -> FrozenSet[str]:
        return frozenset()

    def execute(self, capability: str, payload: Mapping[str, Any]) -> None:
        raise AgentUnavailable(f"Capability '{capability}' is not registered.")


@dataclass(slots=True)
class _PendingFix:
    path: Path
    line: int
    prompt: str


class CommandAgent(FixAgent):
    """Agent backed by a shell command template.

    ``fix`` records the target file and line; ``send_message`` runs the command
    with ``{path}``, ``{line}`` (1-based) and ``{prompt}`` substituted.
    """

    name = "command"

    def __init__(self, template: str, *, cwd: Path, timeout: float = 600.0) -> None:
        self._template = template
        self._cwd = Path(cwd)
        self._timeout = timeout
        self._pending: _PendingFix | None = None

    def _split(self) -> list[str]:
        try:
            return shlex.split(self._template)
        except ValueError as error:
            LOGGER.warning("Cannot parse agent command %r: %s", self._template, error)
            return []

    def _argv(self, **values: str) -> list[str]:
        parts = self._split()
        if not parts:
            raise AgentUnavailable(f"Agent command is empty or malformed: {self._template!r}")
        try:
            return [part.format(**values) for part in parts]
        except (KeyError, IndexError, ValueError) as error:
            raise AgentUnavailable(f"Agent command has an unknown placeholder: {error}") from error

    def capabilities(self) -> FrozenSet[str]:
        parts = self._split()
        if not parts or shutil.which(parts[0]) is None:
            return frozenset()
        return REQUIRED_CAPABILITIES

    def execute(self, capability: str, payload: Mapping[str, Any]) -> None:
        if capability not in self.capabilities():
            raise AgentUnavailable(f"Capability '{capability}' is not registered.")
        if capability == CAPABILITY_FIX:
            self._pending = _PendingFix(
                path=Path(payload["path"]),
                line=int(payload["line"]),
                prompt=str(payload.get("prompt", "")),
            )
            return

        pending = self._pending
        if pending is None:
            raise AgentUnavailable("No fix target selected before sending the message.")
        prompt = str(payload.get("prompt") or pending.prompt)
        argv = self._argv(path=pending.path.as_posix(), line=str(pending.line + 1), prompt=prompt)
        LOGGER.info("Running fixing agent: %s", argv[0])
        process = subprocess.run(  # noqa: S603 - command comes from user configuration
            argv,
            cwd=self._cwd,
            check=False,
            capture_output=True,
            text=True,
            timeout=self._timeout,
        )
        self._pending = None
        if process.returncode != 0:
            message = process.stderr.strip() or process.stdout.strip() or f"exit {process.returncode}"
            raise AgentUnavailable(f"Fixing agent failed: {message}")


class Editor:
    """Host editor surface; ``line`` is 0-based."""

    def open(self, path: Path, line: int) -> None:
        raise NotImplementedError


class TerminalEditor(Editor):
    """Editor stand-in for terminals: announce the location to the user."""

    def __init__(self, notify: Notifier) -> None:
        self._notify = notify

    def open(self, path: Path, line: int) -> None:
        self._notify(f"Opened {path.as_posix()}:{line + 1}")

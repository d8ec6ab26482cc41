"""Drive the fixing agent (or the human) for a single finding."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable

from ..errors import UserCancelled
from ..findings import Confirmation, Finding, FixOutcome
from ..prompts import render_confirmation_prompt, render_fix_prompt, render_manual_brief
from .agent import CAPABILITY_FIX, CAPABILITY_SEND_MESSAGE, Confirm, Editor, FixAgent, Notifier

__all__ = ["DEFAULT_FIX_DELAY", "FixInvoker", "editor_line"]

LOGGER = logging.getLogger(__name__)

DEFAULT_FIX_DELAY = 1.0


def editor_line(line: int | None) -> int:
    """Convert a reported 1-based line into the editor's 0-based addressing."""
    if line is None or line <= 0:
        return 0
    return line - 1


class FixInvoker:
    """Attempt one fix and return the human's verdict.

    The agent's ``fix`` and ``send_message`` capabilities are invoked in order.
    If either raises, the finding is shown to the human instead (manual path).
    Both paths end in a confirmation; ``CANCEL`` raises :class:`UserCancelled`.
    A fixed delay follows every attempt, whatever the outcome.
    """

    def __init__(
        self,
        *,
        agent: FixAgent,
        editor: Editor,
        confirm: Confirm,
        notify: Notifier,
        delay: float = DEFAULT_FIX_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._agent = agent
        self._editor = editor
        self._confirm = confirm
        self._notify = notify
        self._delay = delay
        self._sleep = sleep

    def invoke(self, path: Path, finding: Finding) -> FixOutcome:
        try:
            return self._attempt(path, finding)
        finally:
            if self._delay > 0:
                self._sleep(self._delay)

    def _attempt(self, path: Path, finding: Finding) -> FixOutcome:
        line = editor_line(finding.line)
        self._editor.open(path, line)

        prompt = render_fix_prompt(finding)
        try:
            self._agent.execute(CAPABILITY_FIX, {"path": path, "line": line, "prompt": prompt})
            self._agent.execute(CAPABILITY_SEND_MESSAGE, {"prompt": prompt})
        except Exception as error:  # agent failures always fall back to the manual path
            LOGGER.info("Agent unavailable for %s (%s); falling back to manual fix", finding.key, error)
            self._notify(render_manual_brief(finding, path, line + 1))

        answer = self._confirm(render_confirmation_prompt(finding))
        if answer == Confirmation.CANCEL:
            raise UserCancelled(f"Remediation cancelled at {finding.key}.")
        if answer == Confirmation.APPLIED:
            return FixOutcome.APPLIED
        return FixOutcome.SKIPPED

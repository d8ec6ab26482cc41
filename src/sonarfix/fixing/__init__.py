"""Fix invocation: agent interfaces and the per-finding adapter."""

from .adapter import DEFAULT_FIX_DELAY, FixInvoker, editor_line
from .agent import (
    AGENT_INSTALL_HINT,
    CAPABILITY_FIX,
    CAPABILITY_SEND_MESSAGE,
    REQUIRED_CAPABILITIES,
    CommandAgent,
    Confirm,
    Editor,
    FixAgent,
    Notifier,
    NullAgent,
    TerminalEditor,
)

__all__ = [
    "AGENT_INSTALL_HINT",
    "CAPABILITY_FIX",
    "CAPABILITY_SEND_MESSAGE",
    "DEFAULT_FIX_DELAY",
    "REQUIRED_CAPABILITIES",
    "CommandAgent",
    "Confirm",
    "Editor",
    "FixAgent",
    "FixInvoker",
    "Notifier",
    "NullAgent",
    "TerminalEditor",
    "editor_line",
]

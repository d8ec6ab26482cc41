"""Tool integrations used by the remediation pipeline."""

from .session_log import SessionLog, SessionLogEntry, load_session_log
from .vcs import DEFAULT_REMOTE, GitRepository, build_compare_url
from .workspace import WorkspaceResolver

__all__ = [
    "DEFAULT_REMOTE",
    "GitRepository",
    "SessionLog",
    "SessionLogEntry",
    "WorkspaceResolver",
    "build_compare_url",
    "load_session_log",
]

"""Error taxonomy shared by the remediation pipeline."""

from __future__ import annotations


class RemediationError(RuntimeError):
    """Base class for every failure raised by the remediation pipeline."""


class ConfigError(RemediationError):
    """Raised when required configuration (token, project key) is missing."""


class NetworkError(RemediationError):
    """Raised when the issue query fails in transport or deserialization."""


class MissingFileError(RemediationError):
    """Raised when a finding points at a file absent from the workspace."""

    def __init__(self, key: str, component_ref: str) -> None:
        super().__init__(f"File for {key} not found in workspace: {component_ref}")
        self.key = key
        self.component_ref = component_ref


class AgentUnavailable(RemediationError):
    """Raised when the fixing agent or one of its capabilities is not registered."""


class UserCancelled(RemediationError):
    """Raised when the human cancels a fix; unwinds the whole session."""


class GitOperationError(RemediationError):
    """Raised when a git command fails or the repository cannot be used."""


class UnparsableRemote(GitOperationError):
    """Raised when the ``origin`` URL does not look like a GitHub remote."""


class SessionBusy(RemediationError):
    """Raised when a remediation session is requested while another is running."""


__all__ = [
    "AgentUnavailable",
    "ConfigError",
    "GitOperationError",
    "MissingFileError",
    "NetworkError",
    "RemediationError",
    "SessionBusy",
    "UnparsableRemote",
    "UserCancelled",
]

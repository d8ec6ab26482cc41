"""Sonar Autofix: drive a fixing agent over SonarQube findings and publish the fixes."""

from .config import RemediationConfig
from .errors import (
    AgentUnavailable,
    ConfigError,
    GitOperationError,
    MissingFileError,
    NetworkError,
    RemediationError,
    SessionBusy,
    UnparsableRemote,
    UserCancelled,
)
from .findings import Confirmation, Finding, FixOutcome, IssueType, Severity
from .orchestrator import RemediationOrchestrator, RemediationResult, RunState

__all__ = [
    "AgentUnavailable",
    "ConfigError",
    "Confirmation",
    "Finding",
    "FixOutcome",
    "GitOperationError",
    "IssueType",
    "MissingFileError",
    "NetworkError",
    "RemediationConfig",
    "RemediationError",
    "RemediationOrchestrator",
    "RemediationResult",
    "RunState",
    "SessionBusy",
    "Severity",
    "UnparsableRemote",
    "UserCancelled",
]

__version__ = "0.1.0"

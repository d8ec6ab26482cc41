"""Typed records describing quality-server findings and fix outcomes."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Severity levels reported by the quality server, most severe first."""

    BLOCKER = "BLOCKER"
    CRITICAL = "CRITICAL"
    MAJOR = "MAJOR"
    MINOR = "MINOR"
    INFO = "INFO"


class IssueType(str, Enum):
    """Finding categories reported by the quality server."""

    BUG = "BUG"
    VULNERABILITY = "VULNERABILITY"
    CODE_SMELL = "CODE_SMELL"


class FixOutcome(str, Enum):
    """Result of attempting to remediate a single finding."""

    APPLIED = "APPLIED"
    SKIPPED = "SKIPPED"
    CANCELLED = "CANCELLED"


class Confirmation(str, Enum):
    """Answers a human can give after a fix attempt."""

    APPLIED = "applied"
    SKIP = "skip"
    CANCEL = "cancel"


class Finding(BaseModel):
    """One static-analysis defect as returned by ``/api/issues/search``."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    key: str
    rule: str
    severity: Severity
    type: IssueType
    component_ref: str = Field(alias="component")
    line: Optional[int] = None
    message: str = ""
    status: str = "OPEN"

    @property
    def relative_path(self) -> str:
        """Return the path portion of ``component_ref`` (after the first colon)."""
        _, sep, remainder = self.component_ref.partition(":")
        return remainder if sep else self.component_ref


class IssuePage(BaseModel):
    """Single page of the issue search response."""

    model_config = ConfigDict(extra="ignore")

    issues: List[Finding] = Field(default_factory=list)
    total: int = 0


__all__ = [
    "Confirmation",
    "Finding",
    "FixOutcome",
    "IssuePage",
    "IssueType",
    "Severity",
]

"""Group and rank findings for human-readable summaries."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Sequence, Type

from .findings import Finding, IssueType, Severity

__all__ = ["GroupStat", "Report", "RuleStat", "TOP_RULES", "percentage", "render_markdown", "summarize"]

TOP_RULES = 5


@dataclass(slots=True)
class GroupStat:
    name: str
    count: int
    percent: int


@dataclass(slots=True)
class RuleStat:
    rule: str
    count: int


@dataclass(slots=True)
class Report:
    """Summary of a batch of findings."""

    total: int = 0
    by_severity: List[GroupStat] = field(default_factory=list)
    by_type: List[GroupStat] = field(default_factory=list)
    top_rules: List[RuleStat] = field(default_factory=list)


def percentage(count: int, total: int) -> int:
    """Return ``count / total`` as a whole percentage, rounding halves up.

    Each group is rounded on its own, so a report's percentages may not add up
    to exactly 100.
    """
    if total <= 0:
        return 0
    return (count * 200 + total) // (2 * total)


def _group(values: Iterable[Enum], members: Type[Enum], total: int) -> List[GroupStat]:
    counts = Counter(values)
    return [
        GroupStat(name=member.value, count=counts[member], percent=percentage(counts[member], total))
        for member in members
        if counts[member]
    ]


def summarize(findings: Sequence[Finding]) -> Report:
    """Group ``findings`` by severity and type and rank the most frequent rules.

    Rules with equal counts keep the order in which they first appear.
    """
    total = len(findings)
    rule_counts = Counter(finding.rule for finding in findings)
    return Report(
        total=total,
        by_severity=_group((finding.severity for finding in findings), Severity, total),
        by_type=_group((finding.type for finding in findings), IssueType, total),
        top_rules=[RuleStat(rule=rule, count=count) for rule, count in rule_counts.most_common(TOP_RULES)],
    )


def render_markdown(report: Report) -> str:
    if report.total == 0:
        return "## Issue Analysis\n\nNo issues to analyze."

    lines = ["## Issue Analysis", "", f"**Total issues:** {report.total}", "", "### By severity"]
    lines.extend(f"- {stat.name}: {stat.count} ({stat.percent}%)" for stat in report.by_severity)
    lines.extend(["", "### By type"])
    lines.extend(f"- {stat.name}: {stat.count} ({stat.percent}%)" for stat in report.by_type)
    lines.extend(["", f"### Top {len(report.top_rules)} rules"])
    lines.extend(
        f"{index}. `{stat.rule}` ({stat.count})" for index, stat in enumerate(report.top_rules, start=1)
    )
    return "\n".join(lines)

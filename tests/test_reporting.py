from __future__ import annotations

from conftest import make_finding
from sonarfix.reporting import percentage, render_markdown, summarize


def test_groups_by_severity_and_type() -> None:
    findings = [
        make_finding("A-1", severity="BLOCKER", type_="BUG"),
        make_finding("A-2", severity="MAJOR", type_="BUG"),
        make_finding("A-3", severity="MAJOR", type_="VULNERABILITY"),
        make_finding("A-4", severity="MAJOR", type_="BUG"),
    ]

    report = summarize(findings)

    assert report.total == 4
    assert [(stat.name, stat.count, stat.percent) for stat in report.by_severity] == [
        ("BLOCKER", 1, 25),
        ("MAJOR", 3, 75),
    ]
    assert [(stat.name, stat.count, stat.percent) for stat in report.by_type] == [
        ("BUG", 3, 75),
        ("VULNERABILITY", 1, 25),
    ]


def test_percentages_round_independently() -> None:
    findings = [
        make_finding("A-1", severity="BLOCKER"),
        make_finding("A-2", severity="CRITICAL"),
        make_finding("A-3", severity="MAJOR"),
    ]

    report = summarize(findings)

    assert [stat.percent for stat in report.by_severity] == [33, 33, 33]
    assert sum(stat.percent for stat in report.by_severity) == 99


def test_percentage_rounds_half_up() -> None:
    assert percentage(1, 8) == 13
    assert percentage(2, 3) == 67
    assert percentage(0, 0) == 0


def test_top_rules_break_ties_by_first_appearance() -> None:
    rules = ["r:b", "r:a", "r:c", "r:a", "r:d", "r:e", "r:f", "r:b", "r:g"]
    findings = [make_finding(f"A-{index}", rule=rule) for index, rule in enumerate(rules)]

    report = summarize(findings)

    assert [(stat.rule, stat.count) for stat in report.top_rules] == [
        ("r:b", 2),
        ("r:a", 2),
        ("r:c", 1),
        ("r:d", 1),
        ("r:e", 1),
    ]


def test_render_markdown() -> None:
    text = render_markdown(summarize([make_finding("A-1", rule="python:S1481", severity="CRITICAL")]))

    assert "**Total issues:** 1" in text
    assert "- CRITICAL: 1 (100%)" in text
    assert "1. `python:S1481` (1)" in text


def test_render_markdown_without_findings() -> None:
    assert "No issues to analyze." in render_markdown(summarize([]))

"""Prompt templates shared by the agent and manual fix paths."""

from __future__ import annotations

from pathlib import Path

from .findings import Finding

FIX_INSTRUCTION = (
    "Fix the issue reported by the static analyzer at the current cursor position. "
    "Keep the change minimal and do not modify unrelated code."
)

_LANGUAGES: dict[str, str] = {
    ".js": "javascript",
    ".ts": "typescript",
    ".jsx": "jsx",
    ".tsx": "tsx",
    ".py": "python",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".sh": "bash",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".json": "json",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".md": "markdown",
    ".sql": "sql",
}


def language_for(path: Path) -> str:
    """Return the markdown fence language for ``path``."""
    return _LANGUAGES.get(path.suffix.lower(), "text")


def render_fix_prompt(finding: Finding) -> str:
    """Build the prompt handed to the fixing agent for ``finding``."""
    return (
        f"{FIX_INSTRUCTION}\n\n"
        f"Rule: {finding.rule}\n"
        f"Severity: {finding.severity.value}\n"
        f"Type: {finding.type.value}\n"
        f"Message: {finding.message}"
    )


def render_excerpt(path: Path, line: int, *, context: int = 3) -> str:
    """Return a fenced excerpt of ``path`` around the 1-based ``line``."""
    try:
        lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return ""
    if not lines:
        return ""
    start = max(line - context, 1)
    end = min(line + context, len(lines))
    width = len(str(end))
    body = []
    for number in range(start, end + 1):
        marker = ">" if number == line else " "
        body.append(f"{marker}{number:>{width}} | {lines[number - 1]}")
    return f"```{language_for(path)}\n" + "\n".join(body) + "\n```"


def render_manual_brief(finding: Finding, path: Path, line: int) -> str:
    """Describe ``finding`` for a human fixing it without the agent."""
    parts = [
        f"### {finding.key}: {finding.message}",
        f"- File: `{path.as_posix()}` line {line}",
        f"- Rule: `{finding.rule}`",
        f"- Severity: {finding.severity.value}",
        f"- Type: {finding.type.value}",
    ]
    excerpt = render_excerpt(path, line)
    if excerpt:
        parts.append("")
        parts.append(excerpt)
    parts.append("")
    parts.append("Edit the file, then confirm whether the fix was applied.")
    return "\n".join(parts)


def render_confirmation_prompt(finding: Finding) -> str:
    return f"Was the fix for {finding.key} applied? ({finding.message})"


__all__ = [
    "FIX_INSTRUCTION",
    "language_for",
    "render_confirmation_prompt",
    "render_excerpt",
    "render_fix_prompt",
    "render_manual_brief",
]

"""Durable, timestamped JSON-lines log for remediation sessions."""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Mapping

__all__ = ["SessionLog", "SessionLogEntry", "load_session_log"]

LOGGER = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^A-Za-z0-9_.-]+")
_LEVELS = {"error": logging.ERROR, "warning": logging.WARNING}


@dataclass(slots=True)
class SessionLogEntry:
    """In-memory representation of one stored session event."""

    timestamp: str
    event: str
    payload: Mapping[str, Any]

    @property
    def key(self) -> str | None:
        candidate = self.payload.get("key")
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
        return None

    @property
    def level(self) -> str:
        value = self.payload.get("level")
        return str(value) if value else "info"


class SessionLog:
    """Append events for one session to ``{logs_root}/sessions/*.jsonl``.

    When ``logs_root`` is ``None`` or cannot be created, events are only sent to
    the standard logger.
    """

    def __init__(self, logs_root: Path | None, *, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.path: Path | None = None
        if logs_root is None:
            return
        directory = Path(logs_root) / "sessions"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            # keeps session logs out of "git add --all" fix commits
            ignore_file = Path(logs_root) / ".gitignore"
            if not ignore_file.exists():
                ignore_file.write_text("*\n", encoding="utf-8")
        except OSError as error:
            LOGGER.warning("Session log disabled; cannot create %s: %s", directory, error)
            return
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        slug = _SLUG_RE.sub("-", self.session_id).strip("-") or "session"
        self.path = directory / f"session-{stamp}-{slug}.jsonl"

    def record(self, event: str, *, level: str = "info", **payload: Any) -> SessionLogEntry:
        """Persist ``event`` with a UTC timestamp and mirror it to the logger."""
        entry = SessionLogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            payload={"level": level, **payload},
        )
        LOGGER.log(_LEVELS.get(level, logging.INFO), "[%s] %s %s", self.session_id, event, _render_payload(payload))
        if self.path is not None:
            line = json.dumps(
                {"timestamp": entry.timestamp, "event": event, **entry.payload},
                default=str,
            )
            try:
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError as error:
                LOGGER.warning("Failed to write session log %s: %s", self.path, error)
        return entry

    def error(self, event: str, error: BaseException, **payload: Any) -> SessionLogEntry:
        return self.record(
            event,
            level="error",
            error=str(error),
            error_type=type(error).__name__,
            **payload,
        )


def load_session_log(path: Path | str) -> List[SessionLogEntry]:
    """Load a stored session log from disk."""
    log_path = Path(path).resolve()
    entries: List[SessionLogEntry] = []
    with log_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            if not line.strip():
                continue
            payload = json.loads(line)
            timestamp = str(payload.pop("timestamp", ""))
            event = str(payload.pop("event", ""))
            entries.append(SessionLogEntry(timestamp=timestamp, event=event, payload=payload))
    return entries


def _render_payload(payload: Mapping[str, Any]) -> str:
    if not payload:
        return ""
    return " ".join(f"{key}={value}" for key, value in payload.items())

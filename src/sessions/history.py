"""Fold the assistant's interaction log (``history.jsonl``) into sessions.

Each line is one JSON event ``{"sessionId", "project", "timestamp"}`` with the
timestamp in milliseconds. Lines that do not parse, or lack one of those
fields, are skipped.
"""

import json
import math
import logging
from collections.abc import Iterable
from pathlib import Path, PurePath

from src.sessions.models import UNKNOWN_PROJECT, SessionMetrics

logger = logging.getLogger(__name__)

HISTORY_FILENAME = "history.jsonl"


def history_path(claude_dir: str | Path) -> Path:
    return Path(claude_dir).expanduser() / HISTORY_FILENAME


def project_display_name(project_path: str) -> str:
    """Last path segment of the project directory, or ``Unknown``."""
    name = PurePath(project_path.rstrip("/\\")).name if project_path else ""
    return name or UNKNOWN_PROJECT


def _parse_event(line: str) -> tuple[str, str, int] | None:
    try:
        event = json.loads(line)
    except ValueError:
        return None
    if not isinstance(event, dict):
        return None

    session_id = event.get("sessionId", event.get("session_id"))
    project = event.get("project")
    timestamp = event.get("timestamp")
    if not isinstance(session_id, str) or not session_id or not isinstance(project, str):
        return None
    if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
        return None
    # json.loads yields nan/inf for NaN, Infinity and out-of-range literals
    if isinstance(timestamp, float) and not math.isfinite(timestamp):
        return None
    return session_id, project, int(timestamp)


def fold_history(lines: Iterable[str]) -> dict[str, SessionMetrics]:
    """One SessionMetrics per session id.

    The first project seen for a session is kept, the timestamp is the latest
    seen and every event counts as one message.
    """
    sessions: dict[str, SessionMetrics] = {}
    skipped = 0
    for line in lines:
        if not line.strip():
            continue
        parsed = _parse_event(line)
        if parsed is None:
            skipped += 1
            continue
        session_id, project, timestamp = parsed

        session = sessions.get(session_id)
        if session is None:
            sessions[session_id] = SessionMetrics(
                session_id=session_id,
                project=project_display_name(project),
                project_path=project,
                timestamp=timestamp,
                message_count=1,
            )
            continue
        session.message_count += 1
        session.timestamp = max(session.timestamp, timestamp)

    if skipped:
        logger.debug("Skipped %d malformed history lines", skipped)
    return sessions


def read_history(path: Path) -> dict[str, SessionMetrics]:
    """Fold the history file at ``path``. A missing file means no sessions yet."""
    try:
        with path.open(encoding="utf-8", errors="replace") as f:
            return fold_history(f)
    except FileNotFoundError:
        logger.info("History file %s not found", path)
        return {}

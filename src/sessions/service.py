"""Sessions view: local history enriched with per-session Prometheus totals.

Enrichment is best-effort. Each of the five queries fills its own fields of
the session map, so a failed query only leaves those fields at zero and the
local data is always returned.
"""

import asyncio
import logging
from collections.abc import Callable, Iterator
from pathlib import Path

from src.models import ModelTokens
from src.prometheus import queries
from src.prometheus.client import PrometheusClient, QueryResult
from src.prometheus.time_range import ResolvedRange, resolve_time_range
from src.sessions.history import read_history
from src.sessions.models import ProjectStats, SessionMetrics, SessionsData

logger = logging.getLogger(__name__)

Sessions = dict[str, SessionMetrics]

_TOKEN_TYPE_FIELDS = {
    "input": "input_tokens",
    "output": "output_tokens",
    "cache_read": "cache_read_tokens",
    "cache_creation": "cache_creation_tokens",
}


def filter_window(sessions: Sessions, resolved: ResolvedRange) -> Sessions:
    """Sessions whose latest event falls inside the resolved window."""
    lower = resolved.start * 1000
    upper = (resolved.end + 1) * 1000
    return {sid: s for sid, s in sessions.items() if lower <= s.timestamp < upper}


# --- Enrichment passes, one per query; each writes a disjoint field set ---


def _rows(sessions: Sessions, results: list[QueryResult]) -> Iterator[tuple[SessionMetrics, QueryResult]]:
    for row in results:
        session = sessions.get(row.metric.get("session_id", ""))
        if session is not None:
            yield session, row


def apply_cost(sessions: Sessions, results: list[QueryResult]) -> None:
    for session, row in _rows(sessions, results):
        session.total_cost_usd = row.float_value()


def apply_total_tokens(sessions: Sessions, results: list[QueryResult]) -> None:
    for session, row in _rows(sessions, results):
        session.total_tokens = int(row.float_value())


def apply_tokens_by_type(sessions: Sessions, results: list[QueryResult]) -> None:
    for session, row in _rows(sessions, results):
        token_type = queries.TOKEN_TYPE_ALIASES.get(row.metric.get("type", ""))
        if token_type is None:
            continue
        # cacheRead and cache_read can both be present; they add up
        field = _TOKEN_TYPE_FIELDS[token_type]
        setattr(session, field, getattr(session, field) + int(row.float_value()))


def apply_active_time(sessions: Sessions, results: list[QueryResult]) -> None:
    for session, row in _rows(sessions, results):
        session.active_time_seconds = row.float_value()


def apply_tokens_by_model(sessions: Sessions, results: list[QueryResult]) -> None:
    for session, row in _rows(sessions, results):
        model = row.metric.get("model")
        tokens = int(row.float_value())
        if model and tokens > 0:
            session.tokens_by_model.append(ModelTokens(model=model, tokens=tokens))


ENRICHMENT_PASSES: list[tuple[str, Callable[[str], str], Callable[[Sessions, list[QueryResult]], None]]] = [
    ("cost", queries.cost_by_session, apply_cost),
    ("tokens", queries.tokens_by_session, apply_total_tokens),
    ("tokens_by_type", queries.tokens_by_session_and_type, apply_tokens_by_type),
    ("active_time", queries.active_time_by_session, apply_active_time),
    ("tokens_by_model", queries.tokens_by_session_and_model, apply_tokens_by_model),
]


async def enrich_sessions(client: PrometheusClient, sessions: Sessions, window: str) -> int:
    """Merge remote per-session totals into ``sessions``. Returns the number of passes applied."""
    if not sessions:
        return 0

    results = await asyncio.gather(
        *(client.query(build(window)) for _, build, _ in ENRICHMENT_PASSES),
        return_exceptions=True,
    )

    applied = 0
    for (name, _, apply), result in zip(ENRICHMENT_PASSES, results, strict=True):
        if isinstance(result, BaseException):
            logger.warning("Session enrichment %s failed: %s", name, result)
            continue
        apply(sessions, result)
        applied += 1
    return applied


def rollup_projects(sessions: list[SessionMetrics]) -> list[ProjectStats]:
    """Fold sessions by project display name, highest cost first."""
    projects: dict[str, ProjectStats] = {}
    for session in sessions:
        stats = projects.get(session.project)
        if stats is None:
            stats = projects[session.project] = ProjectStats(
                project=session.project, project_path=session.project_path
            )
        stats.session_count += 1
        stats.total_cost_usd += session.total_cost_usd
        stats.total_tokens += session.total_tokens
        stats.active_time_seconds += session.active_time_seconds
    return sorted(projects.values(), key=lambda p: p.total_cost_usd, reverse=True)


async def get_sessions(
    client: PrometheusClient,
    history_file: Path,
    time_range: str,
    now: int | None = None,
) -> SessionsData:
    """Sessions active in ``time_range``, newest first, with their project rollup."""
    resolved = resolve_time_range(time_range, now=now)
    sessions = filter_window(read_history(history_file), resolved)

    try:
        await enrich_sessions(client, sessions, resolved.range_literal)
    except Exception:
        logger.exception("Session enrichment failed; returning local history only")

    ordered = sorted(sessions.values(), key=lambda s: s.timestamp, reverse=True)
    return SessionsData(sessions=ordered, projects=rollup_projects(ordered), total_count=len(ordered))

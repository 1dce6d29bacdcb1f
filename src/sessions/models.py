from pydantic import Field

from src.models import CamelModel, ModelTokens

UNKNOWN_PROJECT = "Unknown"


class SessionMetrics(CamelModel):
    """One assistant session: local history fields plus remote totals once enriched."""

    session_id: str
    project: str = UNKNOWN_PROJECT
    project_path: str = ""
    timestamp: int = 0  # ms since epoch, latest seen
    message_count: int = 0

    total_cost_usd: float = 0.0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    active_time_seconds: float = 0.0
    tokens_by_model: list[ModelTokens] = Field(default_factory=list)


class ProjectStats(CamelModel):
    project: str
    project_path: str = ""
    session_count: int = 0
    total_cost_usd: float = 0.0
    total_tokens: int = 0
    active_time_seconds: float = 0.0


class SessionsData(CamelModel):
    sessions: list[SessionMetrics]
    projects: list[ProjectStats]
    total_count: int

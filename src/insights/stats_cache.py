"""Schema and loader for the assistant's local stats cache (``stats-cache.json``).

The file is written by the assistant itself; this module only reads it.
Unknown keys are ignored and optional sections default to empty.
"""

import logging
from pathlib import Path

from pydantic import Field, ValidationError

from src.errors import NotFoundError, ParseError
from src.models import CamelModel

logger = logging.getLogger(__name__)

STATS_CACHE_FILENAME = "stats-cache.json"
NOT_FOUND_MESSAGE = "Stats cache file not found. Use Claude Code to generate usage data."


class DailyActivity(CamelModel):
    date: str
    message_count: int = 0
    session_count: int = 0
    tool_call_count: int = 0


class DailyModelTokens(CamelModel):
    date: str
    tokens_by_model: dict[str, int] = Field(default_factory=dict)


class ModelUsage(CamelModel):
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_input_tokens: int = 0
    cache_creation_input_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens + self.cache_read_input_tokens + self.cache_creation_input_tokens


class LongestSession(CamelModel):
    session_id: str | None = None
    duration: int = 0  # milliseconds
    message_count: int = 0
    timestamp: str | None = None


class StatsCache(CamelModel):
    daily_activity: list[DailyActivity] = Field(default_factory=list)
    daily_model_tokens: list[DailyModelTokens] = Field(default_factory=list)
    model_usage: dict[str, ModelUsage] = Field(default_factory=dict)
    total_sessions: int = 0
    total_messages: int = 0
    longest_session: LongestSession | None = None
    first_session_date: str | None = None
    hour_counts: dict[str, int] = Field(default_factory=dict)


def stats_cache_path(claude_dir: str | Path) -> Path:
    return Path(claude_dir).expanduser() / STATS_CACHE_FILENAME


def parse_stats_cache(raw: str) -> StatsCache:
    """Parse the JSON text of a stats cache. Raises ParseError on bad JSON or schema."""
    try:
        return StatsCache.model_validate_json(raw)
    except ValidationError as e:
        raise ParseError(f"Failed to parse stats cache: {e}") from e


def load_stats_cache(path: Path) -> StatsCache:
    """Read and parse the stats cache at ``path``.

    Raises:
        NotFoundError: The file does not exist (no usage recorded yet).
        ParseError: The file is not a valid stats cache.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise NotFoundError(NOT_FOUND_MESSAGE) from e
    except OSError as e:
        raise NotFoundError(f"{NOT_FOUND_MESSAGE} ({e})") from e
    except UnicodeDecodeError as e:
        raise ParseError(f"Failed to parse stats cache: {e}") from e

    logger.debug("Loaded stats cache from %s (%d bytes)", path, len(raw))
    return parse_stats_cache(raw)


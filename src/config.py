from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    prometheus_url: str = "http://localhost:9090"
    request_timeout_seconds: float = 15.0

    # Only metric names with this prefix are reported by discovery
    metric_prefix: str = "claude_code_"

    # Directory holding stats-cache.json and history.jsonl
    claude_dir: str = "~/.claude"

    # anthropic | aws-bedrock | google-vertex
    pricing_provider: str = "anthropic"

    # Tray refresh (0 = scheduler disabled)
    tray_refresh_seconds: int = 0
    tray_time_range: str = "1d"

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()

"""Command surface shared by the HTTP API and the CLI.

Each command takes plain parameters, fills gaps from settings and returns a
response model. Errors propagate as MonitorError subclasses; turning them
into display strings is left to the caller.
"""

import logging
from pathlib import Path

from src.config import get_settings
from src.insights.insights import InsightsData, LocalStatsCacheData, compute_insights, get_local_stats
from src.insights.stats_cache import load_stats_cache, stats_cache_path
from src.prometheus import dashboard
from src.prometheus.client import PrometheusClient
from src.prometheus.dashboard import DashboardMetrics
from src.prometheus.health import PrometheusHealth, fetch_health
from src.prometheus.time_range import CUSTOM_RANGE, RANGE_SECONDS, ResolvedRange, resolve_time_range
from src.sessions.history import history_path
from src.sessions.models import SessionsData
from src.sessions.service import get_sessions
from src.tray import state as tray

logger = logging.getLogger(__name__)

HEALTH_DEFAULT_RANGE = "1h"
SESSIONS_DEFAULT_RANGE = "1d"


def _client(url: str | None) -> PrometheusClient:
    settings = get_settings()
    logger.debug("Using Prometheus at %s", url or settings.prometheus_url)
    return PrometheusClient(url or settings.prometheus_url, timeout=settings.request_timeout_seconds)


async def get_dashboard_metrics(
    time_range: str,
    prometheus_url: str | None = None,
    custom_start: int | None = None,
    custom_end: int | None = None,
) -> DashboardMetrics:
    async with _client(prometheus_url) as client:
        return await dashboard.get_dashboard_metrics(client, time_range, custom_start, custom_end)


async def test_connection(url: str | None = None) -> bool:
    async with _client(url) as client:
        return await client.test_connection()


async def discover_metrics(url: str | None = None) -> list[str]:
    async with _client(url) as client:
        return await client.discover_metrics(get_settings().metric_prefix)


def _known_or(time_range: str | None, fallback: str) -> str:
    """The token itself if it names a known range, else ``fallback``."""
    if time_range is not None and time_range in RANGE_SECONDS:
        return time_range
    return fallback


def health_window(
    time_range: str | None,
    custom_start: int | None = None,
    custom_end: int | None = None,
    now: int | None = None,
) -> ResolvedRange:
    """Sparkline window: the last hour when the range is missing or unknown."""
    if time_range == CUSTOM_RANGE:
        return resolve_time_range(CUSTOM_RANGE, custom_start, custom_end, now=now)
    return resolve_time_range(_known_or(time_range, HEALTH_DEFAULT_RANGE), now=now)


async def get_prometheus_health(
    prometheus_url: str | None = None,
    time_range: str | None = None,
    custom_start: int | None = None,
    custom_end: int | None = None,
) -> PrometheusHealth:
    window = health_window(time_range, custom_start, custom_end)
    async with _client(prometheus_url) as client:
        return await fetch_health(client, window.start, window.end)


def get_insights_data(period: str, pricing_provider: str | None = None) -> InsightsData:
    settings = get_settings()
    stats = load_stats_cache(stats_cache_path(settings.claude_dir))
    return compute_insights(stats, period, pricing_provider or settings.pricing_provider)


def get_local_stats_cache(pricing_provider: str | None = None) -> LocalStatsCacheData:
    settings = get_settings()
    stats = load_stats_cache(stats_cache_path(settings.claude_dir))
    return get_local_stats(stats, pricing_provider or settings.pricing_provider)


async def get_sessions_data(
    time_range: str,
    prometheus_url: str | None = None,
    history_file: Path | None = None,
) -> SessionsData:
    path = history_file or history_path(get_settings().claude_dir)
    async with _client(prometheus_url) as client:
        return await get_sessions(client, path, _known_or(time_range, SESSIONS_DEFAULT_RANGE))


def update_tray_stats(state: tray.TrayState, total_cost: float, is_connected: bool) -> str:
    return tray.update_tray_stats(state, total_cost, is_connected)

"""APScheduler integration for periodic tray refresh.

Uses AsyncIOScheduler with an IntervalTrigger to fetch the dashboard totals
and push them into the tray title. No-ops if no refresh interval is configured.
"""

import contextlib
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.interval import IntervalTrigger  # type: ignore[import-untyped]

from src.config import get_settings
from src.errors import MonitorError
from src.prometheus.client import PrometheusClient
from src.prometheus.dashboard import get_dashboard_metrics
from src.tray.state import PLACEHOLDER_TITLE, TrayState, update_tray_stats

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def refresh_tray(state: TrayState) -> None:
    """Fetch current cost and update the tray; a failed fetch marks it disconnected."""
    settings = get_settings()
    try:
        async with PrometheusClient(settings.prometheus_url, timeout=settings.request_timeout_seconds) as client:
            metrics = await get_dashboard_metrics(client, settings.tray_time_range)
    except MonitorError as e:
        logger.warning("Tray refresh failed: %s", e)
        state.set_title(PLACEHOLDER_TITLE)
        return
    except Exception:
        logger.exception("Scheduled tray refresh failed")
        state.set_title(PLACEHOLDER_TITLE)
        return
    update_tray_stats(state, metrics.total_cost_usd, is_connected=True, trigger="scheduled")


def start_scheduler(state: TrayState) -> None:
    """Start the APScheduler if a refresh interval is configured."""
    global _scheduler  # noqa: PLW0603

    settings = get_settings()
    if settings.tray_refresh_seconds <= 0:
        logger.info("Tray refresh disabled (TRAY_REFRESH_SECONDS not set)")
        return

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        refresh_tray,
        trigger=IntervalTrigger(seconds=settings.tray_refresh_seconds),
        args=[state],
        id="tray_refresh",
        name="Tray status refresh",
        replace_existing=True,
    )
    _scheduler.start()
    logger.info("Tray refresh scheduled every %ds", settings.tray_refresh_seconds)


def stop_scheduler() -> None:
    """Gracefully shut down the scheduler if it is running."""
    global _scheduler  # noqa: PLW0603

    if _scheduler is not None:
        with contextlib.suppress(Exception):
            _scheduler.shutdown(wait=False)
        logger.info("Tray scheduler stopped")
        _scheduler = None

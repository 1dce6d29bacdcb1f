"""FastAPI backend for the usage monitor.

Exposes one endpoint per command so the desktop shell and the frontend can
call them over HTTP. The tray title handle is created once at startup and
shared across requests.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from typing import TypeVar

from fastapi import FastAPI, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from src import commands
from src.config import get_settings
from src.errors import InvalidResponseError, MonitorError, NotFoundError, ParseError, TransportError
from src.insights.insights import LAST_7_DAYS, InsightsData, LocalStatsCacheData
from src.models import CamelModel
from src.observability.metrics import (
    APP_INFO,
    REQUEST_DURATION,
    REQUESTS_IN_PROGRESS,
    REQUESTS_TOTAL,
)
from src.prometheus.dashboard import DashboardMetrics
from src.prometheus.health import PrometheusHealth
from src.prometheus.time_range import DEFAULT_RANGE
from src.sessions.models import SessionsData
from src.tray.scheduler import start_scheduler, stop_scheduler
from src.tray.state import StatusTitle, TrayState

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ConnectionResponse(CamelModel):
    """Response body for GET /connection."""

    connected: bool


class DiscoverResponse(CamelModel):
    """Response body for GET /discover."""

    metrics: list[str]


class TrayUpdateRequest(CamelModel):
    """Request body for POST /tray."""

    total_cost: float
    is_connected: bool


class TrayResponse(CamelModel):
    """Response body for /tray."""

    title: str | None


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def status_for(exc: MonitorError) -> int:
    """HTTP status for a command error."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ParseError):
        return 400
    if isinstance(exc, TransportError | InvalidResponseError):
        return 502
    return 500


async def _run(command: str, awaitable: Awaitable[T]) -> T:
    """Await a command, recording request metrics and mapping errors to HTTP statuses."""
    REQUESTS_IN_PROGRESS.labels(command=command).inc()
    start = time.monotonic()
    status = "error"
    try:
        result = await awaitable
        status = "success"
        return result
    except MonitorError as exc:
        logger.warning("Command %s failed: %s", command, exc)
        raise HTTPException(status_code=status_for(exc), detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Command %s failed unexpectedly", command)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        REQUESTS_IN_PROGRESS.labels(command=command).dec()
        REQUESTS_TOTAL.labels(command=command, status=status).inc()
        REQUEST_DURATION.labels(command=command).observe(time.monotonic() - start)


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the tray handle and start the refresh scheduler."""
    settings = get_settings()
    APP_INFO.info({"version": "0.1.0", "prometheus_url": settings.prometheus_url})

    app.state.tray = TrayState(StatusTitle())
    start_scheduler(app.state.tray)
    yield
    stop_scheduler()
    logger.info("Shutting down usage monitor")


app = FastAPI(title="Usage Monitor", lifespan=lifespan)


def _tray(request: Request) -> TrayState:
    return request.app.state.tray


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/dashboard", response_model=DashboardMetrics)
async def dashboard(
    time_range: str = DEFAULT_RANGE,
    prometheus_url: str | None = None,
    custom_start: int | None = None,
    custom_end: int | None = None,
) -> DashboardMetrics:
    """Usage totals, per-model breakdown and usage over time."""
    return await _run(
        "get_dashboard_metrics",
        commands.get_dashboard_metrics(time_range, prometheus_url, custom_start, custom_end),
    )


@app.get("/connection", response_model=ConnectionResponse)
async def connection(url: str | None = None) -> ConnectionResponse:
    """Probe the Prometheus health endpoint."""
    connected = await _run("test_connection", commands.test_connection(url))
    return ConnectionResponse(connected=connected)


@app.get("/discover", response_model=DiscoverResponse)
async def discover(url: str | None = None) -> DiscoverResponse:
    """Assistant metric names known to Prometheus."""
    names = await _run("discover_metrics", commands.discover_metrics(url))
    return DiscoverResponse(metrics=names)


@app.get("/prometheus-health", response_model=PrometheusHealth)
async def prometheus_health(
    prometheus_url: str | None = None,
    time_range: str | None = None,
    custom_start: int | None = None,
    custom_end: int | None = None,
) -> PrometheusHealth:
    """Prometheus self-monitoring summary."""
    return await _run(
        "get_prometheus_health",
        commands.get_prometheus_health(prometheus_url, time_range, custom_start, custom_end),
    )


@app.get("/insights", response_model=InsightsData)
async def insights(period: str = LAST_7_DAYS, pricing_provider: str | None = None) -> InsightsData:
    """Period-over-period comparison from the local stats cache."""
    return await _run(
        "get_insights_data",
        asyncio.to_thread(commands.get_insights_data, period, pricing_provider),
    )


@app.get("/stats-cache", response_model=LocalStatsCacheData)
async def stats_cache(pricing_provider: str | None = None) -> LocalStatsCacheData:
    """Lifetime totals from the local stats cache."""
    return await _run(
        "get_local_stats_cache",
        asyncio.to_thread(commands.get_local_stats_cache, pricing_provider),
    )


@app.get("/sessions", response_model=SessionsData)
async def sessions(
    time_range: str = commands.SESSIONS_DEFAULT_RANGE, prometheus_url: str | None = None
) -> SessionsData:
    """Sessions from the local history, enriched with Prometheus totals."""
    return await _run("get_sessions_data", commands.get_sessions_data(time_range, prometheus_url))


@app.post("/tray", response_model=TrayResponse)
async def update_tray(body: TrayUpdateRequest, request: Request) -> TrayResponse:
    """Push cost and connection status into the tray title."""
    state = _tray(request)
    title = await _run(
        "update_tray_stats",
        asyncio.to_thread(commands.update_tray_stats, state, body.total_cost, body.is_connected),
    )
    return TrayResponse(title=title)


@app.get("/tray", response_model=TrayResponse)
async def get_tray(request: Request) -> TrayResponse:
    """Current tray title, for shells that poll."""
    return TrayResponse(title=_tray(request).current_title())

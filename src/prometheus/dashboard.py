"""Dashboard aggregator.

Fans out one instant query per scalar field, one grouped query for the
per-model breakdown and one range query for the usage-over-time chart, then
assembles a single DashboardMetrics record. Any failed query fails the whole
call.
"""

import asyncio
import logging

from src.models import CamelModel, ModelTokens, TimeSeriesPoint
from src.prometheus import queries
from src.prometheus.client import PrometheusClient, QueryResult, parse_sample_value
from src.prometheus.time_range import ResolvedRange, dashboard_step, resolve_time_range

logger = logging.getLogger(__name__)


class DashboardMetrics(CamelModel):
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
    total_cost_usd: float = 0.0
    active_time_seconds: float = 0.0
    session_count: int = 0
    commit_count: int = 0
    pull_request_count: int = 0
    lines_added: int = 0
    lines_removed: int = 0
    tokens_by_model: list[ModelTokens] = []
    tokens_over_time: list[TimeSeriesPoint] = []


# Fields serialized as floats; everything else is truncated to int
_FLOAT_FIELDS = {"total_cost_usd", "active_time_seconds"}


def scalar(results: list[QueryResult]) -> float:
    """First row's instant value, 0.0 when there are no rows or it does not parse."""
    if not results:
        return 0.0
    return results[0].float_value()


def model_breakdown(results: list[QueryResult]) -> list[ModelTokens]:
    """Rows grouped by ``model``. Rows without the label or a usable value are dropped."""
    breakdown: list[ModelTokens] = []
    for row in results:
        model = row.metric.get("model")
        value = row.parsed_value()
        if model is None or value is None:
            continue
        breakdown.append(ModelTokens(model=model, tokens=int(value)))
    return breakdown


def time_series(results: list[QueryResult]) -> list[TimeSeriesPoint]:
    """Raw per-step samples of the first series."""
    if not results or not results[0].values:
        return []
    points: list[TimeSeriesPoint] = []
    for ts, raw in results[0].values:
        value = parse_sample_value(raw)
        points.append(TimeSeriesPoint(timestamp=ts, value=value if value is not None else 0.0))
    return points


async def fetch_dashboard(client: PrometheusClient, resolved: ResolvedRange) -> DashboardMetrics:
    """Run the dashboard query battery over an already resolved range."""
    window = resolved.range_literal
    step, rate_window = dashboard_step(resolved.duration)
    scalar_queries = queries.dashboard_scalar_queries(window)

    logger.info(
        "Dashboard queries: range=%s step=%s rate_window=%s (%d queries)",
        window,
        step,
        rate_window,
        len(scalar_queries) + 2,
    )

    # A failed query cancels the rest before the caller closes the client
    try:
        async with asyncio.TaskGroup() as tg:
            scalar_tasks = {name: tg.create_task(client.query(q)) for name, q in scalar_queries.items()}
            by_model_task = tg.create_task(client.query(queries.tokens_by_model(window)))
            over_time_task = tg.create_task(
                client.query_range(queries.tokens_rate(rate_window), resolved.start, resolved.end, step)
            )
    except ExceptionGroup as eg:
        raise eg.exceptions[0] from None

    by_model = by_model_task.result()
    over_time = over_time_task.result()

    fields: dict[str, object] = {}
    for name, task in scalar_tasks.items():
        value = scalar(task.result())
        fields[name] = value if name in _FLOAT_FIELDS else int(value)

    return DashboardMetrics(
        **fields,  # pyright: ignore[reportArgumentType]
        tokens_by_model=model_breakdown(by_model),
        tokens_over_time=time_series(over_time),
    )


async def get_dashboard_metrics(
    client: PrometheusClient,
    time_range: str,
    custom_start: int | None = None,
    custom_end: int | None = None,
    now: int | None = None,
) -> DashboardMetrics:
    """Resolve the range selector and fetch the dashboard summary."""
    resolved = resolve_time_range(time_range, custom_start, custom_end, now=now)
    return await fetch_dashboard(client, resolved)

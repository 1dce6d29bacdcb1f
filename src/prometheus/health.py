"""Prometheus self-monitoring summary.

Unlike the dashboard, every query here is independent: a failed query leaves
its field at the zero default and the rest of the summary is still returned,
so the view stays useful while the server is degraded.
"""

import asyncio
import logging

from src.models import CamelModel, TimeSeriesPoint
from src.prometheus.client import PrometheusClient, QueryResult
from src.prometheus.dashboard import scalar, time_series
from src.prometheus.time_range import health_step

logger = logging.getLogger(__name__)

# field name -> instant query
SCALAR_QUERIES: dict[str, str] = {
    "uptime_seconds": "time() - process_start_time_seconds",
    "storage_blocks_bytes": "prometheus_tsdb_storage_blocks_bytes",
    "storage_wal_bytes": "prometheus_tsdb_wal_storage_size_bytes",
    "storage_retention_limit_bytes": "prometheus_tsdb_retention_limit_bytes",
    "storage_retention_limit_seconds": "prometheus_tsdb_retention_limit_seconds",
    "head_series": "prometheus_tsdb_head_series",
    "oldest_timestamp_seconds": "prometheus_tsdb_lowest_timestamp_seconds",
    "newest_timestamp_seconds": "prometheus_tsdb_head_max_time_seconds",
    "blocks_loaded": "prometheus_tsdb_blocks_loaded",
    "process_memory_bytes": "process_resident_memory_bytes",
    "heap_inuse_bytes": "go_memstats_heap_inuse_bytes",
    "heap_alloc_bytes": "go_memstats_heap_alloc_bytes",
    "goroutines": "go_goroutines",
    "cpu_seconds_rate": "rate(process_cpu_seconds_total[1m])",
    "samples_appended_rate": "rate(prometheus_tsdb_head_samples_appended_total[1m])",
    "series_created_rate": "rate(prometheus_tsdb_head_series_created_total[1m])",
    "target_count": "count(up)",
    "scrape_duration_seconds": "scrape_duration_seconds",
    "scrape_samples": "scrape_samples_scraped",
    "compactions_failed": "prometheus_tsdb_compactions_failed_total",
    "compactions_total": "prometheus_tsdb_compactions_total",
    "wal_corruptions": "prometheus_tsdb_wal_corruptions_total",
    "config_reload_timestamp": "prometheus_config_last_reload_success_timestamp_seconds",
}

BUILD_INFO_QUERY = "prometheus_build_info"
CONFIG_RELOAD_QUERY = "prometheus_config_last_reload_successful"

# field name -> range query for the sparklines
RANGE_QUERIES: dict[str, str] = {
    "storage_over_time": "prometheus_tsdb_storage_blocks_bytes + prometheus_tsdb_wal_storage_size_bytes",
    "memory_over_time": "process_resident_memory_bytes",
    "samples_rate_over_time": "rate(prometheus_tsdb_head_samples_appended_total[1m])",
}


class PrometheusHealth(CamelModel):
    is_ready: bool = False
    uptime_seconds: float = 0.0
    version: str = ""
    go_version: str = ""

    storage_blocks_bytes: float = 0.0
    storage_wal_bytes: float = 0.0
    storage_total_bytes: float = 0.0
    storage_retention_limit_bytes: float = 0.0
    storage_retention_limit_seconds: float = 0.0
    head_series: float = 0.0
    oldest_timestamp_seconds: float = 0.0
    newest_timestamp_seconds: float = 0.0
    blocks_loaded: float = 0.0

    process_memory_bytes: float = 0.0
    heap_inuse_bytes: float = 0.0
    heap_alloc_bytes: float = 0.0
    goroutines: float = 0.0

    cpu_seconds_rate: float = 0.0
    samples_appended_rate: float = 0.0
    series_created_rate: float = 0.0

    target_count: float = 0.0
    scrape_duration_seconds: float = 0.0
    scrape_samples: float = 0.0

    compactions_failed: float = 0.0
    compactions_total: float = 0.0
    wal_corruptions: float = 0.0
    config_reload_success: bool = False
    config_reload_timestamp: float = 0.0

    storage_over_time: list[TimeSeriesPoint] = []
    memory_over_time: list[TimeSeriesPoint] = []
    samples_rate_over_time: list[TimeSeriesPoint] = []


def _ok(name: str, result: list[QueryResult] | BaseException) -> list[QueryResult] | None:
    if isinstance(result, BaseException):
        logger.debug("Health query %s failed: %s", name, result)
        return None
    return result


async def fetch_health(client: PrometheusClient, start: int, end: int) -> PrometheusHealth:
    """Build the health summary for the window ``[start, end]``. Never raises."""
    step = health_step(end - start)
    health = PrometheusHealth(is_ready=await client.test_connection())

    instant_names = [*SCALAR_QUERIES, BUILD_INFO_QUERY, CONFIG_RELOAD_QUERY]
    instant_results = await asyncio.gather(
        *(client.query(q) for q in SCALAR_QUERIES.values()),
        client.query(BUILD_INFO_QUERY),
        client.query(CONFIG_RELOAD_QUERY),
        return_exceptions=True,
    )
    range_results = await asyncio.gather(
        *(client.query_range(q, start, end, step) for q in RANGE_QUERIES.values()),
        return_exceptions=True,
    )

    by_name = dict(zip(instant_names, instant_results, strict=True))

    for field in SCALAR_QUERIES:
        results = _ok(field, by_name[field])
        if results is not None:
            setattr(health, field, scalar(results))

    build_info = _ok(BUILD_INFO_QUERY, by_name[BUILD_INFO_QUERY])
    if build_info:
        health.version = build_info[0].metric.get("version", "")
        health.go_version = build_info[0].metric.get("goversion", "")

    reload_results = _ok(CONFIG_RELOAD_QUERY, by_name[CONFIG_RELOAD_QUERY])
    if reload_results is not None:
        health.config_reload_success = scalar(reload_results) == 1.0

    health.storage_total_bytes = health.storage_blocks_bytes + health.storage_wal_bytes

    for field, result in zip(RANGE_QUERIES, range_results, strict=True):
        results = _ok(field, result)
        if results is not None:
            setattr(health, field, time_series(results))

    return health

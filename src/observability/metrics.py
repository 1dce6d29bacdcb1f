"""Prometheus metric definitions for usage monitor self-instrumentation.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

REQUEST_DURATION_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 15.0, 30.0)
QUERY_DURATION_BUCKETS = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 15.0)

# ---------------------------------------------------------------------------
# Command-level metrics
# ---------------------------------------------------------------------------

REQUEST_DURATION = Histogram(
    "usage_monitor_request_duration_seconds",
    "End-to-end command duration in seconds",
    labelnames=["command"],
    buckets=REQUEST_DURATION_BUCKETS,
)

REQUESTS_TOTAL = Counter(
    "usage_monitor_requests_total",
    "Total number of commands served",
    labelnames=["command", "status"],
)

REQUESTS_IN_PROGRESS = Gauge(
    "usage_monitor_requests_in_progress",
    "Number of commands currently being processed",
    labelnames=["command"],
)

# ---------------------------------------------------------------------------
# Upstream Prometheus queries (populated by PrometheusClient)
# ---------------------------------------------------------------------------

UPSTREAM_QUERIES_TOTAL = Counter(
    "usage_monitor_upstream_queries_total",
    "Total number of requests sent to the metrics server",
    labelnames=["endpoint", "status"],
)

UPSTREAM_QUERY_DURATION = Histogram(
    "usage_monitor_upstream_query_duration_seconds",
    "Duration of individual metrics server requests in seconds",
    labelnames=["endpoint"],
    buckets=QUERY_DURATION_BUCKETS,
)

# ---------------------------------------------------------------------------
# Tray / info metrics
# ---------------------------------------------------------------------------

TRAY_UPDATES_TOTAL = Counter(
    "usage_monitor_tray_updates_total",
    "Total number of status title updates",
    labelnames=["trigger", "connected"],
)

APP_INFO = Info(
    "usage_monitor",
    "Usage monitor build information",
)

"""Prometheus API response builders shared by the HTTP-mocking tests."""

from typing import Any

PROMETHEUS_URL = "http://prometheus.test:9090"
QUERY_URL = f"{PROMETHEUS_URL}/api/v1/query"
QUERY_RANGE_URL = f"{PROMETHEUS_URL}/api/v1/query_range"
HEALTHY_URL = f"{PROMETHEUS_URL}/-/healthy"
LABEL_VALUES_URL = f"{PROMETHEUS_URL}/api/v1/label/__name__/values"


def vector(*rows: tuple[dict[str, str], str]) -> dict[str, Any]:
    """Instant-query envelope with one ``(labels, value)`` row per argument."""
    return {
        "status": "success",
        "data": {
            "resultType": "vector",
            "result": [{"metric": labels, "value": [1700000000, value]} for labels, value in rows],
        },
    }


def scalar(value: str) -> dict[str, Any]:
    """Instant-query envelope with a single unlabeled row."""
    return vector(({}, value))


def matrix(*samples: tuple[float, str], labels: dict[str, str] | None = None) -> dict[str, Any]:
    """Range-query envelope with a single series."""
    return {
        "status": "success",
        "data": {
            "resultType": "matrix",
            "result": [{"metric": labels or {}, "values": [[ts, v] for ts, v in samples]}],
        },
    }


EMPTY_VECTOR: dict[str, Any] = {"status": "success", "data": {"resultType": "vector", "result": []}}

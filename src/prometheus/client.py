"""Async client for the Prometheus HTTP query API.

Each call is a single GET with no retry. Transport problems surface as
TransportError, non-success envelopes as InvalidResponseError.
"""

import logging
import math
import time
from types import TracebackType
from typing import Any, Self, TypedDict

import httpx
from pydantic import BaseModel, Field

from src.errors import InvalidResponseError, TransportError
from src.observability.metrics import UPSTREAM_QUERIES_TOTAL, UPSTREAM_QUERY_DURATION

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15
DEFAULT_METRIC_PREFIX = "claude_code_"


# --- Prometheus response types ---


class PrometheusSeries(TypedDict, total=False):
    metric: dict[str, str]
    value: list[float | str]
    values: list[list[float | str]]


class PrometheusData(TypedDict, total=False):
    resultType: str
    result: list[PrometheusSeries]


class PrometheusResponse(TypedDict, total=False):
    status: str
    errorType: str
    error: str
    data: PrometheusData


def parse_sample_value(raw: object) -> float | None:
    """Parse a sample value string. Returns None for unparsable or non-finite values."""
    try:
        value = float(str(raw))
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class QueryResult(BaseModel):
    """One series from an instant or range query."""

    metric: dict[str, str] = Field(default_factory=dict)
    value: tuple[float, str] | None = None
    values: list[tuple[float, str]] | None = None

    def parsed_value(self) -> float | None:
        """The instant sample as a float, or None if missing or unparsable."""
        if self.value is None:
            return None
        return parse_sample_value(self.value[1])

    def float_value(self) -> float:
        """The instant sample as a float, defaulting to 0.0."""
        parsed = self.parsed_value()
        return parsed if parsed is not None else 0.0


def _parse_sample(raw: object) -> tuple[float, str] | None:
    if not isinstance(raw, list) or len(raw) < 2:
        return None
    try:
        ts = float(raw[0])
    except (TypeError, ValueError):
        return None
    return ts, str(raw[1])


def _parse_series(series: object) -> QueryResult:
    if not isinstance(series, dict):
        raise InvalidResponseError(f"Invalid response: unexpected result entry {series!r}")

    metric = series.get("metric", {})
    labels = {str(k): str(v) for k, v in metric.items()} if isinstance(metric, dict) else {}

    value = _parse_sample(series["value"]) if "value" in series else None

    values: list[tuple[float, str]] | None = None
    raw_values = series.get("values")
    if isinstance(raw_values, list):
        values = [sample for sample in (_parse_sample(v) for v in raw_values) if sample is not None]

    return QueryResult(metric=labels, value=value, values=values)


def parse_query_response(data: object) -> list[QueryResult]:
    """Validate a query/query_range envelope and return its result rows."""
    if not isinstance(data, dict):
        raise InvalidResponseError("Invalid response: expected a JSON object")

    status = data.get("status", "unknown")
    if status != "success":
        error_msg = data.get("error") or status
        raise InvalidResponseError(f"Invalid response: {error_msg}")

    result_data = data.get("data")
    result = result_data.get("result") if isinstance(result_data, dict) else None
    if not isinstance(result, list):
        raise InvalidResponseError("Invalid response: missing data.result")

    return [_parse_series(series) for series in result]


class PrometheusClient:
    """Issues queries against a fixed Prometheus base URL.

    Use as an async context manager, or pass an existing ``httpx.AsyncClient``
    whose lifetime the caller manages.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        """GET an API endpoint and decode the JSON body."""
        url = f"{self.base_url}{endpoint}"
        start = time.monotonic()
        status = "error"
        try:
            response = await self._client.get(url, params=params or {})
            if response.is_error:
                _raise_for_error_response(response)
            data = response.json()  # pyright: ignore[reportAny]
            status = "success"
            return data
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to Prometheus at {self.base_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Prometheus request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"Prometheus returned invalid JSON: {e}") from e
        finally:
            UPSTREAM_QUERIES_TOTAL.labels(endpoint=endpoint, status=status).inc()
            UPSTREAM_QUERY_DURATION.labels(endpoint=endpoint).observe(time.monotonic() - start)

    async def query(self, query: str) -> list[QueryResult]:
        """Run an instant query."""
        logger.debug("Prometheus instant query: %s", query)
        data = await self._get_json("/api/v1/query", {"query": query})
        return parse_query_response(data)

    async def query_range(self, query: str, start: int, end: int, step: str) -> list[QueryResult]:
        """Run a range query between two epoch-second bounds."""
        logger.debug("Prometheus range query: %s (start=%s, end=%s, step=%s)", query, start, end, step)
        params = {"query": query, "start": str(start), "end": str(end), "step": step}
        data = await self._get_json("/api/v1/query_range", params)
        return parse_query_response(data)

    async def test_connection(self) -> bool:
        """Probe the health endpoint. Network failures report False instead of raising."""
        try:
            response = await self._client.get(f"{self.base_url}/-/healthy")
        except httpx.HTTPError as e:
            logger.debug("Prometheus health probe failed: %s", e)
            UPSTREAM_QUERIES_TOTAL.labels(endpoint="/-/healthy", status="error").inc()
            return False
        healthy = response.is_success
        UPSTREAM_QUERIES_TOTAL.labels(endpoint="/-/healthy", status="success" if healthy else "error").inc()
        return healthy

    async def discover_metrics(self, prefix: str = DEFAULT_METRIC_PREFIX) -> list[str]:
        """List metric names that start with ``prefix``, sorted."""
        data = await self._get_json("/api/v1/label/__name__/values")
        if not isinstance(data, dict) or data.get("status") != "success":
            status = data.get("status", "unknown") if isinstance(data, dict) else "unknown"
            raise InvalidResponseError(f"Invalid response: {status}")

        names = data.get("data")
        if not isinstance(names, list):
            return []
        return sorted({name for name in names if isinstance(name, str) and name.startswith(prefix)})


def _raise_for_error_response(response: httpx.Response) -> None:
    """Turn an HTTP error status into the matching error type.

    Prometheus reports bad queries as 400/422 with a JSON error envelope; those
    are InvalidResponseError. Anything else is a transport failure.
    """
    try:
        body = response.json()  # pyright: ignore[reportAny]
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("status") == "error":
        error_type = body.get("errorType", "error")
        raise InvalidResponseError(f"Invalid response: {error_type}: {body.get('error', 'unknown error')}")
    raise TransportError(f"Prometheus API error: HTTP {response.status_code} - {response.text[:500]}")

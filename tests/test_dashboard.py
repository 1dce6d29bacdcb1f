"""Tests for the dashboard aggregator with mocked Prometheus responses."""

import asyncio
from typing import Any

import httpx
import pytest
import respx

from prom_responses import EMPTY_VECTOR, PROMETHEUS_URL, QUERY_RANGE_URL, QUERY_URL, matrix, scalar, vector
from src.errors import InvalidResponseError, TransportError
from src.prometheus import queries
from src.prometheus.client import PrometheusClient, QueryResult
from src.prometheus.dashboard import get_dashboard_metrics, model_breakdown, time_series

NOW = 1_700_000_000


class TestQueries:
    def test_scalar_queries_cover_every_field(self) -> None:
        built = queries.dashboard_scalar_queries("1d")
        assert len(built) == 12
        assert built["total_tokens"] == "sum(increase(claude_code_token_usage_tokens_total[1d]))"
        assert built["cache_read_tokens"] == (
            'sum(increase(claude_code_token_usage_tokens_total{type=~"cache_read|cacheRead"}[1d]))'
        )
        assert built["lines_removed"] == 'sum(increase(claude_code_lines_of_code_count_total{type="removed"}[1d]))'

    def test_grouped_query(self) -> None:
        assert queries.tokens_by_model("7d") == "sum by (model) (increase(claude_code_token_usage_tokens_total[7d]))"

    def test_rate_query(self) -> None:
        assert queries.tokens_rate("5m") == "sum(rate(claude_code_token_usage_tokens_total[5m]))"


class TestModelBreakdown:
    def test_drops_rows_without_model_or_value(self) -> None:
        rows = [
            QueryResult(metric={"model": "opus"}, value=(1.0, "100")),
            QueryResult(metric={}, value=(1.0, "50")),
            QueryResult(metric={"model": "haiku"}, value=(1.0, "garbage")),
            QueryResult(metric={"model": "sonnet"}),
        ]
        breakdown = model_breakdown(rows)
        assert [(m.model, m.tokens) for m in breakdown] == [("opus", 100)]

    def test_time_series_defaults_bad_samples_to_zero(self) -> None:
        rows = [QueryResult(values=[(1.0, "0.5"), (2.0, "NaN")])]
        assert [(p.timestamp, p.value) for p in time_series(rows)] == [(1.0, 0.5), (2.0, 0.0)]

    def test_time_series_empty(self) -> None:
        assert time_series([]) == []


def _instant_responder(values: dict[str, dict[str, Any]]):
    """Answer instant queries from a query-string -> envelope map, empty vector otherwise."""

    def _respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=values.get(request.url.params["query"], EMPTY_VECTOR))

    return _respond


@pytest.mark.integration
class TestGetDashboardMetrics:
    @respx.mock
    async def test_assembles_summary(self) -> None:
        built = queries.dashboard_scalar_queries("1d")
        respx.get(QUERY_URL).mock(
            side_effect=_instant_responder(
                {
                    built["total_tokens"]: scalar("1500.7"),
                    built["input_tokens"]: scalar("1000"),
                    built["total_cost_usd"]: scalar("2.5"),
                    built["active_time_seconds"]: scalar("360.5"),
                    built["session_count"]: scalar("3"),
                    built["commit_count"]: scalar("not-a-number"),
                    queries.tokens_by_model("1d"): vector(
                        ({"model": "claude-opus-4-5"}, "1200"), ({"model": "claude-haiku-4-5"}, "300")
                    ),
                }
            )
        )
        range_route = respx.get(QUERY_RANGE_URL).mock(
            return_value=httpx.Response(200, json=matrix((NOW - 3600, "0.25"), (NOW, "0.5")))
        )

        async with PrometheusClient(PROMETHEUS_URL) as client:
            metrics = await get_dashboard_metrics(client, "1d", now=NOW)

        assert metrics.total_tokens == 1500
        assert metrics.input_tokens == 1000
        assert metrics.total_cost_usd == 2.5
        assert metrics.active_time_seconds == 360.5
        assert metrics.session_count == 3
        assert metrics.commit_count == 0
        assert metrics.pull_request_count == 0
        assert {m.model: m.tokens for m in metrics.tokens_by_model} == {
            "claude-opus-4-5": 1200,
            "claude-haiku-4-5": 300,
        }
        assert [p.value for p in metrics.tokens_over_time] == [0.25, 0.5]

        params = range_route.calls.last.request.url.params
        assert params["query"] == queries.tokens_rate("1h")
        assert params["step"] == "1h"
        assert (params["start"], params["end"]) == (str(NOW - 86400), str(NOW))

    @respx.mock
    async def test_serializes_camel_case(self) -> None:
        respx.get(QUERY_URL).mock(return_value=httpx.Response(200, json=EMPTY_VECTOR))
        respx.get(QUERY_RANGE_URL).mock(return_value=httpx.Response(200, json=EMPTY_VECTOR))

        async with PrometheusClient(PROMETHEUS_URL) as client:
            metrics = await get_dashboard_metrics(client, "15m", now=NOW)

        body = metrics.model_dump(by_alias=True)
        assert body["totalTokens"] == 0
        assert body["cacheCreationTokens"] == 0
        assert body["tokensOverTime"] == []

    @respx.mock
    async def test_custom_range_step(self) -> None:
        respx.get(QUERY_URL).mock(return_value=httpx.Response(200, json=EMPTY_VECTOR))
        range_route = respx.get(QUERY_RANGE_URL).mock(return_value=httpx.Response(200, json=EMPTY_VECTOR))

        async with PrometheusClient(PROMETHEUS_URL) as client:
            await get_dashboard_metrics(client, "custom", custom_start=NOW - 2 * 86400, custom_end=NOW)

        params = range_route.calls.last.request.url.params
        assert params["step"] == "6h"
        assert params["query"] == queries.tokens_rate("6h")

    @respx.mock
    async def test_fails_fast_on_transport_error(self) -> None:
        respx.get(QUERY_URL).mock(side_effect=httpx.ConnectError("Connection refused"))
        respx.get(QUERY_RANGE_URL).mock(return_value=httpx.Response(200, json=EMPTY_VECTOR))

        async with PrometheusClient(PROMETHEUS_URL) as client:
            with pytest.raises(TransportError, match="Cannot connect"):
                await get_dashboard_metrics(client, "1h", now=NOW)

    @respx.mock
    async def test_failure_cancels_pending_queries(self) -> None:
        finished: list[str] = []

        async def _slow_range(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.05)
            finished.append(request.url.params["query"])
            return httpx.Response(200, json=EMPTY_VECTOR)

        respx.get(QUERY_URL).mock(side_effect=httpx.ConnectError("Connection refused"))
        respx.get(QUERY_RANGE_URL).mock(side_effect=_slow_range)

        async with PrometheusClient(PROMETHEUS_URL) as client:
            with pytest.raises(TransportError):
                await get_dashboard_metrics(client, "1h", now=NOW)

        await asyncio.sleep(0.1)
        assert finished == []

    @respx.mock
    async def test_fails_fast_on_error_envelope(self) -> None:
        respx.get(QUERY_URL).mock(return_value=httpx.Response(200, json=EMPTY_VECTOR))
        respx.get(QUERY_RANGE_URL).mock(
            return_value=httpx.Response(200, json={"status": "error", "error": "query timed out"})
        )

        async with PrometheusClient(PROMETHEUS_URL) as client:
            with pytest.raises(InvalidResponseError, match="query timed out"):
                await get_dashboard_metrics(client, "1h", now=NOW)

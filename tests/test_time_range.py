"""Tests for range resolution and the step/rate-window tables."""

import time

import pytest

from src.errors import InvalidRangeError, ParseError
from src.prometheus.time_range import (
    DASHBOARD_STEPS,
    DAY,
    HEALTH_STEPS,
    HOUR,
    RANGE_SECONDS,
    StepWindow,
    dashboard_step,
    health_step,
    normalize_range,
    resolve_time_range,
)

NOW = 1_700_000_000


class TestResolveTimeRange:
    @pytest.mark.parametrize("token", list(RANGE_SECONDS))
    def test_symbolic_tokens(self, token: str) -> None:
        resolved = resolve_time_range(token, now=NOW)
        assert resolved.end == NOW
        assert resolved.duration == RANGE_SECONDS[token]
        assert resolved.range_literal == token

    def test_end_defaults_to_current_time(self) -> None:
        before = int(time.time())
        resolved = resolve_time_range("1h")
        assert before <= resolved.end <= int(time.time()) + 2
        assert resolved.duration == HOUR

    def test_unknown_token_falls_back_to_shortest(self) -> None:
        resolved = resolve_time_range("3y", now=NOW)
        assert resolved.range_literal == "15m"
        assert resolved.duration == 15 * 60
        assert normalize_range("bogus") == "15m"

    def test_custom_uses_literal_seconds(self) -> None:
        resolved = resolve_time_range("custom", custom_start=1000, custom_end=87400)
        assert resolved == (1000, 87400, "86400s")

    def test_custom_missing_start(self) -> None:
        with pytest.raises(InvalidRangeError, match="start"):
            resolve_time_range("custom", custom_end=NOW)

    def test_custom_missing_end(self) -> None:
        with pytest.raises(InvalidRangeError, match="end"):
            resolve_time_range("custom", custom_start=NOW)

    def test_custom_empty_range_is_parse_error(self) -> None:
        with pytest.raises(ParseError):
            resolve_time_range("custom", custom_start=NOW, custom_end=NOW)


class TestDashboardStep:
    @pytest.mark.parametrize(
        ("duration", "expected"),
        [
            (15 * 60, StepWindow("1m", "5m")),
            (HOUR, StepWindow("1m", "5m")),
            (4 * HOUR, StepWindow("5m", "5m")),
            (8 * HOUR, StepWindow("1h", "1h")),
            (DAY, StepWindow("1h", "1h")),
            (2 * DAY, StepWindow("6h", "6h")),
            (7 * DAY, StepWindow("6h", "6h")),
            (30 * DAY, StepWindow("1d", "1d")),
            (90 * DAY, StepWindow("3d", "3d")),
        ],
    )
    def test_breakpoints(self, duration: int, expected: StepWindow) -> None:
        assert dashboard_step(duration) == expected

    def test_just_over_a_breakpoint(self) -> None:
        assert dashboard_step(HOUR + 1) == StepWindow("5m", "5m")

    def test_table_is_monotonic(self) -> None:
        bounds = [upper for upper, _ in DASHBOARD_STEPS]
        assert bounds == sorted(bounds)


class TestHealthStep:
    @pytest.mark.parametrize(
        ("duration", "expected"),
        [
            (15 * 60, "15s"),
            (HOUR, "60s"),
            (4 * HOUR, "300s"),
            (DAY, "900s"),
            (7 * DAY, "3600s"),
        ],
    )
    def test_breakpoints(self, duration: int, expected: str) -> None:
        assert health_step(duration) == expected

    def test_table_is_monotonic(self) -> None:
        bounds = [upper for upper, _ in HEALTH_STEPS]
        assert bounds == sorted(bounds)

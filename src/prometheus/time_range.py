"""Translate range selectors into query bounds, steps and rate windows.

Two step tables exist because the dashboard chart and the health sparklines
are tuned for different point budgets:

* ``DASHBOARD_STEPS``: (step, rate window) for the usage-over-time chart.
* ``HEALTH_STEPS``: step for the server self-monitoring sparklines.

Both are staircases on the range duration in seconds; the first row whose
upper bound is >= the duration wins.
"""

import logging
import time
from typing import NamedTuple

from src.errors import InvalidRangeError

logger = logging.getLogger(__name__)

MINUTE = 60
HOUR = 3600
DAY = 86400

CUSTOM_RANGE = "custom"
DEFAULT_RANGE = "15m"

RANGE_SECONDS: dict[str, int] = {
    "15m": 15 * MINUTE,
    "1h": HOUR,
    "4h": 4 * HOUR,
    "8h": 8 * HOUR,
    "1d": DAY,
    "24h": DAY,
    "2d": 2 * DAY,
    "7d": 7 * DAY,
    "30d": 30 * DAY,
    "90d": 90 * DAY,
}


class ResolvedRange(NamedTuple):
    start: int
    end: int
    range_literal: str

    @property
    def duration(self) -> int:
        return self.end - self.start


class StepWindow(NamedTuple):
    step: str
    rate_window: str


DASHBOARD_STEPS: list[tuple[int, StepWindow]] = [
    (HOUR, StepWindow("1m", "5m")),
    (4 * HOUR, StepWindow("5m", "5m")),
    (DAY, StepWindow("1h", "1h")),
    (7 * DAY, StepWindow("6h", "6h")),
    (30 * DAY, StepWindow("1d", "1d")),
]
DASHBOARD_STEP_MAX = StepWindow("3d", "3d")

HEALTH_STEPS: list[tuple[int, str]] = [
    (15 * MINUTE, "15s"),
    (HOUR, "60s"),
    (4 * HOUR, "300s"),
    (DAY, "900s"),
]
HEALTH_STEP_MAX = "3600s"


def normalize_range(time_range: str) -> str:
    """Return the token itself if known, else the default (shortest) range."""
    if time_range in RANGE_SECONDS:
        return time_range
    logger.debug("Unknown time range %r, using %s", time_range, DEFAULT_RANGE)
    return DEFAULT_RANGE


def resolve_time_range(
    time_range: str,
    custom_start: int | None = None,
    custom_end: int | None = None,
    now: int | None = None,
) -> ResolvedRange:
    """Resolve a selector to ``(start, end, range_literal)`` in epoch seconds.

    Symbolic ranges end at ``now``. ``custom`` requires both bounds and uses
    the literal second count (e.g. ``"86400s"``) as the PromQL range.
    """
    if time_range == CUSTOM_RANGE:
        if custom_start is None:
            raise InvalidRangeError("Custom start time required")
        if custom_end is None:
            raise InvalidRangeError("Custom end time required")
        if custom_end <= custom_start:
            raise InvalidRangeError("Custom end time must be after start time")
        return ResolvedRange(custom_start, custom_end, f"{custom_end - custom_start}s")

    token = normalize_range(time_range)
    end = int(time.time()) if now is None else now
    return ResolvedRange(end - RANGE_SECONDS[token], end, token)


def dashboard_step(duration_seconds: int) -> StepWindow:
    """Step and rate window for the usage-over-time chart."""
    for upper, step in DASHBOARD_STEPS:
        if duration_seconds <= upper:
            return step
    return DASHBOARD_STEP_MAX


def health_step(duration_seconds: int) -> str:
    """Step for the health sparklines."""
    for upper, step in HEALTH_STEPS:
        if duration_seconds <= upper:
            return step
    return HEALTH_STEP_MAX

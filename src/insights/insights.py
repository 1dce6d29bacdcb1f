"""Period comparisons, streaks and summary stats derived from the local stats cache."""

import logging
from datetime import date, timedelta
from itertools import pairwise
from typing import NamedTuple

from pydantic import Field, computed_field

from src.insights.pricing import PricingProvider, calculate_cost
from src.insights.stats_cache import StatsCache
from src.models import CamelModel, ModelTokens

logger = logging.getLogger(__name__)

THIS_WEEK = "this_week"
THIS_MONTH = "this_month"
LAST_7_DAYS = "last_7_days"


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


def percent_change(current: float, previous: float) -> float | None:
    """Relative change in percent. None when both are zero, 100 when growing from zero."""
    if previous > 0:
        return (current - previous) / previous * 100.0
    if current > 0:
        return 100.0
    return None


class MetricComparison(CamelModel):
    current: float
    previous: float

    @computed_field(alias="percentChange")
    @property
    def percent_change(self) -> float | None:
        return percent_change(self.current, self.previous)

    @classmethod
    def create(cls, current: float, previous: float) -> "MetricComparison":
        return cls(current=current, previous=previous)


class PeriodComparison(CamelModel):
    messages: MetricComparison
    sessions: MetricComparison
    tokens: MetricComparison
    estimated_cost: MetricComparison


class DailyActivityPoint(CamelModel):
    date: str
    value: float


class PeakActivity(CamelModel):
    most_active_hour: int | None = None
    longest_session_minutes: int | None = None
    current_streak: int = 0
    member_since: str | None = None


class InsightsData(CamelModel):
    period: str
    comparison: PeriodComparison
    daily_activity: list[DailyActivityPoint]
    sessions_per_day: list[DailyActivityPoint]
    peak_activity: PeakActivity


class HourActivity(CamelModel):
    hour: int
    count: int


class ModelCost(CamelModel):
    model: str
    cost: float


class LocalStatsCacheData(CamelModel):
    total_tokens: int
    total_sessions: int
    total_messages: int
    active_days: int
    avg_messages_per_day: float
    estimated_cost: float
    peak_hour: int | None
    first_session: str | None
    daily_activity: list[DailyActivityPoint]
    tokens_by_model: list[ModelTokens]
    activity_by_hour: list[HourActivity]
    cost_by_model: list[ModelCost] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Period windows
# ---------------------------------------------------------------------------


class PeriodWindows(NamedTuple):
    """Inclusive date bounds for the current period and the one before it."""

    current_start: date
    current_end: date
    previous_start: date
    previous_end: date

    def current_days(self) -> list[date]:
        days = (self.current_end - self.current_start).days + 1
        return [self.current_start + timedelta(days=i) for i in range(days)]


def period_windows(period: str, today: date) -> PeriodWindows:
    """Current window ending today and the equally long window right before it.

    ``this_week`` starts on Monday, ``this_month`` on the 1st; anything else
    is the trailing 7 days.
    """
    if period == THIS_WEEK:
        current_start = today - timedelta(days=today.weekday())
    elif period == THIS_MONTH:
        current_start = today.replace(day=1)
    else:
        current_start = today - timedelta(days=6)

    length = (today - current_start).days + 1
    previous_end = current_start - timedelta(days=1)
    previous_start = current_start - timedelta(days=length)
    return PeriodWindows(current_start, today, previous_start, previous_end)


def _parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        logger.debug("Skipping unparsable date %r", value)
        return None


# ---------------------------------------------------------------------------
# Streaks and peaks
# ---------------------------------------------------------------------------


def active_dates(stats: StatsCache) -> set[date]:
    """Distinct dates with at least one message."""
    return {
        parsed
        for day in stats.daily_activity
        if day.message_count > 0 and (parsed := _parse_date(day.date)) is not None
    }


def current_streak(stats: StatsCache, today: date) -> int:
    """Consecutive active days ending today or yesterday.

    A day is active when its message count is positive. If the most recent
    active day is older than yesterday the streak is 0.
    """
    dates = sorted((d for d in active_dates(stats) if d <= today), reverse=True)
    if not dates or (today - dates[0]).days > 1:
        return 0

    streak = 1
    for previous, current in pairwise(dates):
        if previous - current != timedelta(days=1):
            break
        streak += 1
    return streak


def most_active_hour(hour_counts: dict[str, int]) -> int | None:
    """Hour with the highest count; ties go to the earliest hour."""
    best: tuple[int, int] | None = None
    for key, count in hour_counts.items():
        try:
            hour = int(key)
        except ValueError:
            continue
        if best is None or count > best[1] or (count == best[1] and hour < best[0]):
            best = (hour, count)
    return best[0] if best is not None else None


def _date_part(value: str | None) -> str | None:
    return value[:10] if value else None


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def compute_insights(
    stats: StatsCache,
    period: str,
    provider: str | None,
    today: date | None = None,
) -> InsightsData:
    """Compare the current period against the one before it."""
    today = today or date.today()
    windows = period_windows(period, today)

    messages_by_day: dict[date, int] = {}
    sessions_by_day: dict[date, int] = {}
    for day in stats.daily_activity:
        parsed = _parse_date(day.date)
        if parsed is None:
            continue
        messages_by_day[parsed] = messages_by_day.get(parsed, 0) + day.message_count
        sessions_by_day[parsed] = sessions_by_day.get(parsed, 0) + day.session_count

    tokens_by_day: dict[date, int] = {}
    for day in stats.daily_model_tokens:
        parsed = _parse_date(day.date)
        if parsed is None:
            continue
        tokens_by_day[parsed] = tokens_by_day.get(parsed, 0) + sum(day.tokens_by_model.values())

    def window_sum(values: dict[date, int], start: date, end: date) -> int:
        return sum(v for d, v in values.items() if start <= d <= end)

    current = (windows.current_start, windows.current_end)
    previous = (windows.previous_start, windows.previous_end)

    tokens_current = window_sum(tokens_by_day, *current)
    tokens_previous = window_sum(tokens_by_day, *previous)

    comparison = PeriodComparison(
        messages=MetricComparison.create(
            window_sum(messages_by_day, *current), window_sum(messages_by_day, *previous)
        ),
        sessions=MetricComparison.create(
            window_sum(sessions_by_day, *current), window_sum(sessions_by_day, *previous)
        ),
        tokens=MetricComparison.create(tokens_current, tokens_previous),
        estimated_cost=MetricComparison.create(
            calculate_cost(tokens_current, provider), calculate_cost(tokens_previous, provider)
        ),
    )

    days = windows.current_days()
    longest = stats.longest_session

    return InsightsData(
        period=period,
        comparison=comparison,
        daily_activity=[
            DailyActivityPoint(date=d.isoformat(), value=messages_by_day.get(d, 0)) for d in days
        ],
        sessions_per_day=[
            DailyActivityPoint(date=d.isoformat(), value=sessions_by_day.get(d, 0)) for d in days
        ],
        peak_activity=PeakActivity(
            most_active_hour=most_active_hour(stats.hour_counts),
            longest_session_minutes=longest.duration // 60_000 if longest else None,
            current_streak=current_streak(stats, today),
            member_since=_date_part(stats.first_session_date),
        ),
    )


def get_local_stats(stats: StatsCache, provider: str | None) -> LocalStatsCacheData:
    """Lifetime totals from the stats cache."""
    total_tokens = sum(usage.total_tokens for usage in stats.model_usage.values())
    if not total_tokens:
        total_tokens = sum(sum(day.tokens_by_model.values()) for day in stats.daily_model_tokens)

    active_days = len(active_dates(stats))
    pricing = PricingProvider.from_tag(provider)

    hours = {h: 0 for h in range(24)}
    for key, count in stats.hour_counts.items():
        if key.isdigit() and int(key) in hours:
            hours[int(key)] += count

    cost_by_model = [
        ModelCost(
            model=model,
            cost=pricing.calculate_model_cost(
                model,
                usage.input_tokens,
                usage.output_tokens,
                usage.cache_read_input_tokens,
                usage.cache_creation_input_tokens,
            ),
        )
        for model, usage in stats.model_usage.items()
    ]

    return LocalStatsCacheData(
        total_tokens=total_tokens,
        total_sessions=stats.total_sessions,
        total_messages=stats.total_messages,
        active_days=active_days,
        avg_messages_per_day=stats.total_messages / active_days if active_days else 0.0,
        estimated_cost=calculate_cost(total_tokens, provider),
        peak_hour=most_active_hour(stats.hour_counts),
        first_session=_date_part(stats.first_session_date),
        daily_activity=sorted(
            (DailyActivityPoint(date=day.date, value=day.message_count) for day in stats.daily_activity),
            key=lambda point: point.date,
        ),
        tokens_by_model=sorted(
            (ModelTokens(model=model, tokens=usage.total_tokens) for model, usage in stats.model_usage.items()),
            key=lambda entry: entry.tokens,
            reverse=True,
        ),
        activity_by_hour=[HourActivity(hour=h, count=c) for h, c in hours.items()],
        cost_by_model=sorted(cost_by_model, key=lambda entry: entry.cost, reverse=True),
    )

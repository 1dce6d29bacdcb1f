"""Command-line access to the usage monitor commands.

Prints each command's result as JSON, the same shape the HTTP API returns.

Usage:
    uv run python -m src.cli dashboard --range 7d
    uv run python -m src.cli insights --period this_week
    uv run python -m src.cli sessions --range 1d
"""

import argparse
import asyncio
import json
import logging
import sys

from pydantic import BaseModel

from src import commands
from src.errors import MonitorError
from src.insights.insights import LAST_7_DAYS, THIS_MONTH, THIS_WEEK
from src.prometheus.time_range import CUSTOM_RANGE, DEFAULT_RANGE, RANGE_SECONDS
from src.tray.state import StatusTitle, TrayState

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)

RANGE_CHOICES = [*RANGE_SECONDS, CUSTOM_RANGE]


def _add_range_args(parser: argparse.ArgumentParser, default: str | None) -> None:
    parser.add_argument("--range", dest="time_range", default=default, choices=RANGE_CHOICES)
    parser.add_argument("--start", type=int, default=None, help="Custom range start (epoch seconds)")
    parser.add_argument("--end", type=int, default=None, help="Custom range end (epoch seconds)")
    parser.add_argument("--url", default=None, help="Prometheus URL (default: PROMETHEUS_URL)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Usage monitor commands")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    _add_range_args(sub.add_parser("dashboard", help="Usage totals for a time range"), DEFAULT_RANGE)
    _add_range_args(sub.add_parser("health", help="Prometheus self-monitoring summary"), None)

    for name, help_text in (("connection", "Test the Prometheus connection"), ("discover", "List usage metrics")):
        sub.add_parser(name, help=help_text).add_argument("--url", default=None)

    insights = sub.add_parser("insights", help="Period comparison from the local stats cache")
    insights.add_argument("--period", default=LAST_7_DAYS, choices=[THIS_WEEK, LAST_7_DAYS, THIS_MONTH])
    insights.add_argument("--pricing-provider", default=None)

    stats = sub.add_parser("stats", help="Lifetime totals from the local stats cache")
    stats.add_argument("--pricing-provider", default=None)

    sessions = sub.add_parser("sessions", help="Sessions from the local history")
    sessions.add_argument(
        "--range", dest="time_range", default=commands.SESSIONS_DEFAULT_RANGE, choices=list(RANGE_SECONDS)
    )
    sessions.add_argument("--url", default=None)

    tray = sub.add_parser("tray", help="Preview the tray title for a cost")
    tray.add_argument("cost", type=float)
    tray.add_argument("--disconnected", action="store_true")

    return parser


async def run(args: argparse.Namespace) -> object:
    """Dispatch parsed arguments to the matching command."""
    match args.command:
        case "dashboard":
            return await commands.get_dashboard_metrics(args.time_range, args.url, args.start, args.end)
        case "health":
            return await commands.get_prometheus_health(args.url, args.time_range, args.start, args.end)
        case "connection":
            return {"connected": await commands.test_connection(args.url)}
        case "discover":
            return {"metrics": await commands.discover_metrics(args.url)}
        case "insights":
            return commands.get_insights_data(args.period, args.pricing_provider)
        case "stats":
            return commands.get_local_stats_cache(args.pricing_provider)
        case "sessions":
            return await commands.get_sessions_data(args.time_range, args.url)
        case "tray":
            state = TrayState(StatusTitle())
            return {"title": commands.update_tray_stats(state, args.cost, not args.disconnected)}
    raise ValueError(f"Unknown command: {args.command}")


def render(result: object) -> str:
    if isinstance(result, BaseModel):
        return result.model_dump_json(by_alias=True, indent=2)
    return json.dumps(result, indent=2, ensure_ascii=False)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        result = asyncio.run(run(args))
    except MonitorError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(render(result))


if __name__ == "__main__":
    main()

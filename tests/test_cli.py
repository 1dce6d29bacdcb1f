"""Tests for the command-line entry point."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
import respx

from prom_responses import HEALTHY_URL
from src.cli import build_parser, main


def test_parser_defaults() -> None:
    args = build_parser().parse_args(["dashboard"])
    assert args.time_range == "15m"
    assert args.start is None


def test_sessions_default_to_one_day() -> None:
    assert build_parser().parse_args(["sessions"]).time_range == "1d"


def test_tray_preview(capsys: pytest.CaptureFixture[str]) -> None:
    main(["tray", "0.42", "--disconnected"])
    assert json.loads(capsys.readouterr().out) == {"title": "🔴 $0.420"}


@respx.mock
def test_connection(mock_settings: Any, capsys: pytest.CaptureFixture[str]) -> None:  # noqa: ARG001
    respx.get(HEALTHY_URL).mock(return_value=httpx.Response(200))
    main(["connection"])
    assert json.loads(capsys.readouterr().out) == {"connected": True}


def test_stats_prints_camel_case(
    mock_settings: Any,  # noqa: ARG001
    write_claude_file: Callable[[str, object], Path],
    capsys: pytest.CaptureFixture[str],
) -> None:
    write_claude_file("stats-cache.json", {"totalSessions": 2, "totalMessages": 6})

    main(["stats"])

    body = json.loads(capsys.readouterr().out)
    assert body["totalSessions"] == 2
    assert body["totalMessages"] == 6


def test_errors_exit_nonzero(mock_settings: Any, capsys: pytest.CaptureFixture[str]) -> None:  # noqa: ARG001
    with pytest.raises(SystemExit) as exc_info:
        main(["insights"])

    assert exc_info.value.code == 1
    assert "Stats cache file not found" in capsys.readouterr().err

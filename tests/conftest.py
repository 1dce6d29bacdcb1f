"""Shared pytest configuration and fixtures."""

import json
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from prom_responses import PROMETHEUS_URL
from src.config import Settings, get_settings


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests that hit a real Prometheus (requires .env with PROMETHEUS_URL)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="Need --run-e2e flag to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _no_dotenv(request: pytest.FixtureRequest) -> Generator[None]:
    """Block .env loading so a developer's local settings never leak into tests.

    Sets Settings.model_config['env_file'] = None before each test (except e2e).
    """
    if "e2e" in request.keywords:
        yield
        return

    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()


@pytest.fixture
def mock_settings(tmp_path: Path) -> Generator[Any]:
    """Provide fake settings pointing at a test Prometheus and a temp Claude dir.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = type(
        "FakeSettings",
        (),
        {
            "prometheus_url": PROMETHEUS_URL,
            "request_timeout_seconds": 5.0,
            "metric_prefix": "claude_code_",
            "claude_dir": str(tmp_path),
            "pricing_provider": "anthropic",
            "tray_refresh_seconds": 0,
            "tray_time_range": "1d",
        },
    )()
    with (
        patch("src.config.get_settings", return_value=fake_settings),
        patch("src.commands.get_settings", return_value=fake_settings),
        patch("src.api.main.get_settings", return_value=fake_settings),
        patch("src.tray.scheduler.get_settings", return_value=fake_settings),
    ):
        yield fake_settings


@pytest.fixture
def write_claude_file(tmp_path: Path) -> Callable[[str, object], Path]:
    """Write a JSON (dict) or JSONL (list of dicts/strings) file into the temp Claude dir."""

    def _write(name: str, content: object) -> Path:
        path = tmp_path / name
        if isinstance(content, list):
            lines = [line if isinstance(line, str) else json.dumps(line) for line in content]
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        else:
            path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return _write

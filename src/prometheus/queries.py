"""PromQL builders for the assistant's OpenTelemetry counters."""

# --- Metric names (Prometheus exporter naming, counters carry _total) ---

TOKEN_USAGE = "claude_code_token_usage_tokens_total"
COST_USAGE = "claude_code_cost_usage_USD_total"
ACTIVE_TIME = "claude_code_active_time_seconds_total"
SESSION_COUNT = "claude_code_session_count_total"
LINES_OF_CODE = "claude_code_lines_of_code_count_total"
COMMIT_COUNT = "claude_code_commit_count_total"
PULL_REQUEST_COUNT = "claude_code_pull_request_count_total"

# Exporters disagree on snake_case vs camelCase for the cache token types
TOKEN_TYPE_SELECTORS: dict[str, str] = {
    "input": 'type="input"',
    "output": 'type="output"',
    "cache_read": 'type=~"cache_read|cacheRead"',
    "cache_creation": 'type=~"cache_creation|cacheCreation"',
}

TOKEN_TYPE_ALIASES: dict[str, str] = {
    "input": "input",
    "output": "output",
    "cache_read": "cache_read",
    "cacheRead": "cache_read",
    "cache_creation": "cache_creation",
    "cacheCreation": "cache_creation",
}


def increase_sum(metric: str, window: str, selector: str = "", by: tuple[str, ...] = ()) -> str:
    """``sum [by (...)] (increase(metric{selector}[window]))``."""
    matcher = f"{{{selector}}}" if selector else ""
    grouping = f" by ({', '.join(by)}) " if by else ""
    return f"sum{grouping}(increase({metric}{matcher}[{window}]))"


def rate_sum(metric: str, window: str) -> str:
    """``sum(rate(metric[window]))``, the per-second rate used for time series."""
    return f"sum(rate({metric}[{window}]))"


def dashboard_scalar_queries(window: str) -> dict[str, str]:
    """One instant query per scalar dashboard field, keyed by field name."""
    return {
        "total_tokens": increase_sum(TOKEN_USAGE, window),
        "input_tokens": increase_sum(TOKEN_USAGE, window, TOKEN_TYPE_SELECTORS["input"]),
        "output_tokens": increase_sum(TOKEN_USAGE, window, TOKEN_TYPE_SELECTORS["output"]),
        "cache_read_tokens": increase_sum(TOKEN_USAGE, window, TOKEN_TYPE_SELECTORS["cache_read"]),
        "cache_creation_tokens": increase_sum(TOKEN_USAGE, window, TOKEN_TYPE_SELECTORS["cache_creation"]),
        "total_cost_usd": increase_sum(COST_USAGE, window),
        "active_time_seconds": increase_sum(ACTIVE_TIME, window),
        "session_count": increase_sum(SESSION_COUNT, window),
        "lines_added": increase_sum(LINES_OF_CODE, window, 'type="added"'),
        "lines_removed": increase_sum(LINES_OF_CODE, window, 'type="removed"'),
        "commit_count": increase_sum(COMMIT_COUNT, window),
        "pull_request_count": increase_sum(PULL_REQUEST_COUNT, window),
    }


def tokens_by_model(window: str) -> str:
    return increase_sum(TOKEN_USAGE, window, by=("model",))


def tokens_rate(rate_window: str) -> str:
    return rate_sum(TOKEN_USAGE, rate_window)


# --- Per-session queries ---


def cost_by_session(window: str) -> str:
    return increase_sum(COST_USAGE, window, by=("session_id",))


def tokens_by_session(window: str) -> str:
    return increase_sum(TOKEN_USAGE, window, by=("session_id",))


def tokens_by_session_and_type(window: str) -> str:
    return increase_sum(TOKEN_USAGE, window, by=("session_id", "type"))


def active_time_by_session(window: str) -> str:
    return increase_sum(ACTIVE_TIME, window, by=("session_id",))


def tokens_by_session_and_model(window: str) -> str:
    return increase_sum(TOKEN_USAGE, window, by=("session_id", "model"))

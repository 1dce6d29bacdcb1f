"""Status indicator title: one shared handle behind a lock."""

import logging
import threading
from typing import Protocol

from src.observability.metrics import TRAY_UPDATES_TOTAL

logger = logging.getLogger(__name__)

CONNECTED = "🟢"
DISCONNECTED = "🔴"
PLACEHOLDER_TITLE = f"{DISCONNECTED} --"


class TitleHandle(Protocol):
    def set_title(self, title: str) -> None: ...


class StatusTitle:
    """In-process handle that remembers the latest title for polling shells."""

    def __init__(self, title: str = PLACEHOLDER_TITLE) -> None:
        self.title = title

    def set_title(self, title: str) -> None:
        self.title = title


class TrayState:
    """Owns the single title handle; every update holds the lock."""

    def __init__(self, handle: TitleHandle | None = None) -> None:
        self._lock = threading.Lock()
        self._handle = handle

    def attach(self, handle: TitleHandle | None) -> None:
        with self._lock:
            self._handle = handle

    def set_title(self, title: str) -> bool:
        """Set the title on the attached handle. Returns False when none is attached."""
        with self._lock:
            if self._handle is None:
                return False
            self._handle.set_title(title)
            return True

    def current_title(self) -> str | None:
        with self._lock:
            return getattr(self._handle, "title", None)


def format_cost_short(cost: float) -> str:
    return f"${cost:.2f}" if cost >= 1.0 else f"${cost:.3f}"


def format_tray_title(total_cost: float, is_connected: bool) -> str:
    indicator = CONNECTED if is_connected else DISCONNECTED
    return f"{indicator} {format_cost_short(total_cost)}"


def update_tray_stats(state: TrayState, total_cost: float, is_connected: bool, trigger: str = "manual") -> str:
    """Format and push the title. Returns the formatted title even when no handle is attached."""
    title = format_tray_title(total_cost, is_connected)
    if state.set_title(title):
        TRAY_UPDATES_TOTAL.labels(trigger=trigger, connected=str(is_connected).lower()).inc()
        logger.debug("Tray title set to %r", title)
    return title

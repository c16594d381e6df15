"""Per-minute request budget shared by collection runs.

A fixed-period window, not a sliding one: every ``window_seconds`` the usage
counter drops back to zero regardless of when requests were made, so a burst
right before a reset is not smoothed. The budget never blocks; the engine
reads ``safe_interval_ms`` to space its requests.
"""

import asyncio
import math

from collector.logging import get_logger
from collector.models import RateBudgetState

logger = get_logger(__name__)


class RateBudget:
    """Tracks requests issued in the current one-minute window.

    The periodic reset runs as a background task owned by the hosting
    session (``start()`` / ``stop()``), independent of any collection run.

    Usage:
        budget = RateBudget(max_requests_per_minute=1200)
        await budget.start()
        budget.track_request()
        budget.safe_interval_ms  # 50
    """

    def __init__(
        self,
        max_requests_per_minute: int = 1200,
        window_seconds: float = 60.0,
    ) -> None:
        if max_requests_per_minute <= 0:
            raise ValueError("max_requests_per_minute must be positive")
        self._max = max_requests_per_minute
        self._used = 0
        self._remaining = max_requests_per_minute
        self._safe_interval_ms = math.ceil(60_000 / max_requests_per_minute)
        self._window_seconds = window_seconds
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def requests_in_window(self) -> int:
        return self._used

    @property
    def max_requests_per_minute(self) -> int:
        return self._max

    @property
    def remaining_requests(self) -> int:
        """Requests left in this window. Negative after lowering the cap below usage."""
        return self._remaining

    @property
    def safe_interval_ms(self) -> int:
        return self._safe_interval_ms

    @property
    def usage_percent(self) -> float:
        return self._used / self._max * 100

    def state(self) -> RateBudgetState:
        """Return an immutable snapshot of the current counters."""
        return RateBudgetState(
            requests_in_window=self._used,
            max_requests_per_minute=self._max,
            remaining_requests=self._remaining,
            safe_interval_ms=self._safe_interval_ms,
        )

    def track_request(self) -> None:
        """Record one issued request against the current window."""
        self._used += 1
        self._remaining = max(0, self._max - self._used)

    def update_max_requests(self, new_max: int) -> None:
        """Change the per-minute cap and the derived request spacing.

        ``remaining_requests`` is not clamped: lowering the cap below current
        usage leaves it negative until the next window reset.
        """
        if new_max <= 0:
            raise ValueError("max_requests_per_minute must be positive")
        self._max = new_max
        self._safe_interval_ms = math.ceil(60_000 / new_max)
        self._remaining = new_max - self._used
        logger.info(
            "rate_budget_updated",
            max_requests_per_minute=new_max,
            safe_interval_ms=self._safe_interval_ms,
            remaining=self._remaining,
        )

    def reset_window(self) -> None:
        """Start a fresh window: zero usage, full capacity."""
        self._used = 0
        self._remaining = self._max

    # ──────────────────────────────────────────────
    # Background window reset
    # ──────────────────────────────────────────────

    async def start(self) -> None:
        """Begin resetting the window every ``window_seconds`` in the background."""
        if self._task is not None and not self._task.done():
            logger.warning("rate_budget_already_running")
            return
        self._task = asyncio.create_task(self._reset_loop())
        logger.info("rate_budget_started", window_seconds=self._window_seconds)

    async def stop(self) -> None:
        """Cancel the background reset task."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("rate_budget_stopped")

    async def _reset_loop(self) -> None:
        while True:
            await asyncio.sleep(self._window_seconds)
            used = self._used
            self.reset_window()
            logger.debug("rate_window_reset", requests_in_window=used)

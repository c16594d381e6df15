"""Collection engine -- sequential forward pagination over a date range.

Each iteration of the run loop:
  1. SUSPEND: block while paused, exit if cancelled
  2. THROTTLE: wait max(config delay, budget spacing), woken early by cancel
  3. FETCH: record the request against the budget, fetch one page
  4. MERGE: range-cap and de-duplicate into the series
  5. PUBLISH: stats every page; series + progress log every N pages or on a short page
  6. ADVANCE: next marker = last raw candle + one interval

Pages are strictly sequential: each page's start marker depends on the
previous page's last timestamp, and the exchange budget is shared.
Pause and cancel take effect between pages only; an in-flight fetch always
completes and its page is merged.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Protocol

import structlog

from collector.collection.log_book import LogBook
from collector.collection.page_fetcher import PageFetcher
from collector.collection.rate_budget import RateBudget
from collector.collection.series import CandleSeries
from collector.config import CollectionSettings
from collector.estimator import effective_delay_ms, estimate
from collector.exceptions import CollectionInProgressError, FetchError
from collector.logging import get_logger
from collector.models import (
    Candle,
    CollectionConfig,
    CollectionStats,
    LogEntry,
    LogLevel,
    RunState,
    StopReason,
)

logger = get_logger(__name__)


class CollectionObserver(Protocol):
    """Receives progress published by the engine. Read-only consumer."""

    async def on_stats(self, stats: CollectionStats) -> None: ...

    async def on_series(self, series: tuple[Candle, ...]) -> None: ...

    async def on_log(self, entry: LogEntry) -> None: ...


@dataclass(frozen=True)
class CollectionResult:
    """Outcome of one run. The series is kept for every stop reason."""

    reason: StopReason
    series: tuple[Candle, ...]
    stats: CollectionStats
    error: str | None = None


class CollectionEngine:
    """Drives one collection run at a time.

    States: IDLE -> RUNNING <-> PAUSED, RUNNING/PAUSED -> STOPPED.
    A stopped engine can be started again; each start resets series and stats.

    Usage:
        engine = CollectionEngine(PageFetcher(client), settings)
        result = await engine.start(config, rate_budget)
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        settings: CollectionSettings | None = None,
        observer: CollectionObserver | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._settings = settings or CollectionSettings()
        self._observer = observer
        self._log_book = LogBook(self._settings.log_capacity)

        self._state = RunState.IDLE
        self._stop_reason: StopReason | None = None
        self._error: str | None = None
        self._config: CollectionConfig | None = None
        self._series = CandleSeries()
        self._published_series: tuple[Candle, ...] = ()
        self._stats: CollectionStats | None = None
        self._loop_running = False

        # Set while not paused; cleared by pause(), set again by resume()/cancel()
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._cancelled = asyncio.Event()

    # ──────────────────────────────────────────────
    # Read-only views
    # ──────────────────────────────────────────────

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def stop_reason(self) -> StopReason | None:
        return self._stop_reason

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def config(self) -> CollectionConfig | None:
        return self._config

    @property
    def is_active(self) -> bool:
        return self._state in (RunState.RUNNING, RunState.PAUSED)

    @property
    def is_running(self) -> bool:
        """True while a run coroutine is executing, including a cancelled run
        still finishing its in-flight fetch or backoff."""
        return self._loop_running

    @property
    def stats(self) -> CollectionStats | None:
        """Latest published stats (a copy), None before the first run."""
        return replace(self._stats) if self._stats is not None else None

    @property
    def series(self) -> tuple[Candle, ...]:
        """Latest published series snapshot."""
        return self._published_series

    @property
    def logs(self) -> list[LogEntry]:
        """Operator log, newest first."""
        return self._log_book.entries()

    def set_observer(self, observer: CollectionObserver | None) -> None:
        self._observer = observer

    # ──────────────────────────────────────────────
    # Run control
    # ──────────────────────────────────────────────

    async def start(
        self, config: CollectionConfig, rate_budget: RateBudget
    ) -> CollectionResult:
        """Run a collection to completion, failure, or cancellation.

        Fetch failures do not propagate: the run stops as FAILED and the
        partial series stays published and exportable.

        Raises:
            CollectionInProgressError: another run is RUNNING or PAUSED, or a
                cancelled run has not finished its in-flight fetch yet.
        """
        if self.is_active or self._loop_running:
            raise CollectionInProgressError("A collection run is already active")

        self._loop_running = True
        try:
            return await self._run(config, rate_budget)
        finally:
            self._loop_running = False

    async def _run(
        self, config: CollectionConfig, rate_budget: RateBudget
    ) -> CollectionResult:
        page_limit = self._settings.page_limit
        est = estimate(config, rate_budget.safe_interval_ms, page_limit)

        self._config = config
        self._series = CandleSeries()
        self._published_series = ()
        self._stats = CollectionStats(
            total_requests=est.total_requests,
            start_time=int(time.time() * 1000),
        )
        self._stop_reason = None
        self._error = None
        self._cancelled.clear()
        self._resumed.set()
        self._state = RunState.RUNNING

        with structlog.contextvars.bound_contextvars(
            symbol=config.symbol, timeframe=config.timeframe.value
        ):
            logger.info(
                "collection_started",
                start_time=config.start_time_ms,
                end_time=config.end_time_ms,
                estimated_requests=est.total_requests,
                estimated_candles=est.total_candles,
            )
            await self._log(
                f"Starting collection for {config.symbol} ({config.timeframe.value})",
                LogLevel.SUCCESS,
            )
            await self._publish_stats()

            try:
                await self._run_loop(config, rate_budget, page_limit)
            except FetchError as e:
                if self._stop_reason is StopReason.CANCELLED:
                    # Cancel already stopped the run; the fetch failed afterwards
                    logger.debug("fetch_failed_after_cancel", error=str(e))
                    await self._publish_series()
                else:
                    self._finish(StopReason.FAILED)
                    self._error = str(e)
                    await self._publish_series()
                    await self._log(f"Error during collection: {e}", LogLevel.ERROR)
            except asyncio.CancelledError:
                self._finish(StopReason.CANCELLED)
                self._published_series = self._series.snapshot()
                logger.warning("collection_task_cancelled", candles=len(self._series))
                raise
            else:
                if self._stop_reason is StopReason.CANCELLED:
                    await self._publish_series()
                else:
                    self._finish(StopReason.COMPLETED)
                    await self._publish_series()
                    await self._log(
                        f"Collection completed. Total candles: {len(self._series)}",
                        LogLevel.SUCCESS,
                    )

            logger.info(
                "collection_stopped",
                reason=self._stop_reason.value if self._stop_reason else None,
                candles=len(self._series),
                requests=self._stats.completed_requests,
            )

        return CollectionResult(
            reason=self._stop_reason or StopReason.COMPLETED,
            series=self._published_series,
            stats=replace(self._stats),
            error=self._error,
        )

    async def pause(self) -> bool:
        """Pause a running collection before its next page. Returns True if paused."""
        if self._state is not RunState.RUNNING:
            return False
        self._state = RunState.PAUSED
        self._resumed.clear()
        await self._log("Collection paused.")
        return True

    async def resume(self) -> bool:
        """Resume a paused collection. Returns True if resumed."""
        if self._state is not RunState.PAUSED:
            return False
        self._state = RunState.RUNNING
        self._resumed.set()
        await self._log("Collection resumed.")
        return True

    async def cancel(self) -> bool:
        """Stop the active run at its next suspend point, keeping partial data.

        Returns True if a run was cancelled; no-op when idle or stopped.
        """
        if not self.is_active:
            return False
        self._finish(StopReason.CANCELLED)
        self._cancelled.set()
        self._resumed.set()
        await self._log("Collection stopped by user.", LogLevel.WARN)
        return True

    # ──────────────────────────────────────────────
    # Run loop
    # ──────────────────────────────────────────────

    async def _run_loop(
        self,
        config: CollectionConfig,
        rate_budget: RateBudget,
        page_limit: int,
    ) -> None:
        end_time = config.end_time_ms
        interval_ms = config.timeframe.interval_ms
        marker = config.start_time_ms
        pages = 0

        while marker < end_time:
            if not await self._checkpoint():
                return

            delay_ms = effective_delay_ms(config.delay_ms, rate_budget.safe_interval_ms)
            await self._throttle(delay_ms)
            if not await self._checkpoint():
                return

            rate_budget.track_request()
            page = await self._fetcher.fetch_page(
                config.symbol, config.timeframe, marker, page_limit
            )

            if not page:
                logger.info("exchange_data_exhausted", marker=marker)
                return

            added = self._series.merge_page(page, end_time)
            pages += 1

            self._stats.completed_requests = pages
            self._stats.total_candles = len(self._series)
            self._stats.last_candle_timestamp = self._series.last_timestamp
            if self._cancelled.is_set():
                # Page fetched before cancel: kept, only the final series is published
                logger.debug("page_merged_after_cancel", page=pages, added=added)
                return
            await self._publish_stats()

            short_page = len(page) < page_limit
            logger.debug(
                "page_merged",
                page=pages,
                marker=marker,
                raw=len(page),
                added=added,
                total=len(self._series),
            )

            if pages % self._settings.snapshot_every_pages == 0 or short_page:
                await self._publish_series()
                await self._log(f"Fetched {len(self._series)} candles...")

            next_marker = page[-1].timestamp + interval_ms
            if next_marker <= marker:
                logger.warning("pagination_stalled", marker=marker, last=page[-1].timestamp)
                return
            marker = next_marker

            if short_page:
                return

    async def _checkpoint(self) -> bool:
        """Block while paused. Returns False once the run has been cancelled."""
        await self._resumed.wait()
        return not self._cancelled.is_set()

    async def _throttle(self, delay_ms: int) -> None:
        """Sleep ``delay_ms`` before a request; cancel cuts the wait short."""
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=delay_ms / 1000)
        except asyncio.TimeoutError:
            pass

    def _finish(self, reason: StopReason) -> None:
        self._state = RunState.STOPPED
        self._stop_reason = reason

    # ──────────────────────────────────────────────
    # Publishing
    # ──────────────────────────────────────────────

    async def _log(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        entry = self._log_book.add(message, level)
        if self._observer is not None:
            try:
                await self._observer.on_log(entry)
            except Exception:
                logger.warning("observer_log_failed", exc_info=True)

    async def _publish_stats(self) -> None:
        if self._observer is not None and self._stats is not None:
            try:
                await self._observer.on_stats(replace(self._stats))
            except Exception:
                logger.warning("observer_stats_failed", exc_info=True)

    async def _publish_series(self) -> None:
        self._published_series = self._series.snapshot()
        if self._observer is not None:
            try:
                await self._observer.on_series(self._published_series)
            except Exception:
                logger.warning("observer_series_failed", exc_info=True)

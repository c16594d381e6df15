"""Forwards engine progress to WebSocket clients as JSON events."""

from __future__ import annotations

from collector.dashboard.payloads import log_to_dict, series_summary, stats_to_dict
from collector.dashboard.routes.ws import DashboardHub, EventType
from collector.models import Candle, CollectionStats, LogEntry


class HubPublisher:
    """CollectionObserver that publishes each update through the hub.

    Series events carry the count and the last ``series_tail`` candles only;
    clients download the full dataset through the CSV export endpoint.
    """

    def __init__(self, hub: DashboardHub, series_tail: int = 200) -> None:
        self._hub = hub
        self._series_tail = series_tail

    async def on_stats(self, stats: CollectionStats) -> None:
        await self._hub.publish(EventType.STATS, stats_to_dict(stats))

    async def on_series(self, series: tuple[Candle, ...]) -> None:
        await self._hub.publish(EventType.SERIES, series_summary(series, self._series_tail))

    async def on_log(self, entry: LogEntry) -> None:
        await self._hub.publish(EventType.LOG, log_to_dict(entry))

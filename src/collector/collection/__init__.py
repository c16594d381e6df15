"""Collection core: request budget, page fetch with retry, series merge, run engine."""

from collector.collection.engine import (
    CollectionEngine,
    CollectionObserver,
    CollectionResult,
)
from collector.collection.log_book import LogBook
from collector.collection.page_fetcher import PageFetcher, parse_kline_rows
from collector.collection.rate_budget import RateBudget
from collector.collection.series import CandleSeries

__all__ = [
    "CandleSeries",
    "CollectionEngine",
    "CollectionObserver",
    "CollectionResult",
    "LogBook",
    "PageFetcher",
    "RateBudget",
    "parse_kline_rows",
]

"""Shared test fixtures for the kline collector."""

import pytest

from collector.config import AppSettings, CollectionSettings, DashboardSettings, ExchangeSettings


@pytest.fixture
def collection_settings() -> CollectionSettings:
    """Collection settings with production paging and retry constants."""
    return CollectionSettings(
        page_limit=1000,
        max_requests_per_minute=1200,
        snapshot_every_pages=5,
        log_capacity=100,
        max_transport_retries=3,
        retry_base_delay_ms=1000,
    )


@pytest.fixture
def mock_settings(collection_settings: CollectionSettings) -> AppSettings:
    """Return AppSettings with test defaults."""
    return AppSettings(
        log_level="DEBUG",
        exchange=ExchangeSettings(timeout_ms=5000),
        collection=collection_settings,
        dashboard=DashboardSettings(series_tail=10),
    )

"""Tests for shared models: config range bounds and timeframe metadata."""

from dataclasses import FrozenInstanceError
from datetime import date

import pytest

from collector.models import Candle, CollectionConfig, Timeframe

JAN_1_2023_MS = 1_672_531_200_000
DAY_MS = 86_400_000


class TestCollectionConfig:
    def test_range_is_whole_utc_days(self) -> None:
        config = CollectionConfig("BTCUSDT", Timeframe.ONE_HOUR, date(2023, 1, 1), date(2023, 1, 2))

        assert config.start_time_ms == JAN_1_2023_MS
        assert config.end_time_ms == JAN_1_2023_MS + 2 * DAY_MS - 1

    def test_symbol_normalized(self) -> None:
        config = CollectionConfig(" ethusdt ", "5m", date(2023, 1, 1), date(2023, 1, 1))

        assert config.symbol == "ETHUSDT"
        assert config.timeframe is Timeframe.FIVE_MINUTES

    def test_empty_symbol_rejected(self) -> None:
        with pytest.raises(ValueError):
            CollectionConfig("  ", Timeframe.ONE_HOUR, date(2023, 1, 1), date(2023, 1, 1))

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValueError):
            CollectionConfig("BTCUSDT", Timeframe.ONE_HOUR, date(2023, 1, 1), date(2023, 1, 1), delay_ms=-1)

    def test_unknown_timeframe_rejected(self) -> None:
        with pytest.raises(ValueError):
            CollectionConfig("BTCUSDT", "4h", date(2023, 1, 1), date(2023, 1, 1))  # type: ignore[arg-type]

    def test_immutable(self) -> None:
        config = CollectionConfig("BTCUSDT", Timeframe.ONE_HOUR, date(2023, 1, 1), date(2023, 1, 1))

        with pytest.raises(FrozenInstanceError):
            config.delay_ms = 5  # type: ignore[misc]


class TestTimeframe:
    @pytest.mark.parametrize(
        "timeframe,interval_ms,label",
        [
            (Timeframe.ONE_MINUTE, 60_000, "1 Minute"),
            (Timeframe.FIVE_MINUTES, 300_000, "5 Minutes"),
            (Timeframe.ONE_HOUR, 3_600_000, "1 Hour"),
            (Timeframe.ONE_DAY, 86_400_000, "1 Day"),
        ],
    )
    def test_metadata(self, timeframe: Timeframe, interval_ms: int, label: str) -> None:
        assert timeframe.interval_ms == interval_ms
        assert timeframe.label == label


def test_candle_is_immutable() -> None:
    candle = Candle(timestamp=0, open=1.0, high=1.0, low=1.0, close=1.0, volume=1.0)

    with pytest.raises(FrozenInstanceError):
        candle.close = 2.0  # type: ignore[misc]

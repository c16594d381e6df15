"""In-memory candle series with an ordered, duplicate-free merge."""

from collections.abc import Iterable

from collector.models import Candle


class CandleSeries:
    """Candles strictly increasing by timestamp, each timestamp at most once.

    The duplicate guard compares only against the current last timestamp,
    which is sufficient while pages arrive in increasing marker order.
    """

    def __init__(self) -> None:
        self._candles: list[Candle] = []

    def __len__(self) -> int:
        return len(self._candles)

    @property
    def last_timestamp(self) -> int | None:
        return self._candles[-1].timestamp if self._candles else None

    def merge_page(self, page: Iterable[Candle], end_time_ms: int) -> int:
        """Append the part of ``page`` that is inside the range and new.

        Drops candles opening after ``end_time_ms`` and candles at or before
        the series' current maximum. Returns the number appended.
        """
        added = 0
        for candle in page:
            if candle.timestamp > end_time_ms:
                continue
            last = self.last_timestamp
            if last is not None and candle.timestamp <= last:
                continue
            self._candles.append(candle)
            added += 1
        return added

    def snapshot(self) -> tuple[Candle, ...]:
        """Immutable copy for observers."""
        return tuple(self._candles)

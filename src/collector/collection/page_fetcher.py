"""Single-page kline fetch with exponential backoff retry.

One call to ``fetch_page`` issues one logical page request. HTTP 429 is
always retried; network failures and malformed payloads are retried a
bounded number of times; any other exchange rejection fails immediately.
"""

import asyncio
import math
from collections.abc import Sequence

from collector.config import CollectionSettings
from collector.exceptions import RateLimitedError, TransientError
from collector.exchange.client import KlineClient
from collector.logging import get_logger
from collector.models import PAGE_LIMIT, Candle, Timeframe

logger = get_logger(__name__)


def _to_float(value: object) -> float:
    """Parse a loosely-typed numeric field; unparsable input becomes NaN."""
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return math.nan


def parse_kline_rows(payload: object) -> list[Candle]:
    """Map raw kline rows positionally onto Candles.

    ``[open_time, open, high, low, close, volume, ...]`` -- fields past the
    sixth are ignored. Price/volume fields are non-validating (NaN on bad
    input) but the payload shape and the open time must be sound.

    Raises:
        TransientError: payload is not a list of rows, or a row is too short
            or carries a non-integer open time.
    """
    if not isinstance(payload, list):
        raise TransientError(f"Malformed kline payload: expected list, got {type(payload).__name__}")

    candles: list[Candle] = []
    for row in payload:
        if not isinstance(row, Sequence) or isinstance(row, str) or len(row) < 6:
            raise TransientError(f"Malformed kline row: {row!r}")
        try:
            timestamp = int(row[0])
        except (TypeError, ValueError) as e:
            raise TransientError(f"Malformed kline open time: {row[0]!r}") from e
        candles.append(
            Candle(
                timestamp=timestamp,
                open=_to_float(row[1]),
                high=_to_float(row[2]),
                low=_to_float(row[3]),
                close=_to_float(row[4]),
                volume=_to_float(row[5]),
            )
        )
    return candles


class PageFetcher:
    """Fetches and normalizes one kline page, retrying per the error taxonomy.

    Backoff before retry ``n`` (0-based) is ``2**n * retry_base_delay_ms``,
    capped at ``max_retry_delay_ms``. The exponent counts every retry of the
    page; only transient failures count against ``max_transport_retries``.
    """

    def __init__(
        self,
        client: KlineClient,
        settings: CollectionSettings | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or CollectionSettings()

    def _backoff_ms(self, attempt: int) -> int:
        delay = (2**attempt) * self._settings.retry_base_delay_ms
        return min(delay, self._settings.max_retry_delay_ms)

    async def fetch_page(
        self,
        symbol: str,
        timeframe: Timeframe,
        start_time_ms: int,
        page_limit: int = PAGE_LIMIT,
    ) -> list[Candle]:
        """Fetch up to ``page_limit`` candles opening at or after ``start_time_ms``.

        Returns candles ascending by timestamp; empty when the exchange has
        no data at or after the marker.

        Raises:
            ApiError: non-retryable rejection (propagated from the client).
            TransientError: transport/parse failure after exhausting retries.
        """
        attempt = 0
        transient_failures = 0

        while True:
            try:
                payload = await self._client.fetch_klines(
                    symbol, timeframe.value, start_time_ms, page_limit
                )
                return parse_kline_rows(payload)
            except RateLimitedError:
                delay_ms = self._backoff_ms(attempt)
                logger.warning(
                    "rate_limit_hit",
                    symbol=symbol,
                    start_time=start_time_ms,
                    attempt=attempt + 1,
                    delay_ms=delay_ms,
                )
            except TransientError as e:
                if transient_failures >= self._settings.max_transport_retries:
                    logger.error(
                        "fetch_failed_permanently",
                        symbol=symbol,
                        start_time=start_time_ms,
                        error=str(e),
                        attempts=transient_failures + 1,
                    )
                    raise
                transient_failures += 1
                delay_ms = self._backoff_ms(attempt)
                logger.warning(
                    "fetch_retry",
                    symbol=symbol,
                    start_time=start_time_ms,
                    attempt=transient_failures,
                    max_retries=self._settings.max_transport_retries,
                    delay_ms=delay_ms,
                    error=str(e),
                )

            await asyncio.sleep(delay_ms / 1000)
            attempt += 1

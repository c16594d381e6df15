"""Binance public kline client via ccxt async.

Calls the raw ``GET /api/v3/klines`` endpoint through ccxt's implicit API so
the loosely-typed rows come back untouched, and translates ccxt's exception
hierarchy into the collector's error taxonomy.

ccxt folds HTTP statuses into its own classes (Binance 429 arrives as
``DDoSProtection``, most 4xx/5xx as ``ExchangeNotAvailable``, both
``NetworkError`` subclasses), so the translation keys on the HTTP status of
the response when there was one:

- 429                      -> RateLimitedError (retried without limit)
- any other non-2xx        -> ApiError (not retried)
- no response / bad body   -> TransientError (retried a bounded number of times)
"""

import ccxt.async_support as ccxt_async

from collector.config import ExchangeSettings
from collector.exceptions import ApiError, FetchError, RateLimitedError, TransientError
from collector.exchange.client import KlineClient
from collector.logging import get_logger

logger = get_logger(__name__)


class _BinanceExchange(ccxt_async.binance):
    """ccxt binance that remembers the status line of the last HTTP response."""

    last_http_status: int | None = None
    last_http_reason: str | None = None

    def on_rest_response(self, code, reason, url, method, response_headers, response_body, request_headers, request_body):
        self.last_http_status = code
        self.last_http_reason = reason
        return super().on_rest_response(
            code, reason, url, method, response_headers, response_body, request_headers, request_body
        )


class BinanceClient(KlineClient):
    """Concrete Binance spot kline client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        # Throttling is owned by RateBudget
        self._exchange = _BinanceExchange({
            "enableRateLimit": False,
            "timeout": settings.timeout_ms,
        })

    @property
    def exchange(self) -> ccxt_async.binance:
        """Access the underlying ccxt exchange instance."""
        return self._exchange

    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        start_time: int,
        limit: int = 1000,
    ) -> list:
        """Fetch one raw kline page starting at ``start_time``."""
        params = {
            "symbol": symbol,
            "interval": interval,
            "startTime": start_time,
            "limit": limit,
        }
        self._exchange.last_http_status = None
        self._exchange.last_http_reason = None
        try:
            return await self._exchange.public_get_klines(params)
        except ccxt_async.BaseError as e:
            raise self._translate_error(e, symbol) from e

    def _translate_error(self, error: ccxt_async.BaseError, symbol: str) -> FetchError:
        status = self._exchange.last_http_status
        if status == 429:
            return RateLimitedError(str(error))

        if status is not None and not 200 <= status < 300:
            reason = self._exchange.last_http_reason or str(error)
            logger.warning("binance_request_rejected", symbol=symbol, status=status, error=str(error))
            return ApiError(f"API Error: {status} {reason}", status_text=reason)

        if isinstance(error, ccxt_async.RateLimitExceeded):
            return RateLimitedError(str(error))
        if isinstance(error, (ccxt_async.NetworkError, ccxt_async.BadResponse)):
            return TransientError(str(error))

        logger.warning("binance_request_rejected", symbol=symbol, status=status, error=str(error))
        return ApiError(f"API Error: {error}", status_text=str(error))

    async def close(self) -> None:
        """Clean up ccxt async resources. Must be called to avoid session leaks."""
        logger.info("closing_binance_connection")
        await self._exchange.close()

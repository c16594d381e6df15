"""Abstract kline client interface.

The fetch layer depends only on this contract, keeping Binance/ccxt
details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod


class KlineClient(ABC):
    """Abstract base class for exchange kline endpoints."""

    @abstractmethod
    async def fetch_klines(
        self,
        symbol: str,
        interval: str,
        start_time: int,
        limit: int = 1000,
    ) -> list:
        """Issue a single kline request and return the raw decoded payload.

        Expected payload is a list of rows
        ``[open_time, open, high, low, close, volume, close_time, ...]``.
        Pagination is NOT handled here -- callers advance ``start_time``.

        Raises:
            RateLimitedError: the exchange answered HTTP 429.
            ApiError: any other rejection by the exchange.
            TransientError: network failure or undecodable response.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release HTTP resources."""
        ...

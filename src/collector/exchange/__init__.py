"""Exchange client layer -- Binance kline endpoint via ccxt."""

from collector.exchange.binance_client import BinanceClient
from collector.exchange.client import KlineClient

__all__ = ["BinanceClient", "KlineClient"]

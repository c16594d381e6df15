"""Historical OHLCV kline collector for the Binance public REST API."""

__version__ = "0.1.0"

"""Custom exceptions for the kline collector.

Exchange-library errors are translated into this hierarchy at the client
boundary so the fetch and engine layers never depend on ccxt types.
"""


class CollectorError(Exception):
    """Base exception for all collector errors."""


class FetchError(CollectorError):
    """Raised when a kline page cannot be fetched."""


class RateLimitedError(FetchError):
    """Raised when the exchange answers HTTP 429. Always retried."""


class ApiError(FetchError):
    """Raised when the exchange rejects a request with a non-429 error status.

    Not retried: the run fails and keeps whatever it collected so far.
    """

    def __init__(self, message: str, status_text: str | None = None) -> None:
        super().__init__(message)
        self.status_text = status_text or message


class TransientError(FetchError):
    """Raised on network failures or malformed responses. Retried with backoff."""


class CollectionInProgressError(CollectorError):
    """Raised when a collection is started while another run is still active."""

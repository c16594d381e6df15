"""Shared data models for the kline collector.

Prices and volumes are floats: Binance kline rows are loosely typed strings
and a field that cannot be parsed becomes NaN rather than failing the page.
All timestamps are Unix milliseconds, UTC.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum

# Binance kline endpoint hard maximum per request
PAGE_LIMIT = 1000

SYMBOLS = [
    "BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT",
    "ADAUSDT", "DOGEUSDT", "AVAXUSDT", "DOTUSDT", "LINKUSDT",
]

_MS_PER_DAY = 86_400_000


class Timeframe(str, Enum):
    """Supported kline intervals (values are Binance interval strings)."""

    ONE_MINUTE = "1m"
    FIVE_MINUTES = "5m"
    ONE_HOUR = "1h"
    ONE_DAY = "1d"

    @property
    def interval_ms(self) -> int:
        return _INTERVAL_MS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


_INTERVAL_MS = {
    Timeframe.ONE_MINUTE: 60 * 1000,
    Timeframe.FIVE_MINUTES: 5 * 60 * 1000,
    Timeframe.ONE_HOUR: 60 * 60 * 1000,
    Timeframe.ONE_DAY: _MS_PER_DAY,
}

_LABELS = {
    Timeframe.ONE_MINUTE: "1 Minute",
    Timeframe.FIVE_MINUTES: "5 Minutes",
    Timeframe.ONE_HOUR: "1 Hour",
    Timeframe.ONE_DAY: "1 Day",
}


class LogLevel(str, Enum):
    """Severity of an operator-facing log entry."""

    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SUCCESS = "success"


class RunState(str, Enum):
    """Lifecycle state of the collection engine."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class StopReason(str, Enum):
    """Why a run reached the stopped state."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class Candle:
    """A single OHLCV kline, keyed by its period open time."""

    timestamp: int  # Unix milliseconds, period open time
    open: float
    high: float
    low: float
    close: float
    volume: float


def _day_start_ms(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp() * 1000)


@dataclass(frozen=True)
class CollectionConfig:
    """Parameters of one collection run. Immutable for the run's duration.

    Dates are calendar days in UTC. The end date is inclusive: the range
    closes at the last millisecond of that day.
    """

    symbol: str
    timeframe: Timeframe
    start_date: date
    end_date: date
    delay_ms: int = 100

    def __post_init__(self) -> None:
        symbol = self.symbol.strip().upper()
        if not symbol:
            raise ValueError("Symbol must not be empty")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        object.__setattr__(self, "symbol", symbol)
        object.__setattr__(self, "timeframe", Timeframe(self.timeframe))

    @property
    def start_time_ms(self) -> int:
        return _day_start_ms(self.start_date)

    @property
    def end_time_ms(self) -> int:
        return _day_start_ms(self.end_date + timedelta(days=1)) - 1


@dataclass(frozen=True)
class RateBudgetState:
    """Point-in-time view of the request budget."""

    requests_in_window: int
    max_requests_per_minute: int
    remaining_requests: int
    safe_interval_ms: int


@dataclass
class CollectionStats:
    """Progress snapshot of a run, recomputed after every page."""

    total_requests: int
    completed_requests: int = 0
    total_candles: int = 0
    start_time: int = 0  # Unix milliseconds
    last_candle_timestamp: int | None = None


@dataclass(frozen=True)
class LogEntry:
    """One operator-facing log line."""

    level: LogLevel
    message: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:9])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

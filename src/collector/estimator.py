"""Pre-run estimate of collection size and duration.

Pure functions over a CollectionConfig and the current throttle interval,
shown to the operator before and during a run.
"""

import math
from dataclasses import dataclass

from collector.models import PAGE_LIMIT, CollectionConfig


@dataclass(frozen=True)
class Estimate:
    """Expected candle count, page count and wall-clock duration of a run."""

    total_candles: int
    total_requests: int
    effective_delay_ms: int
    estimated_duration_ms: int

    @property
    def minutes(self) -> int:
        return self.estimated_duration_ms // 60_000

    @property
    def seconds(self) -> int:
        return (self.estimated_duration_ms % 60_000) // 1000


def effective_delay_ms(delay_ms: int, safe_interval_ms: int) -> int:
    """Per-page throttle: the larger of the configured delay and the budget spacing."""
    return max(delay_ms, safe_interval_ms)


def estimate(
    config: CollectionConfig,
    safe_interval_ms: int,
    page_limit: int = PAGE_LIMIT,
) -> Estimate:
    """Estimate how many candles and pages a run over *config* will fetch.

    The count assumes a gap-free series; actual page counts can differ near
    range edges or where the exchange has no data.
    """
    duration_ms = max(0, config.end_time_ms - config.start_time_ms)
    total_candles = duration_ms // config.timeframe.interval_ms
    total_requests = math.ceil(total_candles / page_limit)
    delay = effective_delay_ms(config.delay_ms, safe_interval_ms)

    return Estimate(
        total_candles=total_candles,
        total_requests=total_requests,
        effective_delay_ms=delay,
        estimated_duration_ms=total_requests * delay,
    )

"""JSON shapes shared by the HTTP API and the WebSocket progress events."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from collector.collection.engine import CollectionEngine
from collector.collection.rate_budget import RateBudget
from collector.estimator import Estimate
from collector.models import Candle, CollectionStats, LogEntry


def candle_to_dict(candle: Candle) -> dict[str, Any]:
    return asdict(candle)


def stats_to_dict(stats: CollectionStats | None) -> dict[str, Any] | None:
    return asdict(stats) if stats is not None else None


def log_to_dict(entry: LogEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "timestamp": entry.timestamp.isoformat(),
        "level": entry.level.value,
        "message": entry.message,
    }


def series_summary(series: tuple[Candle, ...], tail: int) -> dict[str, Any]:
    """Candle count plus the last ``tail`` candles; full series goes via CSV export."""
    return {
        "count": len(series),
        "candles": [candle_to_dict(c) for c in series[-tail:]] if tail > 0 else [],
    }


def estimate_to_dict(est: Estimate) -> dict[str, Any]:
    return {
        "total_candles": est.total_candles,
        "total_requests": est.total_requests,
        "effective_delay_ms": est.effective_delay_ms,
        "estimated_duration_ms": est.estimated_duration_ms,
        "minutes": est.minutes,
        "seconds": est.seconds,
    }


def rate_budget_to_dict(budget: RateBudget) -> dict[str, Any]:
    state = asdict(budget.state())
    state["usage_percent"] = round(budget.usage_percent, 1)
    return state


def status_to_dict(engine: CollectionEngine, budget: RateBudget) -> dict[str, Any]:
    config = engine.config
    return {
        "state": engine.state.value,
        "stop_reason": engine.stop_reason.value if engine.stop_reason else None,
        "error": engine.error,
        "symbol": config.symbol if config else None,
        "timeframe": config.timeframe.value if config else None,
        "stats": stats_to_dict(engine.stats),
        "rate_limit": rate_budget_to_dict(budget),
    }


def snapshot_to_dict(engine: CollectionEngine, budget: RateBudget, series_tail: int) -> dict[str, Any]:
    """Everything a newly connected client needs before live events arrive."""
    return {
        "status": status_to_dict(engine, budget),
        "series": series_summary(engine.series, series_tail),
        "logs": [log_to_dict(e) for e in engine.logs],
    }

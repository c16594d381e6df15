"""JSON API endpoints: catalog, estimate, run status, logs, series and CSV export."""

from __future__ import annotations

from datetime import date

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response

from collector.dashboard.payloads import (
    estimate_to_dict,
    log_to_dict,
    series_summary,
    status_to_dict,
)
from collector.estimator import estimate
from collector.export import export_filename, to_csv
from collector.models import SYMBOLS, CollectionConfig, Timeframe

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/catalog")
async def get_catalog() -> JSONResponse:
    """Selectable trading pairs and timeframes."""
    return JSONResponse(content={
        "symbols": SYMBOLS,
        "timeframes": [{"label": tf.label, "value": tf.value} for tf in Timeframe],
    })


@router.get("/estimate")
async def get_estimate(
    request: Request,
    symbol: str,
    timeframe: Timeframe,
    start_date: date,
    end_date: date,
    delay_ms: int = Query(100, ge=0),
) -> JSONResponse:
    """Expected candles, requests and duration at the current throttle rate."""
    try:
        config = CollectionConfig(
            symbol=symbol,
            timeframe=timeframe,
            start_date=start_date,
            end_date=end_date,
            delay_ms=delay_ms,
        )
    except ValueError as e:
        return JSONResponse(status_code=422, content={"error": str(e)})
    budget = request.app.state.rate_budget
    page_limit = request.app.state.settings.collection.page_limit
    est = estimate(config, budget.safe_interval_ms, page_limit)
    return JSONResponse(content=estimate_to_dict(est))


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Run state, stop reason, progress stats and rate budget."""
    engine = request.app.state.engine
    return JSONResponse(content=status_to_dict(engine, request.app.state.rate_budget))


@router.get("/logs")
async def get_logs(request: Request) -> JSONResponse:
    """Operator log entries, newest first."""
    engine = request.app.state.engine
    return JSONResponse(content=[log_to_dict(e) for e in engine.logs])


@router.get("/series")
async def get_series(
    request: Request,
    tail: int = Query(200, ge=0, le=5000),
) -> JSONResponse:
    """Latest published series snapshot (count and last ``tail`` candles)."""
    engine = request.app.state.engine
    return JSONResponse(content=series_summary(engine.series, tail))


@router.get("/export")
async def export_csv(request: Request) -> Response:
    """Download the published series as CSV. Partial runs are exportable too."""
    engine = request.app.state.engine
    series = engine.series
    config = engine.config
    if not series or config is None:
        return JSONResponse(status_code=404, content={"error": "No data collected"})

    filename = export_filename(config.symbol, config.timeframe)
    log.info("dataset_exported", filename=filename, rows=len(series))
    return Response(
        content=to_csv(series),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

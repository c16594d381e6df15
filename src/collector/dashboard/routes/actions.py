"""POST endpoints for collection control and rate-limit updates."""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from collector.dashboard.payloads import rate_budget_to_dict, status_to_dict
from collector.exceptions import CollectionInProgressError
from collector.models import CollectionConfig, Timeframe

log = structlog.get_logger(__name__)

router = APIRouter()


class CollectionRequest(BaseModel):
    """Body of a start request."""

    symbol: str = Field(min_length=1)
    timeframe: Timeframe
    start_date: date
    end_date: date
    delay_ms: int = Field(100, ge=0)


class RateLimitRequest(BaseModel):
    """Body of a rate-limit update (slider bounds 60..2400 requests/minute)."""

    max_requests_per_minute: int = Field(ge=60, le=2400)


async def _run_collection_task(app_state: Any, config: CollectionConfig) -> None:
    """Background wrapper: the engine handles fetch errors itself, log anything else."""
    try:
        await app_state.engine.start(config, app_state.rate_budget)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        log.error("collection_task_error", error=str(e), exc_info=True)


def _run_active(request: Request) -> bool:
    task = getattr(request.app.state, "run_task", None)
    engine = request.app.state.engine
    return engine.is_active or engine.is_running or (task is not None and not task.done())


@router.post("/collection/start")
async def start_collection(body: CollectionRequest, request: Request) -> JSONResponse:
    """Start a run in the background. 409 while another run is active."""
    if _run_active(request):
        return JSONResponse(
            status_code=409,
            content={"error": str(CollectionInProgressError("A collection run is already active"))},
        )

    try:
        config = CollectionConfig(
            symbol=body.symbol,
            timeframe=body.timeframe,
            start_date=body.start_date,
            end_date=body.end_date,
            delay_ms=body.delay_ms,
        )
    except ValueError as e:
        return JSONResponse(status_code=422, content={"error": str(e)})

    request.app.state.run_task = asyncio.create_task(
        _run_collection_task(request.app.state, config)
    )
    log.info("collection_started_via_dashboard", symbol=config.symbol, timeframe=config.timeframe.value)
    return JSONResponse(
        status_code=202,
        content={"symbol": config.symbol, "timeframe": config.timeframe.value, "state": "running"},
    )


@router.post("/collection/pause")
async def pause_collection(request: Request) -> JSONResponse:
    engine = request.app.state.engine
    await engine.pause()
    return JSONResponse(content=status_to_dict(engine, request.app.state.rate_budget))


@router.post("/collection/resume")
async def resume_collection(request: Request) -> JSONResponse:
    engine = request.app.state.engine
    await engine.resume()
    return JSONResponse(content=status_to_dict(engine, request.app.state.rate_budget))


@router.post("/collection/cancel")
async def cancel_collection(request: Request) -> JSONResponse:
    engine = request.app.state.engine
    await engine.cancel()
    return JSONResponse(content=status_to_dict(engine, request.app.state.rate_budget))


@router.post("/rate-limit")
async def update_rate_limit(body: RateLimitRequest, request: Request) -> JSONResponse:
    """Change the per-minute request cap; applies to the next throttle wait."""
    budget = request.app.state.rate_budget
    budget.update_max_requests(body.max_requests_per_minute)
    return JSONResponse(content=rate_budget_to_dict(budget))

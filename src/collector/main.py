"""Entry point for the kline collector service.

Wires components together and serves the FastAPI dashboard through
uvicorn's programmatic API; the collection engine, rate budget reset task
and dashboard share one asyncio event loop.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. BinanceClient (ccxt kline endpoint)
4. RateBudget (per-minute request window)
5. PageFetcher (single page with retry)
6. CollectionEngine (pagination loop)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from collector.collection.engine import CollectionEngine
from collector.collection.page_fetcher import PageFetcher
from collector.collection.rate_budget import RateBudget
from collector.config import AppSettings
from collector.exchange.binance_client import BinanceClient
from collector.logging import get_logger, setup_logging


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the collector's dependency graph from settings.

    Does NOT start the rate budget reset task -- that happens in the lifespan
    so the task is bound to the server's event loop.
    """
    client = BinanceClient(settings.exchange)
    rate_budget = RateBudget(
        max_requests_per_minute=settings.collection.max_requests_per_minute,
        window_seconds=settings.collection.window_seconds,
    )
    fetcher = PageFetcher(client, settings.collection)
    engine = CollectionEngine(fetcher, settings.collection)

    return {
        "client": client,
        "rate_budget": rate_budget,
        "fetcher": fetcher,
        "engine": engine,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: exposes components on app.state, attaches the WebSocket
    publisher to the engine, starts the rate budget window reset.

    On shutdown: cancels an active run (keeping its partial series), stops
    the reset task, closes the exchange session.
    """
    from collector.dashboard.publisher import HubPublisher

    logger = get_logger("collector.main")
    settings = app.state.settings
    components = app.state.components

    app.state.engine = components["engine"]
    app.state.rate_budget = components["rate_budget"]
    components["engine"].set_observer(
        HubPublisher(app.state.hub, settings.dashboard.series_tail)
    )

    await components["rate_budget"].start()
    logger.info("lifespan_started")

    yield

    await components["engine"].cancel()
    run_task = app.state.run_task
    if run_task is not None and not run_task.done():
        run_task.cancel()
        try:
            await run_task
        except asyncio.CancelledError:
            pass

    await components["rate_budget"].stop()
    await components["client"].close()
    logger.info("kline_collector_stopped")


async def run() -> None:
    """Run the collector service until the server shuts down."""
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format, settings.library_log_level)
    logger = get_logger("collector.main")

    components = _build_components(settings)

    from collector.dashboard.app import create_dashboard_app

    app = create_dashboard_app(lifespan=lifespan)
    app.state.settings = settings
    app.state.components = components

    logger.info(
        "starting_dashboard",
        host=settings.dashboard.host,
        port=settings.dashboard.port,
        max_requests_per_minute=settings.collection.max_requests_per_minute,
    )

    config = uvicorn.Config(
        app,
        host=settings.dashboard.host,
        port=settings.dashboard.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()

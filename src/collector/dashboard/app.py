"""FastAPI dashboard application factory with WebSocket progress hub."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from collector.dashboard.routes import actions, api, ws
from collector.dashboard.routes.ws import DashboardHub


def create_dashboard_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        Configured FastAPI application with WebSocket hub and routes.
        ``app.state.engine``, ``rate_budget`` and ``settings`` are wired by
        the caller.
    """
    app = FastAPI(
        title="Historical Kline Collector",
        lifespan=lifespan,
    )

    app.state.hub = DashboardHub()
    app.state.run_task = None

    app.include_router(api.router, prefix="/api")
    app.include_router(actions.router, prefix="/actions")
    app.include_router(ws.router)

    return app

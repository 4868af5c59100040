"""FastAPI application factory for the admin JSON API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from trader.api import routes


def create_api_app(lifespan: Any = None) -> FastAPI:
    """Create the admin API application.

    Route handlers read their collaborators from ``app.state``:
    ``store`` (TradeStore) and ``position_manager`` (PositionManager).

    Args:
        lifespan: Optional async context manager for startup/shutdown.
                  Used by main.py to inject the engine components.
    """
    app = FastAPI(
        title="Perp Decision Trader API",
        lifespan=lifespan,
    )
    app.include_router(routes.router, prefix="/api")
    return app

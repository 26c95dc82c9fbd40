"""FastAPI application factory: chart proxy and health endpoints."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wealthfeed import __version__
from wealthfeed.marketdata.gateway import MarketDataGateway

logger = logging.getLogger(__name__)

_start_time: float = 0.0


def get_uptime() -> float:
    return time.time() - _start_time if _start_time else 0.0


def create_app(gateway: MarketDataGateway | None = None) -> FastAPI:
    """Build and return the fully-configured FastAPI application."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        global _start_time
        _start_time = time.time()
        logger.info("wealthfeed API v%s starting", __version__)
        yield
        await app.state.gateway.close()
        logger.info("wealthfeed API shutting down")

    app = FastAPI(
        title="wealthfeed",
        description="Market data proxy and health for the portfolio planner",
        version=__version__,
        lifespan=_lifespan,
    )
    app.state.gateway = gateway or MarketDataGateway()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    from wealthfeed.api.routes import chart_proxy, system
    app.include_router(chart_proxy.router, prefix="/api")
    app.include_router(system.router, prefix="/api")

    return app
